from .reader import (
    MalformedFileError,
    NoDataError,
    ParsedSpreadsheet,
    RawRow,
    SpreadsheetParseError,
    UnsupportedFormatError,
    parse_spreadsheet,
    read_spreadsheet,
)

__all__ = [
    "MalformedFileError",
    "NoDataError",
    "ParsedSpreadsheet",
    "RawRow",
    "SpreadsheetParseError",
    "UnsupportedFormatError",
    "parse_spreadsheet",
    "read_spreadsheet",
]
