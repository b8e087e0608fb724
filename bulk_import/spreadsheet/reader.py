from __future__ import annotations

import io
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

"""Spreadsheet reader for bulk label imports.

Turns an uploaded CSV / XLS / XLSX file into headers plus an ordered list of
raw rows (header -> cell value). The first row is always the header row and
only the first worksheet of a workbook is read.

pandas does the heavy lifting for both formats; this module only normalizes
the cells (missing -> "") and drops rows that are entirely blank.
"""

__all__ = [
    "RawRow",
    "ParsedSpreadsheet",
    "SpreadsheetParseError",
    "UnsupportedFormatError",
    "NoDataError",
    "MalformedFileError",
    "SUPPORTED_EXTENSIONS",
    "parse_spreadsheet",
    "read_spreadsheet",
]

RawRow = dict[str, Any]

SUPPORTED_EXTENSIONS = ("csv", "xls", "xlsx")
UNSUPPORTED_FORMAT_MESSAGE = "Unsupported file format. Please upload CSV, XLS, or XLSX files."


class SpreadsheetParseError(Exception):
    """Base class for errors that stop a file from being imported.

    ``errors`` holds the user-facing messages.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class UnsupportedFormatError(SpreadsheetParseError):
    """Raised when the file extension is not csv / xls / xlsx."""

    def __init__(self) -> None:
        super().__init__([UNSUPPORTED_FORMAT_MESSAGE])


class NoDataError(SpreadsheetParseError):
    """Raised when no usable data row remains after blank-row filtering."""

    def __init__(self, kind: str) -> None:
        super().__init__([f"No data found in {kind} file"])


class MalformedFileError(SpreadsheetParseError):
    """Raised when the underlying reader cannot parse the file."""

    def __init__(self, message: str) -> None:
        super().__init__([message or "Error parsing file"])


@dataclass(frozen=True)
class ParsedSpreadsheet:
    headers: list[str]
    rows: list[RawRow]
    warnings: list[str] = field(default_factory=list)  # パーサ警告 (致命的ではない)


def _extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def _clean_cell(value: Any) -> Any:
    """Missing cells become "" (never None / NaN)."""
    if value is None or value is pd.NA or value is pd.NaT:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return value


def _is_blank(value: Any) -> bool:
    return isinstance(value, str) and value.strip() == ""


def _read_csv(content: bytes) -> tuple[pd.DataFrame, list[str]]:
    warnings: list[str] = []

    def _on_bad_line(fields: list[str]) -> None:
        # 列数超過行はスキップして警告に残す
        warnings.append(
            f"Skipped malformed row with {len(fields)} fields: {','.join(fields)}"
        )
        return None

    df = pd.read_csv(
        io.StringIO(_decode(content)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
        on_bad_lines=_on_bad_line,
    )
    return df, warnings


def _read_excel(content: bytes) -> pd.DataFrame:
    # 先頭シートのみ。1行目をヘッダとして扱う
    return pd.read_excel(
        io.BytesIO(content),
        sheet_name=0,
        header=0,
        dtype=object,
        keep_default_na=False,
    )


def _unique_headers(columns: list[Any]) -> list[str]:
    """Stringify and trim headers; collisions get a pandas-style ".N" suffix.

    "Name" and " Name" are distinct columns for pandas but identical once
    trimmed, so the later one becomes "Name.1" instead of overwriting the
    earlier column's cells.
    """
    headers: list[str] = []
    seen: set[str] = set()
    for c in columns:
        base = str(c).strip()
        name = base
        n = 0
        while name in seen:
            n += 1
            name = f"{base}.{n}"
        seen.add(name)
        headers.append(name)
    return headers


def _to_rows(df: pd.DataFrame) -> tuple[list[str], list[RawRow]]:
    headers = _unique_headers(df.columns.tolist())
    rows: list[RawRow] = []
    for raw in df.itertuples(index=False, name=None):
        row = {h: _clean_cell(v) for h, v in zip(headers, raw, strict=False)}
        # 全セル空の行は除外
        if all(_is_blank(v) for v in row.values()):
            continue
        rows.append(row)
    return headers, rows


def parse_spreadsheet(file_name: str, content: bytes) -> ParsedSpreadsheet:
    """Parse an uploaded spreadsheet.

    Parameters
    ----------
    file_name: original file name (the extension selects the reader)
    content: raw file bytes

    Raises
    ------
    UnsupportedFormatError: extension is not csv / xls / xlsx
    NoDataError: no non-blank data row
    MalformedFileError: the reader failed
    """
    ext = _extension(file_name)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError()

    kind = "CSV" if ext == "csv" else "Excel"
    warnings: list[str] = []
    try:
        if ext == "csv":
            df, warnings = _read_csv(content)
        else:
            df = _read_excel(content)
    except pd.errors.EmptyDataError as e:
        raise NoDataError(kind) from e
    except Exception as e:
        raise MalformedFileError(str(e)) from e

    headers, rows = _to_rows(df)
    if not rows:
        raise NoDataError(kind)
    return ParsedSpreadsheet(headers=headers, rows=rows, warnings=warnings)


def read_spreadsheet(path: Path) -> ParsedSpreadsheet:
    """Read ``path`` from disk and parse it with :func:`parse_spreadsheet`."""
    if _extension(path.name) not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError()
    try:
        content = path.read_bytes()
    except OSError as e:
        raise MalformedFileError(f"cannot read {path}: {e}") from e
    return parse_spreadsheet(path.name, content)
