from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the row failure log.

Every row that is skipped (validation) or fails (balance, submission,
cancellation) during an import produces one ErrorRecord, and a file that cannot
be parsed produces one file-level record per parse message. Records are
written as JSON Lines with a fixed key set.
"""

__all__ = [
    "ErrorRecord",
    "VALIDATION_ERROR",
    "INSUFFICIENT_BALANCE",
    "SUBMISSION_ERROR",
    "UNKNOWN_ERROR",
    "CANCELLED",
    "PARSE_ERROR",
]

VALIDATION_ERROR = "VALIDATION_ERROR"
INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
SUBMISSION_ERROR = "SUBMISSION_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"
CANCELLED = "CANCELLED"
PARSE_ERROR = "PARSE_ERROR"  # ファイル単位 (row=-1)


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Uploaded spreadsheet name
        row: Spreadsheet row number (header = 1). -1 for file-level errors (PARSE_ERROR)
        order_id: Order reference of the row ("" when unknown)
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable reason
    """
    timestamp: str
    file: str
    row: int
    order_id: str
    error_type: str
    message: str

    @staticmethod
    def create(file: str, row: int, order_id: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            order_id=order_id,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
