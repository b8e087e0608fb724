from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from ..models.batch_result import BatchResult
from ..models.error_record import PARSE_ERROR, VALIDATION_ERROR, ErrorRecord
from ..models.order_item import MappedOrderItem

"""Row failure log (JSON Lines).

- Fixed schema per line (see ErrorRecord, no extra keys)
- One file per run: ``<logs_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC), created lazily
- Records are buffered and written on flush()
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "record_import_failures",
    "record_parse_failure",
]

FILE_LEVEL_ROW = -1

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. flush() appends JSON Lines.

    スレッド安全性不要 (シリアル実行)
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None if nothing was logged."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp


def record_import_failures(
    buffer: ErrorLogBuffer,
    file_name: str,
    invalid_items: Sequence[MappedOrderItem],
    result: BatchResult | None = None,
) -> int:
    """Append one record per skipped row and per failed row.

    Returns the number of records appended.
    """
    count = 0
    for item in invalid_items:
        buffer.append(
            ErrorRecord.create(
                file=file_name,
                row=item.row_number,
                order_id=item.order_id,
                error_type=VALIDATION_ERROR,
                message="; ".join(item.errors),
            )
        )
        count += 1
    if result is not None:
        for failure in result.failed:
            buffer.append(
                ErrorRecord.create(
                    file=file_name,
                    row=failure.item.row_number,
                    order_id=failure.item.order_id,
                    error_type=failure.error_type,
                    message=failure.error,
                )
            )
            count += 1
    return count


def record_parse_failure(buffer: ErrorLogBuffer, file_name: str, errors: Sequence[str]) -> int:
    """Append one file-level record (row=-1) per parse error message."""
    for message in errors:
        buffer.append(
            ErrorRecord.create(
                file=file_name,
                row=FILE_LEVEL_ROW,
                order_id="",
                error_type=PARSE_ERROR,
                message=message,
            )
        )
    return len(errors)
