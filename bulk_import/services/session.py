from __future__ import annotations

import logging
from typing import Any

from ..models.batch_result import BatchResult
from ..models.column_mapping import ColumnMapping
from ..models.import_session import FORWARD_TRANSITIONS, ImportStage
from ..models.order_item import MappedOrderItem
from ..spreadsheet.reader import RawRow, SpreadsheetParseError, parse_spreadsheet
from .batch_engine import BatchContext, OrderSubmitter, run_batch
from .column_mapping import auto_map
from .transformer import partition_items, transform_rows

"""Import session controller.

Holds the data accumulated by one import and moves it through the stages
upload → map → review → processing → complete. Every transition checks its
preconditions and raises a SessionError subclass instead of silently doing
nothing. reset() returns to upload from any stage.
"""

__all__ = [
    "SessionError",
    "InvalidTransitionError",
    "MissingDefaultsError",
    "MISSING_DEFAULTS_MESSAGE",
    "ImportSession",
]

logger = logging.getLogger(__name__)

MISSING_DEFAULTS_MESSAGE = "Please select a default from address and label type"


class SessionError(Exception):
    """Base class for session misuse."""


class InvalidTransitionError(SessionError):
    """Raised when an operation is not allowed in the current stage."""


class MissingDefaultsError(SessionError):
    """Raised when submission is requested without a from address / label type."""

    def __init__(self) -> None:
        super().__init__(MISSING_DEFAULTS_MESSAGE)


class ImportSession:
    """State of one spreadsheet import."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Clear every field and go back to the upload stage."""
        self.stage = ImportStage.UPLOAD
        self.file_name = ""
        self.raw_rows: list[RawRow] = []
        self.headers: list[str] = []
        self.column_mapping = ColumnMapping()
        self.default_from_address_id: Any = None
        self.default_label_type_id: Any = None
        self.mapped_items: list[MappedOrderItem] = []
        self.batch_result: BatchResult | None = None
        self.errors: list[str] = []
        self.parse_warnings: list[str] = []

    # ---- guards -----------------------------------------------------------
    def _require(self, *stages: ImportStage) -> None:
        if self.stage not in stages:
            allowed = ", ".join(s.value for s in stages)
            raise InvalidTransitionError(
                f"operation not allowed in stage '{self.stage.value}' (expected: {allowed})"
            )

    def _advance(self, target: ImportStage) -> None:
        if FORWARD_TRANSITIONS.get(self.stage) is not target:
            raise InvalidTransitionError(
                f"cannot move from '{self.stage.value}' to '{target.value}'"
            )
        logger.debug(f"session stage {self.stage.value} -> {target.value}")
        self.stage = target

    # ---- upload → map -----------------------------------------------------
    def load_file(self, file_name: str, content: bytes) -> None:
        """Parse the file and propose a column mapping.

        On a parse error the messages are kept in ``errors``, the session stays
        in upload and the error is re-raised.
        """
        self._require(ImportStage.UPLOAD)
        self.errors = []
        try:
            parsed = parse_spreadsheet(file_name, content)
        except SpreadsheetParseError as e:
            self.errors = list(e.errors)
            raise

        self.file_name = file_name
        self.raw_rows = parsed.rows
        self.headers = parsed.headers
        self.parse_warnings = parsed.warnings
        self.column_mapping = auto_map(parsed.headers)
        self._advance(ImportStage.MAP)
        logger.info(f"loaded {file_name}: rows={len(self.raw_rows)} headers={len(self.headers)}")

    # ---- map stage edits --------------------------------------------------
    def assign_column(self, field_name: str, header: str | None) -> None:
        self._require(ImportStage.MAP)
        if header is not None and header not in self.headers:
            raise ValueError(f"unknown header: {header!r}")
        self.column_mapping.assign(field_name, header)

    def select_defaults(self, from_address_id: Any, label_type_id: Any) -> None:
        self._require(ImportStage.MAP, ImportStage.REVIEW)
        self.default_from_address_id = from_address_id
        self.default_label_type_id = label_type_id

    # ---- map → review -----------------------------------------------------
    def build_review(self) -> list[MappedOrderItem]:
        """Freeze the mapping and derive mapped items from all raw rows."""
        self._require(ImportStage.MAP)
        self.column_mapping.freeze()
        self.mapped_items = transform_rows(self.raw_rows, self.column_mapping)
        self._advance(ImportStage.REVIEW)
        return self.mapped_items

    @property
    def valid_items(self) -> list[MappedOrderItem]:
        return partition_items(self.mapped_items)[0]

    @property
    def invalid_items(self) -> list[MappedOrderItem]:
        return partition_items(self.mapped_items)[1]

    # ---- review → processing → complete -----------------------------------
    def submit(
        self,
        submitter: OrderSubmitter,
        current_balance: float | None,
        **engine_kwargs: Any,
    ) -> BatchResult:
        """Run the batch engine over the mapped items.

        ``engine_kwargs`` are passed through to run_batch (settings, sleep,
        on_balance_update, cancel_event, metrics_callback).

        The session ends in complete even when the engine raises; the error is
        kept in ``errors`` and re-raised, ``batch_result`` stays None.
        """
        self._require(ImportStage.REVIEW)
        if not self.default_from_address_id or not self.default_label_type_id:
            self.errors = [MISSING_DEFAULTS_MESSAGE]
            raise MissingDefaultsError()

        self.errors = []
        self._advance(ImportStage.PROCESSING)
        context = BatchContext(
            from_address_id=self.default_from_address_id,
            label_type_id=self.default_label_type_id,
            current_balance=current_balance,
        )
        try:
            self.batch_result = run_batch(self.mapped_items, context, submitter, **engine_kwargs)
        except Exception as e:
            # 作成済みの注文があり得るため再送信させない: review には戻さない
            self.errors = [f"Batch aborted: {e}"]
            logger.error(f"batch aborted: {e}")
            raise
        finally:
            self._advance(ImportStage.COMPLETE)
        return self.batch_result
