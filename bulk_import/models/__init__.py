"""Domain models for the bulk label import tool.

This package contains the data classes shared by the parser, column mapping,
row transformer, batch engine and session controller.
"""

from .batch_result import BatchResult, FailedOrder, SubmissionStatsAccumulator, SuccessfulOrder
from .column_mapping import (
    CANONICAL_FIELDS,
    OPTIONAL_FIELDS,
    REQUIRED_FIELDS,
    ColumnMapping,
    MappingFrozenError,
)
from .error_record import ErrorRecord
from .import_session import ImportStage
from .order_item import MappedOrderItem

__all__ = [
    # Mapping models
    "CANONICAL_FIELDS",
    "OPTIONAL_FIELDS",
    "REQUIRED_FIELDS",
    "ColumnMapping",
    "MappingFrozenError",
    # Processing models
    "MappedOrderItem",
    "BatchResult",
    "SuccessfulOrder",
    "FailedOrder",
    "SubmissionStatsAccumulator",
    "ImportStage",
    # Logging models
    "ErrorRecord",
]
