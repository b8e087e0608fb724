from __future__ import annotations

import math
import re
from collections.abc import Sequence
from typing import Any

from ..models.column_mapping import ColumnMapping
from ..models.order_item import MappedOrderItem
from ..spreadsheet.reader import RawRow

"""Row transformation & validation.

Applies a ColumnMapping to every raw row and produces one MappedOrderItem per
row. Numeric coercion never raises: anything that does not parse to a positive
finite number falls back to the package default.
"""

__all__ = [
    "DEFAULT_WEIGHT",
    "DEFAULT_DIMENSION",
    "DEFAULT_COUNTRY",
    "transform_rows",
    "partition_items",
    "parse_number",
]

DEFAULT_WEIGHT = 1.0
DEFAULT_DIMENSION = 6.0
DEFAULT_COUNTRY = "US"

# 先頭の数値部分のみ解釈 ("2.5 lbs" -> 2.5)
_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# (field, message) in check order
_REQUIRED_CHECKS: tuple[tuple[str, str], ...] = (
    ("to_name", "Missing recipient name"),
    ("to_street", "Missing street address"),
    ("to_city", "Missing city"),
    ("to_state", "Missing state"),
    ("to_zip", "Missing zip code"),
)


def parse_number(value: Any, default: float) -> float:
    """Parse a leading number from ``value``; zero / NaN / inf / garbage -> default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        m = _NUMBER_PREFIX.match(str(value))
        if m is None:
            return default
        number = float(m.group(0))
    if math.isnan(number) or math.isinf(number) or number == 0:
        return default
    return number


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            # Excel の数値セル (郵便番号など) は ".0" を付けない
            return str(int(value))
    return str(value).strip()


def _cell(row: RawRow, mapping: ColumnMapping, field_name: str) -> Any:
    header = mapping.get(field_name)
    if header is None:
        return ""
    return row.get(header, "")


def _transform_row(index: int, row: RawRow, mapping: ColumnMapping) -> MappedOrderItem:
    def text(field_name: str) -> str:
        return _text(_cell(row, mapping, field_name))

    values = {
        "to_name": text("to_name"),
        "to_company": text("to_company"),
        "to_street": text("to_street"),
        "to_street2": text("to_street2"),
        "to_city": text("to_city"),
        "to_state": text("to_state"),
        "to_zip": text("to_zip"),
        "to_country": text("to_country") or DEFAULT_COUNTRY,
    }
    errors = [message for field_name, message in _REQUIRED_CHECKS if not values[field_name]]

    return MappedOrderItem(
        row_number=index + 2,
        weight=parse_number(_cell(row, mapping, "weight"), DEFAULT_WEIGHT),
        length=parse_number(_cell(row, mapping, "length"), DEFAULT_DIMENSION),
        width=parse_number(_cell(row, mapping, "width"), DEFAULT_DIMENSION),
        height=parse_number(_cell(row, mapping, "height"), DEFAULT_DIMENSION),
        order_id=text("order_id") or f"BULK-{index + 1}",
        errors=errors,
        **values,
    )


def transform_rows(raw_rows: Sequence[RawRow], mapping: ColumnMapping) -> list[MappedOrderItem]:
    """Map, default and validate every raw row.

    Pure: re-running with the same inputs yields equal items.
    """
    return [_transform_row(i, row, mapping) for i, row in enumerate(raw_rows)]


def partition_items(
    items: Sequence[MappedOrderItem],
) -> tuple[list[MappedOrderItem], list[MappedOrderItem]]:
    """Split items into (valid, invalid) preserving order."""
    valid = [item for item in items if item.is_valid]
    invalid = [item for item in items if not item.is_valid]
    return valid, invalid
