from __future__ import annotations

from dataclasses import dataclass, field

"""MappedOrderItem model for the bulk label import tool.

One MappedOrderItem is produced per raw spreadsheet row by
services.transformer.transform_rows. It is read-only afterwards and is the
unit consumed by the batch engine.
"""

__all__ = [
    "MappedOrderItem",
]


@dataclass(frozen=True)
class MappedOrderItem:
    """A defaulted, validated spreadsheet row.

    row_number is the spreadsheet row (header = row 1, first data row = 2).
    Dimensions are inches, weight is pounds.
    """
    row_number: int
    to_name: str
    to_company: str
    to_street: str
    to_street2: str
    to_city: str
    to_state: str
    to_zip: str
    to_country: str
    weight: float
    length: float
    width: float
    height: float
    order_id: str
    errors: list[str] = field(default_factory=list)  # 空 = 送信対象

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0
