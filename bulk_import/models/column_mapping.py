from __future__ import annotations

from dataclasses import dataclass, field

"""ColumnMapping model for the bulk label import tool.

ColumnMapping assigns spreadsheet headers to the canonical order fields. It is
proposed by services.column_mapping.auto_map, may be edited by the user while
the session is in the map stage, and is frozen before rows are transformed.
"""

__all__ = [
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    "CANONICAL_FIELDS",
    "ColumnMapping",
    "MappingFrozenError",
]

# 宣言順 = 自動マッピングの走査順
REQUIRED_FIELDS: tuple[str, ...] = (
    "to_name",
    "to_street",
    "to_city",
    "to_state",
    "to_zip",
    "to_country",
)

OPTIONAL_FIELDS: tuple[str, ...] = (
    "to_company",
    "to_street2",
    "weight",
    "length",
    "width",
    "height",
    "order_id",
)

CANONICAL_FIELDS: tuple[str, ...] = REQUIRED_FIELDS + OPTIONAL_FIELDS


class MappingFrozenError(Exception):
    """Raised when a frozen ColumnMapping is edited."""


@dataclass
class ColumnMapping:
    """Canonical field -> spreadsheet header assignment.

    Unmapped fields are simply absent from ``assignments``.
    """
    assignments: dict[str, str] = field(default_factory=dict)
    frozen: bool = False

    def __post_init__(self) -> None:
        unknown = set(self.assignments) - set(CANONICAL_FIELDS)
        if unknown:
            raise ValueError(f"unknown canonical fields: {sorted(unknown)}")

    def get(self, field_name: str) -> str | None:
        return self.assignments.get(field_name)

    def assign(self, field_name: str, header: str | None) -> None:
        """Map ``field_name`` to ``header``; ``None`` clears the assignment."""
        if self.frozen:
            raise MappingFrozenError("column mapping is frozen")
        if field_name not in CANONICAL_FIELDS:
            raise ValueError(f"unknown canonical field: {field_name}")
        if header is None:
            self.assignments.pop(field_name, None)
        else:
            self.assignments[field_name] = header

    def freeze(self) -> None:
        self.frozen = True

    @property
    def missing_required(self) -> list[str]:
        return [f for f in REQUIRED_FIELDS if f not in self.assignments]

    def as_dict(self) -> dict[str, str | None]:
        """All canonical fields in declared order (None = unmapped)."""
        return {f: self.assignments.get(f) for f in CANONICAL_FIELDS}
