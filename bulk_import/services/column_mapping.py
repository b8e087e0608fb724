from __future__ import annotations

from collections.abc import Sequence

from ..models.column_mapping import CANONICAL_FIELDS, ColumnMapping

"""Column auto-mapping for uploaded spreadsheets.

For every canonical field (required fields first, then optional ones, each in
declared order) the first header whose lowercased, trimmed text contains any of
the field's synonyms is selected.

A header is NOT removed from the candidate pool once it has been matched, so a
single header can be proposed for two fields (e.g. "Order ID" also contains
"id"; "Height (in)" contains "h"). The user reviews the proposal in the map
stage and can override any assignment.
"""

__all__ = [
    "FIELD_SYNONYMS",
    "auto_map",
]

FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    # required
    "to_name": ("name", "to name", "recipient name", "to_name", "recipient"),
    "to_street": (
        "street", "address", "street1", "street 1", "to street", "to_street", "address line 1",
    ),
    "to_city": ("city", "to city", "to_city"),
    "to_state": ("state", "to state", "to_state", "province"),
    "to_zip": ("zip", "zipcode", "zip code", "postal code", "postal", "to zip", "to_zip"),
    "to_country": ("country", "to country", "to_country"),
    # optional
    "to_company": ("company", "to company", "to_company"),
    "to_street2": (
        "street2", "street 2", "address line 2", "address2", "to street2", "to_street2",
    ),
    "weight": (
        "weight", "package weight", "weight (lbs)", "weight (oz)", "lbs", "oz",
        "weight_lbs", "weight_oz",
    ),
    "length": ("length", "package length", "length (in)", "length_in", "l"),
    "width": ("width", "package width", "width (in)", "width_in", "w"),
    "height": ("height", "package height", "height (in)", "height_in", "h"),
    "order_id": ("order id", "order_id", "order number", "order_number", "id"),
}


def _match_header(headers: Sequence[str], lowered: Sequence[str], synonyms: Sequence[str]) -> str | None:
    for original, low in zip(headers, lowered, strict=True):
        if any(name in low for name in synonyms):
            return original
    return None


def auto_map(headers: Sequence[str]) -> ColumnMapping:
    """Propose a ColumnMapping for ``headers``.

    Deterministic: the same header list always yields the same mapping.
    Fields without a matching header are left unmapped.
    """
    lowered = [str(h).lower().strip() for h in headers]
    assignments: dict[str, str] = {}
    for field_name in CANONICAL_FIELDS:
        header = _match_header(headers, lowered, FIELD_SYNONYMS[field_name])
        if header is not None:
            assignments[field_name] = header
    return ColumnMapping(assignments=assignments)
