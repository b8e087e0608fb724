from __future__ import annotations

import time

from bulk_import.services.column_mapping import auto_map
from bulk_import.services.transformer import transform_rows

"""Throughput smoke test for mapping + transformation (no I/O, no HTTP)."""

HEADERS = ["Name", "Company", "Street", "City", "State", "Zip", "Country", "Weight", "Order ID"]


def test_transform_throughput_smoke():
    rows = [
        dict(zip(HEADERS, [f"Person {i}", "", f"{i} Main St", "Springfield", "IL", "62701", "US", "2.5", f"A-{i}"]))
        for i in range(20_000)
    ]
    mapping = auto_map(HEADERS)

    start = time.perf_counter()
    items = transform_rows(rows, mapping)
    elapsed = time.perf_counter() - start

    assert len(items) == 20_000
    assert all(item.is_valid for item in items)
    # lenient: CI machines vary
    assert elapsed < 10.0, f"transform too slow: {elapsed:.3f}s"
    throughput = len(items) / elapsed
    assert throughput > 2_000
