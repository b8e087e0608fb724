from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pandas as pd

from ..models.batch_result import BatchResult
from ..models.order_item import MappedOrderItem

"""Summary line rendering and per-row results export.

Summary format:
SUMMARY rows={total} success={n} failed={n} skipped={n} elapsed_sec={x} avg_submit_sec={x}
"""

__all__ = [
    "RESULT_COLUMNS",
    "render_summary_line",
    "build_results_frame",
    "write_results_csv",
]

RESULT_COLUMNS = ["row", "order_id", "status", "tracking_number", "message"]


def _format_seconds(value: float) -> str:
    # 整数値は小数点なし、極小値は指数表記を避ける
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: BatchResult) -> str:
    """Render the SUMMARY line for a finished batch.

    Examples:
        >>> render_summary_line(BatchResult(skipped_count=2, elapsed_seconds=1.5))
        'SUMMARY rows=2 success=0 failed=0 skipped=2 elapsed_sec=1.5 avg_submit_sec=0'
    """
    line = (
        f"SUMMARY rows={result.total} "
        f"success={len(result.successful)} "
        f"failed={len(result.failed)} "
        f"skipped={result.skipped_count} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)} "
        f"avg_submit_sec={_format_seconds(result.avg_submit_seconds)}"
    )
    if result.cancelled:
        line += " cancelled=1"
    return line


def build_results_frame(
    invalid_items: Sequence[MappedOrderItem], result: BatchResult | None
) -> pd.DataFrame:
    """One line per row outcome, ordered by spreadsheet row."""
    records: list[dict[str, object]] = []
    if result is not None:
        for s in result.successful:
            records.append({
                "row": s.item.row_number,
                "order_id": s.item.order_id,
                "status": "success",
                "tracking_number": s.tracking_number or "",
                "message": "",
            })
        for f in result.failed:
            records.append({
                "row": f.item.row_number,
                "order_id": f.item.order_id,
                "status": "failed",
                "tracking_number": "",
                "message": f.error,
            })
    for item in invalid_items:
        records.append({
            "row": item.row_number,
            "order_id": item.order_id,
            "status": "skipped",
            "tracking_number": "",
            "message": "; ".join(item.errors),
        })
    df = pd.DataFrame.from_records(records, columns=RESULT_COLUMNS)
    return df.sort_values("row", kind="stable").reset_index(drop=True)


def write_results_csv(
    path: Path, invalid_items: Sequence[MappedOrderItem], result: BatchResult | None
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    build_results_frame(invalid_items, result).to_csv(path, index=False)
    return path
