from __future__ import annotations

from pathlib import Path

import pandas as pd

from bulk_import.models.batch_result import BatchResult, FailedOrder, SuccessfulOrder
from bulk_import.services.summary import (
    RESULT_COLUMNS,
    build_results_frame,
    render_summary_line,
    write_results_csv,
)


def test_render_summary_line_basic(make_item):
    result = BatchResult(
        successful=[SuccessfulOrder(make_item(2), {}, "T1")],
        failed=[FailedOrder(make_item(3), "Insufficient balance")],
        skipped_count=1,
        elapsed_seconds=2.0,
        avg_submit_seconds=0.25,
    )
    assert render_summary_line(result) == (
        "SUMMARY rows=3 success=1 failed=1 skipped=1 elapsed_sec=2 avg_submit_sec=0.25"
    )


def test_render_summary_line_small_and_zero_values():
    line = render_summary_line(BatchResult(elapsed_seconds=0.0012345, avg_submit_seconds=0.0))
    assert line.endswith("elapsed_sec=0.001234 avg_submit_sec=0") or line.endswith(
        "elapsed_sec=0.001235 avg_submit_sec=0"
    )
    assert "e-" not in line


def test_render_summary_line_cancelled(make_item):
    result = BatchResult(failed=[FailedOrder(make_item(2), "Batch cancelled")], cancelled=True)
    assert render_summary_line(result).endswith(" cancelled=1")


def test_build_results_frame_sorted_by_row(make_item):
    result = BatchResult(
        successful=[SuccessfulOrder(make_item(4), {}, "TRK4"), SuccessfulOrder(make_item(2), {}, None)],
        failed=[FailedOrder(make_item(5), "Address invalid")],
        skipped_count=1,
    )
    invalid = [make_item(3, to_city="", errors=["Missing city"])]

    df = build_results_frame(invalid, result)

    assert list(df.columns) == RESULT_COLUMNS
    assert df["row"].tolist() == [2, 3, 4, 5]
    assert df["status"].tolist() == ["success", "skipped", "success", "failed"]
    assert df.loc[2, "tracking_number"] == "TRK4"
    assert df.loc[0, "tracking_number"] == ""
    assert df.loc[1, "message"] == "Missing city"
    assert df.loc[3, "message"] == "Address invalid"


def test_build_results_frame_dry_run(make_item):
    df = build_results_frame([make_item(2, errors=["Missing state"])], None)
    assert df["status"].tolist() == ["skipped"]


def test_build_results_frame_empty():
    df = build_results_frame([], None)
    assert df.empty
    assert list(df.columns) == RESULT_COLUMNS


def test_write_results_csv(tmp_path: Path, make_item):
    result = BatchResult(successful=[SuccessfulOrder(make_item(2), {}, "TRK2")])
    path = write_results_csv(tmp_path / "out" / "results.csv", [], result)
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert df.to_dict("records") == [
        {"row": "2", "order_id": "BULK-1", "status": "success", "tracking_number": "TRK2", "message": ""}
    ]
