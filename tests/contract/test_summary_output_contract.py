from __future__ import annotations

import re
from pathlib import Path

from bulk_import.cli import main as cli_main
from bulk_import.logging.init import reset_logging

"""SUMMARY line contract: one line, fixed key order, numeric values."""

SUMMARY_RE = re.compile(
    r"^SUMMARY rows=(\d+) success=(\d+) failed=(\d+) skipped=(\d+) "
    r"elapsed_sec=(\d+(?:\.\d+)?) avg_submit_sec=(\d+(?:\.\d+)?)$"
)


def _summary_lines(out: str) -> list[str]:
    return [line for line in out.splitlines() if line.startswith("SUMMARY")]


def test_summary_line_format(write_config: Path, recipients_file: Path, patched_client, capsys):
    reset_logging()
    code = cli_main([str(recipients_file)])
    lines = _summary_lines(capsys.readouterr().out)

    assert code == 2
    assert len(lines) == 1
    m = SUMMARY_RE.match(lines[0])
    assert m, lines[0]
    rows, success, failed, skipped = (int(m.group(i)) for i in range(1, 5))
    assert (rows, success, failed, skipped) == (3, 2, 0, 1)
    assert rows == success + failed + skipped


def test_summary_counts_balance_failures(
    write_config: Path, recipients_file: Path, label_service, patched_client, capsys
):
    reset_logging()
    label_service.balance = 2.0
    code = cli_main([str(recipients_file)])
    [line] = _summary_lines(capsys.readouterr().out)

    assert code == 2
    assert "rows=3 success=0 failed=2 skipped=1" in line
    assert label_service.orders == []


def test_no_summary_on_dry_run(write_config: Path, recipients_file: Path, patched_client, capsys):
    reset_logging()
    code = cli_main([str(recipients_file), "--dry-run"])
    out = capsys.readouterr().out
    assert code == 0
    assert _summary_lines(out) == []
    assert "INFO review: rows=3 valid=2 invalid=1" in out
    patched_client.assert_not_called()
