from __future__ import annotations

from pathlib import Path

from bulk_import.cli import main as cli_main
from bulk_import.logging.init import reset_logging

"""Exit code contract: 0 all rows submitted, 2 any failed / skipped row, 1 fatal."""


def test_exit_code_missing_config(temp_workdir: Path, recipients_file: Path, capsys):
    reset_logging()
    code = cli_main([str(recipients_file)])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: config file not found" in out


def test_exit_code_missing_file(write_config, capsys):
    reset_logging()
    code = cli_main(["data/nope.csv"])
    assert code == 1
    assert "ERROR file not found" in capsys.readouterr().out


def test_exit_code_unsupported_format(temp_workdir: Path, write_config, capsys):
    reset_logging()
    p = temp_workdir / "data" / "orders.pdf"
    p.write_bytes(b"%PDF-1.4")
    code = cli_main([str(p)])
    assert code == 1
    assert "ERROR parse: Unsupported file format. Please upload CSV, XLS, or XLSX files." in capsys.readouterr().out


def test_exit_code_no_data(temp_workdir: Path, write_config, capsys):
    reset_logging()
    p = temp_workdir / "data" / "empty.csv"
    p.write_text("Name,City\n", encoding="utf-8")
    code = cli_main([str(p)])
    assert code == 1
    assert "ERROR parse: No data found in CSV file" in capsys.readouterr().out


def test_exit_code_all_success(temp_workdir: Path, write_config, patched_client, capsys):
    reset_logging()
    p = temp_workdir / "data" / "ok.csv"
    p.write_text(
        "Name,Street,City,State,Zip\n"
        "Alice,1 Main St,Springfield,IL,62701\n"
        "Bob,22 Oak Ave,Portland,OR,97201\n",
        encoding="utf-8",
    )
    code = cli_main([str(p)])
    assert code == 0
    assert "SUMMARY rows=2 success=2 failed=0 skipped=0" in capsys.readouterr().out


def test_exit_code_partial_failure(write_config, recipients_file: Path, patched_client):
    reset_logging()
    assert cli_main([str(recipients_file)]) == 2


def test_exit_code_catalog_unreachable(write_config, recipients_file: Path, label_service, patched_client, capsys):
    reset_logging()
    label_service.catalog_status = 503
    code = cli_main([str(recipients_file)])
    assert code == 1
    assert "ERROR catalog: catalog unavailable" in capsys.readouterr().out
    assert label_service.orders == []


def test_exit_code_missing_defaults(write_config, recipients_file: Path, label_service, patched_client, capsys):
    reset_logging()
    label_service.label_types = []
    code = cli_main([str(recipients_file)])
    assert code == 1
    assert "ERROR defaults: Please select a default from address and label type" in capsys.readouterr().out
    assert label_service.orders == []
