from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from bulk_import.client.orders_api import (
    OrderApiError,
    OrdersApiClient,
    default_from_address_id,
    default_label_type_id,
)
from bulk_import.config.loader import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    ImportConfig,
    apply_env_overrides,
    load_config,
)
from bulk_import.logging.error_log import ErrorLogBuffer, record_import_failures, record_parse_failure
from bulk_import.logging.init import log_summary, set_level, setup_logging
from bulk_import.services.batch_engine import BatchSettings
from bulk_import.services.session import ImportSession, MissingDefaultsError
from bulk_import.services.summary import render_summary_line, write_results_csv
from bulk_import.spreadsheet.reader import SpreadsheetParseError

"""CLI entrypoint.

Flow:
- Load .env and config
- Parse the spreadsheet and propose the column mapping
- Transform / validate rows (review)
- Resolve from address + label type (flag > config > first catalog entry)
- Submit valid rows one by one, then print SUMMARY

Ctrl-C during submission finishes the current order and cancels the rest.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _make_client(cfg: ImportConfig) -> OrdersApiClient:
    return OrdersApiClient(
        cfg.api.base_url,
        cfg.api.token,
        timeout_seconds=cfg.api.timeout_seconds,
    )


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env via python-dotenv (values override the process environment)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Spreadsheet -> shipping label bulk importer")
    p.add_argument("file", help="CSV, XLS or XLSX file with one recipient per row")
    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML config path")
    p.add_argument("--from-address", help="Saved from-address id (default: config / first saved)")
    p.add_argument("--label-type", help="Label type id (default: config / first in catalog)")
    p.add_argument("--dry-run", action="store_true", help="Validate rows only, submit nothing")
    p.add_argument("--inspect-data", action="store_true", help="Print headers, mapping & first rows then exit")
    p.add_argument("--results-csv", help="Write per-row outcomes to this CSV file")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(session: ImportSession) -> int:
    print(f"FILE: {session.file_name}")
    print(f"  headers={session.headers}")
    for field_name, header in session.column_mapping.as_dict().items():
        print(f"  {field_name:<11} <- {header if header is not None else '-'}")
    for row in session.raw_rows[:3]:
        print("  sample_row=", row)
    return 0


def _resolve_defaults(
    args: argparse.Namespace, cfg: ImportConfig, api: OrdersApiClient
) -> tuple[Any, Any]:
    from_address = args.from_address or cfg.defaults.from_address_id
    label_type = args.label_type or cfg.defaults.label_type_id
    # カタログ取得は未指定のときのみ
    if not from_address:
        from_address = default_from_address_id(api.list_from_addresses())
    if not label_type:
        label_type = default_label_type_id(api.list_label_types())
    return from_address, label_type


def _submit(
    session: ImportSession, api: OrdersApiClient, cfg: ImportConfig, logger: logging.Logger
) -> None:
    try:
        balance = api.get_balance()
    except OrderApiError as e:
        logger.warning(f"balance lookup failed, precheck disabled: {e.message}")
        balance = None
    logger.info(f"starting balance: {balance if balance is not None else 'unknown'}")

    cancel_event = threading.Event()

    def _on_sigint(signum: int, frame: Any) -> None:
        logger.warning("interrupt received: finishing current order, cancelling the rest")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, _on_sigint)
    try:
        session.submit(
            api,
            balance,
            settings=BatchSettings(
                min_balance=cfg.batch.min_balance,
                request_delay_seconds=cfg.batch.request_delay_seconds,
            ),
            on_balance_update=lambda b: logger.debug(f"balance now {b}"),
            cancel_event=cancel_event,
        )
    finally:
        signal.signal(signal.SIGINT, previous)

    # エンジンは最後の報告値しか知らないため、正式な残高を再取得
    try:
        refreshed = api.get_balance()
    except OrderApiError as e:
        logger.warning(f"balance refresh failed: {e.message}")
    else:
        logger.info(f"balance after import: {refreshed if refreshed is not None else 'unknown'}")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストで main([...]) を呼ぶため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = apply_env_overrides(load_config(Path(args.config)))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_level(logging.DEBUG)
        logger.debug("debug mode enabled")

    path = Path(args.file)
    if not path.is_file():
        logger.error(f"file not found: {path}")
        return EXIT_FATAL

    session = ImportSession()
    try:
        session.load_file(path.name, path.read_bytes())
    except SpreadsheetParseError as e:
        for message in e.errors:
            logger.error(f"parse: {message}")
        error_log = ErrorLogBuffer(Path(cfg.logs_dir))
        record_parse_failure(error_log, path.name, e.errors)
        logger.info(f"parse errors written to {error_log.flush()}")
        return EXIT_FATAL
    for warning in session.parse_warnings:
        logger.warning(f"parse: {warning}")

    if args.inspect_data:
        return _inspect_data(session)

    for field_name, header in session.column_mapping.as_dict().items():
        logger.debug(f"mapping {field_name} <- {header}")
    if session.column_mapping.missing_required:
        logger.warning(f"unmapped required fields: {session.column_mapping.missing_required}")

    session.build_review()
    invalid = session.invalid_items
    logger.info(f"review: rows={len(session.mapped_items)} valid={len(session.valid_items)} invalid={len(invalid)}")
    for item in invalid:
        logger.warning(f"row {item.row_number}: {', '.join(item.errors)}")

    if args.dry_run:
        if args.results_csv:
            write_results_csv(Path(args.results_csv), invalid, None)
        logger.info("dry run: nothing submitted")
        return EXIT_SUCCESS_ALL

    try:
        with _make_client(cfg) as api:
            try:
                from_address, label_type = _resolve_defaults(args, cfg, api)
            except OrderApiError as e:
                logger.error(f"catalog: {e.message}")
                return EXIT_FATAL
            session.select_defaults(from_address, label_type)
            _submit(session, api, cfg, logger)
    except MissingDefaultsError as e:
        logger.error(f"defaults: {e}")
        return EXIT_FATAL

    result = session.batch_result
    assert result is not None

    error_log = ErrorLogBuffer(Path(cfg.logs_dir))
    if record_import_failures(error_log, session.file_name, invalid, result):
        log_path = error_log.flush()
        logger.info(f"failed rows written to {log_path}")

    if args.results_csv:
        out = write_results_csv(Path(args.results_csv), invalid, result)
        logger.info(f"results written to {out}")

    summary_line = render_summary_line(result)
    # log_summary が "SUMMARY " を付与するため除去
    log_summary(summary_line[len("SUMMARY "):])

    return EXIT_SUCCESS_ALL if result.all_succeeded else EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
