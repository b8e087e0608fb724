from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from ..client.orders_api import OrderApiError, OrderRequest, OrderResponse
from ..models.batch_result import (
    BatchResult,
    FailedOrder,
    SubmissionStatsAccumulator,
    SuccessfulOrder,
)
from ..models.error_record import CANCELLED, INSUFFICIENT_BALANCE, SUBMISSION_ERROR, UNKNOWN_ERROR
from ..models.order_item import MappedOrderItem
from .progress import ProgressTracker
from .transformer import partition_items

logger = logging.getLogger(__name__)

"""Batch execution engine: sequential, balance-gated order submission.

Valid items are submitted strictly one at a time. Before each item the running
balance is compared with a minimum threshold; items that fail the check are
recorded without calling the order service. Between two submissions the engine
pauses for a fixed delay (client side throttling, no retries).

A failure on one row never aborts the batch: service errors and unexpected
exceptions are both converted into FailedOrder entries.
"""

__all__ = [
    "INSUFFICIENT_BALANCE_MESSAGE",
    "UNKNOWN_ERROR_MESSAGE",
    "CANCELLED_MESSAGE",
    "BatchContext",
    "BatchSettings",
    "SubmissionMetrics",
    "OrderSubmitter",
    "build_order_request",
    "run_batch",
]

INSUFFICIENT_BALANCE_MESSAGE = "Insufficient balance"
UNKNOWN_ERROR_MESSAGE = "Unknown error"
CANCELLED_MESSAGE = "Batch cancelled"


@dataclass(frozen=True)
class BatchContext:
    """Per-run inputs chosen by the user.

    current_balance=None means the balance is unknown; the precheck is then
    skipped and the order service stays the authority.
    """
    from_address_id: Any
    label_type_id: Any
    current_balance: float | None


@dataclass(frozen=True)
class BatchSettings:
    min_balance: float = 5.0  # 概算の最低コスト (正式な料金ではない)
    request_delay_seconds: float = 0.5


@dataclass(frozen=True)
class SubmissionMetrics:
    """Timing of a single order submission."""
    row_number: int
    succeeded: bool
    elapsed_seconds: float
    start_time: float  # time.perf_counter()
    end_time: float


class OrderSubmitter(Protocol):
    def create_order(self, request: OrderRequest) -> OrderResponse: ...


def _notify(callback: Callable[[Any], None], value: Any, name: str) -> None:
    # 呼び出し側コールバックの失敗でバッチを止めない (注文は作成済み)
    try:
        callback(value)
    except Exception:
        logger.exception(f"{name} callback failed")


def build_order_request(item: MappedOrderItem, context: BatchContext) -> OrderRequest:
    return OrderRequest(
        label_type_id=context.label_type_id,
        from_address_id=context.from_address_id,
        to_address={
            "name": item.to_name,
            "company": item.to_company or None,
            "street1": item.to_street,
            "street2": item.to_street2 or None,
            "city": item.to_city,
            "state": item.to_state,
            "zip": item.to_zip,
            "country": item.to_country,
        },
        package={
            "weight": item.weight,
            "length": item.length,
            "width": item.width,
            "height": item.height,
        },
        reference1=item.order_id,
    )


def run_batch(
    items: Sequence[MappedOrderItem],
    context: BatchContext,
    submitter: OrderSubmitter,
    *,
    settings: BatchSettings | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_balance_update: Callable[[float], None] | None = None,
    cancel_event: threading.Event | None = None,
    metrics_callback: Callable[[SubmissionMetrics], None] | None = None,
) -> BatchResult:
    """Submit every valid item and return the three-way outcome partition.

    Args:
        items: transformed rows (invalid ones are only counted as skipped)
        context: from address, label type and starting balance
        submitter: order service (normally OrdersApiClient)
        settings: balance threshold and inter-request delay
        sleep: pause function, injectable for tests
        on_balance_update: called with each balance reported by the service
        cancel_event: checked before each item; once set the remaining items
            are recorded as cancelled
        metrics_callback: receives SubmissionMetrics after each submission

    Returns:
        BatchResult where successful + failed + skipped == len(items)
    """
    settings = settings or BatchSettings()
    started = time.perf_counter()
    valid, invalid = partition_items(items)

    successful: list[SuccessfulOrder] = []
    failed: list[FailedOrder] = []
    stats = SubmissionStatsAccumulator()
    balance = context.current_balance
    cancelled = False
    last_index = len(valid) - 1

    logger.info(
        f"batch start: valid={len(valid)} skipped={len(invalid)} "
        f"label_type={context.label_type_id} from_address={context.from_address_id}"
    )

    with ProgressTracker(len(valid)) as progress:
        for i, item in enumerate(valid):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                remaining = valid[i:]
                failed.extend(FailedOrder(r, CANCELLED_MESSAGE, CANCELLED) for r in remaining)
                progress.skip_remaining(len(remaining))
                logger.warning(f"batch cancelled: {len(remaining)} remaining rows not submitted")
                break

            progress.start_item(item.row_number)

            # 残高チェック: 不足なら API を呼ばず、待機もしない
            if balance is not None and balance < settings.min_balance:
                failed.append(FailedOrder(item, INSUFFICIENT_BALANCE_MESSAGE, INSUFFICIENT_BALANCE))
                logger.debug(f"row {item.row_number}: balance {balance} below {settings.min_balance}")
                progress.finish_item(False, balance)
                continue

            t0 = time.perf_counter()
            succeeded = False
            try:
                response = submitter.create_order(build_order_request(item, context))
            except OrderApiError as e:
                failed.append(FailedOrder(item, e.message or UNKNOWN_ERROR_MESSAGE, SUBMISSION_ERROR))
                logger.warning(f"row {item.row_number}: order rejected: {e.message}")
            except Exception:
                failed.append(FailedOrder(item, UNKNOWN_ERROR_MESSAGE, UNKNOWN_ERROR))
                logger.exception(f"row {item.row_number}: unexpected error during submission")
            else:
                succeeded = True
                successful.append(SuccessfulOrder(item, response.order, response.tracking_number))
                if response.new_balance is not None:
                    balance = response.new_balance
                    if on_balance_update is not None:
                        _notify(on_balance_update, balance, "on_balance_update")
            finally:
                t1 = time.perf_counter()
                stats.add_submit_time(t1 - t0)
                if metrics_callback is not None:
                    metrics = SubmissionMetrics(
                        row_number=item.row_number,
                        succeeded=succeeded,
                        elapsed_seconds=t1 - t0,
                        start_time=t0,
                        end_time=t1,
                    )
                    _notify(metrics_callback, metrics, "metrics_callback")

            progress.finish_item(succeeded, balance)

            if i < last_index:
                sleep(settings.request_delay_seconds)

    total_submissions, avg_submit, p95_submit = stats.get_stats()
    result = BatchResult(
        successful=successful,
        failed=failed,
        skipped_count=len(invalid),
        last_known_balance=balance,
        cancelled=cancelled,
        elapsed_seconds=time.perf_counter() - started,
        total_submissions=total_submissions,
        avg_submit_seconds=avg_submit,
        p95_submit_seconds=p95_submit,
    )
    logger.info(
        f"batch done: success={len(successful)} failed={len(failed)} skipped={len(invalid)}"
    )
    return result
