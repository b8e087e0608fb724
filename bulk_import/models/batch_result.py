from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Any

from .error_record import SUBMISSION_ERROR
from .order_item import MappedOrderItem

"""Batch result models for the bulk label import tool.

This module defines the outcome buckets of a single batch run (successful,
failed, skipped) and the helper that accumulates per-submission timing.
"""

__all__ = [
    "SuccessfulOrder",
    "FailedOrder",
    "BatchResult",
    "SubmissionStatsAccumulator",
]


@dataclass(frozen=True)
class SuccessfulOrder:
    """An item the order service accepted."""
    item: MappedOrderItem
    order: dict[str, Any]  # 作成済オーダー (サービス応答そのまま)
    tracking_number: str | None


@dataclass(frozen=True)
class FailedOrder:
    """An item that entered the batch but did not produce an order."""
    item: MappedOrderItem
    error: str
    error_type: str = SUBMISSION_ERROR  # 失敗ログ用の分類


@dataclass(frozen=True)
class BatchResult:
    """Three-way partition of outcomes for one batch run.

    successful + failed + skipped_count always equals the number of items
    handed to the engine.
    """
    successful: list[SuccessfulOrder] = field(default_factory=list)
    failed: list[FailedOrder] = field(default_factory=list)
    skipped_count: int = 0  # 検証エラーでバッチに入らなかった行数
    last_known_balance: float | None = None
    cancelled: bool = False
    elapsed_seconds: float = 0.0
    # Submission timing statistics
    total_submissions: int = 0
    avg_submit_seconds: float = 0.0
    p95_submit_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed) + self.skipped_count

    @property
    def all_succeeded(self) -> bool:
        return not self.failed and self.skipped_count == 0


class SubmissionStatsAccumulator:
    """Collects per-submission durations and summarises them."""

    def __init__(self) -> None:
        self.submit_times: list[float] = []

    def add_submit_time(self, elapsed_seconds: float) -> None:
        self.submit_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate submission statistics.

        Returns:
            tuple: (total_submissions, avg_submit_seconds, p95_submit_seconds)
        """
        if not self.submit_times:
            return (0, 0.0, 0.0)

        total = len(self.submit_times)
        avg = statistics.mean(self.submit_times)

        if total == 1:
            p95 = self.submit_times[0]
        else:
            # 95th percentile (19th of 20 quantiles)
            p95 = statistics.quantiles(self.submit_times, n=20, method="inclusive")[18]

        return (total, avg, p95)
