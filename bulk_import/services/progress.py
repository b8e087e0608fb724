from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Order-level progress bar (tqdm, TTY only).

Orders are submitted one at a time with a pause between requests, so a large
spreadsheet can take minutes. When stdout is a terminal a single bar shows the
row being submitted plus running ok / failed counts and the last balance
reported by the order service. Non-TTY runs (CI, redirected output) get no
bar; the log lines carry the same information.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Counts order outcomes and mirrors them on a tqdm bar when enabled."""

    def __init__(self, total_items: int, *, description: str = "Creating orders") -> None:
        self.total_items = total_items
        self.description = description
        self.succeeded = 0
        self.failed = 0
        self.balance: float | None = None

        self.pbar: TqdmType[Any] | None = None
        if is_tty_enabled():
            self.pbar = tqdm(
                total=total_items,
                desc=description,
                unit="order",
                leave=True,
                ncols=80,
                ascii=True,
            )

    @property
    def done(self) -> int:
        return self.succeeded + self.failed

    def start_item(self, row_number: int) -> None:
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} (row {row_number})")

    def finish_item(self, succeeded: bool, balance: float | None = None) -> None:
        """Record one outcome; ``balance`` is the latest known account balance."""
        if succeeded:
            self.succeeded += 1
        else:
            self.failed += 1
        if balance is not None:
            self.balance = balance
        if self.pbar is None:
            return
        self.pbar.update(1)
        self.pbar.set_description(self.description)
        postfix: dict[str, Any] = {"ok": self.succeeded, "failed": self.failed}
        if self.balance is not None:
            postfix["balance"] = f"{self.balance:.2f}"
        self.pbar.set_postfix(postfix)

    def skip_remaining(self, count: int) -> None:
        """Count ``count`` items as failed without submitting them (cancellation)."""
        self.failed += count
        if self.pbar is not None:
            self.pbar.update(count)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
