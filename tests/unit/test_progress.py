from __future__ import annotations

from unittest.mock import MagicMock, patch

from bulk_import.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_follows_stdout():
    with patch("bulk_import.services.progress.sys") as mock_sys:
        mock_sys.stdout.isatty.return_value = True
        assert is_tty_enabled() is True
        mock_sys.stdout.isatty.return_value = False
        assert is_tty_enabled() is False


def test_progress_tracker_non_tty_counts_without_bar():
    with patch("bulk_import.services.progress.is_tty_enabled", return_value=False):
        with patch("bulk_import.services.progress.tqdm") as mock_tqdm:
            with ProgressTracker(4) as tracker:
                tracker.start_item(2)
                tracker.finish_item(True, 95.0)
                tracker.finish_item(False)
                tracker.skip_remaining(2)

    mock_tqdm.assert_not_called()
    assert tracker.pbar is None
    assert (tracker.succeeded, tracker.failed, tracker.done) == (1, 3, 4)
    assert tracker.balance == 95.0


def test_progress_tracker_tty_updates_bar():
    bar = MagicMock()
    with patch("bulk_import.services.progress.is_tty_enabled", return_value=True):
        with patch("bulk_import.services.progress.tqdm", return_value=bar) as mock_tqdm:
            with ProgressTracker(2, description="Creating orders") as tracker:
                tracker.start_item(7)
                tracker.finish_item(True, 12.5)
                tracker.finish_item(False)

    kwargs = mock_tqdm.call_args.kwargs
    assert kwargs["total"] == 2
    assert kwargs["unit"] == "order"
    bar.set_description.assert_any_call("Creating orders (row 7)")
    assert bar.update.call_count == 2
    # balance is remembered across items
    bar.set_postfix.assert_called_with({"ok": 1, "failed": 1, "balance": "12.50"})
    bar.close.assert_called_once()
    assert tracker.pbar is None
