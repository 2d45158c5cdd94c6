from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from labqa.services.progress import ProgressTracker


def test_progress_disabled_without_tty():
    with patch("labqa.services.progress.is_tty_enabled", return_value=False):
        with ProgressTracker(2) as progress:
            assert progress.enabled is False
            assert progress.pbar is None
            progress.start_file(Path("a.csv"))
            progress.set_postfix(success=1)
            progress.finish_file()
            progress.start_file(Path("b.csv"))
            progress.finish_file(success=False)
            assert progress.current_file == 2
            assert progress.failed_files == 1


def test_progress_enabled_on_tty():
    with patch("labqa.services.progress.is_tty_enabled", return_value=True):
        progress = ProgressTracker(1, description="Files")
        assert progress.pbar is not None
        progress.start_file(Path("a.csv"))
        progress.finish_file(success=True)
        assert progress.pbar.n == 1
        progress.close()
        assert progress.pbar is None
