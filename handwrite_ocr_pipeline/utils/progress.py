"""Progress bar utilities for the Handwrite OCR Pipeline.

This module provides a ProgressBar class that wraps tqdm for consistent
progress display across the pipeline with unicode/emoji support.
"""

from tqdm import tqdm

from handwrite_ocr_pipeline.domain.models import BatchProgress
from handwrite_ocr_pipeline.utils.logging import _supports_unicode


class ProgressBar:
    """Progress bar wrapper around tqdm for consistent styling.

    Provides a context manager interface for progress tracking with automatic
    cleanup and graceful unicode/emoji handling. A disabled bar accepts every
    call and draws nothing.

    Args:
        total: Total number of files to process
        desc: Description text to display with the progress bar
        unit: Unit label for items (e.g., "file")
        disable: Suppress all output when True

    Example:
        >>> with ProgressBar(total=3, desc="Transcribing", unit="file") as pbar:
        ...     await batch.process_batch(files, 4, on_progress=pbar.on_progress)
    """

    def __init__(
        self, total: int, desc: str, unit: str = "file", disable: bool = False
    ) -> None:
        self.total = total
        self.desc = desc
        self.unit = unit
        self.disable = disable
        self._pbar: tqdm | None = None

    def __enter__(self) -> "ProgressBar":
        """Enter context manager and initialize progress bar.

        Returns:
            Self for use in with statements
        """
        use_ascii = not _supports_unicode()

        bar_format = "{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]{postfix}"

        self._pbar = tqdm(
            total=self.total,
            desc=self.desc,
            unit=self.unit,
            ncols=80,
            bar_format=bar_format,
            ascii=use_ascii,
            disable=self.disable,
        )

        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def update(self, n: int = 1) -> None:
        """Update progress bar by n items."""
        if self._pbar is not None:
            self._pbar.update(n)

    def set_postfix(self, postfix: dict) -> None:
        """Set postfix text displayed after the progress bar.

        Args:
            postfix: Dictionary of key-value pairs to display as postfix.
                Values will be formatted as "key=value" pairs.
        """
        if self._pbar is not None:
            self._pbar.set_postfix(postfix)

    def on_progress(self, progress: BatchProgress) -> None:
        """Batch progress callback.

        Pick-up snapshots carry a file name and only change the postfix;
        completion snapshots (empty name) move the bar to progress.current.
        """
        if self._pbar is None:
            return
        if progress.current_file:
            self.set_postfix({"file": progress.current_file})
        elif progress.current > self._pbar.n:
            self.update(progress.current - self._pbar.n)

    def close(self) -> None:
        """Manually close and cleanup progress bar."""
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None
