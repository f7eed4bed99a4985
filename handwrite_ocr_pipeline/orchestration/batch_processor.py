"""
BatchProcessor drives many source files through FileProcessor concurrently.

A single FIFO queue holds the pending files. min(concurrency, file count)
worker tasks run on the event loop; each pops the next file, processes it and
records the outcome until the queue is empty. Only the backend calls suspend a
worker, so queue pops and result writes never interleave and need no locking.

Progress snapshots are emitted when a worker picks up a file (with the file
name) and when it finishes one (with an empty name). Completion order follows
whichever worker finishes first, not input order.

Example usage:
    >>> batch = BatchProcessor(file_processor)
    >>> results = await batch.process_batch(
    ...     ["Scans/a.png", "Scans/b.pdf"], concurrency=4,
    ...     on_progress=print, on_result=lambda path, outcome: None,
    ... )
    >>> sorted(results)
    ['Scans/a.png', 'Scans/b.pdf']
"""

import asyncio
from collections.abc import Callable
import logging
import posixpath

from handwrite_ocr_pipeline.domain.models import BatchProgress, ProcessingOutcome
from handwrite_ocr_pipeline.orchestration.file_processor import FileProcessor

ProgressCallback = Callable[[BatchProgress], None]
ResultCallback = Callable[[str, ProcessingOutcome], None]


def clamp_concurrency(concurrency: int, file_count: int) -> int:
    """Clamp the worker count to [1, file_count] (at least 1 for empty input)."""
    return max(1, min(concurrency, file_count))


class BatchProcessor:
    """Bounded-concurrency work queue over FileProcessor.

    Callbacks are invoked synchronously from the workers and must not raise: an
    exception from a callback propagates out of process_batch.

    Attributes:
        file_processor: Per-file processor shared by all workers.
        logger: Logger instance for this batch processor.
    """

    def __init__(self, file_processor: FileProcessor) -> None:
        self.file_processor = file_processor
        self.logger = logging.getLogger(__name__)

    async def process_batch(
        self,
        files: list[str],
        concurrency: int,
        on_progress: ProgressCallback | None = None,
        on_result: ResultCallback | None = None,
    ) -> dict[str, ProcessingOutcome]:
        """Process all files and return one outcome per file.

        Args:
            files: Vault paths of the source files. Duplicates are processed once.
            concurrency: Requested worker count, clamped to [1, len(files)].
            on_progress: Called with a BatchProgress snapshot on every pick-up
                and completion.
            on_result: Called with (path, outcome) as each file completes.

        Returns:
            Mapping of source path to ProcessingOutcome with exactly one entry
            per distinct input path.
        """
        unique_files = list(dict.fromkeys(files))
        total = len(unique_files)
        results: dict[str, ProcessingOutcome] = {}
        if total == 0:
            return results

        queue: asyncio.Queue[str] = asyncio.Queue()
        for path in unique_files:
            queue.put_nowait(path)

        completed = 0
        in_flight = 0

        def emit(current: int, current_file: str) -> None:
            if on_progress is not None:
                on_progress(
                    BatchProgress(current=current, total=total, current_file=current_file)
                )

        async def worker(worker_id: int) -> None:
            nonlocal completed, in_flight
            while True:
                try:
                    path = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return

                in_flight += 1
                emit(completed + in_flight, posixpath.basename(path))
                self.logger.debug(f"Worker {worker_id} picked up {path}")

                try:
                    outcome = await self.file_processor.process_file(path)
                finally:
                    in_flight -= 1

                results[path] = outcome
                completed += 1

                if on_result is not None:
                    on_result(path, outcome)
                emit(completed, "")

        worker_count = clamp_concurrency(concurrency, total)
        self.logger.debug(f"Starting {worker_count} workers for {total} files")
        await asyncio.gather(*(worker(i) for i in range(1, worker_count + 1)))

        return results
