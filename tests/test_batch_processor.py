"""Test per-file processing and the bounded-concurrency work queue"""

import json
from pathlib import Path

import pytest

from handwrite_ocr_pipeline.domain.config import (
    ExtractableVariableSpec,
    GeminiConfig,
    OutputConfig,
    TemplateConfig,
)
from handwrite_ocr_pipeline.domain.models import BatchProgress, ProcessingOutcome
from handwrite_ocr_pipeline.orchestration.batch_processor import (
    BatchProcessor,
    clamp_concurrency,
)
from handwrite_ocr_pipeline.orchestration.file_processor import (
    file_extension,
    is_supported_file,
)


@pytest.fixture
def scans(write_file):
    """Create n PNG scans whose content is their own transcript."""

    def _create(n: int) -> list[str]:
        return [write_file(f"Scans/note{i}.png", f"text {i}".encode()) for i in range(n)]

    return _create


@pytest.mark.parametrize(
    ("concurrency", "count", "expected"),
    [(4, 10, 4), (10, 3, 3), (0, 5, 1), (3, 0, 1)],
)
def test_clamp_concurrency(concurrency: int, count: int, expected: int) -> None:
    assert clamp_concurrency(concurrency, count) == expected


@pytest.mark.parametrize(
    ("path", "extension", "supported"),
    [
        ("Scans/a.PNG", "png", True),
        ("Scans/a.jpeg", "jpeg", True),
        ("b.pdf", "pdf", True),
        ("notes.txt", "txt", False),
        ("README", "", False),
    ],
)
def test_file_extension(path: str, extension: str, supported: bool) -> None:
    assert file_extension(path) == extension
    assert is_supported_file(path) is supported


@pytest.mark.asyncio
class TestFileProcessor:
    async def test_success(self, vault: Path, backend, write_file, make_file_processor):
        source = write_file("Scans/a.png", b"hello")

        outcome = await make_file_processor(backend).process_file(source)

        assert outcome == ProcessingOutcome(
            success=True, file_path="Handwritten Notes/a.md"
        )
        assert backend.calls[0][2] == "image/png"
        assert "hello" in (vault / "Handwritten Notes/a.md").read_text(encoding="utf-8")

    async def test_extracted_array_reaches_note(
        self, vault: Path, backend, write_file, make_file_processor
    ):
        source = write_file("Scans/a.png", b"scan")
        backend.replies[b"scan"] = json.dumps(
            {"content": "hello", "authors": ["Ana", "Bo"]}
        )
        gemini = GeminiConfig(
            api_key="test",
            extractable_variables=[
                ExtractableVariableSpec(name="authors", type="array", description="x")
            ]
        )
        templates = TemplateConfig(note_template="authors: {{authors}}\n{{content}}")

        outcome = await make_file_processor(
            backend, templates=templates, gemini=gemini
        ).process_file(source)

        text = (vault / outcome.file_path).read_text(encoding="utf-8")
        assert text == "authors:\n  - Ana\n  - Bo\nhello"

    async def test_pdf_routed_as_pdf(self, backend, write_file, make_file_processor):
        source = write_file("Scans/doc.pdf", b"pdf text")

        outcome = await make_file_processor(backend).process_file(source)

        assert outcome.success
        assert backend.calls[0][2] == "application/pdf"

    async def test_unsupported_type_skips_backend(
        self, backend, write_file, make_file_processor
    ):
        source = write_file("Scans/notes.txt", b"text")

        outcome = await make_file_processor(backend).process_file(source)

        assert outcome == ProcessingOutcome(
            success=False, error="Unsupported file type: txt"
        )
        assert backend.calls == []

    async def test_empty_content(self, backend, write_file, make_file_processor):
        source = write_file("Scans/blank.png", b"blank")
        backend.replies[b"blank"] = json.dumps({"content": "   "})

        outcome = await make_file_processor(backend).process_file(source)

        assert not outcome.success
        assert outcome.error == "No text extracted from file"

    async def test_missing_file(self, backend, make_file_processor):
        outcome = await make_file_processor(backend).process_file("Scans/gone.png")

        assert not outcome.success
        assert "Failed to read 'Scans/gone.png'" in outcome.error
        assert backend.calls == []

    async def test_move_failure_reports_note_path(
        self, vault: Path, backend, write_file, make_file_processor
    ):
        source = write_file("Scans/a.png", b"hello")
        # A file where the processed folder should be makes the move fail
        (vault / "Processed Handwritten Files").write_text("in the way")

        outcome = await make_file_processor(
            backend, output=OutputConfig(move_after_processing=True)
        ).process_file(source)

        assert not outcome.success
        assert outcome.file_path == "Handwritten Notes/a.md"
        assert "failed to move source file" in outcome.error
        assert (vault / "Handwritten Notes/a.md").exists()

    async def test_unexpected_error_is_contained(
        self, backend, write_file, make_file_processor, monkeypatch
    ):
        source = write_file("Scans/a.png", b"hello")
        processor = make_file_processor(backend)

        def explode(*args, **kwargs):
            raise KeyError("boom")

        monkeypatch.setattr(processor.assembler, "assemble", explode)

        outcome = await processor.process_file(source)

        assert not outcome.success
        assert outcome.error == "Unexpected error: KeyError: 'boom'"


@pytest.mark.asyncio
class TestBatchProcessor:
    @pytest.mark.parametrize(
        ("concurrency", "file_count", "expected_peak"),
        [(1, 4, 1), (4, 6, 4), (10, 3, 3)],
    )
    async def test_concurrency_bound(
        self,
        scans,
        make_backend,
        make_file_processor,
        concurrency,
        file_count,
        expected_peak,
    ):
        backend = make_backend(delay=0.01)
        files = scans(file_count)
        batch = BatchProcessor(make_file_processor(backend))

        results = await batch.process_batch(files, concurrency)

        assert set(results) == set(files)
        assert all(outcome.success for outcome in results.values())
        assert backend.max_in_flight == expected_peak

    async def test_failure_isolated(self, scans, backend, make_file_processor):
        files = scans(3)
        backend.replies[b"text 1"] = RuntimeError("boom")
        batch = BatchProcessor(make_file_processor(backend))

        results = await batch.process_batch(files, 2)

        assert results["Scans/note0.png"].success
        assert results["Scans/note2.png"].success
        failed = results["Scans/note1.png"]
        assert not failed.success
        assert "boom" in failed.error
        assert failed.file_path is None

    async def test_callbacks(self, scans, backend, make_file_processor):
        files = scans(3)
        progress: list[BatchProgress] = []
        reported: list[tuple[str, ProcessingOutcome]] = []
        batch = BatchProcessor(make_file_processor(backend))

        results = await batch.process_batch(
            files,
            2,
            on_progress=progress.append,
            on_result=lambda path, outcome: reported.append((path, outcome)),
        )

        assert sorted(path for path, _ in reported) == sorted(files)
        assert dict(reported) == results

        picked_up = [p for p in progress if p.current_file]
        completed = [p for p in progress if not p.current_file]
        assert sorted(p.current_file for p in picked_up) == [
            "note0.png",
            "note1.png",
            "note2.png",
        ]
        assert [p.current for p in completed] == [1, 2, 3]
        assert all(1 <= p.current <= p.total == 3 for p in progress)
        assert progress[-1] == BatchProgress(current=3, total=3, current_file="")

    async def test_empty_batch(self, backend, make_file_processor):
        progress: list[BatchProgress] = []
        batch = BatchProcessor(make_file_processor(backend))

        results = await batch.process_batch([], 4, on_progress=progress.append)

        assert results == {}
        assert progress == []
        assert backend.calls == []

    async def test_duplicates_processed_once(self, scans, backend, make_file_processor):
        files = scans(2)
        batch = BatchProcessor(make_file_processor(backend))

        results = await batch.process_batch([*files, files[0]], 4)

        assert len(results) == 2
        assert len(backend.calls) == 2

    async def test_callback_exception_propagates(
        self, scans, backend, make_file_processor
    ):
        files = scans(1)
        batch = BatchProcessor(make_file_processor(backend))

        def bad_callback(path, outcome):
            raise ValueError("callback failed")

        with pytest.raises(ValueError, match="callback failed"):
            await batch.process_batch(files, 1, on_result=bad_callback)
