"""Shared fixtures: a temporary vault, a scripted vision backend and wired
pipeline components."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
import json
from pathlib import Path

import pytest

from handwrite_ocr_pipeline.clients.extraction_client import StructuredExtractionClient
from handwrite_ocr_pipeline.clients.file_store import LinkFormatter, LocalFileStore
from handwrite_ocr_pipeline.clients.vision_backend import VisionBackend
from handwrite_ocr_pipeline.domain.config import (
    GeminiConfig,
    OutputConfig,
    TemplateConfig,
)
from handwrite_ocr_pipeline.orchestration.file_processor import FileProcessor
from handwrite_ocr_pipeline.orchestration.note_assembler import NoteAssembler

FIXED_NOW = datetime(2024, 5, 1, 10, 20, 30, 123000, tzinfo=timezone.utc)


class FakeVisionBackend(VisionBackend):
    """Scripted backend.

    By default it replies with a JSON object whose content is the document
    bytes decoded as text. Entries in `replies` (keyed by document bytes)
    override the reply; an Exception value is raised instead.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.replies: dict[bytes, str | None | Exception] = {}
        self.calls: list[tuple[str, bytes, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def model_id(self) -> str:
        return "fake-vision-1"

    async def generate(self, prompt: str, data: bytes, mime_type: str) -> str | None:
        self.calls.append((prompt, data, mime_type))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        reply = self.replies.get(data, json.dumps({"content": data.decode()}))
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def _ascii_output(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep log output deterministic regardless of the terminal encoding."""
    monkeypatch.setenv("FORCE_ASCII", "1")


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def store(vault: Path) -> LocalFileStore:
    return LocalFileStore(vault)


@pytest.fixture
def write_file(vault: Path) -> Callable[[str, bytes], str]:
    """Create a file inside the vault and return its vault-relative path."""

    def _write(path: str, data: bytes) -> str:
        target = vault / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return path

    return _write


@pytest.fixture
def make_backend() -> Callable[..., FakeVisionBackend]:
    return FakeVisionBackend


@pytest.fixture
def backend() -> FakeVisionBackend:
    return FakeVisionBackend()


@pytest.fixture
def make_assembler(store: LocalFileStore) -> Callable[..., NoteAssembler]:
    def _factory(
        templates: TemplateConfig | None = None,
        output: OutputConfig | None = None,
        file_store: LocalFileStore | None = None,
    ) -> NoteAssembler:
        output = output or OutputConfig()
        return NoteAssembler(
            file_store or store,
            LinkFormatter(output.link_style),
            templates or TemplateConfig(),
            output,
            "fake-vision-1",
            clock=lambda: FIXED_NOW,
        )

    return _factory


@pytest.fixture
def make_file_processor(
    store: LocalFileStore,
    make_assembler: Callable[..., NoteAssembler],
) -> Callable[..., FileProcessor]:
    def _factory(
        backend: VisionBackend,
        output: OutputConfig | None = None,
        templates: TemplateConfig | None = None,
        gemini: GeminiConfig | None = None,
    ) -> FileProcessor:
        return FileProcessor(
            store,
            StructuredExtractionClient(backend),
            make_assembler(templates=templates, output=output),
            gemini or GeminiConfig(api_key="test"),
        )

    return _factory
