"""Test note assembly against a temporary on-disk vault"""

import logging
from pathlib import Path
import webbrowser

import pytest

from handwrite_ocr_pipeline.clients.exceptions import PersistenceError, SourceMoveError
from handwrite_ocr_pipeline.clients.file_store import LinkFormatter, LocalFileStore
from handwrite_ocr_pipeline.domain.config import OutputConfig, TemplateConfig
from handwrite_ocr_pipeline.domain.models import StructuredExtractionResult
from handwrite_ocr_pipeline.orchestration.note_assembler import (
    merge_tags,
    sanitize_filename,
)

TIMESTAMP_SUFFIX = "2024-05-01T10-20-30-123Z"


class FailingMoveStore(LocalFileStore):
    def move(self, path: str, new_path: str) -> None:
        raise PersistenceError(f"Failed to move '{path}' to '{new_path}'")


class TestMergeTags:
    def test_defaults_first_then_new(self) -> None:
        assert merge_tags(["a", "b"], ["b", "c"]) == ["a", "b", "c"]

    def test_string_is_single_tag(self) -> None:
        assert merge_tags(["a"], "b") == ["a", "b"]

    def test_ignores_invalid_entries(self) -> None:
        assert merge_tags([], ["x", 3, "", "  ", None, "x"]) == ["x"]

    def test_missing_extracted_tags(self) -> None:
        assert merge_tags(["a"], None) == ["a"]

    def test_case_sensitive(self) -> None:
        assert merge_tags(["Work"], ["work"]) == ["Work", "work"]


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("meeting notes.md", "meeting notes.md"),
        ('a:b/c?"d".md', "a_b_c__d_.md"),
        ("  . ", "unnamed"),
    ],
)
def test_sanitize_filename(filename: str, expected: str) -> None:
    assert sanitize_filename(filename) == expected


class TestAssemble:
    def test_writes_note_with_backlink(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/page 1.png", b"img")
        assembler = make_assembler(output=OutputConfig(default_tags=["handwritten"]))
        result = StructuredExtractionResult(
            content="Buy milk", extracted_variables={"tags": ["#todo"]}
        )

        note_path = assembler.assemble(source, result)

        assert note_path == "Handwritten Notes/page 1.md"
        text = (vault / note_path).read_text(encoding="utf-8")
        assert "  - [[../Scans/page 1.png|page 1]]" in text
        assert "dateCreated: 2024-05-01T10:20:30.123Z" in text
        assert "tags:\n  - handwritten\n  - #todo\n" in text
        assert text.endswith("# Handwritten Note\n\nBuy milk")
        assert (vault / source).exists()

    def test_empty_tags(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/a.png", b"img")

        note_path = make_assembler().assemble(
            source, StructuredExtractionResult(content="x")
        )

        text = (vault / note_path).read_text(encoding="utf-8")
        assert "tags: []" in text

    def test_static_custom_tags_kept(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/s.png", b"img")
        templates = TemplateConfig(
            note_template="tags: {{tags}}", custom_variables={"tags": ["static"]}
        )

        note_path = make_assembler(templates=templates).assemble(
            source, StructuredExtractionResult(content="hi")
        )

        text = (vault / note_path).read_text(encoding="utf-8")
        assert text == "tags:\n  - static"

    def test_merged_tags_replace_static_custom_tags(
        self, vault: Path, write_file, make_assembler
    ):
        source = write_file("Scans/s.png", b"img")
        templates = TemplateConfig(
            note_template="tags: {{tags}}", custom_variables={"tags": ["static"]}
        )

        note_path = make_assembler(
            templates=templates, output=OutputConfig(default_tags=["inbox"])
        ).assemble(source, StructuredExtractionResult(content="hi"))

        text = (vault / note_path).read_text(encoding="utf-8")
        assert text == "tags:\n  - inbox"

    def test_array_token_in_filename_stays_verbatim(
        self, vault: Path, write_file, make_assembler
    ):
        source = write_file("Scans/s.png", b"img")
        templates = TemplateConfig(filename_template="{{baseName}} {{tags}}.md")
        result = StructuredExtractionResult(
            content="hi", extracted_variables={"tags": ["a"]}
        )

        note_path = make_assembler(templates=templates).assemble(source, result)

        assert note_path == "Handwritten Notes/s {{tags}}.md"

    def test_open_failure_is_not_fatal(
        self, vault: Path, write_file, make_assembler, store, caplog
    ):
        source = write_file("Scans/s.png", b"img")

        class BrokenOpenStore(LocalFileStore):
            def open_file(self, path: str) -> None:
                raise webbrowser.Error("no runnable browser")

        with caplog.at_level(logging.WARNING):
            note_path = make_assembler(
                output=OutputConfig(auto_open=True),
                file_store=BrokenOpenStore(store.root),
            ).assemble(source, StructuredExtractionResult(content="hi"))

        assert (vault / note_path).exists()
        assert "Could not open" in caplog.text

    def test_same_input_same_output(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/a.png", b"img")
        assembler = make_assembler()
        result = StructuredExtractionResult(content="x", extracted_variables={})

        first_path = assembler.assemble(source, result)
        first = (vault / first_path).read_text(encoding="utf-8")
        second_path = assembler.assemble(source, result)
        second = (vault / second_path).read_text(encoding="utf-8")

        assert first_path == second_path
        assert first == second

    def test_existing_note_is_overwritten(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/a.png", b"img")
        write_file("Handwritten Notes/a.md", b"stale")

        make_assembler().assemble(source, StructuredExtractionResult(content="fresh"))

        text = (vault / "Handwritten Notes/a.md").read_text(encoding="utf-8")
        assert "stale" not in text
        assert "fresh" in text

    def test_filename_template_with_variables(
        self, vault: Path, write_file, make_assembler
    ):
        source = write_file("Scans/scan.jpg", b"img")
        templates = TemplateConfig(
            filename_template="{{author}} - {{baseName}}.md",
            custom_variables={"author": "Default"},
        )
        result = StructuredExtractionResult(
            content="x", extracted_variables={"author": "Ana/Bo"}
        )

        note_path = make_assembler(templates=templates).assemble(source, result)

        assert note_path == "Handwritten Notes/Ana_Bo - scan.md"
        assert (vault / note_path).exists()

    def test_custom_note_template(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/a.png", b"img")
        templates = TemplateConfig(
            note_template="{{project}}|{{modelUsed}}|{{pageCount}}|{{content}}",
            custom_variables={"project": "Thesis"},
        )

        note_path = make_assembler(templates=templates).assemble(
            source, StructuredExtractionResult(content="x {{y}}")
        )

        text = (vault / note_path).read_text(encoding="utf-8")
        assert text == "Thesis|fake-vision-1|1|x \\{\\{y\\}\\}"

    def test_markdown_link_style(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/a.png", b"img")
        templates = TemplateConfig(note_template="{{markdownLink}}")

        note_path = make_assembler(
            templates=templates, output=OutputConfig(link_style="markdown")
        ).assemble(source, StructuredExtractionResult(content="x"))

        text = (vault / note_path).read_text(encoding="utf-8")
        assert text == "[a](<../Scans/a.png>)"


class TestMoveAfterProcessing:
    def test_moves_source_and_links_to_new_location(
        self, vault: Path, write_file, make_assembler
    ):
        source = write_file("Scans/page 1.png", b"img")
        templates = TemplateConfig(note_template="{{markdownLink}}\n{{relativeFilePath}}")
        output = OutputConfig(move_after_processing=True)

        note_path = make_assembler(templates=templates, output=output).assemble(
            source, StructuredExtractionResult(content="x")
        )

        moved = "Processed Handwritten Files/page 1.png"
        assert not (vault / source).exists()
        assert (vault / moved).read_bytes() == b"img"
        text = (vault / note_path).read_text(encoding="utf-8")
        assert text == f"[[../{moved}|page 1]]\n{moved}"

    def test_collision_gets_timestamp(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/page.png", b"new")
        write_file("Processed Handwritten Files/page.png", b"old")
        templates = TemplateConfig(note_template="{{relativeFilePath}}")
        output = OutputConfig(move_after_processing=True)

        note_path = make_assembler(templates=templates, output=output).assemble(
            source, StructuredExtractionResult(content="x")
        )

        renamed = f"Processed Handwritten Files/page_{TIMESTAMP_SUFFIX}.png"
        assert (vault / "Processed Handwritten Files/page.png").read_bytes() == b"old"
        assert (vault / renamed).read_bytes() == b"new"
        assert (vault / note_path).read_text(encoding="utf-8") == renamed

    def test_move_failure_keeps_note(self, vault: Path, write_file, make_assembler):
        source = write_file("Scans/a.png", b"img")
        assembler = make_assembler(
            output=OutputConfig(move_after_processing=True),
            file_store=FailingMoveStore(vault),
        )

        with pytest.raises(SourceMoveError) as exc_info:
            assembler.assemble(source, StructuredExtractionResult(content="x"))

        assert exc_info.value.note_path == "Handwritten Notes/a.md"
        assert "failed to move source file" in str(exc_info.value)
        assert (vault / "Handwritten Notes/a.md").exists()
        assert (vault / source).exists()


class TestLinkFormatter:
    def test_wikilink_same_folder(self) -> None:
        assert LinkFormatter().format("Notes/a.png", "Notes/a.md") == "[[a.png|a]]"

    def test_wikilink_from_root_note(self) -> None:
        assert LinkFormatter().format("Scans/a.pdf", "a.md") == "[[Scans/a.pdf|a]]"
