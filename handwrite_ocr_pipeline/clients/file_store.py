"""
File store and backlink formatting for a Markdown vault on local disk.

Paths exchanged with the rest of the pipeline are vault-relative POSIX strings
(e.g. "Scans/page 1.png"); the store resolves them against the vault root.
All failures surface as PersistenceError.

Example usage:
    >>> store = LocalFileStore("/home/me/vault")
    >>> store.ensure_folder("Handwritten Notes")
    >>> store.create("Handwritten Notes/page 1.md", "# Note")
    >>> store.move("Scans/page 1.png", "Processed/page 1.png")
"""

from abc import ABC, abstractmethod
import logging
import os
from pathlib import Path, PurePosixPath
import posixpath
import webbrowser

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Normalize a vault-relative path.

    Converts backslashes to slashes, collapses repeated slashes, and strips
    leading/trailing slashes. "." and "" both normalize to "".
    """
    parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
    return "/".join(parts)


def join_path(folder: str, name: str) -> str:
    """Join a vault folder and a file name into a normalized path."""
    return normalize_path(f"{folder}/{name}")


def relative_path(from_file: str, to_file: str) -> str:
    """Path to to_file relative to the folder containing from_file."""
    from_dir = posixpath.dirname(normalize_path(from_file)) or "."
    return posixpath.relpath(normalize_path(to_file) or ".", from_dir)


class FileStore(ABC):
    """Abstract interface for the vault operations the pipeline needs."""

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """Read a file's raw bytes."""
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if a file or folder exists at path."""
        pass

    @abstractmethod
    def is_folder(self, path: str) -> bool:
        """Return True if a folder exists at path."""
        pass

    @abstractmethod
    def size(self, path: str) -> int:
        """Return a file's size in bytes."""
        pass

    @abstractmethod
    def create(self, path: str, content: str) -> None:
        """Create a new text file. Fails if it already exists."""
        pass

    @abstractmethod
    def overwrite(self, path: str, content: str) -> None:
        """Replace the content of an existing text file."""
        pass

    @abstractmethod
    def ensure_folder(self, path: str) -> None:
        """Create a folder (and parents) if missing."""
        pass

    @abstractmethod
    def move(self, path: str, new_path: str) -> None:
        """Move a file. Fails if the destination exists."""
        pass

    @abstractmethod
    def list_files(self, folder: str, extensions: tuple[str, ...]) -> list[str]:
        """List files under folder (recursively) whose extension is allowed."""
        pass

    @abstractmethod
    def absolute_path(self, path: str) -> str:
        """Absolute location of a vault path on the host."""
        pass

    @abstractmethod
    def open_file(self, path: str) -> None:
        """Ask the host to open a file for viewing."""
        pass


class LocalFileStore(FileStore):
    """FileStore backed by a directory on the local filesystem.

    Attributes:
        root: Absolute vault root directory.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def _resolve(self, path: str) -> Path:
        return self.root / PurePosixPath(normalize_path(path))

    def read_bytes(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as e:
            raise PersistenceError(f"Failed to read '{path}'", original_exception=e) from e

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def is_folder(self, path: str) -> bool:
        return self._resolve(path).is_dir()

    def size(self, path: str) -> int:
        try:
            return self._resolve(path).stat().st_size
        except OSError as e:
            raise PersistenceError(f"Failed to stat '{path}'", original_exception=e) from e

    def create(self, path: str, content: str) -> None:
        try:
            with self._resolve(path).open("x", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise PersistenceError(
                f"Failed to create '{path}'", original_exception=e
            ) from e

    def overwrite(self, path: str, content: str) -> None:
        try:
            self._resolve(path).write_text(content, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(
                f"Failed to overwrite '{path}'", original_exception=e
            ) from e

    def ensure_folder(self, path: str) -> None:
        try:
            self._resolve(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Failed to create folder '{path}'", original_exception=e
            ) from e

    def move(self, path: str, new_path: str) -> None:
        source = self._resolve(path)
        target = self._resolve(new_path)
        if target.exists():
            raise PersistenceError(f"Destination already exists: '{new_path}'")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            source.rename(target)
        except OSError as e:
            raise PersistenceError(
                f"Failed to move '{path}' to '{new_path}'", original_exception=e
            ) from e

    def list_files(self, folder: str, extensions: tuple[str, ...]) -> list[str]:
        base = self._resolve(folder)
        if not base.is_dir():
            return []
        allowed = {ext.lower() for ext in extensions}
        files = [
            p.relative_to(self.root).as_posix()
            for p in base.rglob("*")
            if p.is_file() and p.suffix[1:].lower() in allowed
        ]
        return sorted(files)

    def absolute_path(self, path: str) -> str:
        return str(self._resolve(path))

    def open_file(self, path: str) -> None:
        target = self._resolve(path)
        if not webbrowser.open(target.as_uri()):
            raise PersistenceError(f"No handler available to open '{path}'")
        logger.debug(f"Opened {target}")


class LinkFormatter:
    """Formats backlinks from generated notes to their source files.

    Args:
        style: 'wikilink' for [[relative/path|name]], 'markdown' for
            [name](<relative/path>).
    """

    def __init__(self, style: str = "wikilink") -> None:
        self.style = style

    def format(self, source_path: str, note_path: str) -> str:
        """Return a link to source_path usable inside the note at note_path."""
        target = relative_path(note_path, source_path)
        label = os.path.splitext(posixpath.basename(source_path))[0]
        if self.style == "markdown":
            return f"[{label}](<{target}>)"
        return f"[[{target}|{label}]]"
