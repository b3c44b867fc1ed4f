"""File store and document access used by the annotation service."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from annotext.errors import SourceNotFound


@runtime_checkable
class DocumentStore(Protocol):
    """Storage of text files addressed by vault-relative paths."""

    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> str: ...

    def write(self, path: str, text: str) -> None: ...

    def create_folder(self, path: str) -> None: ...


@runtime_checkable
class SourceAccessor(Protocol):
    """Access to the current text of a source document."""

    def get_current_text(self, doc_path: str) -> str: ...


class FileSystemStore:
    """``DocumentStore`` backed by a directory on disk.

    Attributes:
        root: Directory all paths are resolved against.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        return self.root / path

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def read(self, path: str) -> str:
        """Return the UTF-8 content of ``path``.

        Raises:
            FileNotFoundError: If the file does not exist.
        """

        return self.resolve(path).read_text(encoding="utf-8")

    def write(self, path: str, text: str) -> None:
        """Replace the content of ``path`` with ``text``.

        The text is written to a temporary file in the same directory and
        moved into place, so readers never see a partially written file.
        """

        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def create_folder(self, path: str) -> None:
        self.resolve(path).mkdir(parents=True, exist_ok=True)


class DocumentSource:
    """``SourceAccessor`` preferring unsaved editor buffers over the store.

    Attributes:
        store: Store holding the saved documents.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._buffers: dict[str, str] = {}

    def set_buffer(self, doc_path: str, text: str) -> None:
        """Record unsaved editor content for ``doc_path``."""

        self._buffers[doc_path] = text

    def discard_buffer(self, doc_path: str) -> None:
        """Forget unsaved content, for example after the editor saved."""

        self._buffers.pop(doc_path, None)

    def get_current_text(self, doc_path: str) -> str:
        """Return the current text of ``doc_path``.

        Raises:
            SourceNotFound: If there is neither a buffer nor a saved file.
        """

        if doc_path in self._buffers:
            return self._buffers[doc_path]

        if not doc_path or not self.store.exists(doc_path):
            raise SourceNotFound(f"Source document not found: {doc_path}")
        return self.store.read(doc_path)
