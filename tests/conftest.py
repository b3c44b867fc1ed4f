"""Shared fixtures for annotation tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from annotext.service import AnnotationService
from annotext.store import FileSystemStore

SOURCE_TEXT = """# Reading notes

The quick brown fox jumps over the lazy dog near the river bank.
Foxes are clever. They adapt to cities:
See [[@Tx42]] for the original study of urban foxes.
"""


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    """Return a vault directory holding one source document."""

    (tmp_path / "notes").mkdir()
    (tmp_path / "notes" / "fox.md").write_text(SOURCE_TEXT, encoding="utf-8")
    return tmp_path


@pytest.fixture
def service(vault: Path) -> AnnotationService:
    """Return a service working on the temporary vault."""

    return AnnotationService(FileSystemStore(vault))
