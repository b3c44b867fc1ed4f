"""Tests for the annotation service."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from annotext.comments import parse_comments
from annotext.errors import (
    EndNotFound,
    MissingRequiredField,
    PersistenceFailure,
    SourceNotFound,
    StartNotFound,
)
from annotext.logging_utils import RingBufferHandler
from annotext.model import AnnotationKind, AnnotationsFile, SpanAnchor
from annotext.service import AnnotationService
from annotext.store import DocumentSource, FileSystemStore

DOC = "notes/fox.md"


def _annotations_file(vault: Path, name: str = "fox") -> Path:
    return vault / ".annotext" / "annotations" / f"{name}.annotations"


def test_annotations_path(service: AnnotationService) -> None:
    """Files are named after the document base name."""

    assert (
        service.annotations_path("a/b/chapter.v2.md")
        == ".annotext/annotations/chapter.annotations"
    )
    assert service.annotations_path("") == (
        ".annotext/annotations/unknown.annotations"
    )


def test_load_missing_file_returns_empty(service: AnnotationService) -> None:
    annotations = service.load_annotations(DOC)

    assert annotations == AnnotationsFile()
    assert annotations.to_dict() == {"comments": {}, "notes": {}}


def test_load_corrupt_file_returns_empty(
    service: AnnotationService, vault: Path
) -> None:
    path = _annotations_file(vault)
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")

    assert service.load_annotations(DOC).is_empty()


def test_load_wrong_shape_returns_empty(
    service: AnnotationService, vault: Path
) -> None:
    path = _annotations_file(vault)
    path.parent.mkdir(parents=True)
    path.write_text('{"comments": []}', encoding="utf-8")

    assert service.load_annotations(DOC).is_empty()


def test_save_comment_persists(
    service: AnnotationService, vault: Path
) -> None:
    anchor = SpanAnchor(
        start="quick",
        end="dog",
        display="brown fox",
        text="quick brown fox jumps over the lazy dog",
        range=[1, 2, 3, 4, 5, 6, 7, 8],
        display_range=[2, 3],
    )

    annotation_id = service.save_comment(DOC, "Tx42", anchor)

    assert _annotations_file(vault).exists()
    stored = service.load_annotations(DOC).comments[annotation_id]
    assert stored.kind is AnnotationKind.COMMENT
    assert stored.src == DOC
    assert stored.target == "Tx42"
    assert stored.source == anchor
    assert stored.timestamp > 0


def test_save_comment_requires_target(
    service: AnnotationService, vault: Path
) -> None:
    with pytest.raises(MissingRequiredField, match="required"):
        service.save_comment(DOC, "", SpanAnchor(display="x"))

    with pytest.raises(MissingRequiredField, match="required"):
        service.save_comment("", "Tx42")

    assert not _annotations_file(vault).exists()


def test_save_comment_rejects_unordered_ranges(
    service: AnnotationService,
) -> None:
    with pytest.raises(ValueError):
        service.save_comment(DOC, "Tx42", SpanAnchor(range=[3, 2]))


def test_save_parsed_comment_validates(service: AnnotationService) -> None:
    """A comment parsed from the document resolves in the document."""

    text = (Path(service.store.root) / DOC).read_text(encoding="utf-8")
    parsed = parse_comments(text)[0]

    annotation_id = service.save_parsed_comment(DOC, "Tx42", parsed)
    stored = service.load_annotations(DOC).comments[annotation_id]

    assert parsed.title == "Foxes are clever."
    assert service.validate_comment(stored).is_valid


@pytest.mark.parametrize(
    "line",
    [
        "Compare with [[@Tx42]]. Key point here:",
        "Spread   out   title. Body   words:",
        "  Indented [[@Tx42|alias]] title. Body [[@Tx42]] text:",
        "A [[@Tx42]] [[@Tx7]]. Two links:",
    ],
)
def test_promoted_comment_validates_in_unedited_document(
    service: AnnotationService, vault: Path, line: str
) -> None:
    """Whatever the parser finds, the validator locates again."""

    (vault / "notes" / "links.md").write_text(
        f"Intro words.\n{line}\nClosing prose.\n", encoding="utf-8"
    )
    doc = "notes/links.md"
    parsed = parse_comments((vault / doc).read_text(encoding="utf-8"))
    assert len(parsed) == 1

    annotation_id = service.save_parsed_comment(doc, "Tx42", parsed[0])
    statuses = service.validate_all_annotations(doc)

    assert statuses[annotation_id].is_valid, statuses[annotation_id].message


def test_save_note_locates_fragments(service: AnnotationService) -> None:
    annotation_id = service.save_note(
        DOC, "Tx42", "The quick", "lazy dog", "brown fox"
    )

    note = service.load_annotations(DOC).notes[annotation_id]
    assert note.kind is AnnotationKind.NOTE
    assert note.source.text == "The quick brown fox jumps over the lazy dog"
    assert note.source.range == list(range(0, 9))
    assert note.source.display_range == [2, 3]


def test_save_note_without_display_uses_span(
    service: AnnotationService,
) -> None:
    annotation_id = service.save_note(DOC, "Tx42", "river", "bank.")

    note = service.load_annotations(DOC).notes[annotation_id]
    assert note.source.display == "river bank."


def test_save_note_failures(service: AnnotationService, vault: Path) -> None:
    with pytest.raises(StartNotFound, match="text boundaries"):
        service.save_note(DOC, "Tx42", "wolf", "dog")

    with pytest.raises(EndNotFound, match="text boundaries"):
        service.save_note(DOC, "Tx42", "dog", "quick")

    with pytest.raises(SourceNotFound, match="Could not read source file"):
        service.save_note("notes/missing.md", "Tx42", "a", "b")

    with pytest.raises(MissingRequiredField):
        service.save_note(DOC, "", "quick", "dog")

    assert not _annotations_file(vault).exists()


def test_save_note_read_error(service: AnnotationService) -> None:
    with patch.object(
        FileSystemStore, "read", side_effect=PermissionError("denied")
    ):
        with pytest.raises(PersistenceFailure, match="Could not read"):
            service.save_note(DOC, "Tx42", "quick", "dog")


def test_save_note_uses_unsaved_buffer(vault: Path) -> None:
    store = FileSystemStore(vault)
    source = DocumentSource(store)
    source.set_buffer(DOC, "Freshly typed words not saved yet")
    service = AnnotationService(store, source)

    annotation_id = service.save_note(DOC, "Tx42", "typed", "saved")

    note = service.load_annotations(DOC).notes[annotation_id]
    assert note.source.text == "typed words not saved"


def test_delete_annotation(service: AnnotationService) -> None:
    annotation_id = service.save_comment(DOC, "Tx42", SpanAnchor(display="x"))

    assert not service.delete_annotation(DOC, annotation_id, "note")
    assert service.delete_annotation(DOC, annotation_id, "comment")
    assert service.load_annotations(DOC).is_empty()
    assert not service.delete_annotation(DOC, annotation_id, "comment")


def test_delete_with_empty_arguments_does_not_write(
    service: AnnotationService,
) -> None:
    annotation_id = service.save_comment(DOC, "Tx42", SpanAnchor(display="x"))

    with patch.object(FileSystemStore, "write") as write:
        assert not service.delete_annotation("", annotation_id, "comment")
        assert not service.delete_annotation(DOC, "", "comment")
        write.assert_not_called()


def test_empty_file_persists_after_last_delete(
    service: AnnotationService, vault: Path
) -> None:
    annotation_id = service.save_comment(DOC, "Tx42")
    service.delete_annotation(DOC, annotation_id, AnnotationKind.COMMENT)

    assert _annotations_file(vault).exists()


def test_save_and_load_round_trip(service: AnnotationService) -> None:
    service.save_comment(
        DOC,
        "Tx42",
        SpanAnchor(start="a", end="b", display="a", range=[0, 1]),
        SpanAnchor(start="c", end="d", display="c", text="c d"),
    )
    service.save_note(DOC, "Tx42", "quick", "dog")
    original = service.load_annotations(DOC)
    original.notes[next(iter(original.notes))].is_valid = False

    service.save_annotations(DOC, original)

    assert service.load_annotations(DOC) == original


def test_write_failure_raises_persistence_failure(
    service: AnnotationService,
) -> None:
    with patch.object(FileSystemStore, "write", side_effect=OSError("full")):
        with pytest.raises(PersistenceFailure):
            service.save_comment(DOC, "Tx42")


def test_validate_comment_messages(
    service: AnnotationService, vault: Path
) -> None:
    service.save_comment(
        DOC, "Tx42", SpanAnchor(start="quick", end="dog", display="fox")
    )
    comment = service.list_annotations(DOC, "comment")[0]

    assert service.validate_comment(comment).is_valid

    (vault / DOC).write_text("The slow brown fox", encoding="utf-8")
    status = service.validate_comment(comment)
    assert not status.is_valid
    assert status.message == 'Text Start not found: "quick"'

    (vault / DOC).unlink()
    status = service.validate_comment(comment)
    assert status.message == f"Source document not found: {DOC}"


def test_validate_comment_missing_fields(service: AnnotationService) -> None:
    service.save_comment(DOC, "Tx42", SpanAnchor(display="fox"))
    comment = service.list_annotations(DOC)[0]

    status = service.validate_comment(comment)

    assert status.message == "Missing source text fields"


def test_validate_note_requires_link(
    service: AnnotationService, vault: Path
) -> None:
    annotation_id = service.save_note(
        DOC, "Tx42", "See", "urban foxes.", "original study"
    )
    note = service.load_annotations(DOC).notes[annotation_id]

    assert service.validate_note(note).is_valid

    text = (vault / DOC).read_text(encoding="utf-8")
    (vault / DOC).write_text(text.replace("[[@Tx42]]", "it"), "utf-8")
    status = service.validate_note(note)

    assert not status.is_valid
    assert status.message == 'Expected link "[[@Tx42]]" not found in source'


def test_validate_never_raises(service: AnnotationService) -> None:
    service.save_comment(
        DOC, "Tx42", SpanAnchor(start="quick", end="dog", display="fox")
    )
    comment = service.list_annotations(DOC)[0]

    with patch.object(
        DocumentSource, "get_current_text", side_effect=RuntimeError("boom")
    ):
        status = service.validate_comment(comment)

    assert not status.is_valid
    assert status.message == "Error validating: boom"


def test_validate_all_annotations(
    service: AnnotationService, vault: Path
) -> None:
    good = service.save_comment(
        DOC, "Tx42", SpanAnchor(start="quick", end="dog", display="fox")
    )
    bad = service.save_comment(
        DOC, "Tx42", SpanAnchor(start="wolf", end="dog", display="fox")
    )
    note = service.save_note(DOC, "Tx42", "See", "foxes.")

    statuses = service.validate_all_annotations(DOC)

    assert statuses[good].is_valid
    assert statuses[note].is_valid
    assert statuses[bad].message == 'Text Start not found: "wolf"'

    stored = service.load_annotations(DOC)
    assert stored.comments[good].is_valid is True
    assert stored.comments[bad].is_valid is False
    assert stored.comments[bad].validation_error == statuses[bad].message


def test_validate_all_continues_after_failure(
    service: AnnotationService,
) -> None:
    first = service.save_comment(
        DOC, "Tx42", SpanAnchor(start="quick", end="dog", display="fox")
    )
    second = service.save_comment(
        DOC, "Tx42", SpanAnchor(start="lazy", end="river", display="dog")
    )
    original = AnnotationService.validate

    def flaky(self, annotation, doc_path=None):  # type: ignore[no-untyped-def]
        if annotation.id == first:
            raise RuntimeError("unexpected")
        return original(self, annotation, doc_path)

    with patch.object(AnnotationService, "validate", flaky):
        statuses = service.validate_all_annotations(DOC)

    assert not statuses[first].is_valid
    assert statuses[second].is_valid


def test_find_comment_by_source(service: AnnotationService) -> None:
    anchor = SpanAnchor(start="quick", end="dog", display="fox")
    annotation_id = service.save_comment(DOC, "Tx42", anchor)

    found = service.find_comment_by_source(DOC, "fox", "quick", "dog")

    assert found is not None and found.id == annotation_id
    assert service.find_comment_by_source(DOC, "fox", "quick", "cat") is None


def test_log_buffer_receives_service_logs(
    vault: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Records of the package loggers end up in the ring buffer."""

    caplog.set_level(logging.INFO, logger="annotext")
    buffer = RingBufferHandler(capacity=2)
    service = AnnotationService(FileSystemStore(vault), log_buffer=buffer)

    try:
        for _ in range(3):
            service.save_comment(DOC, "Tx42")
    finally:
        logging.getLogger("annotext").removeHandler(buffer)

    assert len(buffer) == 2
    assert "Saved comment" in buffer.formatted()


def test_shared_log_buffer_is_attached_once(
    vault: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Services sharing a buffer record each message a single time."""

    caplog.set_level(logging.INFO, logger="annotext")
    buffer = RingBufferHandler(capacity=10)
    first = AnnotationService(FileSystemStore(vault), log_buffer=buffer)
    AnnotationService(FileSystemStore(vault), log_buffer=buffer)

    try:
        first.save_comment(DOC, "Tx42")
    finally:
        logging.getLogger("annotext").removeHandler(buffer)

    assert len(buffer) == 1
