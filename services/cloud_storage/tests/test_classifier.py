"""Tests for file classification."""

import pytest

from services.cloud_storage.app.core.classifier import FileClassifier, get_extension
from services.cloud_storage.app.core.constants import FileResourceType


class TestGetExtension:
    """Tests for extension extraction."""

    @pytest.mark.parametrize(
        "file_name,expected",
        [
            ("a.png", ".png"),
            ("archive.tar.gz", ".gz"),
            ("README", ""),
            (".env", ""),
            ("Deck.PPTX", ".PPTX"),
            ("a.", "."),
            ("report..", "."),
            ("..env", ".env"),
            ("..", ""),
            ("dir.d/notes", ""),
        ],
    )
    def test_get_extension(self, file_name, expected):
        """Only the last suffix counts; a trailing dot is kept; dotfiles have none."""
        assert get_extension(file_name) == expected


class TestFileClassifier:
    """Tests for FileClassifier."""

    @pytest.mark.parametrize(
        "file_name,expected",
        [
            ("deck.pptx", FileResourceType.WHITEBOARD_PROJECTOR),
            ("deck.ppt", FileResourceType.WHITEBOARD_CONVERT),
            ("paper.pdf", FileResourceType.WHITEBOARD_CONVERT),
            ("notes.doc", FileResourceType.WHITEBOARD_CONVERT),
            ("notes.docx", FileResourceType.WHITEBOARD_CONVERT),
            ("lesson.ice", FileResourceType.LOCAL_COURSEWARE),
            ("lesson.vf", FileResourceType.LOCAL_COURSEWARE),
            ("photo.png", FileResourceType.NORMAL_RESOURCES),
            ("no_extension", FileResourceType.NORMAL_RESOURCES),
        ],
    )
    def test_classify(self, file_name, expected):
        """Extensions map to resource types."""
        assert FileClassifier().classify(file_name) == expected

    def test_classify_is_case_insensitive(self):
        """Upper-case extensions are recognized."""
        assert FileClassifier().classify("PAPER.PDF") == FileResourceType.WHITEBOARD_CONVERT

    def test_never_classifies_as_directory(self):
        """Uploads are never directories."""
        classifier = FileClassifier()
        for name in ("Directory", "x.Directory", "dir/"):
            assert classifier.classify(name) != FileResourceType.DIRECTORY
