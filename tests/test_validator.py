"""Unit tests for doctree.tree.validator — pure structural rules."""

import pytest

from doctree.engine.errors import NodeValidationError
from doctree.tree.models import MAX_TITLE_LENGTH, NodeCreate, NodeKind, NodePatch
from doctree.tree.validator import validate_create, validate_update


class TestValidateCreate:

    def test_valid_file(self):
        assert validate_create(NodeCreate(kind="file", title="notes.md", content="x")) is None

    def test_valid_folder(self):
        assert validate_create(NodeCreate(kind="folder", title="Projects")) is None

    def test_file_without_content_is_valid(self):
        assert validate_create(NodeCreate(kind="file", title="empty.txt")) is None

    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    def test_blank_title(self, title):
        error = validate_create(NodeCreate(kind="file", title=title))
        assert isinstance(error, NodeValidationError)
        assert error.reason == "title is required"
        assert error.field == "title"

    def test_title_at_limit(self):
        title = "x" * MAX_TITLE_LENGTH
        assert validate_create(NodeCreate(kind="folder", title=title)) is None

    def test_title_too_long(self):
        error = validate_create(NodeCreate(kind="folder", title="x" * (MAX_TITLE_LENGTH + 1)))
        assert error is not None
        assert "at most 255" in error.message
        assert error.context["length"] == 256

    def test_folder_with_content(self):
        error = validate_create(NodeCreate(kind="folder", title="Docs", content="nope"))
        assert error.message == "folder cannot have content"
        assert error.field == "content"

    def test_folder_with_empty_content_counts_as_absent(self):
        assert validate_create(NodeCreate(kind="folder", title="Docs", content="")) is None

    def test_title_checked_before_content(self):
        error = validate_create(NodeCreate(kind="folder", title="", content="x"))
        assert error.field == "title"

    def test_returns_not_raises(self):
        # Validators hand the error back; raising is the caller's decision
        result = validate_create(NodeCreate(kind="file", title=""))
        assert isinstance(result, Exception)


class TestValidateUpdate:

    def test_empty_patch(self):
        assert validate_update(NodePatch(), NodeKind.FILE) is None
        assert validate_update(NodePatch(), NodeKind.FOLDER) is None

    def test_file_content(self):
        assert validate_update(NodePatch(content="new"), NodeKind.FILE) is None

    def test_file_content_emptied(self):
        assert validate_update(NodePatch(content=""), NodeKind.FILE) is None

    def test_file_content_none(self):
        error = validate_update(NodePatch(content=None), NodeKind.FILE)
        assert error.message == "file content must be a string"

    def test_folder_content_rejected(self):
        error = validate_update(NodePatch(content="x"), NodeKind.FOLDER)
        assert error.message == "cannot update content of a folder"
        assert error.field == "content"

    def test_folder_empty_content_rejected(self):
        assert validate_update(NodePatch(content=""), "folder") is not None

    def test_folder_title(self):
        assert validate_update(NodePatch(title="Renamed"), "folder") is None

    def test_blank_title(self):
        error = validate_update(NodePatch(title="  "), NodeKind.FILE)
        assert error.reason == "title is required"

    def test_title_none_supplied(self):
        error = validate_update(NodePatch(title=None), NodeKind.FILE)
        assert error.field == "title"

    def test_long_title(self):
        error = validate_update(NodePatch(title="y" * 300), NodeKind.FOLDER)
        assert "at most" in error.message

    def test_parent_only_is_structural_noop(self):
        assert validate_update(NodePatch(parent=None), NodeKind.FILE) is None
        assert validate_update(NodePatch(parent="abc"), NodeKind.FOLDER) is None


class TestNodePatch:

    def test_supplied_tracks_explicit_fields(self):
        assert NodePatch().supplied() == {}
        assert NodePatch(parent=None).supplied() == {"parent": None}
        assert NodePatch(title="a", content="b").supplied() == {"title": "a", "content": "b"}

    def test_is_empty(self):
        assert NodePatch().is_empty()
        assert not NodePatch(parent=None).is_empty()

    def test_changes_against(self, node_factory):
        node = node_factory("n1", title="same", content="body", parent="p")
        patch = NodePatch(title="same", content="changed", parent="p")
        assert patch.changes_against(node) == {"content": "changed"}
