"""Shared fixtures for folder scanner tests."""

import pytest
from groupsync.folder_scanner.events import EventRecorder
from groupsync.folder_scanner.fakefs import FakeTree


@pytest.fixture
def recorder():
    """Event recorder keeping every event."""
    return EventRecorder()


@pytest.fixture
def make_tree():
    """Factory building an in-memory tree from file names.

    Each file holds its own name as content, like the photo fixtures of the
    upstream tool.
    """
    def _make(name, *files):
        tree = FakeTree(name)
        for file_name in files:
            tree.add_file(file_name, data=file_name.encode("utf-8"))
        return tree
    return _make
