"""Tests for banned file name matching."""

import pytest
from groupsync.folder_scanner.name_matcher import DEFAULT_BANNED_FILES, NameMatcher


class TestNameMatcher:
    """Tests for NameMatcher."""

    @pytest.fixture
    def matcher(self):
        return NameMatcher(['@eaDir', '.@__thumb', 'SYNOFILE_THUMB_*.*', 'BLOG/', 'Database/', '._*.*'])

    @pytest.mark.parametrize("path", [
        "@eaDir/thb1.jpg",
        "photos/SYNOFILE_THUMB_0001.jpg",
        "photos/summer 2023/.@__thumb/thb2.jpg",
        "BLOG/blog.jpg",
        "Project/Database/database_01.jpg",
        "mac/._image.JPG",
        "blog/other.jpg",
    ])
    def test_banned(self, matcher, path):
        """Test paths that must be banned."""
        assert matcher.match(path)

    @pytest.mark.parametrize("path", [
        "root_01.jpg",
        "photos/photo_01.jpg",
        "photos/database_01.jpg",
        "mac/image.JPG",
        "Database",
    ])
    def test_allowed(self, matcher, path):
        """Test paths that must go through."""
        assert not matcher.match(path)

    def test_directory_pattern_does_not_match_file_name(self):
        """Test that a trailing slash pattern only matches directories."""
        matcher = NameMatcher(["thumbnails/"])
        assert matcher.match("a/thumbnails/x.jpg")
        assert not matcher.match("a/thumbnails")

    def test_case_insensitive(self):
        """Test that matching ignores case."""
        assert NameMatcher(["@EADIR/"]).match("x/@eadir/y.jpg")

    def test_empty_pattern_rejected(self):
        """Test that blank patterns are rejected."""
        with pytest.raises(ValueError):
            NameMatcher(["/"])

    def test_default_and_bool(self):
        """Test the default list and truthiness."""
        matcher = NameMatcher.default()
        assert matcher.patterns == DEFAULT_BANNED_FILES
        assert matcher
        assert not NameMatcher()
        assert matcher.match("folder/.DS_Store")
        assert matcher.match("@eaDir/img.jpg/SYNOPHOTO_THUMB_XL.jpg")
