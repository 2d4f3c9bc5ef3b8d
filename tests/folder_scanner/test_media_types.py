"""Tests for media type classification."""

import pytest
from groupsync.folder_scanner.media_types import (
    ExtensionList, MediaType, SupportedMedia, normalize_extension,
)


class TestSupportedMedia:
    """Tests for the extension table."""

    @pytest.mark.parametrize("ext, expected", [
        (".jpg", MediaType.IMAGE),
        (".JPG", MediaType.IMAGE),
        ("heic", MediaType.IMAGE),
        (".cr3", MediaType.IMAGE),
        (".mp4", MediaType.VIDEO),
        (".MOV", MediaType.VIDEO),
        (".MP", MediaType.VIDEO),
        (".MP~2", MediaType.VIDEO),
        (".mp~12", MediaType.VIDEO),
        (".xmp", MediaType.SIDECAR),
        (".XMP", MediaType.SIDECAR),
        (".txt", MediaType.UNKNOWN),
        ("", MediaType.UNKNOWN),
        (".DS_Store", MediaType.UNKNOWN),
    ])
    def test_default_table(self, ext, expected):
        """Test the built-in classification."""
        assert SupportedMedia.default().type_from_ext(ext) == expected

    def test_is_media(self):
        """Test that only images and videos are media."""
        media = SupportedMedia.default()
        assert media.is_media(".jpg")
        assert media.is_media(".mp4")
        assert not media.is_media(".xmp")
        assert not media.is_media(".pdf")

    def test_overrides(self):
        """Test that overrides extend and replace the table without touching the original."""
        base = SupportedMedia.default()
        custom = base.with_overrides({"MPO": "image", ".gif": MediaType.VIDEO})
        assert custom.type_from_ext(".mpo") == MediaType.IMAGE
        assert custom.type_from_ext(".gif") == MediaType.VIDEO
        assert base.type_from_ext(".gif") == MediaType.IMAGE
        assert base.type_from_ext(".mpo") == MediaType.UNKNOWN

    def test_extensions_listing(self):
        """Test listing the extensions of a kind."""
        assert SupportedMedia.default().extensions(MediaType.SIDECAR) == [".xmp"]


class TestExtensionList:
    """Tests for ExtensionList."""

    def test_normalize_extension(self):
        """Test extension normalization."""
        assert normalize_extension("JPG") == ".jpg"
        assert normalize_extension(" .Cr3 ") == ".cr3"
        assert normalize_extension("") == ""

    def test_empty_list_includes_everything(self):
        """Test that an empty allow-list allows all."""
        empty = ExtensionList()
        assert empty.include(".jpg")
        assert not empty.exclude(".jpg")
        assert len(empty) == 0

    def test_include_is_strict_when_set(self):
        """Test that a non-empty list only includes its members."""
        included = ExtensionList(["CR3"])
        assert included.include(".cr3")
        assert included.include(".CR3")
        assert not included.include(".jpg")

    def test_exclude(self):
        """Test deny-list membership."""
        excluded = ExtensionList([".cr3", "heic"])
        assert excluded.exclude(".CR3")
        assert excluded.exclude(".heic")
        assert not excluded.exclude(".jpg")
        assert ".heic" in excluded
