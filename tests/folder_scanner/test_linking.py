"""Tests for file linking rules."""

import pytest
from groupsync.common import ext_of
from groupsync.folder_scanner.linking import (
    SIDECAR_RULES, VIDEO_RULES, FileLinks, LinkRule, LinkSet, apply_rules, link_files,
)
from groupsync.folder_scanner.media_types import MediaType, SupportedMedia

_MEDIA = SupportedMedia.default()


def classify(name):
    return _MEDIA.type_from_ext(ext_of(name))


def links_of(files):
    links, discarded = link_files(files, classify)
    return {key: (l.image, l.video, l.sidecar) for key, l in links.items()}, discarded


class TestLinkFiles:
    """Tests for link_files."""

    def test_images_anchor_groups(self):
        """Test that every image gets its own entry."""
        result, orphans = links_of(["a.jpg", "b.heic", "a.png"])
        assert result == {
            "a.jpg": ("a.jpg", None, None),
            "b.heic": ("b.heic", None, None),
            "a.png": ("a.png", None, None),
        }
        assert orphans == []

    def test_sidecar_exact_key(self):
        """Test NAME.ext.xmp attached to NAME.ext."""
        result, _ = links_of(["img.jpg", "img.jpg.xmp"])
        assert result == {"img.jpg": ("img.jpg", None, "img.jpg.xmp")}

    def test_sidecar_key_stem(self):
        """Test NAME.xmp attached to NAME.ext."""
        result, _ = links_of(["dir/IMG_1.xmp", "dir/IMG_1.CR3"])
        assert result == {"dir/IMG_1.CR3": ("dir/IMG_1.CR3", None, "dir/IMG_1.xmp")}

    def test_orphan_sidecar(self):
        """Test that an unclaimed sidecar is reported, not linked."""
        result, orphans = links_of(["a.jpg", "lonely.xmp"])
        assert result == {"a.jpg": ("a.jpg", None, None)}
        assert orphans == [("lonely.xmp", "orphan sidecar")]

    def test_later_sidecar_displaces_earlier(self):
        """Test that a second sidecar matching the same entry replaces the first."""
        result, discarded = links_of(["img.jpg", "img.jpg.xmp", "img.xmp"])
        assert result == {"img.jpg": ("img.jpg", None, "img.xmp")}
        assert discarded == [("img.jpg.xmp", "displaced sidecar")]

    def test_video_exact_key(self):
        """Test live photos named NAME.ext.MOV."""
        result, _ = links_of(["IMG_1.HEIC.MOV", "IMG_1.HEIC"])
        assert result == {"IMG_1.HEIC": ("IMG_1.HEIC", "IMG_1.HEIC.MOV", None)}

    def test_video_key_stem(self):
        """Test identical stems."""
        result, _ = links_of(["clip.jpg", "clip.MP4"])
        assert result == {"clip.jpg": ("clip.jpg", "clip.MP4", None)}

    def test_pixel_motion_photos(self):
        """Test Pixel names where the image keeps the video name."""
        files = [
            "motion/20231227_152817.MP4",
            "motion/20231227_152817.jpg",
            "motion/PXL_20210102_221126856.MP",
            "motion/PXL_20210102_221126856.MP.jpg",
            "motion/PXL_20210102_221126856.MP~2",
            "motion/PXL_20210102_221126856.MP~2.jpg",
            "motion/nomotion.MP4",
        ]
        result, _ = links_of(files)
        assert result == {
            "motion/20231227_152817.jpg": ("motion/20231227_152817.jpg", "motion/20231227_152817.MP4", None),
            "motion/PXL_20210102_221126856.MP.jpg": (
                "motion/PXL_20210102_221126856.MP.jpg", "motion/PXL_20210102_221126856.MP", None),
            "motion/PXL_20210102_221126856.MP~2.jpg": (
                "motion/PXL_20210102_221126856.MP~2.jpg", "motion/PXL_20210102_221126856.MP~2", None),
            "motion/nomotion.MP4": (None, "motion/nomotion.MP4", None),
        }

    def test_unlinked_video_gets_sidecar(self):
        """Test that a video-only entry can claim its sidecar."""
        result, orphans = links_of(["clip.mp4", "clip.mp4.xmp"])
        assert result == {"clip.mp4": (None, "clip.mp4", "clip.mp4.xmp")}
        assert orphans == []

    def test_later_video_displaces_earlier(self):
        """Test that a second matching video replaces the first instead of standing alone."""
        result, discarded = links_of(["a.jpg", "a.mov", "a.mp4"])
        assert result == {"a.jpg": ("a.jpg", "a.mp4", None)}
        assert discarded == [("a.mov", "displaced video")]

    def test_unknown_files_ignored(self):
        """Test that other kinds are left out."""
        result, orphans = links_of(["a.jpg", "a.txt"])
        assert result == {"a.jpg": ("a.jpg", None, None)}
        assert orphans == []

    def test_order_independent(self):
        """Test that discovery order does not change the links."""
        files = ["b.mp4", "a.jpg.xmp", "a.jpg", "b.jpg", "c.mov"]
        assert links_of(files) == links_of(list(reversed(files)))


class TestRules:
    """Tests for individual rules and their priority."""

    def test_rule_chains(self):
        """Test the rule names and order."""
        assert [r.name for r in SIDECAR_RULES] == ["exact key", "key stem"]
        assert [r.name for r in VIDEO_RULES] == ["exact key", "key stem", "key stem is full name"]
        assert all(r.kind == MediaType.VIDEO for r in VIDEO_RULES)

    def test_exact_key_rule_alone(self):
        """Test one rule outside the chain."""
        links = LinkSet()
        links.add("a.jpg", FileLinks(image="a.jpg"))
        exact = VIDEO_RULES[0]
        assert not exact(links, "a.mp4")
        assert exact(links, "a.jpg.mp4")
        assert links.get("a.jpg").video == "a.jpg.mp4"

    def test_first_matching_rule_wins(self):
        """Test that exact key beats key stem."""
        links = LinkSet()
        links.add("a.jpg", FileLinks(image="a.jpg"))
        links.add("a.jpg.jpg", FileLinks(image="a.jpg.jpg"))
        rule = apply_rules(VIDEO_RULES, links, "a.jpg.mp4")
        assert rule.name == "exact key"
        assert links.get("a.jpg").video == "a.jpg.mp4"
        assert links.get("a.jpg.jpg").video is None

    def test_rule_replaces_occupied_slot(self):
        """Test that a matching rule takes the slot and records the file it replaces."""
        links = LinkSet()
        links.add("a.jpg", FileLinks(image="a.jpg", video="a.mov"))
        stem = VIDEO_RULES[1]
        assert stem(links, "a.mp4")
        assert links.get("a.jpg").video == "a.mp4"
        assert links.displaced == [("a.mov", "video")]

    def test_custom_rule(self):
        """Test plugging a custom rule into link_files."""
        def to_first(links, file_name):
            first = next(iter(links), None)
            if first is None:
                return False
            links.get(first).sidecar = file_name
            return True

        links, orphans = link_files(["a.jpg", "other.xmp"], classify,
                                    sidecar_rules=[LinkRule("first", MediaType.SIDECAR, to_first)])
        assert links.get("a.jpg").sidecar == "other.xmp"
        assert orphans == []

    def test_duplicate_key(self):
        """Test that keys are unique."""
        links = LinkSet()
        links.add("a.jpg", FileLinks(image="a.jpg"))
        with pytest.raises(ValueError):
            links.add("a.jpg", FileLinks(image="a.jpg"))
