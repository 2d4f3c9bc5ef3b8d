"""Linking the files of one directory into groups.

Images anchor the groups. Videos and sidecars are then attached to an entry
by trying an ordered list of naming rules; the first rule whose target entry
exists wins. A file landing on an occupied slot replaces the previous one,
which is reported as displaced.
The rules are plain ``LinkRule`` objects so each one can be exercised on its
own and new conventions can be slotted in at the right priority.

Examples of the names handled::

    IMG_1.jpg  + IMG_1.jpg.xmp       sidecar, exact key
    IMG_1.jpg  + IMG_1.xmp           sidecar, key stem
    IMG_1.HEIC + IMG_1.HEIC.MOV      video, exact key
    IMG_1.jpg  + IMG_1.MP4           video, key stem
    PXL_1.MP.jpg + PXL_1.MP          video, key stem is the full video name
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from groupsync.common import strip_ext
from .media_types import MediaType

logger = logging.getLogger(__name__)


@dataclass
class FileLinks:
    """Files linked under one key; at most one of each kind."""
    image: Optional[str] = None
    video: Optional[str] = None
    sidecar: Optional[str] = None

    @property
    def primary(self) -> Optional[str]:
        return self.image or self.video


class LinkSet:
    """Ordered mapping of anchor keys to their linked files."""

    def __init__(self) -> None:
        self._entries: Dict[str, FileLinks] = {}
        # (file name, slot) of companions replaced by a later match
        self.displaced: List[Tuple[str, str]] = []

    def add(self, key: str, links: FileLinks) -> FileLinks:
        if key in self._entries:
            raise ValueError(f"Duplicate link key {key!r}")
        self._entries[key] = links
        return links

    def get(self, key: str) -> Optional[FileLinks]:
        return self._entries.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def items(self):
        return self._entries.items()

    def sorted_items(self) -> List[Tuple[str, FileLinks]]:
        return sorted(self._entries.items())

    def first_with_stem(self, stem: str) -> Optional[FileLinks]:
        """First entry whose key minus its extension is ``stem``."""
        for key, links in self._entries.items():
            if strip_ext(key) == stem:
                return links
        return None


LinkFn = Callable[[LinkSet, str], bool]


@dataclass(frozen=True)
class LinkRule:
    """A named way of attaching a file of ``kind`` to an existing entry."""
    name: str
    kind: MediaType
    apply: LinkFn

    def __call__(self, links: LinkSet, file_name: str) -> bool:
        return self.apply(links, file_name)


def _attach(links: LinkSet, entry: Optional[FileLinks], slot: str, file_name: str) -> bool:
    if entry is None:
        return False
    previous = getattr(entry, slot)
    if previous is not None:
        links.displaced.append((previous, slot))
    setattr(entry, slot, file_name)
    return True


def _exact_key(slot: str) -> LinkFn:
    def apply(links: LinkSet, file_name: str) -> bool:
        return _attach(links, links.get(strip_ext(file_name)), slot, file_name)
    return apply


def _key_stem(slot: str) -> LinkFn:
    def apply(links: LinkSet, file_name: str) -> bool:
        return _attach(links, links.first_with_stem(strip_ext(file_name)), slot, file_name)
    return apply


def _key_stem_is_full_name(links: LinkSet, file_name: str) -> bool:
    return _attach(links, links.first_with_stem(file_name), "video", file_name)


SIDECAR_RULES: Tuple[LinkRule, ...] = (
    LinkRule("exact key", MediaType.SIDECAR, _exact_key("sidecar")),
    LinkRule("key stem", MediaType.SIDECAR, _key_stem("sidecar")),
)

VIDEO_RULES: Tuple[LinkRule, ...] = (
    LinkRule("exact key", MediaType.VIDEO, _exact_key("video")),
    LinkRule("key stem", MediaType.VIDEO, _key_stem("video")),
    LinkRule("key stem is full name", MediaType.VIDEO, _key_stem_is_full_name),
)


def apply_rules(rules: Iterable[LinkRule], links: LinkSet, file_name: str) -> Optional[LinkRule]:
    """Try ``rules`` in order; return the one that linked the file."""
    for rule in rules:
        if rule(links, file_name):
            return rule
    return None


def link_files(
    files: Iterable[str],
    classify: Callable[[str], MediaType],
    sidecar_rules: Iterable[LinkRule] = SIDECAR_RULES,
    video_rules: Iterable[LinkRule] = VIDEO_RULES,
) -> Tuple[LinkSet, List[Tuple[str, str]]]:
    """Link the candidate files of one directory.

    Args:
        files: File names in discovery order
        classify: Media type of a file name

    Returns:
        The link set, and the ``(file name, reason)`` of every file left out:
        sidecars no entry claimed and companions replaced by a later match
    """
    files = list(files)
    sidecar_rules = tuple(sidecar_rules)
    video_rules = tuple(video_rules)
    links = LinkSet()
    rest: List[Tuple[str, MediaType]] = []

    for file_name in files:
        kind = classify(file_name)
        if kind == MediaType.IMAGE:
            links.add(file_name, FileLinks(image=file_name))
        else:
            rest.append((file_name, kind))

    discarded: List[Tuple[str, str]] = []
    for file_name, kind in rest:
        if kind == MediaType.SIDECAR:
            rule = apply_rules(sidecar_rules, links, file_name)
            if rule is None:
                discarded.append((file_name, "orphan sidecar"))
        elif kind == MediaType.VIDEO:
            rule = apply_rules(video_rules, links, file_name)
            if rule is None:
                links.add(file_name, FileLinks(video=file_name))
        else:
            continue
        if rule is not None:
            logger.debug(f"Linked file: {{'file': {file_name!r}, 'rule': {rule.name!r}}}")

    for file_name, slot in links.displaced:
        logger.debug(f"Companion displaced: {{'file': {file_name!r}, 'slot': {slot!r}}}")
        discarded.append((file_name, f"displaced {slot}"))
    return links, discarded
