"""Local asset browser: turns file trees into a stream of asset groups.

The scan runs in two passes:

1. Every tree is walked synchronously. Files are filtered (banned names,
   media type, extension lists) and the survivors are cataloged per
   directory. Nothing is streamed until every tree has been cataloged.
2. A ``Grouper`` thread links the files of each directory into groups, reads
   their metadata, applies the date range and album options, and pushes the
   groups onto a ``GroupStream`` drained by the caller.
"""

import logging
import threading
from typing import Dict, List, Optional

from groupsync.common import LogContext, ext_of, split_dir_base
from .albums import AlbumNamer
from .assets import AssetGroup, GroupKind, LocalAssetFile, SidecarFile
from .channel import GroupStream
from .config import ImportFolderConfig
from .errors import AssetReadError, ScanCancelledError, TreeAccessError
from .events import EventCode, EventSink, FileAndName
from .exiftool import ExifTool
from .linking import FileLinks, link_files
from .media_types import ExtensionList, MediaType, SupportedMedia
from .metadata import DateMethod, MetadataReader
from .name_matcher import NameMatcher
from .trees import VirtualTree

logger = logging.getLogger(__name__)


class TreeCatalog:
    """Candidate files of one tree, per directory, in discovery order."""

    def __init__(self, tree: VirtualTree) -> None:
        self.tree = tree
        self.directories: Dict[str, List[str]] = {}

    def add_dir(self, directory: str) -> None:
        self.directories.setdefault(directory, [])

    def add_file(self, file_name: str) -> None:
        directory, _ = split_dir_base(file_name)
        self.directories.setdefault(directory, []).append(file_name)

    def sorted_directories(self) -> List[str]:
        return sorted(self.directories)

    def file_count(self) -> int:
        return sum(len(files) for files in self.directories.values())


class ScanState:
    """Catalogs of one scan, in tree order."""

    def __init__(self) -> None:
        self.catalogs: List[TreeCatalog] = []

    def add(self, catalog: TreeCatalog) -> None:
        self.catalogs.append(catalog)

    def __iter__(self):
        return iter(self.catalogs)


class LocalAssetBrowser:
    """Browses trees and groups their media files.

    Args:
        recorder: Receives one event per decision taken on a file
        config: Scan options
        *trees: Trees to scan, in order
        metadata_reader: Capture date reader (built from config when omitted)

    Raises:
        ConfigurationError: Conflicting album options
        ToolNotFoundError: exiftool enabled but missing
    """

    def __init__(
        self,
        recorder: EventSink,
        config: Optional[ImportFolderConfig] = None,
        *trees: VirtualTree,
        metadata_reader: Optional[MetadataReader] = None,
    ) -> None:
        self.recorder = recorder
        self.config = config or ImportFolderConfig()
        self.trees = list(trees)
        self.album_namer = AlbumNamer(
            self.config.folder_as_album,
            self.config.album_path_separator,
            self.config.into_album,
        )
        self.media = SupportedMedia.default().with_overrides(self.config.media_types)
        self.banned = NameMatcher(self.config.banned_files)
        self.included = ExtensionList(self.config.included_extensions)
        self.excluded = ExtensionList(self.config.excluded_extensions)
        if metadata_reader is None and self.config.date_method != DateMethod.NONE:
            exiftool = ExifTool(self.config.exiftool) if self.config.exiftool.enabled else None
            metadata_reader = MetadataReader(
                self.config.date_method,
                self.config.filename_timezone,
                exiftool,
            )
        self.metadata_reader = metadata_reader
        self.grouper: Optional[threading.Thread] = None

    def browse(self, cancel_event: Optional[threading.Event] = None) -> GroupStream:
        """Catalog every tree, then start grouping in the background.

        Returns:
            The stream of groups; iterating it raises the scan error, if any,
            after the last group

        Raises:
            ScanCancelledError: Cancelled while cataloging
            TreeAccessError: A tree could not be enumerated
        """
        cancel_event = cancel_event or threading.Event()
        state = ScanState()
        for tree in self.trees:
            state.add(self._catalog_tree(tree, cancel_event))

        stream = GroupStream(self.config.group_queue_size, cancel_event)
        self.grouper = threading.Thread(
            target=self._run_grouper,
            args=(state, stream),
            name="Grouper",
            daemon=True,
        )
        self.grouper.start()
        return stream

    # Pass 1

    def _catalog_tree(self, tree: VirtualTree, cancel_event: threading.Event) -> TreeCatalog:
        catalog = TreeCatalog(tree)
        recursive = self.config.recursive

        with LogContext(logger, tree=tree.name):
            logger.info(f"Cataloging tree: {{'tree': {tree.name!r}, 'recursive': {recursive}}}")
            try:
                for entry in tree.walk(lambda _: recursive):
                    if entry.is_dir:
                        catalog.add_dir(entry.path)
                        continue
                    if cancel_event.is_set():
                        logger.info(f"Cataloging cancelled: {{'tree': {tree.name!r}}}")
                        raise ScanCancelledError(tree=tree.name)
                    self._catalog_file(catalog, entry.path)
            except OSError as e:
                raise TreeAccessError(f"Cannot walk tree: {e}", tree=tree.name) from e

            logger.info(
                f"Tree cataloged: {{'tree': {tree.name!r}, 'directories': {len(catalog.directories)}, "
                f"'candidates': {catalog.file_count()}}}"
            )
        return catalog

    def _catalog_file(self, catalog: TreeCatalog, file_name: str) -> None:
        ref = FileAndName(catalog.tree, file_name)
        if self.banned.match(file_name):
            self.recorder.record(EventCode.DISCOVERED_DISCARDED, ref, reason="banned file")
            return

        ext = ext_of(file_name)
        media_type = self.media.type_from_ext(ext)
        if media_type == MediaType.UNKNOWN:
            self.recorder.record(EventCode.DISCOVERED_UNSUPPORTED, ref, reason="unsupported file type")
            return

        if media_type == MediaType.IMAGE:
            self.recorder.record(EventCode.DISCOVERED_IMAGE, ref)
        elif media_type == MediaType.VIDEO:
            self.recorder.record(EventCode.DISCOVERED_VIDEO, ref)
        else:
            self.recorder.record(EventCode.DISCOVERED_SIDECAR, ref)
            if self.config.ignore_sidecar_files:
                self.recorder.record(EventCode.DISCOVERED_DISCARDED, ref, reason="sidecar ignored")
                return

        if not self.included.include(ext):
            self.recorder.record(EventCode.DISCOVERED_DISCARDED, ref, reason="extension not included")
            return
        if self.excluded.exclude(ext):
            self.recorder.record(EventCode.DISCOVERED_DISCARDED, ref, reason="extension excluded")
            return

        catalog.add_file(file_name)

    # Pass 2

    def _run_grouper(self, state: ScanState, stream: GroupStream) -> None:
        stats = {'groups': 0, 'motion_photos': 0, 'skipped': 0}
        error: Optional[BaseException] = None
        try:
            self._group_all(state, stream, stats)
        except ScanCancelledError as e:
            error = e
        except Exception as e:
            logger.error(f"Grouping failed: {{'error': {str(e)!r}}}")
            error = e
        finally:
            if self.metadata_reader is not None:
                self.metadata_reader.close()
            if error is None and stream.cancelled:
                error = ScanCancelledError()
            logger.info(f"Grouping finished: {{'groups': {stats['groups']}, "
                        f"'motion_photos': {stats['motion_photos']}, 'skipped': {stats['skipped']}}}")
            stream.finish(error)

    def _group_all(self, state: ScanState, stream: GroupStream, stats: Dict[str, int]) -> None:
        for catalog in state:
            tree = catalog.tree
            for directory in catalog.sorted_directories():
                files = catalog.directories.pop(directory)
                if not files:
                    continue
                if stream.cancelled:
                    raise ScanCancelledError(tree=tree.name, directory=directory)
                logger.debug(f"Grouping directory: {{'tree': {tree.name!r}, 'directory': {directory!r}, 'files': {len(files)}}}")

                links, discarded = link_files(files, lambda name: self.media.type_from_ext(ext_of(name)))
                for file_name, reason in discarded:
                    self.recorder.record(EventCode.DISCOVERED_DISCARDED, FileAndName(tree, file_name), reason=reason)

                for _, linked in links.sorted_items():
                    group = self._make_group(tree, linked)
                    if group is None:
                        stats['skipped'] += 1
                        continue
                    if stream.cancelled or not stream.put(group):
                        group.close()
                        raise ScanCancelledError(tree=tree.name, directory=directory)
                    stats['groups'] += 1
                    if group.kind == GroupKind.MOTION_PHOTO:
                        stats['motion_photos'] += 1

    def _make_group(self, tree: VirtualTree, linked: FileLinks) -> Optional[AssetGroup]:
        primary = self._asset_from_file(tree, linked.primary)
        if primary is None:
            return None

        group = AssetGroup(kind=GroupKind.NONE, assets=[primary])
        if linked.image and linked.video:
            try:
                video = self._asset_from_file(tree, linked.video)
            except AssetReadError as e:
                # The error event is already recorded; keep the still image alone
                logger.warning(f"Motion video unreadable, keeping image only: {{'file': {linked.video!r}, 'error': {str(e)!r}}}")
                video = None
            if video is not None:
                group.kind = GroupKind.MOTION_PHOTO
                group.assets.append(video)

        try:
            group.albums.extend(self.album_namer.albums_for(tree, primary.file_name))
            group.validate()
        except Exception:
            group.close()
            raise

        if linked.sidecar:
            group.sidecar = SidecarFile(tree, linked.sidecar)
            primary.sidecar = group.sidecar
            self.recorder.record(
                EventCode.ASSOCIATED_METADATA, FileAndName(tree, primary.file_name), sidecar=linked.sidecar
            )
        return group

    def _asset_from_file(self, tree: VirtualTree, file_name: str) -> Optional[LocalAssetFile]:
        """Build the asset of a file; None when the date range rejects it.

        Raises:
            AssetReadError: Metadata or stat failure (an error event is recorded)
        """
        asset = LocalAssetFile(tree, file_name)
        try:
            if self.metadata_reader is not None:
                asset.metadata = self.metadata_reader.read(tree, file_name)
            asset.file_size = tree.stat(file_name).size
        except Exception as e:
            asset.close()
            self.recorder.record(EventCode.ERROR, FileAndName(tree, file_name), error=str(e))
            raise AssetReadError(
                f"Cannot read asset: {e}", tree=tree.name, file=file_name
            ) from e

        date_range = self.config.date_range
        if date_range.is_set() and not date_range.in_range(asset.date_taken):
            asset.close()
            self.recorder.record(
                EventCode.DISCOVERED_DISCARDED, FileAndName(tree, file_name), reason="asset outside date range"
            )
            return None
        return asset
