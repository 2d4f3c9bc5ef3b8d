"""CLI command for folder scanning."""

import argparse
import sys
import threading
from pathlib import Path
from typing import List, Optional

import toml
from pydantic import ValidationError

from groupsync.common import ConfigLoader, GroupSyncError, expand_path_variables, get_logger, setup_logging
from .assets import AssetGroup
from .browser import LocalAssetBrowser
from .config import FolderScannerSettings, ImportFolderConfig
from .errors import ScanCancelledError, classify_error
from .events import EventRecorder
from .fakefs import DEFAULT_DATE_FORMAT, scan_file_list
from .trees import ArchiveTree, VirtualTree, open_tree

# Application name derived from package name
_package = __package__ or "groupsync.folder_scanner"
APP_NAME = _package.split('.')[0]

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def format_group(group: AssetGroup) -> str:
    """One output line per group: kind, files, sidecar and albums."""
    tree_name = getattr(group.primary.tree, "name", "")
    parts = [group.kind.value, f"{tree_name}:" + " + ".join(a.file_name for a in group.assets)]
    if group.sidecar is not None:
        parts.append(f"sidecar={group.sidecar.file_name}")
    if group.albums:
        parts.append("albums=" + ", ".join(album.title for album in group.albums))
    return "\t".join(parts)


def apply_overrides(config: ImportFolderConfig, args: argparse.Namespace) -> ImportFolderConfig:
    """Return a validated copy of ``config`` with command line options applied."""
    overrides = {}
    if args.no_recursive:
        overrides['recursive'] = False
    if args.date_method is not None:
        overrides['date_method'] = args.date_method
    if args.date_range is not None:
        overrides['date_range'] = args.date_range
    if args.album_mode is not None:
        overrides['folder_as_album'] = args.album_mode
    if args.album_separator is not None:
        overrides['album_path_separator'] = args.album_separator
    if args.into_album is not None:
        overrides['into_album'] = args.into_album
    if args.ignore_sidecars:
        overrides['ignore_sidecar_files'] = True
    if not overrides:
        return config
    return ImportFolderConfig(**{**config.model_dump(), **overrides})


def scan_command(
    config: ImportFolderConfig,
    paths: List[Path],
    manifest: Optional[Path] = None,
    date_format: str = DEFAULT_DATE_FORMAT,
    out=None,
) -> int:
    """Scan trees and print their asset groups.

    Args:
        config: Scanner configuration
        paths: Directories or archives to scan
        manifest: Optional archive listing turned into in-memory trees
        date_format: strptime format of the listing dates
        out: Output stream (default: stdout)

    Returns:
        Exit code (0 for success, 1 for errors, 130 when cancelled)
    """
    logger = get_logger(__package__ or __name__)
    out = out or sys.stdout
    trees: List[VirtualTree] = []
    recorder = EventRecorder()
    cancel_event = threading.Event()
    stream = None

    try:
        for path in paths:
            trees.append(open_tree(path))
        if manifest is not None:
            trees.extend(scan_file_list(manifest, date_format))
        if not trees:
            logger.error("Nothing to scan: give directories, archives or --manifest")
            return EXIT_ERROR

        logger.info(f"Configuration: {{'trees': {[t.name for t in trees]!r}, 'recursive': {config.recursive}, "
                    f"'date_method': {config.date_method.value!r}, 'date_range': {str(config.date_range)!r}, "
                    f"'album_mode': {config.folder_as_album.value!r}}}")

        browser = LocalAssetBrowser(recorder, config, *trees)
        stream = browser.browse(cancel_event)
        for group in stream:
            print(format_group(group), file=out)
            group.close()
        return EXIT_OK

    except KeyboardInterrupt:
        logger.warning("Interrupted, cancelling scan")
        cancel_event.set()
        return EXIT_CANCELLED
    except ScanCancelledError:
        logger.warning("Scan cancelled")
        return EXIT_CANCELLED
    except GroupSyncError as e:
        logger.error(f"Scan failed: {{'category': {classify_error(e)!r}, 'error': {str(e)!r}}}")
        return EXIT_ERROR
    finally:
        if stream is not None:
            stream.close(timeout=5)
        for tree in trees:
            if isinstance(tree, ArchiveTree):
                tree.close()
        recorder.log_summary()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for scan command."""
    parser = argparse.ArgumentParser(
        description="Group media files of folders and archives into assets (photo, motion video, sidecar)"
    )
    parser.add_argument(
        "paths",
        type=Path,
        nargs="*",
        help="Directories or archives (.zip, .tar, .tgz, ...) to scan"
    )
    parser.add_argument(
        "--manifest",
        type=Path,
        help="Scan in-memory trees built from an 'unzip -l' style listing"
    )
    parser.add_argument(
        "--date-format",
        default=DEFAULT_DATE_FORMAT,
        help=f"strptime format of the dates in --manifest (default: {DEFAULT_DATE_FORMAT.replace('%', '%%')})"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (defaults.toml)"
    )
    parser.add_argument(
        "--no-recursive",
        action="store_true",
        help="Do not descend into sub-directories (overrides config)"
    )
    parser.add_argument(
        "--date-method",
        choices=["NONE", "FILENAME", "EXIF", "FILENAME-EXIF", "EXIF-FILENAME"],
        type=str.upper,
        help="Capture date source (overrides config)"
    )
    parser.add_argument(
        "--date-range",
        help="Only keep assets taken in YYYY, YYYY-MM, YYYY-MM-DD or 'start,end' (overrides config)"
    )
    parser.add_argument(
        "--album-mode",
        choices=["NONE", "FOLDER", "PATH"],
        type=str.upper,
        help="Derive album names from folders (overrides config)"
    )
    parser.add_argument(
        "--album-separator",
        help="Separator of PATH album names (overrides config)"
    )
    parser.add_argument(
        "--into-album",
        help="Put every asset into this album (overrides config)"
    )
    parser.add_argument(
        "--ignore-sidecars",
        action="store_true",
        help="Do not attach XMP sidecar files (overrides config)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (overrides config)"
    )

    args = parser.parse_args(argv)

    loader = ConfigLoader(
        app_name=APP_NAME,
        config_class=FolderScannerSettings
    )
    try:
        settings = loader.load(defaults_path=args.config)
        scanner_config = apply_overrides(settings.scanner, args)
    except (ValidationError, FileNotFoundError, toml.TomlDecodeError, GroupSyncError) as e:
        setup_logging(level=args.log_level or "INFO")
        get_logger(__package__ or __name__).error(f"Invalid configuration: {e}")
        return EXIT_ERROR

    setup_logging(
        level=args.log_level or settings.logging.level,
        format=settings.logging.format,
        log_file=Path(expand_path_variables(settings.logging.file, APP_NAME)) if settings.logging.file else None,
    )

    return scan_command(
        config=scanner_config,
        paths=args.paths,
        manifest=args.manifest,
        date_format=args.date_format,
    )


if __name__ == "__main__":
    sys.exit(main())
