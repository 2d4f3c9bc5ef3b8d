"""Folder scanning and asset grouping."""

from .browser import LocalAssetBrowser, ScanState, TreeCatalog
from .config import FolderScannerSettings, ImportFolderConfig
from .assets import AssetGroup, GroupKind, LocalAlbum, LocalAssetFile, SidecarFile
from .channel import GroupStream
from .events import EventCode, EventRecorder, FileAndName
from .trees import ArchiveTree, DirTree, VirtualTree, open_tree

__version__ = "0.1.0"

__all__ = [
    'LocalAssetBrowser',
    'ScanState',
    'TreeCatalog',
    'FolderScannerSettings',
    'ImportFolderConfig',
    'AssetGroup',
    'GroupKind',
    'LocalAlbum',
    'LocalAssetFile',
    'SidecarFile',
    'GroupStream',
    'EventCode',
    'EventRecorder',
    'FileAndName',
    'ArchiveTree',
    'DirTree',
    'VirtualTree',
    'open_tree',
]
