"""Group media files of folders and archives into importable assets."""

__version__ = "0.1.0"
