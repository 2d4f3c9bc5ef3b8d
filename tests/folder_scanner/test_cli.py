"""Tests for the scan command line."""

import io
import logging
import os
import zipfile

import pytest
from groupsync.folder_scanner import cli
from groupsync.folder_scanner.config import ImportFolderConfig

MANIFEST = """\
Archive: takeout-001.zip
  Length      Date    Time    Name
---------  ---------- -----   ----
  2104348  07-20-2023 00:00   Takeout/Google Photos/Trip/IMG_3235.jpg
  8104348  07-20-2023 00:00   Takeout/Google Photos/Trip/IMG_3235.MP4
      348  07-20-2023 00:00   Takeout/Google Photos/Trip/IMG_3236.jpg
---------                     -------
 10209044                     3 files
"""


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep config files, env overrides and root handlers out of the tests."""
    monkeypatch.setattr(
        "groupsync.common.config.platformdirs.user_config_dir",
        lambda appname=None, appauthor=None: str(tmp_path / "user-config"),
    )
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("GROUPSYNC_"):
            monkeypatch.delenv(key)
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield tmp_path
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def library(tmp_path):
    """A small photo folder on disk."""
    root = tmp_path / "library"
    (root / "trip").mkdir(parents=True)
    for name in ("trip/a.jpg", "trip/a.mp4", "trip/b.jpg", "trip/b.jpg.xmp", "notes.txt"):
        (root / name).write_bytes(name.encode("utf-8"))
    return root


class TestScanCommand:
    """Tests for scan_command."""

    def test_scan_directory(self, library):
        """Test printing the groups of a directory."""
        out = io.StringIO()
        code = cli.scan_command(ImportFolderConfig(date_method="NONE"), [library], out=out)

        assert code == cli.EXIT_OK
        assert out.getvalue().splitlines() == [
            "motion photo\tlibrary:trip/a.jpg + trip/a.mp4",
            "none\tlibrary:trip/b.jpg\tsidecar=trip/b.jpg.xmp",
        ]

    def test_scan_archive(self, tmp_path):
        """Test scanning a zip archive."""
        archive = tmp_path / "photos.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("2023/IMG_1.jpg", b"jpeg")
            zf.writestr("2023/IMG_2.jpg", b"jpeg")
        out = io.StringIO()

        code = cli.scan_command(
            ImportFolderConfig(date_method="NONE", folder_as_album="FOLDER"), [archive], out=out,
        )

        assert code == cli.EXIT_OK
        assert out.getvalue().splitlines() == [
            "none\tphotos.zip:2023/IMG_1.jpg\talbums=2023",
            "none\tphotos.zip:2023/IMG_2.jpg\talbums=2023",
        ]

    def test_scan_manifest(self, tmp_path):
        """Test scanning the trees described by an archive listing."""
        manifest = tmp_path / "listing.txt"
        manifest.write_text(MANIFEST, encoding="utf-8")
        out = io.StringIO()

        code = cli.scan_command(ImportFolderConfig(date_method="NONE"), [], manifest=manifest, out=out)

        assert code == cli.EXIT_OK
        assert out.getvalue().splitlines() == [
            "motion photo\ttakeout-001.zip:Takeout/Google Photos/Trip/IMG_3235.jpg"
            " + Takeout/Google Photos/Trip/IMG_3235.MP4",
            "none\ttakeout-001.zip:Takeout/Google Photos/Trip/IMG_3236.jpg",
        ]

    def test_nothing_to_scan(self):
        """Test that a scan without trees fails."""
        assert cli.scan_command(ImportFolderConfig(), [], out=io.StringIO()) == cli.EXIT_ERROR

    def test_missing_directory(self, tmp_path):
        """Test that an unreadable tree is reported as an error."""
        code = cli.scan_command(ImportFolderConfig(), [tmp_path / "missing"], out=io.StringIO())
        assert code == cli.EXIT_ERROR


class TestMain:
    """Tests for the command line entry point."""

    def test_main_prints_groups(self, library, capsys):
        """Test a full run with command line overrides."""
        code = cli.main([str(library), "--date-method", "none", "--album-mode", "path", "--album-separator", "/"])

        assert code == cli.EXIT_OK
        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "motion photo\tlibrary:trip/a.jpg + trip/a.mp4\talbums=library/trip",
            "none\tlibrary:trip/b.jpg\tsidecar=trip/b.jpg.xmp\talbums=library/trip",
        ]

    def test_config_file(self, library, tmp_path, capsys):
        """Test options read from a config file."""
        config_file = tmp_path / "scan.toml"
        config_file.write_text('[scanner]\ndate_method = "NONE"\nignore_sidecar_files = true\n', encoding="utf-8")

        code = cli.main([str(library), "--config", str(config_file)])

        assert code == cli.EXIT_OK
        assert "sidecar=" not in capsys.readouterr().out

    def test_conflicting_options(self, library):
        """Test that a fixed album with folder albums is rejected."""
        assert cli.main([str(library), "--album-mode", "FOLDER", "--into-album", "Trip"]) == cli.EXIT_ERROR

    def test_missing_config_file(self, library, tmp_path):
        """Test that an explicit config file must exist."""
        assert cli.main([str(library), "--config", str(tmp_path / "nope.toml")]) == cli.EXIT_ERROR

    def test_invalid_date_range(self, library):
        """Test that a malformed date range is a configuration error."""
        assert cli.main([str(library), "--date-range", "last summer"]) == cli.EXIT_ERROR

    def test_no_paths(self):
        """Test that running without trees fails."""
        assert cli.main([]) == cli.EXIT_ERROR
