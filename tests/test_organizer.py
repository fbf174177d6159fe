from __future__ import annotations

import errno
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from folderwatch.errors import OrganizeError
from folderwatch.organizer import disambiguated_name, move_file, unique_destination


def _write(path: Path, text: str = "data") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestDisambiguatedName:
    def test_counter_goes_before_extension(self):
        assert disambiguated_name("report.txt", 1) == "report (1).txt"

    def test_counter_appended_without_extension(self):
        assert disambiguated_name("Makefile", 3) == "Makefile (3)"

    def test_only_last_suffix_counts_as_extension(self):
        assert disambiguated_name("archive.tar.gz", 2) == "archive.tar (2).gz"


class TestUniqueDestination:
    def test_returns_plain_name_when_free(self, tmp_path):
        assert unique_destination(tmp_path, "a.txt") == tmp_path / "a.txt"

    def test_skips_taken_names(self, tmp_path):
        _write(tmp_path / "a.txt")
        _write(tmp_path / "a (1).txt")
        assert unique_destination(tmp_path, "a.txt") == tmp_path / "a (2).txt"


class TestMoveFile:
    """Tests for collision-safe moves."""

    def test_moves_into_existing_directory(self, tmp_path):
        source = _write(tmp_path / "in" / "a.pdf")
        dest_dir = tmp_path / "docs"
        dest_dir.mkdir()

        final = move_file(source, dest_dir)

        assert final == dest_dir / "a.pdf"
        assert final.read_text() == "data"
        assert not source.exists()

    def test_creates_missing_destination_with_parents(self, tmp_path):
        source = _write(tmp_path / "in" / "a.pdf")
        dest_dir = tmp_path / "deep" / "nested" / "docs"

        final = move_file(source, dest_dir)

        assert dest_dir.is_dir()
        assert final == dest_dir / "a.pdf"

    def test_collision_gets_numbered_name(self, tmp_path):
        out = tmp_path / "out"
        _write(out / "report.txt", "original")
        source = _write(tmp_path / "in" / "report.txt", "new")

        final = move_file(source, out)

        assert final == out / "report (1).txt"
        assert (out / "report.txt").read_text() == "original"
        assert final.read_text() == "new"

    def test_many_collisions_are_injective(self, tmp_path):
        out = tmp_path / "out"
        finals = []
        for index in range(5):
            source = _write(tmp_path / f"in{index}" / "photo.jpg", str(index))
            finals.append(move_file(source, out))

        assert [path.name for path in finals] == [
            "photo.jpg",
            "photo (1).jpg",
            "photo (2).jpg",
            "photo (3).jpg",
            "photo (4).jpg",
        ]
        assert [path.read_text() for path in finals] == ["0", "1", "2", "3", "4"]

    def test_collision_without_extension(self, tmp_path):
        out = tmp_path / "out"
        _write(out / "README")
        source = _write(tmp_path / "in" / "README")

        assert move_file(source, out) == out / "README (1)"

    def test_new_name_is_applied(self, tmp_path):
        source = _write(tmp_path / "in" / "scan001.pdf")
        final = move_file(source, tmp_path / "out", new_name="lease.pdf")
        assert final == tmp_path / "out" / "lease.pdf"

    def test_new_name_collision_is_disambiguated(self, tmp_path):
        _write(tmp_path / "out" / "lease.pdf")
        source = _write(tmp_path / "in" / "scan001.pdf")
        final = move_file(source, tmp_path / "out", new_name="lease.pdf")
        assert final.name == "lease (1).pdf"

    @pytest.mark.parametrize("bad_name", ["", "  ", "..", "sub/dir.txt"])
    def test_rejects_invalid_new_name(self, tmp_path, bad_name):
        source = _write(tmp_path / "in" / "a.txt")
        with pytest.raises(OrganizeError):
            move_file(source, tmp_path / "out", new_name=bad_name)
        assert source.exists()

    def test_missing_source_raises_organize_error(self, tmp_path):
        with pytest.raises(OrganizeError, match="Failed to move"):
            move_file(tmp_path / "ghost.txt", tmp_path / "out")

    def test_unwritable_destination_raises_organize_error(self, tmp_path):
        source = _write(tmp_path / "in" / "a.txt")
        blocker = _write(tmp_path / "not-a-dir")

        with pytest.raises(OrganizeError, match="Failed to create destination folder"):
            move_file(source, blocker / "sub")
        assert source.exists()

    def test_organize_error_is_an_os_error(self, tmp_path):
        with pytest.raises(OSError):
            move_file(tmp_path / "ghost.txt", tmp_path / "out")

    def test_cross_device_rename_falls_back_to_copy(self, tmp_path):
        source = _write(tmp_path / "in" / "a.txt", "payload")
        dest_dir = tmp_path / "out"

        with patch("folderwatch.organizer.os.rename", side_effect=OSError(errno.EXDEV, "cross-device")):
            final = move_file(source, dest_dir)

        assert final == dest_dir / "a.txt"
        assert final.read_text() == "payload"
        assert not source.exists()

    def test_permission_error_leaves_source(self, tmp_path):
        source = _write(tmp_path / "in" / "a.txt")

        with patch("folderwatch.organizer.os.rename", side_effect=PermissionError(errno.EACCES, "denied")):
            with pytest.raises(OrganizeError):
                move_file(source, tmp_path / "out")

        assert source.exists()
        assert not (tmp_path / "out" / "a.txt").exists()

    def test_expands_user_in_destination(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        source = _write(tmp_path / "in" / "a.txt")
        final = move_file(source, "~/sorted")
        assert final == tmp_path / "home" / "sorted" / "a.txt"
        assert os.path.exists(final)

    @pytest.mark.parametrize("destination", ["", "   "])
    def test_empty_destination_is_rejected(self, tmp_path, monkeypatch, destination):
        cwd = tmp_path / "cwd"
        cwd.mkdir()
        monkeypatch.chdir(cwd)
        source = _write(tmp_path / "in" / "a.txt")

        with pytest.raises(OrganizeError, match="Destination folder is empty"):
            move_file(source, destination)

        assert source.exists()
        assert list(cwd.iterdir()) == []

    def test_relative_destination_returns_absolute_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        source = _write(tmp_path / "in" / "a.txt")
        final = move_file(source, "sorted")
        assert final.is_absolute()
        assert final == tmp_path / "sorted" / "a.txt"
