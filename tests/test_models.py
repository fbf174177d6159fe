from __future__ import annotations

import dataclasses
import datetime as dt

import pytest

from folderwatch.errors import ModeError
from folderwatch.models import Config, FileMetadata, FileTypeCondition, OrganizationMode, PendingFile, Rule
from folderwatch.utils import env_float, expand_path, parse_env_bool
from folderwatch.version import get_version


class TestOrganizationMode:
    @pytest.mark.parametrize("value", ["auto", "ask", "both"])
    def test_parse_known_modes(self, value):
        assert OrganizationMode.parse(value).value == value

    @pytest.mark.parametrize("value", ["AUTO", " ask", "manual", "", None, 3])
    def test_parse_rejects_everything_else(self, value):
        with pytest.raises(ModeError):
            OrganizationMode.parse(value)

    def test_mode_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            OrganizationMode.parse("never")


class TestFileMetadata:
    def test_extension_is_lowercased(self, tmp_path):
        path = tmp_path / "Report.PDF"
        path.write_bytes(b"12345")
        metadata = FileMetadata.from_path(path)
        assert metadata.extension == "pdf"
        assert metadata.name == "Report.PDF"
        assert metadata.size == 5
        assert isinstance(metadata.created_at, dt.datetime)

    def test_missing_extension_is_other(self, tmp_path):
        path = tmp_path / "Makefile"
        path.write_text("all:")
        assert FileMetadata.from_path(path).extension == "other"

    def test_only_last_suffix_counts(self, tmp_path):
        path = tmp_path / "archive.tar.GZ"
        path.write_text("x")
        assert FileMetadata.from_path(path).extension == "gz"

    def test_missing_file_has_no_stat_fields(self, tmp_path):
        metadata = FileMetadata.from_path(tmp_path / "gone.txt")
        assert metadata.size == 0
        assert metadata.created_at is None


class TestPendingFile:
    def test_from_metadata_uses_absolute_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "note.md").write_text("hello")
        stamp = dt.datetime(2024, 1, 2, 3, 4, 5)
        entry = PendingFile.from_metadata(FileMetadata.from_path("note.md"), detected_at=stamp)
        assert entry.path == tmp_path / "note.md"
        assert entry.extension == "md"
        assert entry.size == 5
        assert entry.detected_at == stamp


class TestConfigCopy:
    def test_copy_does_not_share_rule_list(self):
        config = Config(rules=[Rule(condition=FileTypeCondition(value="pdf"), destination="/d")])
        clone = config.copy()
        clone.rules.append(Rule(condition=FileTypeCondition(value="jpg"), destination="/p"))
        assert len(config.rules) == 1

    def test_rules_are_immutable(self):
        config = Config(rules=[Rule(condition=FileTypeCondition(value="pdf"), destination="/d")])
        clone = config.copy()
        with pytest.raises(dataclasses.FrozenInstanceError):
            clone.rules[0].destination = "/elsewhere"
        assert config.rules[0].destination == "/d"


class TestEnvironmentHelpers:
    @pytest.mark.parametrize(
        "raw,expected",
        [("1", True), ("Yes", True), ("off", False), ("maybe", None), (None, None)],
    )
    def test_parse_env_bool(self, raw, expected):
        assert parse_env_bool(raw) is expected

    def test_env_float(self, monkeypatch):
        monkeypatch.setenv("FW_DELAY", "0.25")
        assert env_float("FW_DELAY", 1.0) == 0.25
        monkeypatch.setenv("FW_DELAY", "-1")
        assert env_float("FW_DELAY", 1.0) == 1.0
        monkeypatch.setenv("FW_DELAY", "soon")
        assert env_float("FW_DELAY", 1.0) == 1.0

    def test_expand_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("FW_SUB", "sorted")
        assert expand_path("~/$FW_SUB") == tmp_path / "sorted"

    def test_build_version_override(self, monkeypatch):
        monkeypatch.setenv("BUILD_VERSION", " 9.9.9 ")
        assert get_version() == "9.9.9"
