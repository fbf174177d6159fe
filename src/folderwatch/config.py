from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from jsonschema import Draft7Validator

from .errors import ConfigError
from .models import (
    CREATED_DATE_OPERATORS,
    Config,
    CreatedDateCondition,
    FileTypeCondition,
    NamePatternCondition,
    OrganizationMode,
    Rule,
    RuleCondition,
)
from .utils import ensure_directory

if TYPE_CHECKING:  # pragma: no cover
    from .watcher import Watcher

LOGGER = logging.getLogger(__name__)

APP_DIR_NAME = "folder-watcher"
CONFIG_FILE_NAME = "config.json"
CONFIG_PATH_ENV = "FOLDERWATCH_CONFIG"

_CONDITION_SCHEMAS: List[Dict[str, Any]] = [
    {
        "type": "object",
        "properties": {"type": {"const": FileTypeCondition.type_name}, "value": {"type": "string"}},
        "required": ["type", "value"],
    },
    {
        "type": "object",
        "properties": {"type": {"const": NamePatternCondition.type_name}, "pattern": {"type": "string"}},
        "required": ["type", "pattern"],
    },
    {
        "type": "object",
        "properties": {
            "type": {"const": CreatedDateCondition.type_name},
            "operator": {"type": "string", "enum": list(CREATED_DATE_OPERATORS)},
            "value": {"type": "string"},
        },
        "required": ["type", "operator", "value"],
    },
]

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "watched_folder": {"type": ["string", "null"]},
        "organization_mode": {"type": "string", "enum": [mode.value for mode in OrganizationMode]},
        "rules": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": ["string", "null"]},
                    "condition": {"oneOf": _CONDITION_SCHEMAS},
                    "destination": {"type": "string"},
                },
                "required": ["condition", "destination"],
            },
        },
        "mappings": {"type": "object"},
    },
    "additionalProperties": True,
}


def default_config_path() -> Path:
    """Return the per-user configuration file location.

    ``FOLDERWATCH_CONFIG`` overrides the location; otherwise the file lives in
    ``$XDG_CONFIG_HOME/folder-watcher`` (``~/.config`` when unset).
    """
    override = os.getenv(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    base = os.getenv("XDG_CONFIG_HOME")
    root = Path(base).expanduser() if base else Path.home() / ".config"
    return root / APP_DIR_NAME / CONFIG_FILE_NAME


def _format_schema_path(path: Sequence[Any]) -> str:
    if not path:
        return "<root>"
    tokens: List[str] = []
    for part in path:
        if isinstance(part, int):
            if tokens:
                tokens[-1] = f"{tokens[-1]}[{part}]"
            else:
                tokens.append(f"[{part}]")
        else:
            tokens.append(str(part))
    return ".".join(tokens) if tokens else "<root>"


def validate_config_data(data: Any) -> List[str]:
    """Validate a raw configuration document and return human readable problems."""
    validator = Draft7Validator(CONFIG_SCHEMA)
    problems: List[str] = []
    for error in sorted(validator.iter_errors(data), key=lambda exc: list(exc.absolute_path)):
        problems.append(f"{_format_schema_path(error.absolute_path)}: {error.message}")
    return problems


def _require_str(value: Any, *, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"'{field_name}' must be a string")
    return value


def _build_condition(data: Any, *, field_name: str) -> RuleCondition:
    if not isinstance(data, dict):
        raise ConfigError(f"'{field_name}' must be a mapping")
    kind = data.get("type")
    if kind == FileTypeCondition.type_name:
        return FileTypeCondition(value=_require_str(data.get("value"), field_name=f"{field_name}.value"))
    if kind == NamePatternCondition.type_name:
        return NamePatternCondition(pattern=_require_str(data.get("pattern"), field_name=f"{field_name}.pattern"))
    if kind == CreatedDateCondition.type_name:
        return CreatedDateCondition(
            operator=_require_str(data.get("operator"), field_name=f"{field_name}.operator"),
            value=_require_str(data.get("value"), field_name=f"{field_name}.value"),
        )
    raise ConfigError(f"'{field_name}.type' has unsupported value {kind!r}")


def _build_rule(data: Any, *, index: int) -> Rule:
    field_name = f"rules[{index}]"
    if not isinstance(data, dict):
        raise ConfigError(f"'{field_name}' must be a mapping")
    name = data.get("name")
    if name is not None and not isinstance(name, str):
        raise ConfigError(f"'{field_name}.name' must be a string when provided")
    return Rule(
        name=name,
        condition=_build_condition(data.get("condition"), field_name=f"{field_name}.condition"),
        destination=_require_str(data.get("destination"), field_name=f"{field_name}.destination"),
    )


def parse_config(data: Any) -> Config:
    """Build a :class:`Config` from a decoded JSON document.

    Missing fields take their defaults. The organization mode is kept verbatim
    so that an unknown value is reported when files arrive instead of being
    silently replaced.
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    watched_folder = data.get("watched_folder")
    if watched_folder is not None and not isinstance(watched_folder, str):
        raise ConfigError("'watched_folder' must be a string or null")

    mode = data.get("organization_mode", OrganizationMode.AUTO.value)
    if not isinstance(mode, str):
        raise ConfigError("'organization_mode' must be a string")

    rules_raw = data.get("rules") or []
    if not isinstance(rules_raw, list):
        raise ConfigError("'rules' must be a list")

    if data.get("mappings"):
        LOGGER.debug("Ignoring legacy 'mappings' section in configuration")

    return Config(
        watched_folder=watched_folder,
        organization_mode=mode,
        rules=[_build_rule(entry, index=index) for index, entry in enumerate(rules_raw)],
    )


def condition_to_dict(condition: RuleCondition) -> Dict[str, Any]:
    if isinstance(condition, FileTypeCondition):
        return {"type": condition.type_name, "value": condition.value}
    if isinstance(condition, NamePatternCondition):
        return {"type": condition.type_name, "pattern": condition.pattern}
    if isinstance(condition, CreatedDateCondition):
        return {"type": condition.type_name, "operator": condition.operator, "value": condition.value}
    raise ConfigError(f"Unsupported rule condition {condition!r}")


def config_to_dict(config: Config) -> Dict[str, Any]:
    rules: List[Dict[str, Any]] = []
    for rule in config.rules:
        entry: Dict[str, Any] = {}
        if rule.name is not None:
            entry["name"] = rule.name
        entry["condition"] = condition_to_dict(rule.condition)
        entry["destination"] = rule.destination
        rules.append(entry)
    return {
        "watched_folder": config.watched_folder,
        "organization_mode": config.organization_mode,
        "rules": rules,
    }


def dump_config_json(config: Config) -> str:
    return json.dumps(config_to_dict(config), indent=2, ensure_ascii=False) + "\n"


class ConfigStore:
    """Durable, hot-reloadable holder of the active configuration."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else default_config_path()
        self._lock = threading.Lock()
        self._current = Config()
        self._watcher: Optional[Watcher] = None

    @property
    def current(self) -> Config:
        with self._lock:
            return self._current.copy()

    def attach(self, watcher: Optional[Watcher]) -> None:
        """Register the watcher that receives configuration updates."""
        self._watcher = watcher

    def load(self) -> Config:
        """Read the configuration file, falling back to defaults on any problem."""
        config = self._read()
        with self._lock:
            self._current = config
        return config.copy()

    def _read(self) -> Config:
        if not self.path.exists():
            LOGGER.debug("No configuration at %s; using defaults", self.path)
            return Config()
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            return parse_config(data)
        except (OSError, ValueError) as exc:
            # ValueError covers json.JSONDecodeError and ConfigError
            LOGGER.warning("Could not read configuration %s (%s); using defaults", self.path, exc)
            return Config()

    def save(self, config: Config) -> None:
        """Persist ``config`` via write-then-rename so readers never see a partial file."""
        payload = dump_config_json(config)
        try:
            ensure_directory(self.path.parent)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        except OSError as exc:
            raise ConfigError(f"Failed to prepare configuration directory {self.path.parent}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise ConfigError(f"Failed to write configuration {self.path}: {exc}") from exc

        with self._lock:
            self._current = config.copy()
        LOGGER.debug("Saved configuration to %s", self.path)

    def apply(self, config: Config) -> None:
        """Make ``config`` the active configuration without restarting the watcher."""
        with self._lock:
            self._current = config.copy()
        watcher = self._watcher
        if watcher is not None:
            watcher.apply_config(config)


__all__ = [
    "APP_DIR_NAME",
    "CONFIG_FILE_NAME",
    "CONFIG_PATH_ENV",
    "CONFIG_SCHEMA",
    "ConfigStore",
    "condition_to_dict",
    "config_to_dict",
    "default_config_path",
    "dump_config_json",
    "parse_config",
    "validate_config_data",
]
