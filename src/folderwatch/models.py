from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .errors import ModeError

NO_EXTENSION = "other"
CREATED_DATE_OPERATORS = ("before", "after", "on")


class OrganizationMode(str, enum.Enum):
    AUTO = "auto"
    ASK = "ask"
    BOTH = "both"

    @classmethod
    def parse(cls, value: object) -> "OrganizationMode":
        """Return the mode for ``value`` or raise :class:`ModeError`."""
        if isinstance(value, OrganizationMode):
            return value
        if isinstance(value, str):
            for member in cls:
                if member.value == value:
                    return member
        allowed = ", ".join(member.value for member in cls)
        raise ModeError(f"Unsupported organization mode {value!r}; expected one of: {allowed}")


@dataclass(frozen=True, slots=True)
class FileTypeCondition:
    value: str

    type_name = "filetype"


@dataclass(frozen=True, slots=True)
class NamePatternCondition:
    pattern: str

    type_name = "name"


@dataclass(frozen=True, slots=True)
class CreatedDateCondition:
    """Creation-date comparison. Never matches; operator semantics are undefined."""

    operator: str
    value: str

    type_name = "created_date"


RuleCondition = Union[FileTypeCondition, NamePatternCondition, CreatedDateCondition]


@dataclass(frozen=True, slots=True)
class Rule:
    condition: RuleCondition
    destination: str
    name: Optional[str] = None


@dataclass(slots=True)
class Config:
    """In-memory form of the durable configuration document.

    ``organization_mode`` stays a plain string so that a value edited by hand
    outside the closed set survives loading and is reported when files arrive.
    """

    watched_folder: Optional[str] = None
    organization_mode: str = OrganizationMode.AUTO.value
    rules: List[Rule] = field(default_factory=list)

    def copy(self) -> "Config":
        return Config(
            watched_folder=self.watched_folder,
            organization_mode=self.organization_mode,
            rules=list(self.rules),
        )


@dataclass(frozen=True, slots=True)
class FileMetadata:
    path: Path
    extension: str
    name: str
    created_at: Optional[dt.datetime] = None
    size: int = 0

    @classmethod
    def from_path(cls, path: Path) -> "FileMetadata":
        path = Path(path)
        suffix = path.suffix[1:].lower() if path.suffix else ""
        created_at: Optional[dt.datetime] = None
        size = 0
        try:
            stat = path.stat()
        except OSError:
            stat = None
        if stat is not None:
            size = stat.st_size
            # st_birthtime only exists on some platforms; ctime is the closest fallback
            timestamp = getattr(stat, "st_birthtime", None) or stat.st_ctime
            created_at = dt.datetime.fromtimestamp(timestamp)
        return cls(
            path=path,
            extension=suffix or NO_EXTENSION,
            name=path.name,
            created_at=created_at,
            size=size,
        )


@dataclass(frozen=True, slots=True)
class PendingFile:
    path: Path
    name: str
    extension: str
    size: int
    detected_at: dt.datetime = field(default_factory=dt.datetime.now)

    @classmethod
    def from_metadata(cls, metadata: FileMetadata, *, detected_at: Optional[dt.datetime] = None) -> "PendingFile":
        return cls(
            path=metadata.path.absolute(),
            name=metadata.name,
            extension=metadata.extension,
            size=metadata.size,
            detected_at=detected_at or dt.datetime.now(),
        )


__all__ = [
    "CREATED_DATE_OPERATORS",
    "Config",
    "CreatedDateCondition",
    "FileMetadata",
    "FileTypeCondition",
    "NO_EXTENSION",
    "NamePatternCondition",
    "OrganizationMode",
    "PendingFile",
    "Rule",
    "RuleCondition",
]
