from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from textwrap import wrap
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(message)s\n"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    """Render a titled block of aligned ``label: value`` lines for log output."""
    items = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
    lines: list[str] = [""] if pad_top else []
    lines.append(title)
    lines.append("-" * len(title))

    label_width = max(min(max((len(str(key)) for key, _ in items), default=0), DEFAULT_LABEL_WIDTH), 8)
    value_width = max(DEFAULT_WRAP_WIDTH - len(DEFAULT_INDENT) - label_width - 4, 32)
    for key, value in items:
        wrapped = []
        for raw_line in _stringify(value).splitlines() or [""]:
            wrapped.extend(wrap(raw_line, width=value_width) or [""])
        lines.append(f"{DEFAULT_INDENT}{str(key):<{label_width}}: {wrapped[0]}")
        for continuation in wrapped[1:]:
            lines.append(f"{DEFAULT_INDENT}{'':<{label_width}}  {continuation}")
    return "\n".join(lines).rstrip()


def configure_logging(
    level: int = logging.INFO,
    *,
    log_file: Optional[Path] = None,
    file_level: Optional[int] = None,
    console: Optional[Console] = None,
) -> None:
    """Install console (and optional file) handlers on the root logger.

    Existing handlers installed by a previous call are replaced so the
    function can be called again after the verbosity changes.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_folderwatch_handler", False):
            root.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setLevel(level)
    console_handler._folderwatch_handler = True  # type: ignore[attr-defined]
    root.addHandler(console_handler)

    effective = level
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level if file_level is not None else logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=FILE_DATE_FORMAT))
        file_handler._folderwatch_handler = True  # type: ignore[attr-defined]
        root.addHandler(file_handler)
        effective = min(effective, file_handler.level)

    root.setLevel(effective)
    # watchdog is chatty at DEBUG
    logging.getLogger("watchdog").setLevel(max(level, logging.INFO))


__all__ = ["configure_logging", "render_fields_block"]
