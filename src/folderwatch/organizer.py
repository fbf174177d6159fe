"""Collision-safe relocation of a single file.

The search for a free name is not atomic with respect to other processes
writing into the destination directory; only the final rename is.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from .errors import OrganizeError
from .utils import PathLike, ensure_directory, expand_path

LOGGER = logging.getLogger(__name__)


def disambiguated_name(file_name: str, counter: int) -> str:
    """Return ``"stem (counter).ext"``, or ``"name (counter)"`` when there is no extension."""
    path = Path(file_name)
    if path.suffix:
        return f"{path.stem} ({counter}){path.suffix}"
    return f"{file_name} ({counter})"


def unique_destination(directory: Path, file_name: str) -> Path:
    candidate = directory / file_name
    counter = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = directory / disambiguated_name(file_name, counter)
        counter += 1
    return candidate


def _validate_new_name(new_name: str) -> str:
    cleaned = new_name.strip()
    if not cleaned or cleaned in {".", ".."} or Path(cleaned).name != cleaned or "/" in cleaned or "\\" in cleaned:
        raise OrganizeError(f"Invalid file name {new_name!r}")
    return cleaned


def move_file(
    file_path: PathLike,
    destination_dir: PathLike,
    *,
    new_name: Optional[str] = None,
) -> Path:
    """Move ``file_path`` into ``destination_dir`` without overwriting anything.

    Args:
        file_path: File to relocate
        destination_dir: Target directory, created with its parents if absent
        new_name: Optional replacement file name applied while moving

    Returns:
        The final path of the moved file

    Raises:
        OrganizeError: If the destination is empty or cannot be created, or if
            the rename fails. The source file is left where it was.
    """
    source = Path(file_path)
    if not os.fspath(destination_dir).strip():
        raise OrganizeError(f"Destination folder is empty for {source}")
    target_dir = expand_path(destination_dir).absolute()
    file_name = _validate_new_name(new_name) if new_name is not None else source.name
    if not file_name:
        raise OrganizeError(f"Invalid file name for {source}")

    try:
        ensure_directory(target_dir)
    except OSError as exc:
        raise OrganizeError(f"Failed to create destination folder {target_dir}: {exc}") from exc

    target = unique_destination(target_dir, file_name)

    try:
        os.rename(source, target)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise OrganizeError(f"Failed to move {source} to {target}: {exc}") from exc
        # Cross-device rename; copy then unlink onto the reserved name
        try:
            shutil.move(str(source), str(target))
        except OSError as move_exc:
            if source.exists() and target.exists():
                try:
                    target.unlink()
                except OSError as cleanup_exc:
                    LOGGER.warning("Could not remove partial copy %s: %s", target, cleanup_exc)
            raise OrganizeError(f"Failed to move {source} to {target}: {move_exc}") from move_exc

    LOGGER.debug("Moved %s -> %s", source, target)
    return target


__all__ = ["disambiguated_name", "move_file", "unique_destination"]
