#!/usr/bin/env python3
"""
File helpers shared by the backends: atomic writes and scan exclusion.
"""

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Union

from .config import METADATA_DIR

logger = logging.getLogger(__name__)


def is_metadata_path(path: Union[str, Path]) -> bool:
    """
    Whether a path lies inside the reserved metadata directory.

    Matches either path separator style so Windows-style paths handed over
    by other tools are excluded too.
    """
    text = str(path)
    for separator in ('/', '\\'):
        marker = f"{separator}{METADATA_DIR}{separator}"
        if marker in text or text.startswith(f"{METADATA_DIR}{separator}"):
            return True
    return False


def _default_mode() -> int:
    """Mode a plain open() would give a new file under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def atomic_write(path: Union[str, Path], content: str, encoding: str = "utf-8") -> None:
    """
    Write content to path via a temporary file in the same directory.

    The temporary file is renamed over the destination only after it has been
    fully written and flushed, so readers see either the old file or the new
    one, never a truncated file. Concurrent writers are not serialized; the
    last rename wins. An existing destination keeps its permission bits;
    a new file gets the umask default.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        mode = stat.S_IMODE(os.stat(target).st_mode)
    except FileNotFoundError:
        mode = _default_mode()

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target.parent),
    )
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise

    logger.debug("Wrote %d characters to %s", len(content), target)


def remove_file(path: Union[str, Path]) -> bool:
    """Delete a file if it exists. Returns True when something was removed."""
    target = Path(path)
    if not target.exists():
        return False
    target.unlink()
    logger.debug("Removed %s", target)
    return True
