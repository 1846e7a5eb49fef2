"""
Upward directory search for configuration files.
"""

import os
import stat
from typing import Optional

from confstore.core.logging import logger


def _stat_mode(path: str) -> Optional[int]:
    """
    Mode of the real path behind ``path``, or None when it cannot be stat'ed.

    Symlink cycles, permission errors and over-long names count as missing.
    """
    try:
        return os.stat(os.path.realpath(path)).st_mode
    except (OSError, ValueError):
        return None


def is_file(path: str) -> bool:
    mode = _stat_mode(path)
    return mode is not None and stat.S_ISREG(mode)


def is_dir(path: str) -> bool:
    mode = _stat_mode(path)
    return mode is not None and stat.S_ISDIR(mode)


def resolve_file(
    file: str, base_dir: Optional[str] = None, default_dir: Optional[str] = None
) -> Optional[str]:
    """
    Find ``file`` by walking up from ``base_dir``.

    Search order:
    1. ``file`` itself when it is an absolute path to a regular file
    2. ``<dir>/<file>`` for ``base_dir`` and each of its ancestors, skipping
       directories that merely share the file's name
    3. ``<default_dir>/<file>`` once the filesystem root has been checked

    Args:
        file: File name or path
        base_dir: Where the walk starts (default: current working directory)
        default_dir: Fallback directory (default: current working directory)

    Returns:
        The resolved path, or None when nothing was found
    """
    if os.path.isabs(file):
        if is_file(file):
            return file
        # os.path.join(dir, abs_path) == abs_path, so walking up would only
        # re-check this same missing path
        logger.debug("Absolute config path not found", file=file)
        return None

    base = os.path.abspath(base_dir or os.getcwd())
    if not is_dir(base):
        logger.debug("Search base is not a directory", base=base)
        return None

    while True:
        candidate = os.path.join(base, file)
        if is_file(candidate):
            return candidate

        previous, base = base, os.path.dirname(base)
        if previous == base:
            break

    fallback = os.path.join(default_dir or os.getcwd(), file)
    if is_file(fallback):
        return fallback

    logger.debug("Config file not found in search path", file=file)
    return None
