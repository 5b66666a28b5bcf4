"""Size-based retention of working copies."""

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

SIZE_UNITS = ("", "K", "M", "G", "T", "P", "E", "Z")
OVERFLOW_UNIT = "Y"

DEFAULT_THRESHOLD_MB = 200.0


def get_repo_size(start_path: Path | str) -> int:
    """Total size in bytes of the regular files under ``start_path``.

    Symbolic links are neither counted nor followed.
    """
    total = 0

    def on_error(error: OSError) -> None:
        logger.warning("error walking file path %s: %s", start_path, error)

    for dirpath, _dirnames, filenames in os.walk(start_path, onerror=on_error):
        for name in filenames:
            file_path = os.path.join(dirpath, name)
            try:
                if os.path.islink(file_path):
                    continue
                total += os.lstat(file_path).st_size
            except OSError as e:
                on_error(e)
    return total


def format_size(size_bytes: float, factor: float = 1024.0, suffix: str = "B") -> str:
    """Human-readable size, e.g. ``"1.50 KB"`` or ``"200.00 MB"``."""
    for unit in SIZE_UNITS:
        if size_bytes < factor:
            return f"{size_bytes:.2f} {unit}{suffix}"
        size_bytes /= factor
    return f"{size_bytes:.2f} {OVERFLOW_UNIT}{suffix}"


def should_be_deleted(size_text: str, threshold_mb: float = DEFAULT_THRESHOLD_MB) -> bool:
    """Apply the retention policy to a :func:`format_size` string.

    Anything measured in bytes or kilobytes is disposable, as is anything
    up to ``threshold_mb`` megabytes.
    """
    parts = size_text.split(" ")
    if len(parts) < 2:
        return False
    magnitude, unit = parts[0], parts[1]
    if unit in ("B", "KB"):
        return True
    if unit == "MB":
        try:
            return float(magnitude) <= threshold_mb
        except ValueError:
            return False
    return False


def cleanup_working_copy(
    path: Path | str,
    force: bool = False,
    threshold_mb: float = DEFAULT_THRESHOLD_MB,
) -> bool:
    """Delete ``path`` when it is small enough, or unconditionally when forced.

    Returns True if the directory was removed.
    """
    path = Path(path)
    if not path.exists():
        return False

    size = format_size(float(get_repo_size(path)))
    logger.debug("working copy %s measures %s", path, size)
    if not (force or should_be_deleted(size, threshold_mb)):
        return False

    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.error("cannot remove %s: %s", path, e)
        return False
    return True
