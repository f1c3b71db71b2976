# ABOUTME: Disk cache for fetched response files, keyed by request fingerprint
# ABOUTME: A hit is a file at the deterministic path; nothing ever expires

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from noaa_fetch.core.config_loader import get_cache_dir

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {"csv": "csv", "nc": "nc", "ncdf": "nc"}


@dataclass(frozen=True)
class Store:
    """Where fetched ERDDAP responses go: ``disk`` (cached files) or ``memory``."""

    store: str
    path: Optional[Path] = None
    overwrite: bool = False


def disk(path=None, overwrite: bool = False) -> Store:
    """Cache responses as files under ``path`` (default: the erddap cache dir)."""
    return Store(store="disk", path=get_cache_dir("erddap", path), overwrite=overwrite)


def memory() -> Store:
    """Keep responses in memory; nothing is written."""
    return Store(store="memory")


def normalize_fmt(fmt: str) -> str:
    """Map a user format name to the file extension ERDDAP serves."""
    try:
        return FORMAT_EXTENSIONS[fmt]
    except KeyError:
        raise ValueError(f"fmt must be one of {sorted(FORMAT_EXTENSIONS)}, got {fmt!r}") from None


def cache_key(url: str, args: str) -> str:
    """Fingerprint of a request: md5 of the URL followed by its query args."""
    return hashlib.md5(f"{url}{args}".encode()).hexdigest()


def write_path(path, url: str, args: str, fmt: str) -> Path:
    """Deterministic cache file location for a request."""
    return Path(path) / f"{cache_key(url, args)}.{normalize_fmt(fmt)}"


def cache_get(path, url: str, args: str, fmt: str) -> Optional[Path]:
    """Return the cached file for a request, or None on a miss."""
    cache_file = write_path(path, url, args, fmt)
    if cache_file.exists():
        logger.info(f"Cache hit: {cache_file}")
        return cache_file
    return None


def clear_cache(path=None, pattern: str = "*") -> int:
    """
    Delete cached files.

    Args:
        path: Cache directory (default: the erddap cache dir)
        pattern: Glob of files to remove

    Returns:
        int: Number of files removed
    """
    cache_dir = get_cache_dir("erddap", path)
    if not cache_dir.exists():
        return 0

    removed_count = 0
    for cache_file in cache_dir.glob(pattern):
        if cache_file.is_file():
            cache_file.unlink()
            removed_count += 1

    logger.info(f"Cleared {removed_count} cache files matching pattern: {pattern}")
    return removed_count


def file_info(path) -> dict:
    """Modification time and a human readable size for a cached file."""
    stat = Path(path).stat()
    size = stat.st_size
    if size < 10000:
        size_str = f"{round(size / 1000, 2)} KB"
    else:
        size_str = f"{round(size / 1000000, 2)} MB"
    return {"mtime": datetime.fromtimestamp(stat.st_mtime), "size": size_str}
