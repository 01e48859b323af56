"""Shared utilities for the ingestion pipeline.

File naming for per-store partitions, atomic file replacement and small
formatting helpers.
"""

from __future__ import annotations

import hashlib
import os
import re
import unicodedata
import uuid
from pathlib import Path
from typing import Callable, Iterable, Optional


def slugify(value: str) -> str:
    """Convert a string to a filesystem-friendly slug.

    Normalizes unicode characters, removes special characters, and converts
    spaces/hyphens to single hyphens.

    Args:
        value: String to slugify.

    Returns:
        Slugified string (e.g., "My Store Name" -> "my-store-name").
        Returns "unknown" if the result would be empty.

    Examples:
        >>> slugify("Noa's Café")
        'noas-cafe'
        >>> slugify("store_1")
        'store_1'
    """
    value = unicodedata.normalize("NFKD", value)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = re.sub(r"[^\w\s-]", "", value, flags=re.U)
    value = re.sub(r"[-\s]+", "-", value).strip("-_").lower()
    return value or "unknown"


def store_file_stem(store_id: str) -> str:
    """Stable, collision-free file stem for a store's partition.

    Two ids can slugify to the same text ("Store 1" / "store-1"), so a short
    hash of the exact id is appended.

    Examples:
        >>> store_file_stem("store_1").startswith("store_1-")
        True
    """
    digest = hashlib.sha1(store_id.encode("utf-8")).hexdigest()[:8]
    return f"{slugify(store_id)}-{digest}"


def format_duration(seconds: float) -> str:
    """Format a duration in seconds as a human-readable string.

    Examples:
        >>> format_duration(90.5)
        '1m 30.5s'
        >>> format_duration(45.2)
        '45.2s'
    """
    mins, secs = divmod(seconds, 60.0)
    if mins >= 1:
        return f"{int(mins)}m {secs:04.1f}s"
    else:
        return f"{secs:.1f}s"


def atomic_write(target: Path, write: Callable[[Path], None]) -> None:
    """Write a file through a sibling temp file, then swap it into place.

    Readers see either the previous file or the complete new one, never a
    partial write. The temp file is removed if writing fails.

    Args:
        target: Final file path.
        write: Callable that writes the full content to the path it is given.

    Raises:
        OSError: If writing or renaming fails.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
    try:
        write(tmp)
        os.replace(tmp, target)
    finally:
        if tmp.exists():
            tmp.unlink()


def snapshot_files(files: Iterable[Path]) -> dict[Path, Optional[bytes]]:
    """Capture the current bytes of each file (None where it does not exist).

    Used with restore_files() to undo a group of writes that must succeed
    or fail together.
    """
    return {path: path.read_bytes() if path.exists() else None for path in files}


def restore_files(snapshot: dict[Path, Optional[bytes]]) -> None:
    """Put every file of a snapshot back as it was.

    Files that did not exist are removed. Every file is attempted even if an
    earlier one fails; the first error is raised at the end.
    """
    first_error: Optional[OSError] = None
    for path, content in snapshot.items():
        try:
            if content is None:
                path.unlink(missing_ok=True)
            else:
                atomic_write(path, lambda p, c=content: p.write_bytes(c))
        except OSError as e:
            first_error = first_error or e
    if first_error is not None:
        raise first_error
