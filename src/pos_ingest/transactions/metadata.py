"""Metadata handling for uploads and pipeline stages.

Two kinds of JSON metadata live in _meta/ subdirectories:

- UploadMetadata: one file per store under b_clean/transactions/_meta,
  overwritten on every successful upload (upsert, no history).
- StageMetadata: one file per stage run target (e.g. the analytics marts),
  recording when it last ran and whether it succeeded.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pos_ingest.etl.utils import atomic_write, store_file_stem

if TYPE_CHECKING:
    from pos_ingest.config import DataPaths

logger = logging.getLogger(__name__)


@dataclass
class UploadMetadata:
    """Status of the last successful upload for a store.

    Attributes:
        store_id: Store identifier.
        store_name: Display name at the time of upload.
        platform: Source platform value ("takemypayments" or "booker").
        last_uploaded: ISO timestamp of the upload.
        transaction_count: Transactions persisted by that upload.
        updated_at: ISO timestamp of the last write of this record.
        filename: Original file name, if known.
    """

    store_id: str
    store_name: str
    platform: str
    last_uploaded: str  # ISO timestamp
    transaction_count: int
    updated_at: str  # ISO timestamp
    filename: str | None = None

    def to_dict(self) -> dict:
        """Convert metadata to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> UploadMetadata:
        """Create metadata from dictionary."""
        return cls(**data)


@dataclass
class StageMetadata:
    """Metadata for a pipeline stage run.

    Attributes:
        stage: Stage name (e.g., "analytics").
        version: Version identifier of the stage logic.
        last_run: ISO timestamp of when the stage was run.
        status: "ok" or "failed".
        stores: Store ids included in the run.
        row_count: Input rows processed.
    """

    stage: str
    version: str
    last_run: str  # ISO timestamp
    status: str  # "ok" | "failed"
    stores: list[str]
    row_count: int

    def to_dict(self) -> dict:
        """Convert metadata to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> StageMetadata:
        """Create metadata from dictionary."""
        return cls(**data)


def _write_json(path: Path, data: dict) -> None:
    text = json.dumps(data, indent=2, ensure_ascii=False)
    atomic_write(path, lambda p: p.write_text(text, encoding="utf-8"))


def _read_json(path: Path) -> dict | None:
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError:
        logger.warning("Ignoring corrupt metadata file %s", path)
        return None


def upload_metadata_path(paths: DataPaths, store_id: str) -> Path:
    """Metadata file path for a store's uploads."""
    return paths.upload_meta / f"{store_file_stem(store_id)}.json"


def write_upload_metadata(paths: DataPaths, metadata: UploadMetadata) -> None:
    """Upsert the upload metadata of a store.

    Raises:
        OSError: If the file cannot be written.
    """
    _write_json(upload_metadata_path(paths, metadata.store_id), metadata.to_dict())


def read_upload_metadata(paths: DataPaths, store_id: str) -> UploadMetadata | None:
    """Read a store's upload metadata, or None if it never uploaded.

    Examples:
        >>> meta = read_upload_metadata(paths, "cafe-1")
        >>> if meta:
        ...     print(meta.transaction_count, meta.last_uploaded)
    """
    data = _read_json(upload_metadata_path(paths, store_id))
    if data is None:
        return None
    try:
        return UploadMetadata.from_dict(data)
    except TypeError:
        logger.warning("Ignoring malformed upload metadata for store %s", store_id)
        return None


def list_upload_metadata(paths: DataPaths) -> list[UploadMetadata]:
    """All stores' upload metadata, sorted by store_id."""
    if not paths.upload_meta.exists():
        return []
    result = []
    for path in paths.upload_meta.glob("*.json"):
        data = _read_json(path)
        if data is None:
            continue
        try:
            result.append(UploadMetadata.from_dict(data))
        except TypeError:
            logger.warning("Ignoring malformed upload metadata %s", path)
    return sorted(result, key=lambda m: m.store_id)


def stage_metadata_path(stage_dir: Path, stage: str) -> Path:
    """Metadata file path for a stage, under stage_dir/_meta."""
    return stage_dir / "_meta" / f"{stage}.json"


def write_stage_metadata(stage_dir: Path, metadata: StageMetadata) -> None:
    """Write stage metadata JSON to the _meta/ subdirectory."""
    _write_json(stage_metadata_path(stage_dir, metadata.stage), metadata.to_dict())


def read_stage_metadata(stage_dir: Path, stage: str) -> StageMetadata | None:
    """Read stage metadata if it exists and is well-formed."""
    data = _read_json(stage_metadata_path(stage_dir, stage))
    if data is None:
        return None
    try:
        return StageMetadata.from_dict(data)
    except TypeError:
        return None
