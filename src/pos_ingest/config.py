"""Unified configuration for POS upload ingestion.

This module provides the filesystem layout (DataPaths) and the ingestion
limits and behaviour switches (IngestSettings) used across the package.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from pos_ingest.exceptions import ConfigError

DATE_FALLBACKS = ("now", "reject")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class DataPaths:
    """All filesystem paths used by the ingestion pipeline.

    Attributes:
        data_root: Root directory for all data layers.
        stores_json: Path to the store reference JSON file.

    Directory Structure:
        data_root/
        ├── a_raw/
        │   └── uploads/         # Bronze: accepted upload files, one per store
        ├── b_clean/
        │   └── transactions/    # Silver: fact_transactions, one CSV per store
        │       └── _meta/       # upload metadata, one JSON per store
        └── c_processed/
            └── analytics/       # Gold: marts rebuilt from the full set
                └── _meta/
    """

    data_root: Path
    stores_json: Path

    @classmethod
    def from_root(
        cls,
        data_root: str | Path,
        stores_json: str | Path,
    ) -> DataPaths:
        """Create DataPaths from root directory and stores file.

        Args:
            data_root: Root directory for ingestion data.
            stores_json: Path to stores.json configuration.

        Returns:
            DataPaths instance.

        Examples:
            >>> paths = DataPaths.from_root("data", "utils/stores.json")
            >>> paths.data_root
            PosixPath('data')
        """
        if isinstance(data_root, str):
            data_root = Path(data_root)
        if isinstance(stores_json, str):
            stores_json = Path(stores_json)

        return cls(data_root=data_root, stores_json=stores_json)

    @property
    def raw_uploads(self) -> Path:
        """Bronze layer: the last accepted upload file per store."""
        return self.data_root / "a_raw" / "uploads"

    @property
    def clean_transactions(self) -> Path:
        """Silver layer: fact_transactions (one CSV per store)."""
        return self.data_root / "b_clean" / "transactions"

    @property
    def upload_meta(self) -> Path:
        """Upload metadata, one JSON file per store."""
        return self.clean_transactions / "_meta"

    @property
    def mart_analytics(self) -> Path:
        """Gold layer: analytics marts."""
        return self.data_root / "c_processed" / "analytics"

    def ensure_dirs(self) -> None:
        """Create all directories in the data structure."""
        for path in [
            self.raw_uploads,
            self.clean_transactions,
            self.upload_meta,
            self.mart_analytics,
        ]:
            path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class IngestSettings:
    """Limits and behaviour switches for the ingestion pipeline.

    Attributes:
        max_file_bytes: Largest accepted upload, in bytes.
        max_rows: Largest accepted number of decoded rows.
        date_fallback: What to do with a row whose date cannot be parsed:
            "now" stamps it with the current time (lossy), "reject" skips it.
        accept_zero_amount: Whether a row whose amount parses to exactly 0
            is kept.
    """

    max_file_bytes: int = 25 * 1024 * 1024
    max_rows: int = 200_000
    date_fallback: str = "now"
    accept_zero_amount: bool = True

    def __post_init__(self) -> None:
        if self.date_fallback not in DATE_FALLBACKS:
            raise ConfigError(
                f"Invalid date_fallback '{self.date_fallback}'. "
                f"Must be one of {', '.join(DATE_FALLBACKS)}."
            )
        if self.max_file_bytes <= 0:
            raise ConfigError("max_file_bytes must be positive")
        if self.max_rows <= 0:
            raise ConfigError("max_rows must be positive")

    @classmethod
    def from_env(cls) -> IngestSettings:
        """Build settings from POS_INGEST_* environment variables.

        Unset variables keep their defaults.

        Raises:
            ConfigError: If a variable is set to an invalid value.
        """
        defaults = cls()
        return cls(
            max_file_bytes=_env_int("POS_INGEST_MAX_FILE_BYTES", defaults.max_file_bytes),
            max_rows=_env_int("POS_INGEST_MAX_ROWS", defaults.max_rows),
            date_fallback=os.environ.get("POS_INGEST_DATE_FALLBACK", defaults.date_fallback)
            .strip()
            .lower(),
            accept_zero_amount=_env_bool(
                "POS_INGEST_ACCEPT_ZERO_AMOUNT", defaults.accept_zero_amount
            ),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")
