"""Domain-specific exceptions for POS upload ingestion.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from PosAPIError for easy catching.
"""

from __future__ import annotations

from typing import Any


class PosAPIError(Exception):
    """Base exception for all POS ingestion errors.

    Users can catch this exception to handle any error raised by the package.
    """

    pass


class ConfigError(PosAPIError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Invalid settings values are provided (e.g. from environment variables)
    - A store is missing from stores.json
    - The stores.json file cannot be loaded or parsed
    """

    pass


class ValidationError(PosAPIError):
    """Raised when an upload request is rejected before any parsing begins.

    This exception is raised when:
    - The uploaded file is missing, empty, or too large
    - Required store fields (store_id, store_name, platform) are missing
    - The platform is not one of the supported platforms
    """

    pass


class ETLError(PosAPIError):
    """Raised when an ingestion pipeline stage fails."""

    pass


class DecodeError(ETLError):
    """Raised when the uploaded bytes cannot be decoded into rows.

    This exception is raised when:
    - The file is neither CSV text nor an XLSX workbook
    - The workbook or CSV is corrupt
    - The file has more rows than the configured limit
    """

    pass


class EmptyBatchError(ETLError):
    """Raised when a non-empty file produced zero valid transactions.

    Carries diagnostics so the uploader can fix the export headers without
    access to server logs.

    Attributes:
        found_columns: Comma-joined header list of the first decoded row.
        sample_row: The first decoded row, or None.
    """

    def __init__(
        self,
        message: str,
        found_columns: str = "",
        sample_row: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.found_columns = found_columns
        self.sample_row = sample_row


class PersistenceError(ETLError):
    """Raised when the transaction store or upload metadata cannot be written."""

    pass


class TransactionNotFoundError(PosAPIError):
    """Raised when an edit or delete targets a record that does not exist."""

    pass
