"""Public API for uploading POS exports.

This module is the entry point for ingesting a file for one store:

1. Validate the request (file present, store fields, platform, size)
2. Decode the bytes into rows (Bronze)
3. Parse rows into transactions with the platform's parser (Silver)
4. Replace the store's transaction set, upsert its upload metadata and
   archive the file, all under the store's lock
5. Rebuild the analytics marts (Gold)

ingest_upload() raises typed errors; upload() wraps it and returns an
UploadResult whose to_dict() is the response shape returned to uploaders.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional

from pos_ingest.config import IngestSettings
from pos_ingest.etl.cleaning_utils import to_text
from pos_ingest.etl.columns import found_columns
from pos_ingest.etl.staging import expected_columns_hint, parse_for_platform
from pos_ingest.etl.utils import format_duration, restore_files, snapshot_files
from pos_ingest.exceptions import (
    DecodeError,
    EmptyBatchError,
    PersistenceError,
    PosAPIError,
    ValidationError,
)
from pos_ingest.models import Platform, StoreContext
from pos_ingest.transactions.core import (
    MutationHook,
    partition_path,
    replace_store_transactions,
    run_mutation_hook,
    store_lock,
)
from pos_ingest.transactions.metadata import (
    UploadMetadata,
    list_upload_metadata,
    upload_metadata_path,
    write_upload_metadata,
)
from pos_ingest.transactions.raw import archive_paths, archive_upload, decode_table

if TYPE_CHECKING:
    from pos_ingest.config import DataPaths

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Failed to process file"
EMPTY_FILE = "File is empty or invalid"


@dataclass
class UploadRequest:
    """One file to ingest for one store."""

    content: bytes
    context: StoreContext
    filename: Optional[str] = None


@dataclass
class UploadResult:
    """Outcome of an upload.

    Attributes:
        success: Whether the store's transactions were replaced.
        store_id: Store the upload targeted.
        transaction_count: Transactions persisted (success only).
        last_uploaded: ISO timestamp of the upload (success only).
        error: User-facing error message (failure only).
        found_columns: Headers seen in the file, when no row could be parsed.
        sample_row: First decoded row, when no row could be parsed.
        rejected: Skipped rows per reason (success only, not part of
            the response).
    """

    success: bool
    store_id: str = ""
    transaction_count: int = 0
    last_uploaded: Optional[str] = None
    error: Optional[str] = None
    found_columns: Optional[str] = None
    sample_row: Optional[dict[str, Any]] = None
    rejected: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Response payload for the uploader.

        Examples:
            >>> UploadResult(True, "cafe-1", 12, "2025-01-15T12:00:00").to_dict()
            {'success': True, 'transactionCount': 12, 'lastUploaded': '2025-01-15T12:00:00'}
        """
        if self.success:
            return {
                "success": True,
                "transactionCount": self.transaction_count,
                "lastUploaded": self.last_uploaded,
            }
        out: dict[str, Any] = {"success": False, "error": self.error or GENERIC_FAILURE}
        if self.found_columns is not None:
            out["foundColumns"] = self.found_columns
        if self.sample_row is not None:
            out["sampleRow"] = self.sample_row
        return out


def _jsonable_row(row: dict[str, Any]) -> dict[str, Any]:
    return {str(k): to_text(v) for k, v in row.items()}


def validate_request(
    content: Optional[bytes],
    context: StoreContext,
    settings: IngestSettings,
) -> StoreContext:
    """Check an upload request before any parsing.

    Returns:
        The context with trimmed ids and a coerced Platform.

    Raises:
        ValidationError: If the file is missing, empty or too large, a
            store field is missing, or the platform is unsupported.
    """
    if not content:
        raise ValidationError("No file provided")
    store_id = (context.store_id or "").strip()
    store_name = (context.store_name or "").strip()
    missing = [name for name, value in (("store_id", store_id), ("store_name", store_name)) if not value]
    if not context.platform:
        missing.append("platform")
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    platform = Platform.coerce(context.platform)
    if len(content) > settings.max_file_bytes:
        raise ValidationError(
            f"File too large ({len(content)} bytes). The limit is {settings.max_file_bytes} bytes."
        )
    return replace(context, store_id=store_id, store_name=store_name, platform=platform)


def ingest_upload(
    paths: DataPaths,
    content: bytes,
    context: StoreContext,
    *,
    filename: Optional[str] = None,
    settings: Optional[IngestSettings] = None,
    on_mutation: Optional[MutationHook] = None,
    recompute: bool = True,
) -> UploadResult:
    """Ingest one uploaded file, replacing the store's transactions.

    Args:
        paths: DataPaths configuration.
        content: Raw file bytes (CSV or XLSX).
        context: Store identity and platform of the upload.
        filename: Original file name, for logs and metadata.
        settings: Ingestion settings (defaults if None).
        on_mutation: Hook run after a successful replace (default:
            aggregate.recompute_marts).
        recompute: If False, skip the hook.

    Returns:
        A successful UploadResult.

    Raises:
        ValidationError: Request rejected before parsing, or the file has
            no data rows.
        DecodeError: The bytes are not a readable CSV/XLSX file.
        EmptyBatchError: Rows were found but none parsed; carries the
            found columns and a sample row. Stored data is untouched.
        PersistenceError: The store could not be written. The transactions,
            upload metadata and archived file are restored to their state
            before the upload.
    """
    settings = settings or IngestSettings()
    context = validate_request(content, context, settings)
    started = time.perf_counter()

    rows = decode_table(content, filename=filename, max_rows=settings.max_rows)
    if not rows:
        raise ValidationError(EMPTY_FILE)

    result = parse_for_platform(rows, context, settings)
    if not result.transactions:
        raise EmptyBatchError(
            f"No valid transactions found. {expected_columns_hint(context.platform)}. "
            f"Found {len(rows)} rows but none matched the expected format.",
            found_columns=found_columns(rows),
            sample_row=_jsonable_row(rows[0]),
        )

    now = datetime.now().replace(microsecond=0).isoformat()
    paths.ensure_dirs()
    with store_lock(context.store_id):
        # Everything the upload writes; restored together if any write fails
        try:
            previous = snapshot_files(
                [
                    partition_path(paths, context.store_id),
                    upload_metadata_path(paths, context.store_id),
                    *archive_paths(paths, context.store_id),
                ]
            )
        except OSError as e:
            raise PersistenceError(f"Could not read current data for store {context.store_id}: {e}") from e
        try:
            count = replace_store_transactions(paths, context.store_id, result.transactions)
            write_upload_metadata(
                paths,
                UploadMetadata(
                    store_id=context.store_id,
                    store_name=context.store_name,
                    platform=context.platform.value,
                    last_uploaded=now,
                    transaction_count=count,
                    updated_at=now,
                    filename=filename,
                ),
            )
            archive_upload(paths, context.store_id, content, filename)
        except (OSError, PersistenceError) as e:
            try:
                restore_files(previous)
            except OSError as restore_error:
                logger.error(
                    "Could not restore previous data for store %s: %s", context.store_id, restore_error
                )
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(f"Could not record upload for store {context.store_id}: {e}") from e

    logger.info(
        "Processed %s for store %s: %d transactions in %s",
        filename or "upload",
        context.store_id,
        count,
        format_duration(time.perf_counter() - started),
    )

    if recompute:
        run_mutation_hook(paths, on_mutation)

    return UploadResult(
        success=True,
        store_id=context.store_id,
        transaction_count=count,
        last_uploaded=now,
        rejected=dict(result.rejected),
    )


def upload(
    paths: DataPaths,
    content: bytes,
    context: StoreContext,
    *,
    filename: Optional[str] = None,
    settings: Optional[IngestSettings] = None,
    on_mutation: Optional[MutationHook] = None,
    recompute: bool = True,
) -> UploadResult:
    """Ingest one file and report the outcome as an UploadResult.

    Same as ingest_upload(), but failures become an unsuccessful result
    instead of an exception. Storage failures are reported generically.

    Examples:
        >>> from pos_ingest import DataPaths, Platform, StoreContext
        >>> paths = DataPaths.from_root("data", "utils/stores.json")
        >>> ctx = StoreContext("cafe-1", "High St Café", Platform.TAKEMYPAYMENTS)
        >>> result = upload(paths, Path("export.csv").read_bytes(), ctx, filename="export.csv")
        >>> result.to_dict()
        {'success': True, 'transactionCount': 42, 'lastUploaded': '...'}
    """
    store_id = context.store_id or ""
    try:
        return ingest_upload(
            paths,
            content,
            context,
            filename=filename,
            settings=settings,
            on_mutation=on_mutation,
            recompute=recompute,
        )
    except EmptyBatchError as e:
        logger.warning("Upload for store %s rejected: %s", store_id, e)
        return UploadResult(
            success=False,
            store_id=store_id,
            error=str(e),
            found_columns=e.found_columns,
            sample_row=e.sample_row,
        )
    except (ValidationError, DecodeError) as e:
        logger.warning("Upload for store %s rejected: %s", store_id, e)
        return UploadResult(success=False, store_id=store_id, error=str(e))
    except PosAPIError as e:
        logger.error("Upload for store %s failed: %s", store_id, e)
        return UploadResult(success=False, store_id=store_id, error=GENERIC_FAILURE)


def upload_many(
    paths: DataPaths,
    requests: Iterable[UploadRequest],
    *,
    settings: Optional[IngestSettings] = None,
    on_mutation: Optional[MutationHook] = None,
    recompute: bool = True,
) -> list[UploadResult]:
    """Ingest several files, rebuilding the marts once at the end.

    Each request is independent: a failed file does not affect the others.

    Returns:
        One UploadResult per request, in order.
    """
    results = [
        upload(
            paths,
            req.content,
            req.context,
            filename=req.filename,
            settings=settings,
            recompute=False,
        )
        for req in requests
    ]
    succeeded = sum(r.success for r in results)
    logger.info("Batch upload: %d of %d files succeeded", succeeded, len(results))
    if recompute and succeeded:
        run_mutation_hook(paths, on_mutation)
    return results


def upload_path(
    paths: DataPaths,
    file_path: str | Path,
    context: StoreContext,
    *,
    settings: Optional[IngestSettings] = None,
    on_mutation: Optional[MutationHook] = None,
    recompute: bool = True,
) -> UploadResult:
    """Ingest a file from disk.

    Returns:
        UploadResult; an unreadable path is an unsuccessful result.
    """
    file_path = Path(file_path)
    try:
        content = file_path.read_bytes()
    except OSError as e:
        logger.warning("Could not read %s: %s", file_path, e)
        return UploadResult(success=False, store_id=context.store_id or "", error=f"Could not read file: {file_path}")
    return upload(
        paths,
        content,
        context,
        filename=file_path.name,
        settings=settings,
        on_mutation=on_mutation,
        recompute=recompute,
    )


def list_uploads(paths: DataPaths) -> list[UploadMetadata]:
    """Upload status of every store that has uploaded, sorted by store_id."""
    return list_upload_metadata(paths)
