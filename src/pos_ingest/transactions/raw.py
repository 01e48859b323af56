"""Bronze layer: decode uploaded bytes into rows and archive accepted files.

Uploads arrive as raw bytes. XLSX workbooks are recognised by their zip
signature and read with openpyxl (first sheet only); anything else is
decoded as CSV text. Rows come back as plain dicts of header -> cell value,
with blank cells as None and fully empty rows dropped.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from pos_ingest.etl.cleaning_utils import is_blank, strip_invisibles
from pos_ingest.etl.utils import atomic_write, store_file_stem
from pos_ingest.exceptions import DecodeError

if TYPE_CHECKING:
    from pos_ingest.config import DataPaths

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"
# Legacy BIFF .xls (OLE2 compound document)
OLE_MAGIC = b"\xd0\xcf\x11\xe0"

CSV_ENCODINGS = ("utf-8-sig", "cp1252")

# Archived upload file suffixes, one file per store
ARCHIVE_SUFFIXES = (".csv", ".xlsx")


def sniff_format(content: bytes) -> str:
    """Return "xlsx" or "csv" for the given bytes.

    Raises:
        DecodeError: For legacy .xls workbooks and binary data.
    """
    if content.startswith(ZIP_MAGIC):
        return "xlsx"
    if content.startswith(OLE_MAGIC):
        raise DecodeError("Legacy .xls workbooks are not supported. Save the file as .xlsx or CSV.")
    if b"\x00" in content[:4096]:
        raise DecodeError("Unsupported file format. Upload a CSV or XLSX export.")
    return "csv"


def _decode_text(content: bytes) -> str:
    for encoding in CSV_ENCODINGS:
        try:
            text = content.decode(encoding)
        except UnicodeDecodeError:
            continue
        if encoding != CSV_ENCODINGS[0]:
            logger.debug("CSV is not UTF-8, decoded as %s", encoding)
        return text
    raise DecodeError("Could not decode CSV text (tried %s)" % ", ".join(CSV_ENCODINGS))


def _read_xlsx(content: bytes) -> pd.DataFrame:
    try:
        df = pd.read_excel(io.BytesIO(content), sheet_name=0, engine="openpyxl", dtype=object)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise DecodeError(f"Could not read XLSX workbook: {e}") from e
    # Columns without a header cell
    keep = [c for c in df.columns if not str(c).startswith("Unnamed")]
    return df[keep]


def _read_csv(content: bytes) -> pd.DataFrame:
    text = _decode_text(content)
    if not text.strip():
        return pd.DataFrame()
    try:
        return pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except pd.errors.ParserError as e:
        raise DecodeError(f"Could not parse CSV: {e}") from e


def _clean_cell(value: Any) -> Any:
    if is_blank(value):
        return None
    if isinstance(value, str):
        return strip_invisibles(value)
    return value


def decode_table(
    content: bytes,
    filename: Optional[str] = None,
    max_rows: Optional[int] = None,
) -> list[dict[str, Any]]:
    """Decode an uploaded CSV or XLSX file into a list of rows.

    Args:
        content: Raw file bytes.
        filename: Original file name, for log messages only. The format is
            detected from the content.
        max_rows: Reject files with more data rows than this.

    Returns:
        One dict per non-empty row, keyed by header text. Blank cells are
        None. XLSX cells keep their native types (numbers, timestamps);
        CSV cells are strings.

    Raises:
        DecodeError: If the bytes are not a readable CSV or XLSX file, or
            the row limit is exceeded.

    Examples:
        >>> decode_table(b"Invoice No,Total\\nA1,\\xc2\\xa35.00\\n")
        [{'Invoice No': 'A1', 'Total': '£5.00'}]
    """
    kind = sniff_format(content)
    df = _read_xlsx(content) if kind == "xlsx" else _read_csv(content)

    headers = [strip_invisibles(str(c)) or str(c) for c in df.columns]
    rows: list[dict[str, Any]] = []
    for values in df.itertuples(index=False, name=None):
        row = {h: _clean_cell(v) for h, v in zip(headers, values)}
        if all(v is None for v in row.values()):
            continue
        rows.append(row)
        if max_rows is not None and len(rows) > max_rows:
            raise DecodeError(f"File has more than {max_rows} rows. Split the export and upload it in parts.")

    logger.info("Decoded %s %s: %d rows, %d columns", kind.upper(), filename or "upload", len(rows), len(headers))
    return rows


def archive_paths(paths: DataPaths, store_id: str) -> list[Path]:
    """Every path the archived upload of a store can live at."""
    stem = store_file_stem(store_id)
    return [paths.raw_uploads / f"{stem}{suffix}" for suffix in ARCHIVE_SUFFIXES]


def archive_upload(
    paths: DataPaths,
    store_id: str,
    content: bytes,
    filename: Optional[str] = None,
) -> Path:
    """Keep a copy of the last accepted upload for a store.

    One file per store; a new upload overwrites the previous copy.

    Returns:
        Path of the archived file.
    """
    suffix = ".xlsx" if content.startswith(ZIP_MAGIC) else ".csv"
    target = paths.raw_uploads / f"{store_file_stem(store_id)}{suffix}"
    atomic_write(target, lambda p: p.write_bytes(content))
    for stale in archive_paths(paths, store_id):
        if stale != target:
            stale.unlink(missing_ok=True)
    logger.debug("Archived %s for store %s at %s", filename or "upload", store_id, target)
    return target
