"""Column resolution for loosely-labelled export headers.

Each platform (and each vendor integration version of a platform) labels the
same logical field differently. find_column() locates a logical field in a
row from an ordered list of known header variants.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from pos_ingest.etl.cleaning_utils import is_blank, strip_invisibles

RawRow = Mapping[str, Any]


def _header_key(name: Any) -> str:
    return (strip_invisibles(str(name)) or "").casefold()


def find_column(row: RawRow, candidates: Sequence[str]) -> Optional[Any]:
    """Return the value of the first candidate header present in the row.

    For each candidate, most preferred first: exact key match, then a
    case-insensitive match across all row keys. Blank cells count as
    absent, so resolution moves on to the next candidate.

    Args:
        row: Mapping of header text to raw cell value.
        candidates: Header variants, most preferred first.

    Returns:
        The raw cell value, or None if no candidate matched.

    Examples:
        >>> find_column({"invoice no": "A1", "Total": "£5"}, ["Invoice No"])
        'A1'
        >>> find_column({"Total": ""}, ["Total", "Amount"]) is None
        True
    """
    folded: dict[str, list[str]] = {}
    for key in row.keys():
        folded.setdefault(_header_key(key), []).append(key)

    for name in candidates:
        if name in row and not is_blank(row[name]):
            return row[name]
        for key in folded.get(_header_key(name), ()):
            if not is_blank(row[key]):
                return row[key]
    return None


def found_columns(rows: Sequence[RawRow]) -> str:
    """Comma-joined header list of the first row, for upload diagnostics."""
    if not rows:
        return "none"
    return ", ".join(str(k) for k in rows[0].keys())
