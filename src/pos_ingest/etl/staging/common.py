"""Staging (Silver) layer: shared row -> Transaction mapping.

Both platform parsers are the same algorithm driven by a different header
vocabulary. A PlatformSchema holds that vocabulary (ordered alias lists per
logical field) plus the platform's defaults; parse_rows() applies it.

Per row:
1. Resolve the transaction id and amount; skip the row if either is absent
   or the amount is not a valid non-negative number.
2. Resolve the date (plus an optional separate time column), description,
   category, payment metadata and status (default "Completed").
3. Extract the optional product line.
4. Stamp the store context.

A malformed row never aborts the batch: it is counted under a reject reason
and parsing continues.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

from pos_ingest.config import IngestSettings
from pos_ingest.etl.categorize import categorize_for_platform
from pos_ingest.etl.cleaning_utils import (
    apply_time,
    parse_amount,
    parse_datetime,
    parse_quantity,
    resolve_datetime,
    to_text,
)
from pos_ingest.etl.columns import RawRow, find_column
from pos_ingest.models import Platform, ProductLine, StoreContext, Transaction

logger = logging.getLogger(__name__)

# Rejected rows logged in full at DEBUG level
_DEBUG_SAMPLE_ROWS = 3


@dataclass(frozen=True)
class PlatformSchema:
    """Header vocabulary and defaults of one source platform.

    Every alias list is ordered, most preferred header first.
    """

    platform: Platform
    transaction_id: Sequence[str]
    amount: Sequence[str]
    date: Sequence[str]
    time: Sequence[str]
    description: Sequence[str]
    category_source: Sequence[str]
    payment_method: Sequence[str]
    card_scheme: Sequence[str]
    status: Sequence[str]
    customer: Sequence[str]
    product_name: Sequence[str]
    quantity: Sequence[str]
    item_price: Sequence[str]
    expected_columns: str
    default_payment_method: str = ""
    default_description: str = ""
    fixed_card_scheme: Optional[str] = None
    default_status: str = "Completed"


@dataclass
class ParseResult:
    """Transactions parsed from one batch of rows, plus what was skipped.

    Attributes:
        transactions: Successfully parsed transactions, in row order.
        rows_seen: Number of input rows.
        rejected: Count of skipped rows per reason.
        date_fallbacks: Rows whose date could not be parsed and were
            stamped with the upload time.
    """

    transactions: list[Transaction] = field(default_factory=list)
    rows_seen: int = 0
    rejected: Counter = field(default_factory=Counter)
    date_fallbacks: int = 0

    @property
    def rejected_count(self) -> int:
        return sum(self.rejected.values())


class RowRejected(Exception):
    """Internal signal: the current row is skipped for the given reason."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def parse_row(
    row: RawRow,
    context: StoreContext,
    schema: PlatformSchema,
    settings: IngestSettings,
) -> tuple[Transaction, bool]:
    """Map one raw row to a Transaction.

    Returns:
        (transaction, used_date_fallback)

    Raises:
        RowRejected: If the row cannot produce a valid transaction.
    """
    raw_id = find_column(row, schema.transaction_id)
    raw_amount = find_column(row, schema.amount)
    if raw_id is None:
        raise RowRejected("missing_id")
    if raw_amount is None:
        raise RowRejected("missing_amount")

    amount = parse_amount(raw_amount)
    if amount is None:
        raise RowRejected("invalid_amount")
    if amount < 0:
        raise RowRejected("negative_amount")
    if amount == 0 and not settings.accept_zero_amount:
        raise RowRejected("zero_amount")

    raw_date = find_column(row, schema.date)
    when = parse_datetime(raw_date)
    used_fallback = False
    if when is None:
        when = resolve_datetime(raw_date, settings.date_fallback)
        if when is None:
            raise RowRejected("invalid_date")
        used_fallback = True
    else:
        raw_time = find_column(row, schema.time)
        if raw_time is not None:
            when = apply_time(when, raw_time)

    description = to_text(find_column(row, schema.description)) or schema.default_description
    category = categorize_for_platform(
        to_text(find_column(row, schema.category_source)) or "", context.platform
    )

    if schema.fixed_card_scheme is not None:
        card_scheme = schema.fixed_card_scheme
    else:
        card_scheme = to_text(find_column(row, schema.card_scheme)) or ""

    product = None
    product_name = to_text(find_column(row, schema.product_name))
    if product_name:
        price = parse_amount(find_column(row, schema.item_price))
        product = ProductLine(
            name=product_name,
            category=categorize_for_platform(product_name, context.platform),
            quantity=parse_quantity(find_column(row, schema.quantity)),
            price=price if price is not None and price >= 0 else amount,
        )

    txn = Transaction(
        transaction_id=to_text(raw_id) or "",
        store_id=context.store_id,
        store_name=context.store_name,
        platform=context.platform,
        date=when,
        amount=amount,
        payment_method=to_text(find_column(row, schema.payment_method))
        or schema.default_payment_method,
        card_scheme=card_scheme,
        description=description,
        status=to_text(find_column(row, schema.status)) or schema.default_status,
        category=category,
        customer_identifier=to_text(find_column(row, schema.customer)),
        product=product,
        outlet_id=context.outlet_id,
        mid=context.mid,
        booker_id=context.booker_id,
    )
    return txn, used_fallback


def parse_rows(
    rows: Sequence[RawRow],
    context: StoreContext,
    schema: PlatformSchema,
    settings: Optional[IngestSettings] = None,
) -> ParseResult:
    """Parse a batch of raw rows with the given platform schema.

    Args:
        rows: Decoded rows (header -> raw cell value).
        context: Store identity stamped onto every transaction.
        schema: Header vocabulary of the source platform.
        settings: Ingestion settings (defaults if None).

    Returns:
        ParseResult with the parsed transactions and reject counts.
    """
    settings = settings or IngestSettings()
    result = ParseResult(rows_seen=len(rows))

    if rows:
        logger.debug("%s columns: %s", schema.platform.value, list(rows[0].keys()))
        logger.debug("Sample row: %r", dict(rows[0]))

    for index, row in enumerate(rows):
        try:
            txn, used_fallback = parse_row(row, context, schema, settings)
        except RowRejected as e:
            result.rejected[e.reason] += 1
            if index < _DEBUG_SAMPLE_ROWS:
                logger.debug("Row %d skipped (%s): %r", index, e.reason, dict(row))
            continue
        except (ArithmeticError, TypeError, ValueError) as e:
            result.rejected["error"] += 1
            logger.debug("Row %d skipped after error: %s", index, e)
            continue
        if used_fallback:
            result.date_fallbacks += 1
        result.transactions.append(txn)

    logger.info(
        "%s parse complete: %d transactions from %d rows",
        schema.platform.value,
        len(result.transactions),
        result.rows_seen,
    )
    if result.rejected:
        logger.warning(
            "Skipped %d of %d rows for store %s (%s)",
            result.rejected_count,
            result.rows_seen,
            context.store_id,
            ", ".join(f"{reason}={n}" for reason, n in sorted(result.rejected.items())),
        )
    if result.date_fallbacks:
        logger.warning(
            "%d rows for store %s had no parseable date and were stamped with the current time",
            result.date_fallbacks,
            context.store_id,
        )
    return result
