"""Silver layer: the transaction store (fact_transactions).

One CSV partition per store under b_clean/transactions. A store's partition
is only ever swapped whole (temp file + os.replace), so readers never see a
half-written set, and a failed write leaves the previous set in place.

Mutations of the same store are serialized by store_lock(); different stores
never contend. The locks are process-local.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

import pandas as pd

from pos_ingest.etl.categorize import categorize_for_platform
from pos_ingest.etl.cleaning_utils import parse_amount, parse_datetime
from pos_ingest.etl.utils import atomic_write, store_file_stem
from pos_ingest.exceptions import PersistenceError, TransactionNotFoundError, ValidationError
from pos_ingest.models import RECORD_COLUMNS, ProductLine, Transaction

if TYPE_CHECKING:
    from pos_ingest.config import DataPaths

logger = logging.getLogger(__name__)

MutationHook = Callable[["DataPaths"], Any]

# Fields an edit may not touch
IMMUTABLE_FIELDS = {"record_id", "store_id", "platform"}

_LOCKS: dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def store_lock(store_id: str) -> threading.RLock:
    """Return the lock that serializes mutations of one store.

    Re-entrant, so an operation holding it may call other store operations.

    Examples:
        >>> with store_lock("cafe-1"):
        ...     replace_store_transactions(paths, "cafe-1", txns)
    """
    with _LOCKS_GUARD:
        lock = _LOCKS.get(store_id)
        if lock is None:
            lock = _LOCKS[store_id] = threading.RLock()
        return lock


def partition_path(paths: DataPaths, store_id: str) -> Path:
    """CSV partition holding one store's transactions."""
    return paths.clean_transactions / f"{store_file_stem(store_id)}.csv"


def _read_records(path: Path) -> pd.DataFrame:
    return pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")


def _write_partition(paths: DataPaths, store_id: str, transactions: list[Transaction]) -> None:
    df = pd.DataFrame([t.to_record() for t in transactions], columns=RECORD_COLUMNS)
    target = partition_path(paths, store_id)
    try:
        atomic_write(target, lambda p: df.to_csv(p, index=False, encoding="utf-8-sig"))
    except OSError as e:
        raise PersistenceError(f"Could not write transactions for store {store_id}: {e}") from e


def run_mutation_hook(paths: DataPaths, on_mutation: Optional[MutationHook] = None) -> None:
    """Run the post-mutation hook (default: rebuild the analytics marts).

    The transaction store is already committed when this runs, so a hook
    failure is logged and not raised; the marts can be rebuilt later with
    aggregate.recompute_marts().
    """
    if on_mutation is None:
        # Import here to avoid circular imports (aggregate loads from this module)
        from pos_ingest.transactions.aggregate import recompute_marts

        on_mutation = recompute_marts
    try:
        on_mutation(paths)
    except Exception as e:
        logger.error("Recompute after mutation failed: %s", e)


def replace_store_transactions(
    paths: DataPaths,
    store_id: str,
    transactions: Iterable[Transaction],
) -> int:
    """Replace a store's entire transaction set.

    Args:
        paths: DataPaths configuration.
        store_id: Store whose set is replaced. Every transaction must
            belong to it.
        transactions: The complete new set.

    Returns:
        Number of transactions written.

    Raises:
        ValidationError: If a transaction belongs to another store.
        PersistenceError: If the partition cannot be written; the previous
            set is left untouched.
    """
    txns = list(transactions)
    foreign = {t.store_id for t in txns if t.store_id != store_id}
    if foreign:
        raise ValidationError(
            f"Transactions for store(s) {sorted(foreign)} cannot replace store {store_id}"
        )
    with store_lock(store_id):
        _write_partition(paths, store_id, txns)
    logger.info("Replaced transactions for store %s: %d rows", store_id, len(txns))
    return len(txns)


def load_store_transactions(paths: DataPaths, store_id: str) -> list[Transaction]:
    """Load one store's transactions (empty list if it has none)."""
    path = partition_path(paths, store_id)
    if not path.exists():
        return []
    df = _read_records(path)
    return [Transaction.from_record(rec) for rec in df.to_dict("records")]


def load(paths: DataPaths, store_ids: Optional[list[str]] = None) -> pd.DataFrame:
    """Load fact_transactions for all (or the given) stores.

    Args:
        paths: DataPaths configuration.
        store_ids: Optional list of store ids to keep.

    Returns:
        DataFrame with RECORD_COLUMNS. "amount" holds Decimal objects and
        "date" is datetime64. Empty (with columns) when nothing is stored.
    """
    files = sorted(paths.clean_transactions.glob("*.csv")) if paths.clean_transactions.exists() else []
    frames = [_read_records(f) for f in files]
    frames = [f for f in frames if not f.empty]
    if not frames:
        df = pd.DataFrame(columns=RECORD_COLUMNS)
    else:
        df = pd.concat(frames, ignore_index=True)

    if store_ids is not None:
        df = df[df["store_id"].isin(store_ids)].reset_index(drop=True)

    df["amount"] = df["amount"].map(Decimal).astype(object)
    df["date"] = pd.to_datetime(df["date"], format="ISO8601")
    return df


def add_transaction(
    paths: DataPaths,
    transaction: Transaction,
    *,
    on_mutation: Optional[MutationHook] = None,
    recompute: bool = True,
) -> Transaction:
    """Append a single transaction to its store's set.

    Raises:
        ValidationError: If the amount is negative.
    """
    if transaction.amount < 0:
        raise ValidationError("Amount must be zero or positive")
    with store_lock(transaction.store_id):
        txns = load_store_transactions(paths, transaction.store_id)
        txns.append(transaction)
        _write_partition(paths, transaction.store_id, txns)
    logger.info("Added transaction %s to store %s", transaction.record_id, transaction.store_id)
    if recompute:
        run_mutation_hook(paths, on_mutation)
    return transaction


def _coerce_changes(current: Transaction, changes: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in dataclasses.fields(Transaction)}
    unknown = set(changes) - known
    if unknown:
        raise ValidationError(f"Unknown transaction field(s): {', '.join(sorted(unknown))}")
    locked = set(changes) & IMMUTABLE_FIELDS
    if locked:
        raise ValidationError(f"Field(s) cannot be edited: {', '.join(sorted(locked))}")

    out = dict(changes)
    if "amount" in out:
        amount = parse_amount(out["amount"])
        if amount is None or amount < 0:
            raise ValidationError(f"Invalid amount: {out['amount']!r}")
        out["amount"] = amount
    if "date" in out:
        when = parse_datetime(out["date"])
        if when is None:
            raise ValidationError(f"Invalid date: {out['date']!r}")
        out["date"] = when
    if "description" in out and "category" not in out:
        out["category"] = categorize_for_platform(out["description"], current.platform)
    if "product" in out and out["product"] is not None and not isinstance(out["product"], ProductLine):
        raise ValidationError("product must be a ProductLine or None")
    return out


def update_transaction(
    paths: DataPaths,
    store_id: str,
    record_id: str,
    *,
    on_mutation: Optional[MutationHook] = None,
    recompute: bool = True,
    **changes: Any,
) -> Transaction:
    """Edit fields of one stored transaction.

    Amount and date values are normalized like uploaded cells. Changing the
    description re-categorizes the transaction unless a category is given.

    Returns:
        The updated transaction.

    Raises:
        TransactionNotFoundError: If the record does not exist in the store.
        ValidationError: If a change is invalid or targets an immutable field.

    Examples:
        >>> update_transaction(paths, "cafe-1", rec_id, amount="£4.50")
    """
    with store_lock(store_id):
        txns = load_store_transactions(paths, store_id)
        for i, txn in enumerate(txns):
            if txn.record_id == record_id:
                updated = dataclasses.replace(txn, **_coerce_changes(txn, changes))
                txns[i] = updated
                break
        else:
            raise TransactionNotFoundError(f"Transaction {record_id} not found in store {store_id}")
        _write_partition(paths, store_id, txns)
    logger.info("Updated transaction %s in store %s: %s", record_id, store_id, sorted(changes))
    if recompute:
        run_mutation_hook(paths, on_mutation)
    return updated


def delete_transaction(
    paths: DataPaths,
    store_id: str,
    record_id: str,
    *,
    on_mutation: Optional[MutationHook] = None,
    recompute: bool = True,
) -> Transaction:
    """Remove one stored transaction.

    Returns:
        The removed transaction.

    Raises:
        TransactionNotFoundError: If the record does not exist in the store.
    """
    with store_lock(store_id):
        txns = load_store_transactions(paths, store_id)
        keep = [t for t in txns if t.record_id != record_id]
        if len(keep) == len(txns):
            raise TransactionNotFoundError(f"Transaction {record_id} not found in store {store_id}")
        removed = next(t for t in txns if t.record_id == record_id)
        _write_partition(paths, store_id, keep)
    logger.info("Deleted transaction %s from store %s", record_id, store_id)
    if recompute:
        run_mutation_hook(paths, on_mutation)
    return removed
