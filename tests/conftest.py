"""Shared fixtures for ingestion tests."""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Iterator

import pytest

from pos_ingest import DataPaths, Platform, StoreContext, Transaction


@pytest.fixture
def paths() -> Iterator[DataPaths]:
    """DataPaths rooted in a fresh temporary directory."""
    with TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        yield DataPaths.from_root(root / "data", root / "stores.json")


@pytest.fixture
def cafe() -> StoreContext:
    return StoreContext(
        store_id="cafe-1",
        store_name="High St Café",
        platform=Platform.TAKEMYPAYMENTS,
        outlet_id="OUT-01",
        mid="4432001",
    )


@pytest.fixture
def salon() -> StoreContext:
    return StoreContext(
        store_id="salon-1",
        store_name="Hair by Noa",
        platform=Platform.BOOKER,
        booker_id=9081,
    )


def tmp_csv(*lines: str) -> bytes:
    """Build UTF-8 CSV bytes from text lines."""
    return ("\n".join(lines) + "\n").encode("utf-8")


def make_txn(
    store: StoreContext,
    amount: str,
    when: datetime,
    *,
    transaction_id: str = "T-1",
    category: str = "Other",
    customer: str | None = None,
) -> Transaction:
    return Transaction(
        transaction_id=transaction_id,
        store_id=store.store_id,
        store_name=store.store_name,
        platform=store.platform,
        date=when,
        amount=Decimal(amount),
        category=category,
        customer_identifier=customer,
    )
