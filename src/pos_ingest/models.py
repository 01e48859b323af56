"""Canonical record types shared by parsers, the store and the marts.

Transaction is the platform-agnostic record every parser produces. It is
immutable; edits go through dataclasses.replace() in the store layer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pos_ingest.exceptions import ValidationError


class Platform(str, Enum):
    """Source payment/booking systems. Closed set."""

    TAKEMYPAYMENTS = "takemypayments"
    BOOKER = "booker"

    @classmethod
    def coerce(cls, value: Any) -> Platform:
        """Return the Platform for a value, accepting enum members or strings.

        Raises:
            ValidationError: If the value is not a supported platform.
        """
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        supported = ", ".join(m.value for m in cls)
        raise ValidationError(f"Unsupported platform '{value}'. Must be one of: {supported}")


@dataclass(frozen=True)
class StoreContext:
    """Store identity stamped onto every transaction of an upload."""

    store_id: str
    store_name: str
    platform: Platform
    outlet_id: Optional[str] = None
    mid: Optional[str] = None
    booker_id: Optional[int] = None


@dataclass(frozen=True)
class ProductLine:
    """Single embedded line item of a transaction."""

    name: str
    category: str
    quantity: int
    price: Decimal


# Column order of fact_transactions CSVs
RECORD_COLUMNS = [
    "record_id",
    "transaction_id",
    "store_id",
    "store_name",
    "platform",
    "date",
    "amount",
    "payment_method",
    "card_scheme",
    "description",
    "status",
    "category",
    "customer_identifier",
    "product_name",
    "product_category",
    "product_quantity",
    "product_price",
    "outlet_id",
    "mid",
    "booker_id",
]


def new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Transaction:
    """Canonical, normalized transaction.

    Attributes:
        transaction_id: Vendor-supplied order/invoice id. Not unique across
            platforms; used for display and audit only.
        store_id: Store the transaction belongs to (replace scope).
        store_name: Display name of the store.
        platform: Source platform.
        date: Naive wall-clock timestamp.
        amount: Non-negative exact amount.
        payment_method: Card type / payment method text.
        card_scheme: Card scheme text (Visa, Mastercard...).
        description: Free-text product/service description.
        status: Transaction status, "Completed" when the export has none.
        category: Tag from the product categorizer.
        customer_identifier: Anonymized recurring-customer token, if any.
        product: Optional embedded line item.
        outlet_id: takemypayments outlet id.
        mid: takemypayments merchant id.
        booker_id: booker location id.
        record_id: Store-local key used by edit/delete operations.
    """

    transaction_id: str
    store_id: str
    store_name: str
    platform: Platform
    date: datetime
    amount: Decimal
    payment_method: str = ""
    card_scheme: str = ""
    description: str = ""
    status: str = "Completed"
    category: str = "Other"
    customer_identifier: Optional[str] = None
    product: Optional[ProductLine] = None
    outlet_id: Optional[str] = None
    mid: Optional[str] = None
    booker_id: Optional[int] = None
    record_id: str = field(default_factory=new_record_id)

    @property
    def hour(self) -> int:
        """Hour of day, 0-23."""
        return self.date.hour

    @property
    def day_of_week(self) -> int:
        """Day of week, 0=Sunday .. 6=Saturday."""
        return (self.date.weekday() + 1) % 7

    def to_record(self) -> dict[str, Any]:
        """Flatten into a CSV-ready dict keyed by RECORD_COLUMNS."""
        product = self.product
        return {
            "record_id": self.record_id,
            "transaction_id": self.transaction_id,
            "store_id": self.store_id,
            "store_name": self.store_name,
            "platform": self.platform.value,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "payment_method": self.payment_method,
            "card_scheme": self.card_scheme,
            "description": self.description,
            "status": self.status,
            "category": self.category,
            "customer_identifier": self.customer_identifier or "",
            "product_name": product.name if product else "",
            "product_category": product.category if product else "",
            "product_quantity": str(product.quantity) if product else "",
            "product_price": str(product.price) if product else "",
            "outlet_id": self.outlet_id or "",
            "mid": self.mid or "",
            "booker_id": "" if self.booker_id is None else str(self.booker_id),
        }

    @classmethod
    def from_record(cls, rec: dict[str, Any]) -> Transaction:
        """Rebuild a Transaction from a stored record (all values as text)."""

        def opt(key: str) -> Optional[str]:
            value = rec.get(key)
            if value is None:
                return None
            value = str(value)
            return value if value else None

        product = None
        if opt("product_name"):
            product = ProductLine(
                name=str(rec["product_name"]),
                category=str(rec.get("product_category") or ""),
                quantity=int(rec.get("product_quantity") or 1),
                price=_decimal(rec.get("product_price")),
            )

        booker_id = opt("booker_id")
        return cls(
            record_id=str(rec["record_id"]),
            transaction_id=str(rec["transaction_id"]),
            store_id=str(rec["store_id"]),
            store_name=str(rec["store_name"]),
            platform=Platform.coerce(rec["platform"]),
            date=datetime.fromisoformat(str(rec["date"])),
            amount=_decimal(rec["amount"]),
            payment_method=str(rec.get("payment_method") or ""),
            card_scheme=str(rec.get("card_scheme") or ""),
            description=str(rec.get("description") or ""),
            status=str(rec.get("status") or "Completed"),
            category=str(rec.get("category") or ""),
            customer_identifier=opt("customer_identifier"),
            product=product,
            outlet_id=opt("outlet_id"),
            mid=opt("mid"),
            booker_id=int(booker_id) if booker_id is not None else None,
        )


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid stored amount: {value!r}") from e
