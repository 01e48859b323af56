"""Staging parser for takemypayments card-terminal exports (retail / café).

Header vocabulary covers both generations of the takemypayments export
(the original "Order Number / Sale Total" layout and the invoice-based
layout with VAT breakdown columns).
"""

from __future__ import annotations

from typing import Optional, Sequence

from pos_ingest.config import IngestSettings
from pos_ingest.etl.columns import RawRow
from pos_ingest.etl.staging.common import ParseResult, PlatformSchema, parse_rows
from pos_ingest.models import Platform, StoreContext

TRANSACTION_ID_COLUMNS = (
    "Invoice No", "Invoice Number", "InvoiceNo", "Invoice_No", "Invoice",
    "Transaction ID", "TransactionID", "Transaction_ID", "ID", "Reference", "Ref",
    "Order ID", "OrderID", "Order Number", "Receipt No", "Receipt Number",
)

AMOUNT_COLUMNS = (
    "Total", "Grand Total", "GrandTotal", "Grand_Total", "Amount", "Total Amount",
    "TotalAmount", "Sale Total", "Value", "Price", "Net", "Gross", "Revenue",
    "20% Goods Ex Vat", "5% Goods Ex Vat", "Goods Ex Vat",
    "Total Ex VAT", "Total Inc VAT", "Total Incl VAT",
)

DATE_COLUMNS = (
    "Date", "Transaction Date", "TransactionDate", "Transaction_Date",
    "Created", "Created Date", "CreatedDate", "Payment Date", "PaymentDate",
    "Invoice Date", "InvoiceDate", "Sale Date", "SaleDate",
)

TIME_COLUMNS = ("Time", "Transaction Time", "TransactionTime", "Sale Time")

DESCRIPTION_COLUMNS = ("Narrative", "Description", "Product", "Item", "Service")

CATEGORY_SOURCE_COLUMNS = ("Narrative", "Description", "Product", "Service", "Item")

PAYMENT_METHOD_COLUMNS = (
    "Card Type", "CardType", "Card_Type", "Payment Method", "PaymentMethod",
    "Payment Type", "PaymentType", "Payment_Type", "Type", "Method",
)

CARD_SCHEME_COLUMNS = (
    "Card Scheme", "CardScheme", "Card_Scheme", "Scheme", "Brand", "Card Brand", "CardBrand",
)

STATUS_COLUMNS = ("Status", "State", "Transaction Status", "Payment Status")

CUSTOMER_COLUMNS = ("Card Last 4", "Card Last Four", "Last 4", "Customer ID", "CustomerID")

PRODUCT_NAME_COLUMNS = ("Product Name", "Item Name")

QUANTITY_COLUMNS = ("Quantity", "Qty")

ITEM_PRICE_COLUMNS = ("Item Price", "Unit Price", "Price")

SCHEMA = PlatformSchema(
    platform=Platform.TAKEMYPAYMENTS,
    transaction_id=TRANSACTION_ID_COLUMNS,
    amount=AMOUNT_COLUMNS,
    date=DATE_COLUMNS,
    time=TIME_COLUMNS,
    description=DESCRIPTION_COLUMNS,
    category_source=CATEGORY_SOURCE_COLUMNS,
    payment_method=PAYMENT_METHOD_COLUMNS,
    card_scheme=CARD_SCHEME_COLUMNS,
    status=STATUS_COLUMNS,
    customer=CUSTOMER_COLUMNS,
    product_name=PRODUCT_NAME_COLUMNS,
    quantity=QUANTITY_COLUMNS,
    item_price=ITEM_PRICE_COLUMNS,
    expected_columns=(
        "TakeMyPayments expects: [Transaction ID / ID / Reference] AND [Amount / Total / Value]"
    ),
)


def parse_takemypayments(
    rows: Sequence[RawRow],
    context: StoreContext,
    settings: Optional[IngestSettings] = None,
) -> ParseResult:
    """Parse decoded takemypayments rows into transactions.

    Args:
        rows: Decoded rows (header -> raw cell value).
        context: Store identity stamped onto every transaction.
        settings: Ingestion settings (defaults if None).

    Returns:
        ParseResult. Card scheme is read from the export; payment method
        and description default to empty text. Categories come from the
        café taxonomy.

    Examples:
        >>> ctx = StoreContext("cafe-1", "High St Café", Platform.TAKEMYPAYMENTS)
        >>> result = parse_takemypayments(
        ...     [{"Invoice No": "A1", "Total": "£3.20", "Description": "Latte"}], ctx
        ... )
        >>> result.transactions[0].category
        'Drinks'
    """
    return parse_rows(rows, context, SCHEMA, settings)
