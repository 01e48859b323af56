"""Staging parser for booker appointment exports (salon / spa services)."""

from __future__ import annotations

from typing import Optional, Sequence

from pos_ingest.config import IngestSettings
from pos_ingest.etl.columns import RawRow
from pos_ingest.etl.staging.common import ParseResult, PlatformSchema, parse_rows
from pos_ingest.models import Platform, StoreContext

TRANSACTION_ID_COLUMNS = (
    "Invoice No", "Invoice Number", "InvoiceNo", "Invoice_No", "Invoice",
    "Confirmation ID", "ConfirmationID", "Confirmation_ID", "Confirmation Number",
    "Appointment ID", "AppointmentID", "Appointment_ID", "Appointment Number",
    "Booking ID", "BookingID", "Booking_ID", "Booking Number",
    "Reference", "Reference ID", "ReferenceID", "Ref",
    "Receipt No", "Receipt Number", "ID", "Order ID", "OrderID", "Order Number",
)

AMOUNT_COLUMNS = (
    "Total", "Grand Total", "GrandTotal", "Grand_Total",
    "Total Amount", "TotalAmount", "Total_Amount", "Invoice Total",
    "Net Total", "NetTotal", "Net_Total", "Net Amount", "NetAmount", "Net",
    "Service Total", "ServiceTotal", "Service_Total",
    "Amount", "Sale Amount", "SaleAmount", "Price",
    "Subtotal", "SubTotal", "Sub-Total",
    "Gross", "Gross Amount", "GrossAmount", "Gross Total", "GrossTotal",
    "Revenue", "Sales", "Value",
    "20% Goods Ex Vat", "5% Goods Ex Vat", "Goods Ex Vat",
    "Total Ex VAT", "Total Inc VAT", "Total Incl VAT",
)

DATE_COLUMNS = (
    "Date", "Transaction Date", "TransactionDate", "Transaction_Date",
    "Appointment Date", "AppointmentDate", "Appointment_Date",
    "Created", "Created Date", "CreatedDate",
    "Start Date", "StartDate", "Start_Date",
    "Booking Date", "BookingDate", "Service Date", "ServiceDate",
    "Invoice Date", "InvoiceDate", "Sale Date", "SaleDate",
)

TIME_COLUMNS = ("Time", "Appointment Time", "AppointmentTime", "Start Time", "StartTime")

DESCRIPTION_COLUMNS = (
    "Treatment", "Service", "Service Name", "ServiceName",
    "Description", "Item", "Product", "Details",
)

CATEGORY_SOURCE_COLUMNS = (
    "Treatment", "Service", "Service Name", "ServiceName",
    "Description", "Product", "Item", "Category", "Type",
)

PAYMENT_METHOD_COLUMNS = (
    "Payment Method", "PaymentMethod", "Payment_Method",
    "Payment Type", "PaymentType", "Payment_Type",
    "Method", "Card Type", "CardType", "Type",
)

STATUS_COLUMNS = (
    "Status", "Appointment Status", "AppointmentStatus",
    "Booking Status", "BookingStatus",
    "State", "Transaction Status", "Payment Status",
)

CUSTOMER_COLUMNS = ("Customer ID", "CustomerID", "Client ID", "ClientID", "Card Last 4")

PRODUCT_NAME_COLUMNS = ("Product Name", "Item Name", "Description")

QUANTITY_COLUMNS = ("Quantity", "Qty")

ITEM_PRICE_COLUMNS = ("Item Price", "Unit Price", "Price")

SCHEMA = PlatformSchema(
    platform=Platform.BOOKER,
    transaction_id=TRANSACTION_ID_COLUMNS,
    amount=AMOUNT_COLUMNS,
    date=DATE_COLUMNS,
    time=TIME_COLUMNS,
    description=DESCRIPTION_COLUMNS,
    category_source=CATEGORY_SOURCE_COLUMNS,
    payment_method=PAYMENT_METHOD_COLUMNS,
    card_scheme=(),
    status=STATUS_COLUMNS,
    customer=CUSTOMER_COLUMNS,
    product_name=PRODUCT_NAME_COLUMNS,
    quantity=QUANTITY_COLUMNS,
    item_price=ITEM_PRICE_COLUMNS,
    expected_columns=(
        "Booker expects: [Confirmation ID / Appointment ID / Booking ID] "
        "AND [Service Total / Total / Amount]"
    ),
    default_payment_method="Card",
    default_description="Service",
    fixed_card_scheme="N/A",
)


def parse_booker(
    rows: Sequence[RawRow],
    context: StoreContext,
    settings: Optional[IngestSettings] = None,
) -> ParseResult:
    """Parse decoded booker rows into transactions.

    Booker exports carry no card scheme, so it is always "N/A". Payment
    method defaults to "Card" and description to "Service". Categories come
    from the services taxonomy.
    """
    return parse_rows(rows, context, SCHEMA, settings)
