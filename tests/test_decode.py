"""Tests for decoding uploaded CSV/XLSX bytes into rows."""

import io
from datetime import datetime
from decimal import Decimal

import pandas as pd
import pytest

from pos_ingest import DecodeError
from pos_ingest.etl.staging import parse_takemypayments
from pos_ingest.transactions.raw import archive_upload, decode_table, sniff_format


def _xlsx_bytes(df: pd.DataFrame) -> bytes:
    buffer = io.BytesIO()
    df.to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


class TestCsv:
    def test_utf8_with_bom_and_blank_rows(self) -> None:
        content = "\ufeffInvoice No,Total\nA1,£5.00\n\n,\nA2,£6.00\n".encode("utf-8")
        rows = decode_table(content)
        assert rows == [
            {"Invoice No": "A1", "Total": "£5.00"},
            {"Invoice No": "A2", "Total": "£6.00"},
        ]

    def test_blank_cells_become_none(self) -> None:
        rows = decode_table(b"Invoice No,Total,Description\nA1,5.00,\n")
        assert rows == [{"Invoice No": "A1", "Total": "5.00", "Description": None}]

    def test_cp1252_fallback(self) -> None:
        content = "Invoice No,Total\nA1,£5.00\n".encode("cp1252")
        assert decode_table(content) == [{"Invoice No": "A1", "Total": "£5.00"}]

    def test_header_only_file_has_no_rows(self) -> None:
        assert decode_table(b"Invoice No,Total\n") == []

    def test_empty_bytes_have_no_rows(self) -> None:
        assert decode_table(b"") == []

    def test_row_limit(self) -> None:
        content = b"ID,Total\n1,1\n2,2\n3,3\n"
        assert len(decode_table(content, max_rows=3)) == 3
        with pytest.raises(DecodeError, match="more than 2 rows"):
            decode_table(content, max_rows=2)


class TestXlsx:
    def test_first_sheet_with_native_types(self) -> None:
        df = pd.DataFrame(
            {
                "Invoice No": [1001, 1002],
                "Total": [12.5, 3.0],
                "Date": [datetime(2024, 12, 25, 14, 30), datetime(2024, 12, 26, 9, 0)],
                "Description": ["Latte", None],
            }
        )
        rows = decode_table(_xlsx_bytes(df))

        assert len(rows) == 2
        assert rows[1]["Description"] is None
        assert sniff_format(_xlsx_bytes(df)) == "xlsx"

    def test_parsed_end_to_end(self, cafe) -> None:
        df = pd.DataFrame(
            {
                "Invoice No": [1001],
                "Total": [12.5],
                "Date": [datetime(2024, 12, 25, 14, 30)],
            }
        )
        result = parse_takemypayments(decode_table(_xlsx_bytes(df)), cafe)
        txn = result.transactions[0]
        assert txn.transaction_id == "1001"
        assert txn.amount == Decimal("12.5")
        assert txn.date == datetime(2024, 12, 25, 14, 30)

    def test_corrupt_workbook(self) -> None:
        with pytest.raises(DecodeError, match="XLSX"):
            decode_table(b"PK\x03\x04this is not a workbook")


class TestUnsupported:
    def test_legacy_xls(self) -> None:
        with pytest.raises(DecodeError, match="Legacy .xls"):
            decode_table(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64)

    def test_binary_data(self) -> None:
        with pytest.raises(DecodeError, match="Unsupported file format"):
            decode_table(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")


def test_archive_upload_keeps_one_file_per_store(paths) -> None:
    paths.ensure_dirs()
    first = archive_upload(paths, "cafe-1", b"ID,Total\n1,1\n", "a.csv")
    second = archive_upload(paths, "cafe-1", _xlsx_bytes(pd.DataFrame({"ID": [1]})), "b.xlsx")

    assert not first.exists()
    assert second.suffix == ".xlsx"
    assert list(paths.raw_uploads.iterdir()) == [second]
