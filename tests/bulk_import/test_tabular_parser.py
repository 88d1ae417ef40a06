"""Tests for the Excel and CSV parser adapter."""

import io

import pytest
from openpyxl import Workbook

from src.telroute.bulk_import.adapters.tabular_parser import OpenpyxlTabularParser
from src.telroute.common.exceptions import ValidationError


@pytest.fixture
def parser():
    return OpenpyxlTabularParser()


def _workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


@pytest.fixture
def phone_line_excel():
    """Persian headers, a numeric phone number and a blank row."""
    return _workbook_bytes([
        ["شماره تلفن", "مصرف کننده/واحد", "تگ‌ها"],
        [33310000, "Reception", "VIP, Fax"],
        [None, None, None],
        ["33310001", None, None],
    ])


@pytest.fixture
def asset_excel():
    return _workbook_bytes([
        ["Asset ID", "Name", "Category", "Location", "Status", "Description", "Is External"],
        ["A-1", "Printer", "Office", "Room 12", "انبار", "  ", "Yes"],
        ["A-2", "Desk", None, None, None, "Oak", "No"],
    ])


class TestPhoneLineSheets:
    """Tests for phone line files."""

    def test_parse_excel(self, parser, phone_line_excel):
        records = parser.parse_phone_lines(phone_line_excel, "lines.xlsx")

        assert len(records) == 2
        assert records[0].phone_number == "33310000"
        assert records[0].consumer_label == "Reception"
        assert records[0].tags_string == "VIP, Fax"
        assert records[0].row_number == 2
        assert records[1].row_number == 4
        assert records[1].consumer_label is None

    def test_parse_csv_with_english_headers(self, parser):
        content = "Phone Number,Consumer,Tags\n1234,Lobby,VIP\n5678,,\n".encode("utf-8-sig")
        records = parser.parse_phone_lines(content, "lines.csv")
        assert [r.phone_number for r in records] == ["1234", "5678"]
        assert records[0].consumer_label == "Lobby"

    def test_missing_number_column(self, parser):
        content = _workbook_bytes([["Consumer"], ["Lobby"]])
        with pytest.raises(ValidationError) as exc:
            parser.parse_phone_lines(content, "lines.xlsx")
        assert "phone_number" in exc.value.field_errors

    def test_header_only(self, parser):
        with pytest.raises(ValidationError):
            parser.parse_phone_lines(_workbook_bytes([["شماره تلفن"]]), "lines.xlsx")


class TestAssetSheets:
    """Tests for asset files."""

    def test_parse_excel(self, parser, asset_excel):
        records = parser.parse_assets(asset_excel, "assets.xlsx")

        assert records[0].asset_number == "A-1"
        assert records[0].status == "انبار"
        assert records[0].description is None
        assert records[0].is_external is True
        assert records[1].is_external is False
        assert records[1].category_name == ""

    def test_asset_column_required(self, parser):
        content = _workbook_bytes([["Name"], ["Printer"]])
        with pytest.raises(ValidationError) as exc:
            parser.parse_assets(content, "assets.xlsx")
        assert "asset_number" in exc.value.field_errors


class TestFileFormats:
    """Tests for unsupported or broken files."""

    def test_unsupported_extension(self, parser):
        with pytest.raises(ValidationError, match="Unsupported file format"):
            parser.parse_phone_lines(b"data", "lines.txt")

    def test_corrupt_excel(self, parser):
        with pytest.raises(ValidationError):
            parser.parse_phone_lines(b"not a zip", "lines.xlsx")

    def test_non_utf8_csv(self, parser):
        with pytest.raises(ValidationError):
            parser.parse_phone_lines("شماره تلفن\n1".encode("utf-16"), "lines.csv")
