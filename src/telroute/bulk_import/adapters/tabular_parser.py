"""Excel and CSV parser adapter.

This adapter implements ITabularParser to read phone line and asset
sheets. Headers are matched exactly (after trimming) against the known
Persian and English column names; when a sheet carries both variants of
a column, the first non-empty one wins per row.
"""

import csv
import io
import logging
from datetime import date, datetime
from typing import Any, Iterator, Optional

from openpyxl import load_workbook

from ...common.exceptions import ValidationError
from ..domain.entities import AssetRecord, PhoneLineRecord
from ..domain.ports import ITabularParser

logger = logging.getLogger(__name__)

# Column name variations we accept, in priority order
PHONE_LINE_COLUMNS: dict[str, list[str]] = {
    "phone_number": ["شماره تلفن", "Phone Number"],
    "consumer_label": ["مصرف کننده/واحد", "Consumer"],
    "tags_string": ["تگ‌ها", "Tags"],
}

ASSET_COLUMNS: dict[str, list[str]] = {
    "asset_number": ["شماره اموال", "Asset ID"],
    "name": ["نام تجهیز", "Name"],
    "category_name": ["دسته بندی", "Category"],
    "location_name": ["محل قرارگیری", "Location"],
    "status": ["وضعیت", "Status"],
    "description": ["توضیحات", "Description"],
    "is_external": ["اموال تهران (خارج)", "Is External"],
}

EXTERNAL_TRUE_VALUES = {"بله", "Yes"}


def _cell_text(value: Any) -> str:
    """Render a cell value the way it appears in the sheet."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        # Numeric phone numbers and asset ids come back as floats from some sheets
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def _is_external(value: Any) -> bool:
    return value is True or _cell_text(value) in EXTERNAL_TRUE_VALUES


class OpenpyxlTabularParser(ITabularParser):
    """Tabular parser implementation using openpyxl and csv.

    - First row is treated as header
    - Rows whose cells are all empty are skipped
    - Other rows are kept even when required values are missing, so the
      preview can show them as not importable
    """

    def parse_phone_lines(self, file_content: bytes, filename: str) -> list[PhoneLineRecord]:
        header, rows = self._read(file_content, filename)
        columns = self._find_columns(header, PHONE_LINE_COLUMNS)
        self._require(columns, "phone_number", PHONE_LINE_COLUMNS)

        records = [
            PhoneLineRecord(
                row_number=row_number,
                phone_number=_cell_text(self._value(values, columns["phone_number"])),
                consumer_label=_cell_text(self._value(values, columns["consumer_label"])) or None,
                tags_string=_cell_text(self._value(values, columns["tags_string"])),
            )
            for row_number, values in rows
        ]
        logger.info(f"Parsed {len(records)} phone line rows from {filename}")
        return records

    def parse_assets(self, file_content: bytes, filename: str) -> list[AssetRecord]:
        header, rows = self._read(file_content, filename)
        columns = self._find_columns(header, ASSET_COLUMNS)
        self._require(columns, "asset_number", ASSET_COLUMNS)

        records = [
            AssetRecord(
                row_number=row_number,
                asset_number=_cell_text(self._value(values, columns["asset_number"])),
                name=_cell_text(self._value(values, columns["name"])),
                category_name=_cell_text(self._value(values, columns["category_name"])),
                location_name=_cell_text(self._value(values, columns["location_name"])),
                status=_cell_text(self._value(values, columns["status"])),
                description=_cell_text(self._value(values, columns["description"])) or None,
                is_external=_is_external(self._value(values, columns["is_external"])),
            )
            for row_number, values in rows
        ]
        logger.info(f"Parsed {len(records)} asset rows from {filename}")
        return records

    # ------------------------------------------------------------------
    # File reading
    # ------------------------------------------------------------------

    def _read(self, file_content: bytes, filename: str) -> tuple[list[str], list[tuple[int, tuple]]]:
        """Header cells plus ``(row_number, values)`` for each non-empty row."""
        name = (filename or "").lower()
        if name.endswith(".xlsx"):
            rows = self._iter_excel(file_content)
        elif name.endswith(".csv"):
            rows = self._iter_csv(file_content)
        else:
            raise ValidationError(
                "Unsupported file format. Upload an Excel (.xlsx) or CSV (.csv) file",
                field_errors={"file": "Unsupported file format"},
            )

        try:
            header = next(rows)
        except StopIteration:
            raise ValidationError("File is empty", field_errors={"file": "File is empty"})

        data = [
            (row_number, values)
            for row_number, values in enumerate(rows, start=2)
            if any(_cell_text(v) for v in values)
        ]
        if not data:
            raise ValidationError(
                "File has no data rows",
                field_errors={"file": "File has no data rows"},
            )
        return [_cell_text(h) for h in header], data

    def _iter_excel(self, file_content: bytes) -> Iterator[tuple]:
        try:
            wb = load_workbook(filename=io.BytesIO(file_content), read_only=True, data_only=True)
        except Exception as e:
            logger.error(f"Failed to open Excel file: {e}")
            raise ValidationError(
                f"Failed to parse Excel file: {e}",
                field_errors={"file": "Not a valid Excel file"},
                cause=e,
            )

        try:
            ws = wb.worksheets[0] if wb.worksheets else None
            if ws is None:
                raise ValidationError(
                    "Excel file has no worksheet",
                    field_errors={"file": "Excel file has no worksheet"},
                )
            yield from ws.iter_rows(values_only=True)
        finally:
            wb.close()

    def _iter_csv(self, file_content: bytes) -> Iterator[tuple]:
        try:
            text = file_content.decode("utf-8-sig")  # Handle BOM
        except UnicodeDecodeError as e:
            raise ValidationError(
                "CSV file must be UTF-8 encoded",
                field_errors={"file": "CSV file must be UTF-8 encoded"},
                cause=e,
            )

        try:
            dialect = csv.Sniffer().sniff(text[:1024], delimiters=",;\t")
        except csv.Error:
            dialect = csv.excel

        for row in csv.reader(io.StringIO(text), dialect):
            yield tuple(row)

    # ------------------------------------------------------------------
    # Column mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _find_columns(header: list[str], variants: dict[str, list[str]]) -> dict[str, list[int]]:
        """Column indices for each field, in variant priority order."""
        positions = {name: idx for idx, name in reversed(list(enumerate(header))) if name}
        return {
            field_name: [positions[v] for v in names if v in positions]
            for field_name, names in variants.items()
        }

    @staticmethod
    def _require(columns: dict[str, list[int]], field_name: str, variants: dict[str, list[str]]) -> None:
        if not columns[field_name]:
            expected = " / ".join(variants[field_name])
            raise ValidationError(
                f"File must contain the required column {expected}",
                field_errors={field_name: f"Missing column {expected}"},
            )

    @staticmethod
    def _value(values: tuple, indices: list[int]) -> Optional[Any]:
        for idx in indices:
            if idx < len(values) and _cell_text(values[idx]):
                return values[idx]
        return None
