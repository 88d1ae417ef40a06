"""Row validation for bulk import.

Duplicate detection runs in two passes for every key:

1. an identical key on an earlier row of the same file makes the row a
   duplicate, so only the first occurrence of a repeated key can import
2. otherwise the key is checked against the persisted-key snapshot

Optional reference fields (tags, category, location, status) never block
a row. Names that match nothing are listed so the operator sees exactly
which ones failed, and they are imported as empty.
"""

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional, Sequence

from ...common.exceptions import ValidationError
from .entities import (
    AssetImportRow,
    AssetRecord,
    ImportRow,
    PersistedKeySnapshot,
    PhoneLineImportRow,
    PhoneLineRecord,
    ReferenceCatalog,
)

logger = logging.getLogger(__name__)

TAG_SEPARATOR = ","

# Fields an operator may edit on a preview row
PHONE_LINE_EDITABLE_FIELDS = {"phone_number", "consumer_label", "tags_string"}
ASSET_EDITABLE_FIELDS = {
    "asset_number",
    "name",
    "category_name",
    "location_name",
    "status",
    "description",
    "is_external",
}


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


class BulkValidationEngine:
    """Validate import rows against a reference catalog and key snapshot."""

    def __init__(self, catalog: ReferenceCatalog):
        self.catalog = catalog

    def parse_tag_names(self, tags_string: str) -> tuple[list[str], list[str]]:
        """Split a comma-separated tag list into known ids and unknown names.

        Returns:
            Tuple of (valid_tag_ids, invalid_tag_names), each in file order
        """
        valid_ids: list[str] = []
        invalid_names: list[str] = []
        for name in (n.strip() for n in (tags_string or "").split(TAG_SEPARATOR)):
            if not name:
                continue
            tag_id = self.catalog.find_tag(name)
            if tag_id is None:
                invalid_names.append(name)
            elif tag_id not in valid_ids:
                valid_ids.append(tag_id)
        return valid_ids, invalid_names

    # ------------------------------------------------------------------
    # Whole-file validation
    # ------------------------------------------------------------------

    def validate_phone_lines(
        self,
        records: Sequence[PhoneLineRecord],
        snapshot: PersistedKeySnapshot,
    ) -> list[PhoneLineImportRow]:
        rows = [
            PhoneLineImportRow(
                row_index=index,
                row_number=record.row_number,
                phone_number=_text(record.phone_number),
                consumer_label=_text(record.consumer_label) or None,
                tags_string=_text(record.tags_string),
            )
            for index, record in enumerate(records)
        ]
        seen: set[str] = set()
        for row in rows:
            self._check_phone_line(row, seen, snapshot)
            if row.phone_number:
                seen.add(row.phone_number)

        logger.info(
            f"Validated {len(rows)} phone line rows, "
            f"{sum(1 for r in rows if r.can_import)} importable"
        )
        return rows

    def validate_assets(
        self,
        records: Sequence[AssetRecord],
        snapshot: PersistedKeySnapshot,
    ) -> list[AssetImportRow]:
        rows = [
            AssetImportRow(
                row_index=index,
                row_number=record.row_number,
                asset_number=_text(record.asset_number),
                name=_text(record.name),
                category_name=_text(record.category_name),
                location_name=_text(record.location_name),
                status=_text(record.status),
                description=_text(record.description) or None,
                is_external=bool(record.is_external),
            )
            for index, record in enumerate(records)
        ]
        seen: set[str] = set()
        for row in rows:
            self._check_asset(row, seen, snapshot)
            if row.asset_number:
                seen.add(row.asset_number)

        logger.info(
            f"Validated {len(rows)} asset rows, "
            f"{sum(1 for r in rows if r.can_import)} importable"
        )
        return rows

    # ------------------------------------------------------------------
    # Single-row edits
    # ------------------------------------------------------------------

    def apply_edit(self, row: ImportRow, changes: Mapping[str, Any]) -> ImportRow:
        """Copy of ``row`` with edited field values (flags not yet updated).

        Raises:
            ValidationError: If a field is unknown or not editable
        """
        allowed = (
            PHONE_LINE_EDITABLE_FIELDS
            if isinstance(row, PhoneLineImportRow)
            else ASSET_EDITABLE_FIELDS
        )
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(unknown)}",
                field_errors={name: "Not an editable field" for name in unknown},
            )

        values: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "is_external":
                values[name] = bool(value)
            elif name in ("consumer_label", "description"):
                values[name] = _text(value) or None
            else:
                values[name] = _text(value)
        return replace(row, **values)

    def revalidate_row(
        self,
        rows: list[ImportRow],
        index: int,
        snapshot: PersistedKeySnapshot,
    ) -> ImportRow:
        """Re-run validation for ``rows[index]`` only, in place.

        Duplicates are resolved against the rows before it and the
        snapshot. The caller must first make sure the snapshot knows the
        row's key (see ``PersistedKeySnapshot.knows``).

        Raises:
            ValidationError: If index is out of range
        """
        if not 0 <= index < len(rows):
            raise ValidationError(
                f"Row {index} does not exist",
                field_errors={"row_index": f"Expected 0..{len(rows) - 1}"},
            )

        row = rows[index]
        earlier = {r.key for r in rows[:index] if r.key}
        if isinstance(row, PhoneLineImportRow):
            self._check_phone_line(row, earlier, snapshot)
        else:
            self._check_asset(row, earlier, snapshot)
        return row

    # ------------------------------------------------------------------
    # Per-row checks
    # ------------------------------------------------------------------

    def _check_phone_line(
        self,
        row: PhoneLineImportRow,
        earlier_keys: set[str],
        snapshot: PersistedKeySnapshot,
    ) -> None:
        row.is_phone_number_valid = bool(row.phone_number)
        row.is_phone_number_duplicate = row.is_phone_number_valid and self._is_duplicate(
            row.phone_number, earlier_keys, snapshot
        )
        row.valid_tag_ids, row.invalid_tag_names = self.parse_tag_names(row.tags_string)
        row.can_import = row.is_phone_number_valid and not row.is_phone_number_duplicate

    def _check_asset(
        self,
        row: AssetImportRow,
        earlier_keys: set[str],
        snapshot: PersistedKeySnapshot,
    ) -> None:
        row.is_asset_number_valid = bool(row.asset_number)
        row.is_asset_number_duplicate = row.is_asset_number_valid and self._is_duplicate(
            row.asset_number, earlier_keys, snapshot
        )

        unresolved: list[str] = []
        row.category_id = self._resolve(row.category_name, self.catalog.find_category, unresolved)
        row.is_category_valid = not row.category_name or row.category_id is not None
        row.location_id = self._resolve(row.location_name, self.catalog.find_location, unresolved)
        row.is_location_valid = not row.location_name or row.location_id is not None
        row.is_status_valid = not row.status or self.catalog.has_status(row.status)
        if not row.is_status_valid:
            unresolved.append(row.status)
        row.unresolved_references = unresolved

        row.can_import = (
            row.is_asset_number_valid
            and not row.is_asset_number_duplicate
            and bool(row.name)
        )

    @staticmethod
    def _resolve(name: str, find, unresolved: list[str]) -> Optional[str]:
        if not name:
            return None
        found = find(name)
        if found is None:
            unresolved.append(name)
        return found

    @staticmethod
    def _is_duplicate(key: str, earlier_keys: set[str], snapshot: PersistedKeySnapshot) -> bool:
        if key in earlier_keys:
            return True
        if not snapshot.knows(key):
            logger.warning(f"Key {key!r} was not part of the persisted-key lookup")
        return snapshot.contains(key)
