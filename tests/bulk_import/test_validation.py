"""Tests for bulk import row validation."""

import pytest

from src.telroute.bulk_import.domain.entities import (
    AssetRecord,
    PersistedKeySnapshot,
    PhoneLineRecord,
    ReferenceCatalog,
)
from src.telroute.bulk_import.domain.validation import BulkValidationEngine
from src.telroute.common.exceptions import ValidationError


@pytest.fixture
def catalog():
    return ReferenceCatalog(
        tags={"VIP": "tag-vip", "Fax": "tag-fax"},
        categories={"Printer": "cat-printer"},
        locations={"Room 12": "loc-12"},
        statuses=["در حال استفاده", "انبار"],
    )


@pytest.fixture
def engine(catalog):
    return BulkValidationEngine(catalog)


class TestPhoneLineValidation:
    """Tests for phone line rows."""

    def test_repeated_number_only_first_imports(self, engine):
        records = [
            PhoneLineRecord(row_number=2, phone_number="33310000"),
            PhoneLineRecord(row_number=3, phone_number="33310000"),
        ]
        rows = engine.validate_phone_lines(records, PersistedKeySnapshot(looked_up={"33310000"}))

        assert rows[0].can_import
        assert not rows[0].is_phone_number_duplicate
        assert rows[1].is_phone_number_duplicate
        assert not rows[1].can_import

    def test_persisted_number_is_duplicate(self, engine):
        snapshot = PersistedKeySnapshot(existing={"1234"}, looked_up={"1234"})
        rows = engine.validate_phone_lines([PhoneLineRecord(2, "1234")], snapshot)
        assert rows[0].is_phone_number_duplicate
        assert not rows[0].can_import

    def test_missing_number_blocks(self, engine):
        rows = engine.validate_phone_lines([PhoneLineRecord(2, "  ")], PersistedKeySnapshot())
        assert not rows[0].is_phone_number_valid
        assert not rows[0].can_import

    def test_unknown_tags_do_not_block(self, engine):
        rows = engine.validate_phone_lines(
            [PhoneLineRecord(2, "1234", tags_string="vip, Unknown ,FAX,vip")],
            PersistedKeySnapshot(looked_up={"1234"}),
        )
        assert rows[0].valid_tag_ids == ["tag-vip", "tag-fax"]
        assert rows[0].invalid_tag_names == ["Unknown"]
        assert rows[0].can_import


class TestAssetValidation:
    """Tests for asset rows."""

    def test_unmatched_references_stay_importable(self, engine):
        record = AssetRecord(
            row_number=2,
            asset_number="A-1",
            name="Laser printer",
            category_name="Scanner",
            location_name="Room 12",
            status="Lost",
        )
        rows = engine.validate_assets([record], PersistedKeySnapshot())
        row = rows[0]

        assert row.can_import
        assert row.category_id is None
        assert not row.is_category_valid
        assert row.location_id == "loc-12"
        assert not row.is_status_valid
        assert row.unresolved_references == ["Scanner", "Lost"]

    def test_name_required(self, engine):
        rows = engine.validate_assets([AssetRecord(2, "A-1")], PersistedKeySnapshot())
        assert rows[0].is_asset_number_valid
        assert not rows[0].can_import

    def test_existing_asset_number(self, engine):
        rows = engine.validate_assets(
            [AssetRecord(2, "A-1", name="Desk")],
            PersistedKeySnapshot(existing={"A-1"}),
        )
        assert rows[0].is_asset_number_duplicate


class TestRowEdits:
    """Tests for editing and revalidating one row."""

    def test_fixing_duplicate(self, engine):
        snapshot = PersistedKeySnapshot(looked_up={"1000"})
        rows = engine.validate_phone_lines(
            [PhoneLineRecord(2, "1000"), PhoneLineRecord(3, "1000")], snapshot
        )

        rows[1] = engine.apply_edit(rows[1], {"phone_number": " 2000 "})
        snapshot.remember("2000", False)
        row = engine.revalidate_row(rows, 1, snapshot)

        assert row.phone_number == "2000"
        assert row.can_import
        assert rows[0].can_import

    def test_earlier_rows_keep_flags(self, engine):
        snapshot = PersistedKeySnapshot(looked_up={"1000", "2000"})
        rows = engine.validate_phone_lines(
            [PhoneLineRecord(2, "1000"), PhoneLineRecord(3, "2000")], snapshot
        )

        rows[0] = engine.apply_edit(rows[0], {"phone_number": "2000"})
        engine.revalidate_row(rows, 0, snapshot)

        # Row 1 is not rechecked even though it now repeats row 0
        assert rows[0].can_import
        assert rows[1].can_import

    def test_not_editable_field(self, engine):
        rows = engine.validate_phone_lines([PhoneLineRecord(2, "1000")], PersistedKeySnapshot())
        with pytest.raises(ValidationError) as exc:
            engine.apply_edit(rows[0], {"can_import": True})
        assert "can_import" in exc.value.field_errors

    def test_index_out_of_range(self, engine):
        with pytest.raises(ValidationError):
            engine.revalidate_row([], 0, PersistedKeySnapshot())


class TestReferenceCatalog:
    """Tests for the catalog lookups."""

    def test_default_status(self, catalog):
        assert catalog.default_status == "در حال استفاده"
        assert ReferenceCatalog().default_status == "در حال استفاده"

    def test_snapshot_knows(self):
        partial = PersistedKeySnapshot(looked_up={"1"})
        assert partial.knows("1")
        assert not partial.knows("2")
        partial.remember("2", True)
        assert partial.knows("2") and partial.contains("2")
        assert PersistedKeySnapshot().knows("anything")
