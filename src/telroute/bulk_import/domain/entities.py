"""Domain entities for bulk import.

These are pure domain objects with no infrastructure dependencies.
A spreadsheet is parsed into records, each record is validated into a
preview row, and only rows flagged ``can_import`` are written.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

DEFAULT_ASSET_STATUS = "در حال استفاده"


class ImportKind(str, Enum):
    """What a spreadsheet contains."""

    PHONE_LINES = "phone_lines"
    ASSETS = "assets"


# ========== Parsed records ==========


@dataclass
class PhoneLineRecord:
    """A phone line row as read from the file."""

    row_number: int
    phone_number: str = ""
    consumer_label: Optional[str] = None
    tags_string: str = ""


@dataclass
class AssetRecord:
    """An asset row as read from the file."""

    row_number: int
    asset_number: str = ""
    name: str = ""
    category_name: str = ""
    location_name: str = ""
    status: str = ""
    description: Optional[str] = None
    is_external: bool = False


# ========== Validated rows ==========


@dataclass
class PhoneLineImportRow:
    """A phone line preview row with its validation flags."""

    row_index: int
    row_number: int
    phone_number: str
    consumer_label: Optional[str] = None
    tags_string: str = ""

    is_phone_number_valid: bool = False
    is_phone_number_duplicate: bool = False
    valid_tag_ids: list[str] = field(default_factory=list)
    invalid_tag_names: list[str] = field(default_factory=list)
    can_import: bool = False

    @property
    def key(self) -> str:
        return self.phone_number

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "row_number": self.row_number,
            "phone_number": self.phone_number,
            "consumer_label": self.consumer_label,
            "tags_string": self.tags_string,
            "is_phone_number_valid": self.is_phone_number_valid,
            "is_phone_number_duplicate": self.is_phone_number_duplicate,
            "valid_tag_ids": self.valid_tag_ids,
            "invalid_tag_names": self.invalid_tag_names,
            "can_import": self.can_import,
        }


@dataclass
class AssetImportRow:
    """An asset preview row with its validation flags and resolved ids."""

    row_index: int
    row_number: int
    asset_number: str
    name: str = ""
    category_name: str = ""
    location_name: str = ""
    status: str = ""
    description: Optional[str] = None
    is_external: bool = False

    category_id: Optional[str] = None
    location_id: Optional[str] = None
    is_asset_number_valid: bool = False
    is_asset_number_duplicate: bool = False
    is_category_valid: bool = True
    is_location_valid: bool = True
    is_status_valid: bool = True
    unresolved_references: list[str] = field(default_factory=list)
    can_import: bool = False

    @property
    def key(self) -> str:
        return self.asset_number

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "row_number": self.row_number,
            "asset_number": self.asset_number,
            "name": self.name,
            "category_name": self.category_name,
            "location_name": self.location_name,
            "status": self.status,
            "description": self.description,
            "is_external": self.is_external,
            "category_id": self.category_id,
            "location_id": self.location_id,
            "is_asset_number_valid": self.is_asset_number_valid,
            "is_asset_number_duplicate": self.is_asset_number_duplicate,
            "is_category_valid": self.is_category_valid,
            "is_location_valid": self.is_location_valid,
            "is_status_valid": self.is_status_valid,
            "unresolved_references": self.unresolved_references,
            "can_import": self.can_import,
        }


ImportRow = Union[PhoneLineImportRow, AssetImportRow]


# ========== Lookup state ==========


@dataclass
class PersistedKeySnapshot:
    """Keys already in the store, fetched once before validation.

    ``looked_up`` is the set of keys the fetch covered; None means the
    fetch returned every persisted key, so absence is conclusive.
    """

    existing: set[str] = field(default_factory=set)
    looked_up: Optional[set[str]] = None

    def knows(self, key: str) -> bool:
        """True if the snapshot can answer for ``key`` without a lookup."""
        return self.looked_up is None or key in self.looked_up

    def contains(self, key: str) -> bool:
        return key in self.existing

    def remember(self, key: str, exists: bool) -> None:
        """Cache the result of an individual existence check."""
        if self.looked_up is not None:
            self.looked_up.add(key)
        if exists:
            self.existing.add(key)
        else:
            self.existing.discard(key)


@dataclass
class ReferenceCatalog:
    """Names that optional fields of an import row may refer to.

    Tags match case-insensitively; categories, locations and statuses
    must match exactly.
    """

    tags: dict[str, str] = field(default_factory=dict)  # name -> id
    categories: dict[str, str] = field(default_factory=dict)
    locations: dict[str, str] = field(default_factory=dict)
    statuses: list[str] = field(default_factory=list)

    def find_tag(self, name: str) -> Optional[str]:
        key = name.strip().lower()
        for tag_name, tag_id in self.tags.items():
            if tag_name.lower() == key:
                return tag_id
        return None

    def find_category(self, name: str) -> Optional[str]:
        return self.categories.get(name)

    def find_location(self, name: str) -> Optional[str]:
        return self.locations.get(name)

    def has_status(self, name: str) -> bool:
        return name in self.statuses

    @property
    def default_status(self) -> str:
        """Status given to imported assets whose own status is empty or unknown."""
        return self.statuses[0] if self.statuses else DEFAULT_ASSET_STATUS


# ========== Sessions and results ==========


@dataclass
class ImportSession:
    """A previewed file waiting for edits and commit."""

    id: str
    kind: ImportKind
    rows: list[ImportRow]
    snapshot: PersistedKeySnapshot
    catalog: ReferenceCatalog
    filename: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def importable_rows(self) -> list[ImportRow]:
        return [r for r in self.rows if r.can_import]

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.id,
            "kind": self.kind.value,
            "filename": self.filename,
            "total_rows": len(self.rows),
            "importable_rows": len(self.importable_rows),
            "rows": [r.to_dict() for r in self.rows],
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ImportProgress:
    """Progress after one committed row."""

    processed: int
    total: int
    success_count: int
    error_count: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100
        return round(self.processed * 100 / self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "progress",
            "processed": self.processed,
            "total": self.total,
            "percent": self.percent,
            "success_count": self.success_count,
            "error_count": self.error_count,
        }


@dataclass
class RowError:
    row_number: int
    key: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"row_number": self.row_number, "key": self.key, "message": self.message}


@dataclass
class CommitResult:
    """Outcome of committing an import session."""

    total: int
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    errors: list[RowError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "complete",
            "total": self.total,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "skipped_count": self.skipped_count,
            "errors": [e.to_dict() for e in self.errors],
        }
