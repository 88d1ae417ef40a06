"""Port interfaces for bulk import.

These are abstract interfaces (ports) that define how the import
workflow interacts with files, the record store and session storage.
Concrete implementations (adapters) are provided in the adapters module.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .entities import (
    AssetImportRow,
    AssetRecord,
    ImportSession,
    PhoneLineImportRow,
    PhoneLineRecord,
    ReferenceCatalog,
)


class ITabularParser(ABC):
    """Port for reading import spreadsheets."""

    @abstractmethod
    def parse_phone_lines(self, file_content: bytes, filename: str) -> list[PhoneLineRecord]:
        """Parse a phone line sheet.

        Args:
            file_content: Raw bytes of an .xlsx or .csv file
            filename: Original file name, used to pick the format

        Returns:
            One record per non-empty row

        Raises:
            ValidationError: If the format is unsupported or a required
                column is missing
        """
        ...

    @abstractmethod
    def parse_assets(self, file_content: bytes, filename: str) -> list[AssetRecord]:
        """Parse an asset sheet. Same contract as ``parse_phone_lines``."""
        ...


class IImportKeyLookup(ABC):
    """Port for checking which import keys are already persisted."""

    @abstractmethod
    async def existing_phone_numbers(self, numbers: list[str]) -> set[str]:
        """Which of the given numbers already belong to a phone line."""
        ...

    @abstractmethod
    async def phone_number_exists(self, number: str) -> bool:
        ...

    @abstractmethod
    async def all_asset_numbers(self) -> set[str]:
        """Every persisted asset identifier."""
        ...

    @abstractmethod
    async def asset_number_exists(self, asset_number: str) -> bool:
        ...


class IReferenceCatalogSource(ABC):
    """Port for loading tags, categories, locations and statuses."""

    @abstractmethod
    async def load_catalog(self) -> ReferenceCatalog:
        ...


class IImportWriter(ABC):
    """Port for persisting one validated row."""

    @abstractmethod
    async def create_phone_line(self, row: PhoneLineImportRow, actor: Optional[str] = None) -> None:
        """Insert the line with its resolved tags and an audit entry.

        Raises:
            DuplicateKeyError: If the number was taken meanwhile
        """
        ...

    @abstractmethod
    async def create_asset(self, row: AssetImportRow, status: str) -> None:
        """Insert the asset with the given final status.

        Raises:
            DuplicateKeyError: If the identifier was taken meanwhile
        """
        ...


class IImportSessionStore(ABC):
    """Port for keeping previewed files between requests."""

    @abstractmethod
    async def save(self, session: ImportSession) -> None:
        ...

    @abstractmethod
    async def get(self, session_id: str) -> Optional[ImportSession]:
        """Find a live session, or None if unknown or expired."""
        ...

    @abstractmethod
    async def discard(self, session_id: str) -> None:
        ...
