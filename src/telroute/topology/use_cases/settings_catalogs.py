"""Settings-backed catalogs: wire colors and dashboard cards.

Both are stored as JSON strings in the generic settings store; the store
itself knows nothing about their shape.
"""

import json
import logging
from typing import Optional
from uuid import uuid4

from ...common.exceptions import NotFoundError, ValidationError
from ..domain.entities import DASHBOARD_CARDS_SETTINGS_KEY, DashboardCard
from ..domain.ports import ISettingsStore
from ..domain.wire_colors import SETTINGS_KEY as WIRE_COLORS_SETTINGS_KEY
from ..domain.wire_colors import WireColorCatalog

logger = logging.getLogger(__name__)


class WireColorSettingsUseCase:
    """Load and edit the wire color catalog."""

    def __init__(self, settings: ISettingsStore):
        self.settings = settings

    async def load(self) -> WireColorCatalog:
        """Saved catalog, or the default colors when none is saved."""
        return WireColorCatalog.from_json(await self.settings.get(WIRE_COLORS_SETTINGS_KEY))

    async def add(self, name: str, value: str) -> WireColorCatalog:
        """Append a color.

        Raises:
            ValidationError: If name or value is invalid
            DuplicateKeyError: If the name is taken (case-insensitive)
        """
        catalog = (await self.load()).add(name, value)
        await self._save(catalog)
        logger.info(f"Added wire color '{name.strip()}'")
        return catalog

    async def remove(self, name: str) -> WireColorCatalog:
        catalog = (await self.load()).remove(name)
        await self._save(catalog)
        logger.info(f"Removed wire color '{name}'")
        return catalog

    async def _save(self, catalog: WireColorCatalog) -> None:
        await self.settings.set(WIRE_COLORS_SETTINGS_KEY, catalog.to_json())


class DashboardCardsUseCase:
    """Load and edit the phone line dashboard cards."""

    def __init__(self, settings: ISettingsStore):
        self.settings = settings

    async def load(self) -> list[DashboardCard]:
        raw = await self.settings.get(DASHBOARD_CARDS_SETTINGS_KEY)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Dashboard card setting is not valid JSON: {e}")
            return []

        cards = []
        for item in items if isinstance(items, list) else []:
            try:
                cards.append(DashboardCard.from_dict(item))
            except (KeyError, TypeError, AttributeError):
                logger.warning(f"Skipping invalid dashboard card: {item!r}")
        return cards

    async def add(
        self,
        name: str,
        tag_ids: list[str],
        tag_names: Optional[list[str]] = None,
    ) -> DashboardCard:
        """Add a card counting lines that carry any of the given tags.

        Raises:
            ValidationError: If the name is blank or no tag is selected
        """
        errors = {}
        name = (name or "").strip()
        tag_ids = [str(t) for t in tag_ids or [] if str(t).strip()]
        if not name:
            errors["name"] = "Card name is required"
        if not tag_ids:
            errors["tag_ids"] = "Select at least one tag"
        if errors:
            raise ValidationError("Invalid dashboard card", field_errors=errors)

        card = DashboardCard(
            id=uuid4().hex,
            name=name,
            tag_ids=tag_ids,
            tag_names=list(tag_names or []),
        )
        cards = await self.load()
        cards.append(card)
        await self._save(cards)
        return card

    async def remove(self, card_id: str) -> None:
        cards = await self.load()
        remaining = [c for c in cards if c.id != card_id]
        if len(remaining) == len(cards):
            raise NotFoundError(f"Dashboard card {card_id} not found", resource="dashboard_card")
        await self._save(remaining)

    async def _save(self, cards: list[DashboardCard]) -> None:
        await self.settings.set(
            DASHBOARD_CARDS_SETTINGS_KEY,
            json.dumps([c.to_dict() for c in cards], ensure_ascii=False),
        )
