"""Wire color catalog.

A wire color is a name plus either one hex color or two hex colors joined
by ``|`` for striped two-color conductors. The catalog is an ordered list
persisted as JSON in the settings store.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ...common.exceptions import DuplicateKeyError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SETTINGS_KEY = "phone_wire_colors"
DUAL_SEPARATOR = "|"

HEX_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class WireColor:
    name: str
    value: str

    def split_value(self) -> list[str]:
        """One hex for a solid wire, two for a striped one."""
        return self.value.split(DUAL_SEPARATOR)

    @property
    def is_dual(self) -> bool:
        return DUAL_SEPARATOR in self.value

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


def make_wire_color(name: str, value: str) -> WireColor:
    """Validate and build a WireColor.

    Raises:
        ValidationError: If the name is blank or the value is not one or
            two hex colors
    """
    errors: dict[str, str] = {}
    name = (name or "").strip()
    value = (value or "").strip()
    if not name:
        errors["name"] = "Color name is required"
    parts = value.split(DUAL_SEPARATOR) if value else []
    if not 1 <= len(parts) <= 2 or not all(HEX_PATTERN.match(p) for p in parts):
        errors["value"] = "Color must be a hex value or two hex values joined by '|'"
    if errors:
        raise ValidationError("Invalid wire color", field_errors=errors)
    return WireColor(name=name, value=value.lower())


DEFAULT_WIRE_COLORS: list[WireColor] = [
    WireColor("سفید-آبی", "#ffffff|#0000ff"),
    WireColor("آبی-سفید", "#0000ff|#ffffff"),
    WireColor("سفید-نارنجی", "#ffffff|#ffa500"),
    WireColor("نارنجی-سفید", "#ffa500|#ffffff"),
    WireColor("سفید-سبز", "#ffffff|#008000"),
    WireColor("سبز-سفید", "#008000|#ffffff"),
    WireColor("سفید-قهوه‌ای", "#ffffff|#8b4513"),
    WireColor("قهوه‌ای-سفید", "#8b4513|#ffffff"),
    WireColor("سفید-طوسی", "#ffffff|#808080"),
    WireColor("طوسی-سفید", "#808080|#ffffff"),
    WireColor("قرمز-آبی", "#ff0000|#0000ff"),
    WireColor("آبی-قرمز", "#0000ff|#ff0000"),
    WireColor("قرمز-نارنجی", "#ff0000|#ffa500"),
    WireColor("نارنجی-قرمز", "#ffa500|#ff0000"),
    WireColor("قرمز-سبز", "#ff0000|#008000"),
    WireColor("سبز-قرمز", "#008000|#ff0000"),
    WireColor("قرمز-قهوه‌ای", "#ff0000|#8b4513"),
    WireColor("قهوه‌ای-قرمز", "#8b4513|#ff0000"),
    WireColor("قرمز-طوسی", "#ff0000|#808080"),
    WireColor("طوسی-قرمز", "#808080|#ff0000"),
]


@dataclass
class WireColorCatalog:
    """Ordered set of wire colors with unique (case-insensitive) names."""

    colors: list[WireColor] = field(default_factory=lambda: list(DEFAULT_WIRE_COLORS))

    def find(self, name: str) -> Optional[WireColor]:
        key = (name or "").strip().casefold()
        for color in self.colors:
            if color.name.casefold() == key:
                return color
        return None

    def add(self, name: str, value: str) -> "WireColorCatalog":
        """Return a catalog with a new color appended.

        Raises:
            ValidationError: If name or value is invalid
            DuplicateKeyError: If a color with the same name exists
        """
        color = make_wire_color(name, value)
        if self.find(color.name) is not None:
            raise DuplicateKeyError(f"Wire color '{color.name}' already exists", key=color.name)
        return WireColorCatalog(colors=[*self.colors, color])

    def remove(self, name: str) -> "WireColorCatalog":
        existing = self.find(name)
        if existing is None:
            raise NotFoundError(f"Wire color '{name}' not found", resource="wire_color")
        return WireColorCatalog(colors=[c for c in self.colors if c is not existing])

    def to_json(self) -> str:
        return json.dumps([c.to_dict() for c in self.colors], ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "WireColorCatalog":
        """Load from the settings value, falling back to the defaults.

        A missing or unreadable value yields the default catalog; entries
        that fail validation are skipped with a warning.
        """
        if not raw:
            return cls()
        try:
            items: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Wire color setting is not valid JSON, using defaults: {e}")
            return cls()
        if not isinstance(items, list):
            logger.warning("Wire color setting is not a list, using defaults")
            return cls()

        colors: list[WireColor] = []
        seen: set[str] = set()
        for item in items:
            try:
                color = make_wire_color(item.get("name", ""), item.get("value", ""))
            except (AttributeError, ValidationError):
                logger.warning(f"Skipping invalid wire color entry: {item!r}")
                continue
            if color.name.casefold() in seen:
                continue
            seen.add(color.name.casefold())
            colors.append(color)
        return cls(colors=colors)
