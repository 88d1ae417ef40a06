"""Layout grid for Frame nodes.

A layout is a rows x cols presentation grid whose cells point at the
Frame's logical set numbers. The mapping is intentionally not injective:
two cells may show the same set (for example a set that physically spans
two cabinet rows). ``duplicate_set_warnings`` exposes this so a UI can
warn, but it is never rejected.

Wire format of a cell key is ``"row-col"`` with 0-based indices.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from ...common.exceptions import ValidationError

logger = logging.getLogger(__name__)

Cell = tuple[int, int]


@dataclass
class LayoutGrid:
    """Mapping from presentation cells to set numbers."""

    rows: int
    cols: int
    mapping: dict[Cell, int] = field(default_factory=dict)

    def resolve_cell(self, row: int, col: int) -> Optional[int]:
        """Return the set shown in a cell, or None for an empty cell."""
        return self.mapping.get((row, col))

    def assign_cell(self, row: int, col: int, set_number: Optional[int]) -> "LayoutGrid":
        """Return a new grid with one cell pointed at ``set_number``.

        Passing None clears the cell. No uniqueness check is made.

        Raises:
            ValidationError: If the cell is outside the grid or the set
                number is not a positive integer
        """
        self._check_cell(row, col)
        mapping = dict(self.mapping)
        if set_number is None:
            mapping.pop((row, col), None)
        else:
            if isinstance(set_number, bool) or not isinstance(set_number, int) or set_number < 1:
                raise ValidationError(
                    "Set number must be a positive integer",
                    field_errors={"set_number": "Set number must be a positive integer"},
                )
            mapping[(row, col)] = set_number
        return LayoutGrid(rows=self.rows, cols=self.cols, mapping=mapping)

    def resize(self, rows: int, cols: int) -> "LayoutGrid":
        """Return a grid with new dimensions.

        Dimensions are clamped to at least 1; cells that fall outside the
        new bounds are dropped.
        """
        rows = max(1, int(rows))
        cols = max(1, int(cols))
        mapping = {
            (r, c): s for (r, c), s in self.mapping.items() if r < rows and c < cols
        }
        return LayoutGrid(rows=rows, cols=cols, mapping=mapping)

    def cells(self) -> Iterator[tuple[int, int, Optional[int]]]:
        """Iterate every cell in row-major order as (row, col, set_number)."""
        for r in range(self.rows):
            for c in range(self.cols):
                yield r, c, self.mapping.get((r, c))

    def duplicate_set_warnings(self) -> dict[int, list[Cell]]:
        """Sets that are shown in more than one cell, with their cells."""
        by_set: dict[int, list[Cell]] = {}
        for cell, set_number in sorted(self.mapping.items()):
            by_set.setdefault(set_number, []).append(cell)
        return {s: cells for s, cells in by_set.items() if len(cells) > 1}

    def sets_out_of_range(self, sets: int) -> list[int]:
        """Set numbers referenced by the grid that exceed the node's set count."""
        return sorted({s for s in self.mapping.values() if s > sets})

    def _check_cell(self, row: int, col: int) -> None:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise ValidationError(
                f"Cell ({row}, {col}) is outside a {self.rows}x{self.cols} grid",
                field_errors={"cell": "Cell is outside the grid"},
            )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted ``layout`` shape."""
        return {
            "rows": self.rows,
            "cols": self.cols,
            "mapping": {f"{r}-{c}": s for (r, c), s in sorted(self.mapping.items())},
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "LayoutGrid":
        """Parse a persisted ``layout`` object.

        Malformed cell keys or set values are skipped with a warning so a
        single bad entry does not hide the whole grid.
        """
        rows = max(1, int(record.get("rows") or 1))
        cols = max(1, int(record.get("cols") or 1))
        mapping: dict[Cell, int] = {}
        for key, value in (record.get("mapping") or {}).items():
            try:
                r_str, c_str = str(key).split("-")
                cell = (int(r_str), int(c_str))
                set_number = int(value)
            except (TypeError, ValueError):
                logger.warning(f"Skipping malformed layout cell {key!r}={value!r}")
                continue
            if set_number < 1:
                logger.warning(f"Skipping layout cell {key!r} with set {set_number}")
                continue
            mapping[cell] = set_number
        return cls(rows=rows, cols=cols, mapping=mapping)


def default_layout(sets: int) -> LayoutGrid:
    """Single row with one cell per set in ascending order."""
    sets = max(1, sets)
    return LayoutGrid(rows=1, cols=sets, mapping={(0, i): i + 1 for i in range(sets)})
