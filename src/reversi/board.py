"""
The Board holds the configuration of disks.

It is immutable: the server pushes full replacements, so there is no API to edit single cells.
"""

from dataclasses import dataclass
from typing import Any, Optional, Self

from src.core.exceptions import InvalidBoardError
from src.core.shared_types import Side
from src.reversi.square import BOARD_DIMENSIONS, Square, all_squares

# None marks an empty cell
Cell = Optional[Side]
WireGrid = list[list[Optional[str]]]


@dataclass(frozen=True)
class Board:
    rows: tuple[tuple[Cell, ...], ...]

    @classmethod
    def empty(cls) -> Self:
        """The only locally built board: every cell empty."""
        width, height = BOARD_DIMENSIONS
        return cls(tuple(tuple(None for _ in range(width)) for _ in range(height)))

    @classmethod
    def from_wire(cls, grid: Any) -> Self:
        """Construct a board from the grid the server sends in a `game_state` message.

        The grid is a list of rows (indexed board[y][x]), each cell "black", "white" or null.
        """
        width, height = BOARD_DIMENSIONS
        if not isinstance(grid, (list, tuple)) or len(grid) != height:
            raise InvalidBoardError(f"Board must have {height} rows.")

        rows: list[tuple[Cell, ...]] = []
        for y, row in enumerate(grid):
            if not isinstance(row, (list, tuple)) or len(row) != width:
                raise InvalidBoardError(f"Row {y} must have {width} cells.")
            rows.append(tuple(cls._parse_cell(value, Square(x, y)) for x, value in enumerate(row)))
        return cls(tuple(rows))

    @staticmethod
    def _parse_cell(value: Any, square: Square) -> Cell:
        if value is None:
            return None
        if isinstance(value, str) and value in [side.value for side in Side]:
            return Side(value)
        raise InvalidBoardError(f"Invalid cell value {value!r} at {square}.")

    def to_wire(self) -> WireGrid:
        return [[cell.value if cell else None for cell in row] for row in self.rows]

    def cell(self, square: Square) -> Cell:
        return self.rows[square.y][square.x]

    def is_empty(self, square: Square) -> bool:
        return self.cell(square) is None

    def empty_squares(self) -> list[Square]:
        return [square for square in all_squares() if self.is_empty(square)]

    def locate_side(self, side: Side) -> list[Square]:
        return [square for square in all_squares() if self.cell(square) == side]

    def count_disks(self) -> dict[Side, int]:
        """Tally the disks each side has on the board"""
        return {side: len(self.locate_side(side)) for side in Side}
