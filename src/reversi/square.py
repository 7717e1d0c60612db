"""
A cell on the board

(placed in its own module as the board, the rules and the session all need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

# Reversi board is always 8x8 (columns, rows)
BOARD_DIMENSIONS = (8, 8)


@dataclass(frozen=True, order=True)
class Square:
    """Zero-based coordinates: x is the column, y is the row (the server indexes its grid as board[y][x])."""

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> Square:
        return Square(self.x + dx, self.y + dy)

    def is_within_bounds(self) -> bool:
        return (0 <= self.x < BOARD_DIMENSIONS[0]) and (0 <= self.y < BOARD_DIMENSIONS[1])


def all_squares() -> list[Square]:
    """Every square of the board, row by row."""
    return [
        Square(x, y)
        for y in range(BOARD_DIMENSIONS[1])
        for x in range(BOARD_DIMENSIONS[0])
    ]
