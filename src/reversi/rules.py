"""
Move legality and capturing (flipping) rules.

Key idea: raycasting. From a candidate square we walk along each of the 8 compass directions.
A direction captures when it starts with one or more opponent disks and ends on one of our own disks.

The server is authoritative; these functions only predict which squares it will accept.
"""

from dataclasses import dataclass

from src.core.exceptions import IllegalMoveError
from src.core.shared_types import Side
from src.reversi.board import Board
from src.reversi.square import Square

Vector = tuple[int, int]

DIRECTIONS: list[Vector] = [
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
]


@dataclass(frozen=True)
class Move:
    """A legal placement and the opponent disks it flips (derived, never transmitted)."""

    square: Square
    flips: frozenset[Square]


def opponent(side: Side) -> Side:
    return Side.WHITE if side == Side.BLACK else Side.BLACK


def captured_along(board: Board, side: Side, square: Square, direction: Vector) -> list[Square]:
    """
    Raycasting along one direction
    ----
    Collect the contiguous opponent disks starting next to `square`.
    They are only captured when the ray is closed off by a disk of `side`.
    Running off the board or reaching an empty cell first means nothing is captured.
    """
    opponent_side = opponent(side)
    dx, dy = direction
    traversed: list[Square] = []
    target = square.offset(dx, dy)
    while target.is_within_bounds():
        cell = board.cell(target)
        if cell == opponent_side:
            traversed.append(target)
            target = target.offset(dx, dy)
            continue
        if cell == side and traversed:
            return traversed
        break
    return []


def is_legal_move(board: Board, side: Side, square: Square) -> bool:
    """An empty square is legal when at least one direction captures."""
    if not square.is_within_bounds() or not board.is_empty(square):
        return False
    return any(captured_along(board, side, square, direction) for direction in DIRECTIONS)


def legal_moves(board: Board, side: Side) -> frozenset[Square]:
    """All legal squares for `side`. An empty set means `side` has no move (the server decides on passing)."""
    return frozenset(
        square for square in board.empty_squares() if is_legal_move(board, side, square)
    )


def flips(board: Board, side: Side, square: Square) -> frozenset[Square]:
    """Union of the disks captured in every direction by placing a disk of `side` on `square`."""
    if not is_legal_move(board, side, square):
        raise IllegalMoveError(
            f"Move not allowed: {side} cannot place a disk on ({square.x}, {square.y})."
        )
    flipped: set[Square] = set()
    for direction in DIRECTIONS:
        flipped.update(captured_along(board, side, square, direction))
    return frozenset(flipped)


def resolve_move(board: Board, side: Side, square: Square) -> Move:
    return Move(square=square, flips=flips(board, side, square))
