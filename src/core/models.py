"""
Boundary layer data model(s).

The presentation layer only ever sees a SessionSnapshot: an immutable view of the session,
replaced as a whole every time the session changes. It never holds a reference to mutable session state.
"""

from dataclasses import dataclass, field
from typing import Optional

from src.core.shared_types import SessionPhase, Side
from src.reversi.board import Board
from src.reversi.square import Square

# Type alias to make the snapshot easier to read
PlayerName = str


@dataclass(frozen=True)
class GameResult:
    # None means the game ended in a draw
    winner: Optional[PlayerName]
    reason: str

    @property
    def is_draw(self) -> bool:
        return self.winner is None


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything the presentation layer needs to render the client."""

    phase: SessionPhase = SessionPhase.DISCONNECTED
    username: Optional[PlayerName] = None
    opponent: Optional[PlayerName] = None
    board: Board = field(default_factory=Board.empty)
    current_player: Side = Side.BLACK
    your_color: Optional[Side] = None
    legal_moves: frozenset[Square] = frozenset()
    result: Optional[GameResult] = None
    last_error: Optional[str] = None
    last_notice: Optional[str] = None

    # --- derived views (exactly one of the first five is True) ---
    @property
    def is_connected(self) -> bool:
        return self.phase not in (SessionPhase.DISCONNECTED, SessionPhase.CONNECTING)

    @property
    def is_logged_out(self) -> bool:
        """Not (yet) in the lobby: disconnected, connecting, or connected without a username."""
        return self.phase in (
            SessionPhase.DISCONNECTED,
            SessionPhase.CONNECTING,
            SessionPhase.CONNECTED,
        )

    @property
    def in_lobby(self) -> bool:
        return self.phase == SessionPhase.LOBBY

    @property
    def is_searching_match(self) -> bool:
        return self.phase == SessionPhase.SEARCHING

    @property
    def is_in_game(self) -> bool:
        return self.phase == SessionPhase.IN_GAME

    @property
    def is_game_over(self) -> bool:
        return self.phase == SessionPhase.GAME_OVER

    @property
    def is_your_turn(self) -> bool:
        return self.is_in_game and self.your_color is not None and self.current_player == self.your_color

    @property
    def is_draw(self) -> bool:
        return self.result is not None and self.result.is_draw

    @property
    def did_win(self) -> Optional[bool]:
        """None while there is no decisive result."""
        if self.result is None or self.result.is_draw:
            return None
        return self.result.winner == self.username

    @property
    def disk_count(self) -> dict[Side, int]:
        return self.board.count_disks()
