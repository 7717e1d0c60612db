"""
Orchestration of the client session: server messages and user intents in, snapshots and outgoing frames out.

The server is the authority. The session only proposes moves and renders whatever the server confirms;
the rule engine is used to predict which squares the server will accept.
"""

import logging
from dataclasses import replace
from typing import Any, Callable

from src.api.messages import (
    ClientIntent,
    ErrorMessage,
    GameOverMessage,
    GameStateMessage,
    JoinQueueIntent,
    LeaveQueueIntent,
    MatchFoundMessage,
    ResignIntent,
    ServerMessage,
    SuccessMessage,
    authenticate,
    classify_notice,
    make_move,
)
from src.core.exceptions import SessionStateError
from src.core.models import GameResult, SessionSnapshot
from src.core.shared_types import Notice, SessionPhase, Side
from src.reversi.board import Board
from src.reversi.rules import legal_moves
from src.reversi.square import Square
from src.transport.base import Transport

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SessionSnapshot], None]


def cleared_game() -> dict[str, Any]:
    """Field values of a snapshot without an active game or result."""
    return {
        "opponent": None,
        "board": Board.empty(),
        "current_player": Side.BLACK,
        "your_color": None,
        "legal_moves": frozenset(),
        "result": None,
    }


class GameSession:
    """Client session state machine. Also acts as the TransportListener of its transport."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self._snapshot = SessionSnapshot()
        self._listeners: list[SnapshotListener] = []
        self._handlers: dict[str, Callable[[Any], None]] = {
            "success": self._handle_success,
            "error": self._handle_error,
            "match_found": self._handle_match_found,
            "game_state": self._handle_game_state,
            "game_over": self._handle_game_over,
        }

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def phase(self) -> SessionPhase:
        return self._snapshot.phase

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call `listener` with every new snapshot. Returns a function that removes the listener again."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -- Connection lifecycle (called by the runner / transport) --
    def begin_connecting(self) -> None:
        """A connection attempt is starting. Repeated attempts keep the session in CONNECTING."""
        self._require(
            (SessionPhase.DISCONNECTED, SessionPhase.CONNECTING), "start connecting"
        )
        if self.phase != SessionPhase.CONNECTING:
            self._update(phase=SessionPhase.CONNECTING)

    def on_open(self) -> None:
        if self.phase not in (SessionPhase.DISCONNECTED, SessionPhase.CONNECTING):
            logger.warning("Connection opened while session is %r. Ignored.", self.phase.value)
            return
        logger.info("Connected to server.")
        self._update(phase=SessionPhase.CONNECTED)

    def on_close(self) -> None:
        """Transport loss: back to DISCONNECTED. Game and search state are discarded, the username is kept."""
        if self.phase == SessionPhase.DISCONNECTED:
            return
        logger.info("Disconnected from server while %r.", self.phase.value)
        self._update(
            phase=SessionPhase.DISCONNECTED, last_error=None, last_notice=None, **cleared_game()
        )

    def on_message(self, message: ServerMessage) -> None:
        """Apply one server message. Messages must be passed in the order the server sent them."""
        self._handlers[message.type](message)

    # -- User intents (called by the presentation layer) --
    def login(self, username: str) -> bool:
        """Authenticate. The session moves to the lobby right away; a rejection arrives later as an error message."""
        self._require((SessionPhase.CONNECTED,), "log in")
        intent = authenticate(username)
        if not self._send(intent):
            return False
        self._update(
            phase=SessionPhase.LOBBY, username=intent.payload.username, last_error=None
        )
        return True

    def join_queue(self) -> bool:
        self._require((SessionPhase.LOBBY,), "join the matchmaking queue")
        if not self._send(JoinQueueIntent()):
            return False
        self._update(phase=SessionPhase.SEARCHING)
        return True

    def leave_queue(self) -> bool:
        self._require((SessionPhase.SEARCHING,), "leave the matchmaking queue")
        if not self._send(LeaveQueueIntent()):
            return False
        self._update(phase=SessionPhase.LOBBY)
        return True

    def play(self, x: int, y: int) -> bool:
        """
        Propose a move.
        ----

        Only sent when it is our turn and the square is one of the legal moves.
        Otherwise nothing is sent and nothing changes (returns False).
        The board is not touched: the next `game_state` from the server shows the result.
        """
        snapshot = self._snapshot
        if not snapshot.is_your_turn:
            logger.debug("Move (%d, %d) ignored: not your turn.", x, y)
            return False
        if Square(x, y) not in snapshot.legal_moves:
            logger.debug("Move (%d, %d) ignored: not a legal move.", x, y)
            return False
        return self._send(make_move(x, y))

    def resign(self) -> bool:
        self._require((SessionPhase.IN_GAME,), "resign")
        return self._send(ResignIntent())

    def return_to_lobby(self) -> None:
        self._require((SessionPhase.GAME_OVER,), "return to the lobby")
        self._update(phase=SessionPhase.LOBBY, **cleared_game())

    # -- Server message handlers --
    def _handle_success(self, message: SuccessMessage) -> None:
        logger.info("Success: %s", message.message)
        notice = classify_notice(message.message)
        changes: dict[str, Any] = {"last_notice": message.message}

        queue_phases = (SessionPhase.LOBBY, SessionPhase.SEARCHING)
        if notice == Notice.QUEUE_JOINED and self.phase in queue_phases:
            changes["phase"] = SessionPhase.SEARCHING
        elif notice == Notice.QUEUE_LEFT and self.phase in queue_phases:
            changes["phase"] = SessionPhase.LOBBY
        self._update(**changes)

    def _handle_error(self, message: ErrorMessage) -> None:
        # errors are shown to the user, they never move the session to another phase
        logger.error("Error: %s", message.message)
        self._update(last_error=message.message)

    def _handle_match_found(self, message: MatchFoundMessage) -> None:
        if self.phase != SessionPhase.SEARCHING:
            logger.warning(
                "Ignoring match with %s: session is %r, not searching.",
                message.opponent,
                self.phase.value,
            )
            return
        logger.info("Match found with: %s", message.opponent)
        new_game = cleared_game()
        new_game.update(
            phase=SessionPhase.IN_GAME, opponent=message.opponent, last_error=None
        )
        self._update(**new_game)

    def _handle_game_state(self, message: GameStateMessage) -> None:
        if self.phase != SessionPhase.IN_GAME:
            logger.warning("Ignoring game state: session is %r.", self.phase.value)
            return

        # your color is assigned once per game
        your_color = self._snapshot.your_color or message.your_color
        if your_color != message.your_color:
            logger.warning(
                "Server reported color %r, keeping the assigned color %r.",
                message.your_color.value,
                your_color.value,
            )

        self._update(
            board=message.board,
            current_player=message.current_player,
            your_color=your_color,
            legal_moves=legal_moves(message.board, message.current_player),
        )

    def _handle_game_over(self, message: GameOverMessage) -> None:
        if self.phase != SessionPhase.IN_GAME:
            logger.warning("Ignoring game over: session is %r.", self.phase.value)
            return
        logger.info("Game over. Reason: %s", message.reason)
        if message.winner is not None:
            logger.info("Winner: %s", message.winner)
        else:
            logger.info("Game ended in a draw")
        self._update(
            phase=SessionPhase.GAME_OVER,
            legal_moves=frozenset(),
            result=GameResult(winner=message.winner, reason=message.reason),
        )

    # -- Internal helpers --
    def _require(self, phases: tuple[SessionPhase, ...], action: str) -> None:
        if self.phase not in phases:
            raise SessionStateError(
                f"Cannot {action} while {self.phase.value}. Allowed in: {', '.join(p.value for p in phases)}."
            )

    def _send(self, intent: ClientIntent) -> bool:
        sent = self.transport.send(intent)
        if not sent:
            logger.warning("Could not send %r. Session left unchanged.", intent.type)
        return sent

    def _update(self, **changes: Any) -> None:
        """Publish a new snapshot. Snapshots are replaced, never edited."""
        self._snapshot = replace(self._snapshot, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception(
                    "Session listener %r failed on phase %r.", listener, self._snapshot.phase.value
                )
