"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures required for testing multiple layers.
"""

from typing import Callable, Iterator

import pytest

from src.api.messages import GameOverMessage, MatchFoundMessage
from src.core.shared_types import SessionPhase
from src.reversi.board import Board
from src.services.session_service import GameSession
from tests.fakes import STARTING_ROWS, FakeTransport, rows_to_wire


@pytest.fixture
def board_from_rows() -> Callable[[list[str]], Board]:
    """Call the inner function with a board diagram to get the Board the server would send."""

    def _create_board(rows: list[str]) -> Board:
        return Board.from_wire(rows_to_wire(rows))

    return _create_board


@pytest.fixture
def starting_board(board_from_rows: Callable[[list[str]], Board]) -> Board:
    """Classic opening position: white on (3,3) and (4,4), black on (4,3) and (3,4)."""
    return board_from_rows(STARTING_ROWS)


@pytest.fixture
def fake_transport() -> Iterator[FakeTransport]:
    """Ensures to clear the recorded intents between tests"""
    transport = FakeTransport()
    try:
        yield transport
    finally:
        transport.sent.clear()


@pytest.fixture
def session(fake_transport: FakeTransport) -> GameSession:
    return GameSession(fake_transport)


@pytest.fixture
def drive_session() -> Callable[[GameSession, SessionPhase], GameSession]:
    """Walk a fresh session along the happy path until it reaches the requested phase."""

    def _drive(session: GameSession, target: SessionPhase) -> GameSession:
        steps: list[tuple[SessionPhase, Callable[[], object]]] = [
            (SessionPhase.CONNECTING, session.begin_connecting),
            (SessionPhase.CONNECTED, session.on_open),
            (SessionPhase.LOBBY, lambda: session.login("alice")),
            (SessionPhase.SEARCHING, session.join_queue),
            (
                SessionPhase.IN_GAME,
                lambda: session.on_message(
                    MatchFoundMessage(type="match_found", opponent="bob")
                ),
            ),
            (
                SessionPhase.GAME_OVER,
                lambda: session.on_message(
                    GameOverMessage(type="game_over", winner="alice", reason="resign")
                ),
            ),
        ]
        for phase, step in steps:
            step()
            assert session.phase == phase
            if phase == target:
                return session
        raise ValueError(f"Cannot drive session to {target}")

    return _drive
