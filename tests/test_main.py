"""Unit tests for src/main.py (runner, reconnect policy, CLI helpers)"""

from typing import Optional

import pytest

from src.core.config import ClientSettings
from src.core.exceptions import TransportError
from src.core.models import SessionSnapshot
from src.core.shared_types import SessionPhase
from src.main import (
    ClientRunner,
    ReconnectPolicy,
    auto_login,
    build_settings,
    parse_args,
)
from src.services.session_service import GameSession
from src.transport.base import TransportListener
from tests.fakes import FakeTransport

FAIL = "fail"
SERVE = "serve"


class ScriptedTransport(FakeTransport):
    """Each call to connect follows the next step of the script: refuse, or open and close again."""

    def __init__(self, script: list[str]) -> None:
        super().__init__()
        self.script = list(script)
        self.phases_at_connect: list[SessionPhase] = []
        self.session: Optional[GameSession] = None

    async def connect(self, listener: TransportListener) -> None:
        if self.session is not None:
            self.phases_at_connect.append(self.session.phase)
        step = self.script.pop(0)
        if step == FAIL:
            raise TransportError("connection refused")
        listener.on_open()
        listener.on_close()


class RecordingSleep:
    """Replaces asyncio.sleep: records the delays, and stops the runner once the script is used up."""

    def __init__(self, transport: ScriptedTransport) -> None:
        self.delays: list[float] = []
        self.transport = transport
        self.runner: Optional[ClientRunner] = None

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if not self.transport.script and self.runner is not None:
            await self.runner.stop()


def build_runner(
    script: list[str], policy: ReconnectPolicy, reconnect: bool = True
) -> tuple[ClientRunner, ScriptedTransport, RecordingSleep]:
    transport = ScriptedTransport(script)
    session = GameSession(transport)
    transport.session = session
    sleep = RecordingSleep(transport)
    runner = ClientRunner(session, transport, policy, reconnect=reconnect, sleep=sleep)
    sleep.runner = runner
    return runner, transport, sleep


# --- RECONNECT POLICY ----
def test_backoff_is_exponential_and_capped() -> None:
    policy = ReconnectPolicy(initial_delay=1.0, max_delay=5.0, factor=2.0)
    assert [policy.delay(attempt) for attempt in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_backoff_stays_at_cap_after_many_failures() -> None:
    assert ReconnectPolicy().delay(1024) == 30.0
    assert ReconnectPolicy().delay(5000) == 30.0


def test_attempt_limit() -> None:
    assert ReconnectPolicy(max_attempts=0).allows(1000)
    limited = ReconnectPolicy(max_attempts=2)
    assert limited.allows(1)
    assert not limited.allows(2)


def test_policy_from_settings() -> None:
    settings = ClientSettings.build(
        reconnect_max_attempts=4, reconnect_initial_delay=0.5, reconnect_max_delay=8
    )
    assert ReconnectPolicy.from_settings(settings) == ReconnectPolicy(
        max_attempts=4, initial_delay=0.5, max_delay=8.0
    )


# --- RUNNER ----
@pytest.mark.asyncio
async def test_retries_silently_while_server_unreachable() -> None:
    """Failed attempts keep the session connecting; delays back off."""
    policy = ReconnectPolicy(initial_delay=1.0, max_delay=30.0)
    runner, transport, sleep = build_runner([FAIL, FAIL, SERVE], policy, reconnect=False)

    await runner.run()

    assert transport.phases_at_connect == [
        SessionPhase.CONNECTING,
        SessionPhase.CONNECTING,
        SessionPhase.CONNECTING,
    ]
    assert sleep.delays == [1.0, 2.0]
    assert runner.session.phase == SessionPhase.DISCONNECTED


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts() -> None:
    policy = ReconnectPolicy(max_attempts=2, initial_delay=1.0)
    runner, transport, sleep = build_runner([FAIL, FAIL, SERVE], policy)

    await runner.run()

    assert sleep.delays == [1.0]
    assert transport.script == [SERVE]
    assert runner.session.phase == SessionPhase.DISCONNECTED


@pytest.mark.asyncio
async def test_reconnects_after_close() -> None:
    """After an established connection closes a new one is opened; the failure count starts over."""
    policy = ReconnectPolicy(initial_delay=1.0)
    runner, transport, sleep = build_runner([SERVE, FAIL, SERVE], policy)

    await runner.run()

    assert transport.script == []
    assert sleep.delays == [1.0, 1.0, 1.0]
    assert transport.closed


@pytest.mark.asyncio
async def test_no_reconnect_when_disabled() -> None:
    runner, transport, sleep = build_runner([SERVE, SERVE], ReconnectPolicy(), reconnect=False)

    await runner.run()

    assert transport.script == [SERVE]
    assert sleep.delays == []


# --- CLI HELPERS ----
def test_auto_login_once_connected(fake_transport: FakeTransport) -> None:
    session = GameSession(fake_transport)
    session.subscribe(auto_login(session, "alice"))

    session.begin_connecting()
    assert fake_transport.sent == []
    session.on_open()

    assert session.phase == SessionPhase.LOBBY
    assert fake_transport.sent_types() == ["authenticate"]


def test_auto_login_ignores_other_phases(fake_transport: FakeTransport) -> None:
    session = GameSession(fake_transport)
    listener = auto_login(session, "alice")
    listener(SessionSnapshot(phase=SessionPhase.CONNECTING))
    assert fake_transport.sent == []


def test_command_line_overrides_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REVERSI_SERVER_URL", "ws://from-env:8080/ws")
    monkeypatch.setenv("REVERSI_HEARTBEAT_INTERVAL", "3")

    settings = build_settings(parse_args(["--url", "wss://from-cli/ws", "--log-level", "debug"]))

    assert settings.server_url == "wss://from-cli/ws"
    assert settings.log_level == "DEBUG"
    assert settings.heartbeat_interval == 3.0


def test_environment_only(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REVERSI_SERVER_URL", "ws://from-env:8080/ws")
    settings = build_settings(parse_args([]))
    assert settings.server_url == "ws://from-env:8080/ws"


@pytest.mark.parametrize("username", ["", "   "])
def test_blank_username_is_rejected(username: str) -> None:
    with pytest.raises(SystemExit):
        parse_args(["--username", username])


def test_username_is_stripped() -> None:
    assert parse_args(["--username", "  alice "]).username == "alice"
