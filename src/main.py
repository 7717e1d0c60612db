"""
Reversi online client - headless runner.

Wires settings, transport and session together and keeps the connection alive.
The presentation layer subscribes to the session; this runner only logs every new snapshot.
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Self, Sequence

from src.core.config import ClientSettings
from src.core.exceptions import TransportError
from src.core.models import SessionSnapshot
from src.core.shared_types import SessionPhase
from src.services.session_service import GameSession
from src.transport.base import Transport
from src.transport.websocket import WebSocketTransport

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff between connection attempts."""

    # 0 means: no limit
    max_attempts: int = 0
    initial_delay: float = 1.0
    max_delay: float = 30.0
    factor: float = 2.0

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> Self:
        return cls(
            max_attempts=settings.reconnect_max_attempts,
            initial_delay=settings.reconnect_initial_delay,
            max_delay=settings.reconnect_max_delay,
        )

    def allows(self, attempt: int) -> bool:
        """`attempt` counts the failed attempts so far."""
        return self.max_attempts == 0 or attempt < self.max_attempts

    def delay(self, attempt: int) -> float:
        delay = self.initial_delay
        for _ in range(attempt):
            if delay >= self.max_delay:
                break
            delay *= self.factor
        return min(delay, self.max_delay)


class ClientRunner:
    """
    Keeps a session connected.
    ----

    * while the server cannot be reached, the session stays CONNECTING and attempts are retried silently
    * once an established connection closes, the session is DISCONNECTED; with `reconnect` enabled a new
      connection is opened (a fresh, unauthenticated one: there is no resume protocol)
    """

    def __init__(
        self,
        session: GameSession,
        transport: Transport,
        policy: ReconnectPolicy,
        reconnect: bool = True,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.session = session
        self.transport = transport
        self.policy = policy
        self.reconnect = reconnect
        self._sleep = sleep
        self._stopped = False

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> Self:
        transport = WebSocketTransport.from_settings(settings)
        return cls(
            session=GameSession(transport),
            transport=transport,
            policy=ReconnectPolicy.from_settings(settings),
            reconnect=settings.reconnect,
        )

    async def run(self) -> None:
        failed_attempts = 0
        while not self._stopped:
            self.session.begin_connecting()
            try:
                await self.transport.connect(self.session)
            except TransportError as exc:
                failed_attempts += 1
                logger.warning("Connection attempt %d failed: %s", failed_attempts, exc)
                if not self.policy.allows(failed_attempts):
                    logger.error("Giving up after %d attempts.", failed_attempts)
                    self.session.on_close()
                    return
                await self._sleep(self.policy.delay(failed_attempts - 1))
                continue

            # the connection was established and has closed again
            failed_attempts = 0
            if not self.reconnect:
                return
            await self._sleep(self.policy.delay(0))

    async def stop(self) -> None:
        self._stopped = True
        await self.transport.close()


# --- CLI ---
def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def log_snapshot(snapshot: SessionSnapshot) -> None:
    logger.info(
        "phase=%s username=%s opponent=%s turn=%s you=%s legal_moves=%d",
        snapshot.phase.value,
        snapshot.username,
        snapshot.opponent,
        snapshot.current_player.value,
        snapshot.your_color.value if snapshot.your_color else None,
        len(snapshot.legal_moves),
    )


def auto_login(session: GameSession, username: str) -> Callable[[SessionSnapshot], None]:
    """Authenticate as soon as a connection is open."""

    def _on_snapshot(snapshot: SessionSnapshot) -> None:
        if snapshot.phase == SessionPhase.CONNECTED:
            session.login(username)

    return _on_snapshot


def username_arg(value: str) -> str:
    username = value.strip()
    if not username:
        raise argparse.ArgumentTypeError("username must not be empty")
    return username


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reversi online client (headless)")
    parser.add_argument("--url", help="Server websocket URL (overrides REVERSI_SERVER_URL)")
    parser.add_argument("--username", type=username_arg, help="Log in with this name once connected")
    parser.add_argument("--log-level", help="Overrides REVERSI_LOG_LEVEL")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> ClientSettings:
    settings = ClientSettings.from_env()
    overrides = {
        "server_url": args.url,
        "log_level": args.log_level,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if not overrides:
        return settings
    return ClientSettings.build(**{**settings.model_dump(), **overrides})


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    settings = build_settings(args)
    configure_logging(settings.log_level)

    runner = ClientRunner.from_settings(settings)
    runner.session.subscribe(log_snapshot)
    if args.username:
        runner.session.subscribe(auto_login(runner.session, args.username))

    try:
        asyncio.run(runner.run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down.")


if __name__ == "__main__":
    main()
