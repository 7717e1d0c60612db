"""Protocols for the transport (can implement later for other connection types than websockets)"""

from typing import Protocol

from src.api.messages import ClientIntent, ServerMessage


class TransportListener(Protocol):
    """Receives the connection events. All callbacks run on the event loop, one at a time, in arrival order."""

    def on_open(self) -> None:
        """The connection has been established."""
        ...

    def on_message(self, message: ServerMessage) -> None:
        """A decoded server message arrived."""
        ...

    def on_close(self) -> None:
        """The connection is gone. Called exactly once per established connection."""
        ...


class Transport(Protocol):
    """Duplex connection to the game server"""

    @property
    def is_open(self) -> bool:
        """Whether frames can currently be sent."""
        ...

    def send(self, intent: ClientIntent) -> bool:
        """Queue one intent for sending. Returns False (and sends nothing) if it cannot be sent."""
        ...

    async def connect(self, listener: TransportListener) -> None:
        """Open the connection and deliver events to `listener` until it closes."""
        ...

    async def close(self) -> None:
        """Close the connection, if open."""
        ...
