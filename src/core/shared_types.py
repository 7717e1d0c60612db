"""
Type definitions used across layers
"""

from enum import StrEnum


class Side(StrEnum):
    """Disk colors. Values are the names used on the wire."""

    BLACK = "black"
    WHITE = "white"


class SessionPhase(StrEnum):
    """Mutually exclusive phases of a client session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    LOBBY = "lobby"
    SEARCHING = "searching"
    IN_GAME = "in game"
    GAME_OVER = "game over"


class Notice(StrEnum):
    """Typed meaning of a server `success` message."""

    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    QUEUE_JOINED = "queue joined"
    QUEUE_LEFT = "queue left"
    OTHER = "other"
