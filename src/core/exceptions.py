"""Custom exceptions. Every layer raises a subclass of GameError so callers can catch one top-level type."""


class GameError(Exception):
    """Base class for all errors raised by the client."""


# --- Domain (rule engine / board) ---
class InvalidBoardError(GameError):
    """A board received from the server does not have the expected shape or cell values."""


class IllegalMoveError(GameError):
    """A move was resolved that is not in the set of legal moves for that board and side."""


# --- Session ---
class SessionStateError(GameError):
    """A user intent was issued in a phase of the session that does not allow it."""


# --- Wire / transport ---
class InvalidIntentError(GameError):
    """An outbound intent was built with invalid data (empty username, coordinate outside the board)."""


class ProtocolError(GameError):
    """An inbound frame could not be decoded into a known server message."""


class SerializationError(GameError):
    """An outbound intent could not be encoded."""


class TransportError(GameError):
    """The connection to the server could not be established."""


# --- Configuration ---
class ConfigurationError(GameError):
    """Settings supplied through the environment are invalid."""
