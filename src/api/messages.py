"""Wire protocol: outbound intents and inbound server messages, and their JSON encoding."""

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticSerializationError

from src.core.exceptions import (
    InvalidBoardError,
    InvalidIntentError,
    ProtocolError,
    SerializationError,
)
from src.core.shared_types import Notice, Side
from src.reversi.board import Board
from src.reversi.square import BOARD_DIMENSIONS


# --- OUTBOUND (client -> server) ---
class UsernamePayload(BaseModel):
    username: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise InvalidIntentError("Username cannot be empty.")
        return value


class CoordinatesPayload(BaseModel):
    x: int
    y: int

    @field_validator(*["x", "y"])
    @classmethod
    def validate_coordinate(cls, value: int) -> int:
        if not 0 <= value < BOARD_DIMENSIONS[0]:
            raise InvalidIntentError(f"Coordinate {value} is outside of the board.")
        return value


class AuthenticateIntent(BaseModel):
    type: Literal["authenticate"] = "authenticate"
    payload: UsernamePayload


class JoinQueueIntent(BaseModel):
    type: Literal["join_queue"] = "join_queue"


class LeaveQueueIntent(BaseModel):
    type: Literal["leave_queue"] = "leave_queue"


class MakeMoveIntent(BaseModel):
    type: Literal["make_move"] = "make_move"
    payload: CoordinatesPayload


class ResignIntent(BaseModel):
    type: Literal["resign"] = "resign"


class HeartbeatIntent(BaseModel):
    type: Literal["heartbeat"] = "heartbeat"
    payload: dict[str, Any] = Field(default_factory=dict)


ClientIntent = Union[
    AuthenticateIntent,
    JoinQueueIntent,
    LeaveQueueIntent,
    MakeMoveIntent,
    ResignIntent,
    HeartbeatIntent,
]


def authenticate(username: str) -> AuthenticateIntent:
    return AuthenticateIntent(payload=UsernamePayload(username=username))


def make_move(x: int, y: int) -> MakeMoveIntent:
    return MakeMoveIntent(payload=CoordinatesPayload(x=x, y=y))


def encode_intent(intent: ClientIntent) -> str:
    """A single self-describing `{type, payload}` JSON text frame."""
    try:
        return intent.model_dump_json()
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise SerializationError(f"Cannot encode {intent.type!r} message: {exc}") from exc


# --- INBOUND (server -> client) ---
class SuccessMessage(BaseModel):
    type: Literal["success"]
    message: str


class ErrorMessage(BaseModel):
    type: Literal["error"]
    message: str


class MatchFoundMessage(BaseModel):
    type: Literal["match_found"]
    opponent: str


class GameStateMessage(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: Literal["game_state"]
    board: Board
    current_player: Side
    your_color: Side

    @field_validator("board", mode="before")
    @classmethod
    def parse_board(cls, value: Any) -> Board:
        # the server sends the full 8x8 grid every time
        if isinstance(value, Board):
            return value
        return Board.from_wire(value)


class GameOverMessage(BaseModel):
    type: Literal["game_over"]
    # name of the winning player, None for a draw
    winner: Optional[str]
    reason: str


ServerMessage = Annotated[
    Union[
        SuccessMessage,
        ErrorMessage,
        MatchFoundMessage,
        GameStateMessage,
        GameOverMessage,
    ],
    Field(discriminator="type"),
]

SERVER_MESSAGE_TYPES = ("success", "error", "match_found", "game_state", "game_over")

_server_message_adapter: TypeAdapter[ServerMessage] = TypeAdapter(ServerMessage)


def decode_frame(raw: str | bytes) -> ServerMessage:
    """Parse one inbound text frame. Anything that is not a known server message raises ProtocolError."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ProtocolError(f"Frame is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ProtocolError(f"Frame must be a JSON object, got {type(data).__name__}.")

    message_type = data.get("type")
    if message_type not in SERVER_MESSAGE_TYPES:
        raise ProtocolError(f"Unknown message type: {message_type!r}")

    try:
        return _server_message_adapter.validate_python(data)
    except (ValidationError, InvalidBoardError) as exc:
        raise ProtocolError(f"Invalid {message_type!r} message: {exc}") from exc


# --- SUCCESS MESSAGE CLASSIFICATION ---
# NOTE: the server only confirms actions through the free text of a `success` message.
# Keep its exact current wording in this one table, so the session reacts to a typed Notice instead.
NOTICE_PHRASES: dict[str, Notice] = {
    "Connected Successfully": Notice.CONNECTED,
    "Authenticated successfully": Notice.AUTHENTICATED,
    "Joined matchmaking queue": Notice.QUEUE_JOINED,
    "Left matchmaking queue": Notice.QUEUE_LEFT,
}


def classify_notice(text: str) -> Notice:
    return next(
        (notice for phrase, notice in NOTICE_PHRASES.items() if phrase in text),
        Notice.OTHER,
    )
