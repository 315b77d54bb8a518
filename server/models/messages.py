"""
Payload models for client -> server WebSocket messages.

Every message is a JSON object with a ``type`` field naming the intent and
the fields below. Keys may be sent in snake_case (``room_code``) or
camelCase (``roomCode``).
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config import config
from constants import MAX_PLAYERS, MIN_DECKS, MIN_PLAYERS


class ClientMessage(BaseModel):
    """Fields shared by every room-scoped message."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    room_code: str = Field(min_length=1, max_length=config.MAX_ROOM_CODE_LENGTH)


class CreateRoomMessage(ClientMessage):
    player_name: str = Field(min_length=1, max_length=config.MAX_NAME_LENGTH)
    max_players: int = Field(4, ge=MIN_PLAYERS, le=MAX_PLAYERS)
    number_of_decks: int = Field(1, ge=MIN_DECKS, le=config.MAX_DECKS)
    max_round_cards: int = 7
    min_round_cards: int = 1


class JoinRoomMessage(ClientMessage):
    player_name: str = Field(min_length=1, max_length=config.MAX_NAME_LENGTH)


class StartGameMessage(ClientMessage):
    pass


class MakePredictionMessage(ClientMessage):
    prediction: int


class PlayCardMessage(ClientMessage):
    card_index: int
