"""Inbound message models for the Judgment server."""

from .messages import (
    ClientMessage,
    CreateRoomMessage,
    JoinRoomMessage,
    MakePredictionMessage,
    PlayCardMessage,
    StartGameMessage,
)

__all__ = [
    "ClientMessage",
    "CreateRoomMessage",
    "JoinRoomMessage",
    "MakePredictionMessage",
    "PlayCardMessage",
    "StartGameMessage",
]
