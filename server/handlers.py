"""WebSocket message handlers for the Judgment card game.

Each handler corresponds to a single message type from the client and is
dispatched through the HANDLERS dict. Handlers parse the payload, call the
engine, and let rule violations propagate to ``dispatch``, which reports
them to the sender as an ``errorMessage``.
"""

import logging
from dataclasses import dataclass

from fastapi import WebSocket
from pydantic import ValidationError as PayloadError

from engine import GameEngine
from exceptions import GameError
from models import (
    CreateRoomMessage,
    JoinRoomMessage,
    MakePredictionMessage,
    PlayCardMessage,
    StartGameMessage,
)

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str


async def send_error(ctx: ConnectionContext, message: str) -> None:
    await ctx.websocket.send_json({"type": "errorMessage", "message": message})


def describe_payload_error(msg_type: str, error: PayloadError) -> str:
    """One-line, human-readable summary of the first payload problem."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    return f"Invalid {msg_type} request: {field} - {first.get('msg', 'invalid value')}"


# ---------------------------------------------------------------------------
# Lobby handlers
# ---------------------------------------------------------------------------

async def handle_create_room(data: dict, ctx: ConnectionContext, *, engine: GameEngine, **kw) -> None:
    msg = CreateRoomMessage.model_validate(data)
    await engine.create_room(
        ctx.connection_id,
        ctx.websocket,
        msg.room_code,
        msg.player_name,
        max_players=msg.max_players,
        number_of_decks=msg.number_of_decks,
        max_round_cards=msg.max_round_cards,
        min_round_cards=msg.min_round_cards,
    )


async def handle_join_room(data: dict, ctx: ConnectionContext, *, engine: GameEngine, **kw) -> None:
    msg = JoinRoomMessage.model_validate(data)
    await engine.join_room(ctx.connection_id, ctx.websocket, msg.room_code, msg.player_name)


async def handle_start_game(data: dict, ctx: ConnectionContext, *, engine: GameEngine, **kw) -> None:
    msg = StartGameMessage.model_validate(data)
    await engine.start_game(ctx.connection_id, msg.room_code)


# ---------------------------------------------------------------------------
# Turn action handlers
# ---------------------------------------------------------------------------

async def handle_make_prediction(data: dict, ctx: ConnectionContext, *, engine: GameEngine, **kw) -> None:
    msg = MakePredictionMessage.model_validate(data)
    await engine.make_prediction(ctx.connection_id, msg.room_code, msg.prediction)


async def handle_play_card(data: dict, ctx: ConnectionContext, *, engine: GameEngine, **kw) -> None:
    msg = PlayCardMessage.model_validate(data)
    await engine.play_card(ctx.connection_id, msg.room_code, msg.card_index)


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "createRoom": handle_create_room,
    "joinRoom": handle_join_room,
    "startGame": handle_start_game,
    "makePrediction": handle_make_prediction,
    "playCard": handle_play_card,
}


async def dispatch(data: dict, ctx: ConnectionContext, **deps) -> None:
    """
    Route one inbound message to its handler.

    Rejected actions and malformed payloads are reported to the sender
    only; unknown message types are ignored.
    """
    msg_type = data.get("type") if isinstance(data, dict) else None
    handler = HANDLERS.get(msg_type) if isinstance(msg_type, str) else None
    if handler is None:
        logger.debug(f"Ignoring unknown message type {msg_type!r} from {ctx.connection_id}")
        return

    try:
        await handler(data, ctx, **deps)
    except GameError as e:
        logger.info(f"{msg_type} from {ctx.connection_id} rejected: {e.message}")
        await send_error(ctx, e.message)
    except PayloadError as e:
        logger.info(f"Malformed {msg_type} from {ctx.connection_id}: {e}")
        await send_error(ctx, describe_payload_error(msg_type, e))
