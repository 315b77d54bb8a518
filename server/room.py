"""
Room management for multiplayer Judgment games.

This module handles room storage, player membership, and WebSocket
communication for multiplayer game sessions.

A Room contains:
    - A user-chosen code for joining
    - The seated RoomPlayers, in seating order
    - Immutable settings (decks, player limit, round sizes)
    - All round state the engine drives (predictions, hands, tricks, scores)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from fastapi import WebSocket

from exceptions import RoomExistsError
from game import Card, GameState, Suit, TrickPlay, trump_for_round

logger = logging.getLogger(__name__)


@dataclass
class RoomPlayer:
    """
    A seated player.

    Attributes:
        id: Connection ID of the player's WebSocket.
        name: Display name.
        websocket: WebSocket connection used for unicast and broadcast.
        is_host: Whether this player may start the game.
    """

    id: str
    name: str
    websocket: Optional[WebSocket] = None
    is_host: bool = False


@dataclass(frozen=True)
class RoomSettings:
    """Settings fixed when the room is created."""

    max_players: int
    number_of_decks: int
    min_round_cards: int
    max_round_cards: int

    def to_dict(self) -> dict:
        return {
            "decks": self.number_of_decks,
            "max_cards": self.max_round_cards,
            "min_cards": self.min_round_cards,
            "max_players": self.max_players,
        }


@dataclass
class Room:
    """
    A game room and the state of the game being played in it.

    Per-round maps are keyed by connection ID; ``players`` order is only
    used to seat players and to lay out messages.

    Attributes:
        code: Room code chosen by the creator.
        settings: Room settings.
        players: Seated players in join order.
        state: Current phase.
        epoch: Bumped whenever a round is (re)dealt or the game is reset, so
            that transitions scheduled for an older round can tell they are stale.
        game_lock: asyncio.Lock serializing every mutation of this room.
    """

    code: str
    settings: RoomSettings
    players: list[RoomPlayer] = field(default_factory=list)

    state: GameState = GameState.WAITING
    current_round: int = 1
    cards_this_round: int = 0
    ascending: bool = True
    turn_index: int = 0
    epoch: int = 0

    predictions: dict[str, int] = field(default_factory=dict)
    prediction_order: list[str] = field(default_factory=list)
    tricks_won: dict[str, int] = field(default_factory=dict)
    scores: dict[str, int] = field(default_factory=dict)
    player_hands: dict[str, list[Card]] = field(default_factory=dict)
    current_trick: list[TrickPlay] = field(default_factory=list)
    current_play_order: list[str] = field(default_factory=list)
    next_player_index: int = 0

    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        if not self.cards_this_round:
            self.cards_this_round = self.settings.min_round_cards

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    @property
    def host(self) -> Optional[str]:
        """Connection ID of the host, if anyone is seated."""
        for player in self.players:
            if player.is_host:
                return player.id
        return None

    def add_player(
        self,
        player_id: str,
        name: str,
        websocket: Optional[WebSocket] = None,
    ) -> RoomPlayer:
        """
        Seat a player at the end of the table.

        The first player to join becomes the host.
        """
        room_player = RoomPlayer(
            id=player_id,
            name=name,
            websocket=websocket,
            is_host=not self.players,
        )
        self.players.append(room_player)
        return room_player

    def remove_player(self, player_id: str) -> Optional[RoomPlayer]:
        """
        Unseat a player.

        If the host leaves, the next seated player becomes host.

        Returns:
            The removed RoomPlayer, or None if not found.
        """
        room_player = self.get_player(player_id)
        if room_player is None:
            return None

        self.players.remove(room_player)
        if room_player.is_host and self.players:
            self.players[0].is_host = True
        return room_player

    def get_player(self, player_id: str) -> Optional[RoomPlayer]:
        """Get a player by ID, or None if not found."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def has_player(self, player_id: str) -> bool:
        return self.get_player(player_id) is not None

    def seat_of(self, player_id: str) -> int:
        """Seat index of a player (ValueError if not seated)."""
        return self.player_ids().index(player_id)

    def is_empty(self) -> bool:
        return not self.players

    def is_full(self) -> bool:
        return len(self.players) >= self.settings.max_players

    def player_ids(self) -> list[str]:
        return [p.id for p in self.players]

    def player_name(self, player_id: str) -> str:
        player = self.get_player(player_id)
        return player.name if player else ""

    def player_list(self) -> dict:
        """Roster and configuration, as sent in playerList."""
        host = self.get_player(self.host) if self.host else None
        return {
            "players": [p.name for p in self.players],
            "host": host.name if host else None,
            "config": self.settings.to_dict(),
        }

    # -------------------------------------------------------------------------
    # Round state
    # -------------------------------------------------------------------------

    @property
    def trump(self) -> Suit:
        return trump_for_round(self.current_round)

    def total_tricks_won(self) -> int:
        return sum(self.tricks_won.values())

    def expected_player(self) -> Optional[str]:
        """Connection ID whose card is expected next, if any."""
        if 0 <= self.next_player_index < len(self.current_play_order):
            return self.current_play_order[self.next_player_index]
        return None

    def reset_round_state(self) -> None:
        """Clear everything that only lives for one round."""
        self.predictions = {}
        self.prediction_order = []
        self.tricks_won = {}
        self.player_hands = {}
        self.current_trick = []
        self.current_play_order = []
        self.next_player_index = 0

    def purge_player(self, player_id: str) -> None:
        """Drop a departed player from every per-player map and the play order."""
        self.scores.pop(player_id, None)
        self.predictions.pop(player_id, None)
        self.tricks_won.pop(player_id, None)
        self.player_hands.pop(player_id, None)
        if player_id in self.prediction_order:
            self.prediction_order.remove(player_id)
        if player_id in self.current_play_order:
            self.current_play_order.remove(player_id)
            if self.next_player_index >= len(self.current_play_order):
                self.next_player_index = 0

    def reset_for_new_game(self) -> None:
        """Return to a fresh lobby state; scores are zeroed when the next game starts."""
        self.reset_round_state()
        self.state = GameState.WAITING
        self.current_round = 1
        self.cards_this_round = self.settings.min_round_cards
        self.ascending = True
        self.turn_index = 0
        self.epoch += 1

    def score_table(self) -> dict[str, int]:
        """Cumulative scores keyed by display name."""
        return {p.name: self.scores.get(p.id, 0) for p in self.players}

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    async def broadcast(self, message: dict) -> None:
        """
        Send a message to every seated player.

        A failed send is logged and skipped so one dead socket does not
        stop the rest of the table from hearing about the change.
        """
        for player in list(self.players):
            if player.websocket:
                try:
                    await player.websocket.send_json(message)
                except Exception as e:
                    logger.warning(f"Send to {player.id} in room {self.code} failed: {e}")

    async def send_to(self, player_id: str, message: dict) -> None:
        """Send a message to one seated player."""
        player = self.get_player(player_id)
        if player and player.websocket:
            try:
                await player.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Send to {player_id} in room {self.code} failed: {e}")


class RoomManager:
    """
    Owns all active rooms.

    A single RoomManager is created by the server and handed to the engine;
    tests build their own for isolation.
    """

    def __init__(self) -> None:
        self.rooms: dict[str, Room] = {}

    def create_room(self, code: str, settings: RoomSettings) -> Room:
        """
        Create an empty room under ``code``.

        Raises:
            RoomExistsError: The code is already in use.
        """
        if code in self.rooms:
            raise RoomExistsError()
        room = Room(code=code, settings=settings)
        self.rooms[code] = room
        return room

    def get_room(self, code: str) -> Optional[Room]:
        return self.rooms.get(code)

    def remove_room(self, code: str) -> None:
        if code in self.rooms:
            del self.rooms[code]

    def find_player_rooms(self, player_id: str) -> list[Room]:
        """Every room the player is seated in."""
        return [room for room in self.rooms.values() if room.has_player(player_id)]

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self.rooms.values()))

    def __len__(self) -> int:
        return len(self.rooms)
