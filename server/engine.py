"""
Room and round engine for Judgment.

The GameEngine owns every room (through the injected RoomManager) and is
the only thing that mutates room state. Public methods correspond to
player intents and are called by the WebSocket handlers; each takes the
room lock, validates, mutates, and emits events. Rule violations raise a
GameError subclass before anything is changed.

Round flow:
    start_game -> start_round (PREDICTING)
    make_prediction ... -> start_play_phase (PLAYING)
    play_card ... -> trick resolution -> next trick / end_round (SCORING)
    end_round -> start_round, or game over -> WAITING -> new game
"""

from typing import Callable, Optional

from fastapi import WebSocket

from config import PhaseDelays, config
from exceptions import (
    AlreadyJoinedError,
    ForbiddenPredictionError,
    GameInProgressError,
    InvalidCardError,
    MustFollowSuitError,
    NotEnoughPlayersError,
    NotFoundError,
    NotHostError,
    NotInRoomError,
    NotYourTurnError,
    RoomExistsError,
    RoomFullError,
    ValidationError,
    WrongPhaseError,
)
from constants import MIN_PLAYERS
from game import (
    Card,
    GameState,
    TrickPlay,
    create_deck,
    determine_trick_winner,
    forbidden_prediction,
    next_round_size,
    rotate,
    round_score_delta,
    validate_game_config,
    violates_follow_suit,
)
from logging_config import get_logger
from room import Room, RoomManager, RoomSettings
from scheduler import TransitionScheduler

logger = get_logger(__name__)

DeckFactory = Callable[[int], list[Card]]


class GameEngine:
    """
    Drives every room's game.

    Args:
        room_manager: Room store.
        scheduler: Runs delayed phase transitions.
        deck_factory: ``f(number_of_decks) -> shuffled cards``.
        delays: Pauses between phases; defaults to ``config.delays``.
    """

    def __init__(
        self,
        room_manager: RoomManager,
        scheduler: TransitionScheduler,
        deck_factory: DeckFactory = create_deck,
        delays: Optional[PhaseDelays] = None,
    ) -> None:
        self.room_manager = room_manager
        self.scheduler = scheduler
        self.deck_factory = deck_factory
        self.delays = delays or config.delays

    def _get_room(self, code: str) -> Room:
        room = self.room_manager.get_room(code)
        if room is None:
            raise NotFoundError()
        return room

    # =========================================================================
    # Lobby
    # =========================================================================

    async def create_room(
        self,
        player_id: str,
        websocket: Optional[WebSocket],
        code: str,
        host_name: str,
        max_players: int,
        number_of_decks: int,
        max_round_cards: int,
        min_round_cards: int,
    ) -> Room:
        """Create a room with the requester as its host."""
        if self.room_manager.get_room(code) is not None:
            raise RoomExistsError()
        if not code:
            raise ValidationError("Room code is required")
        if not host_name:
            raise ValidationError("Player name is required")
        validate_game_config(number_of_decks, min_round_cards, max_round_cards, max_players)

        settings = RoomSettings(
            max_players=max_players,
            number_of_decks=number_of_decks,
            min_round_cards=min_round_cards,
            max_round_cards=max_round_cards,
        )
        room = self.room_manager.create_room(code, settings)
        room.add_player(player_id, host_name, websocket)

        await room.send_to(player_id, {"type": "roomCreated", "room_code": code, "player_id": player_id})
        await room.send_to(player_id, {"type": "playerList", **room.player_list()})

        logger.with_context(room_code=code, player_id=player_id).info(
            f"Room {code} created by {host_name} ({settings.to_dict()})"
        )
        return room

    async def join_room(
        self,
        player_id: str,
        websocket: Optional[WebSocket],
        code: str,
        name: str,
    ) -> Room:
        room = self._get_room(code)
        async with room.game_lock:
            if room.has_player(player_id):
                raise AlreadyJoinedError()
            if room.state != GameState.WAITING:
                raise GameInProgressError()
            if room.is_full():
                raise RoomFullError()
            if not name:
                raise ValidationError("Player name is required")

            room.add_player(player_id, name, websocket)
            await room.broadcast({"type": "playerList", **room.player_list()})
            await room.send_to(player_id, {"type": "joinedRoom", "room_code": code, "player_id": player_id})

        logger.with_context(room_code=code, player_id=player_id).info(f"Player {name} joined room {code}")
        return room

    async def start_game(self, player_id: str, code: str) -> None:
        room = self._get_room(code)
        async with room.game_lock:
            if room.host != player_id:
                raise NotHostError()
            if room.state != GameState.WAITING:
                raise GameInProgressError()
            if len(room.players) < MIN_PLAYERS:
                raise NotEnoughPlayersError()

            logger.with_context(room_code=code).info(
                f"Game starting in room {code} with {len(room.players)} players"
            )
            await self._begin_game(room)

    async def _begin_game(self, room: Room) -> None:
        """Zero the scoreboard and deal round 1."""
        if len(room.players) < MIN_PLAYERS:
            logger.with_context(room_code=room.code).info(
                f"Not starting a new game in room {room.code}: only {len(room.players)} player(s)"
            )
            return
        room.scores = {pid: 0 for pid in room.player_ids()}
        await self.start_round(room)

    # =========================================================================
    # Round setup
    # =========================================================================

    async def start_round(self, room: Room) -> None:
        """
        Deal a round and open predictions.

        The room is switched to PREDICTING before anything is sent so that
        no play can sneak in while clients are still rendering.
        """
        log = logger.with_context(room_code=room.code, round=room.current_round)
        if len(room.players) < MIN_PLAYERS:
            log.warning(f"Not dealing round {room.current_round} in room {room.code}: too few players")
            return

        room.reset_round_state()
        room.state = GameState.PREDICTING
        room.epoch += 1

        player_ids = room.player_ids()
        room.tricks_won = {pid: 0 for pid in player_ids}
        for pid in player_ids:
            room.scores.setdefault(pid, 0)

        deck = self.deck_factory(room.settings.number_of_decks)
        per_hand = room.cards_this_round
        for seat, pid in enumerate(player_ids):
            room.player_hands[pid] = list(deck[seat * per_hand:(seat + 1) * per_hand])

        trump = room.trump
        room.turn_index %= len(player_ids)
        room.prediction_order = rotate(player_ids, room.turn_index)
        first = room.player_name(room.prediction_order[0])

        log.info(
            f"Starting round {room.current_round} in room {room.code}: "
            f"trump={trump.value}, cards={per_hand}, first={first}"
        )

        await room.broadcast({
            "type": "roundStart",
            "round": room.current_round,
            "cards_this_round": per_hand,
            "trump": trump.value,
            "first_player": first,
            "ascending": room.ascending,
        })
        for pid in player_ids:
            await self._send_hand(room, pid)

        self.scheduler.schedule(
            room,
            self.delays.prediction_prompt,
            GameState.PREDICTING,
            self._request_prediction,
            name="request_prediction",
        )

    async def _send_hand(self, room: Room, player_id: str) -> None:
        hand = room.player_hands.get(player_id, [])
        await room.send_to(player_id, {
            "type": "yourCards",
            "cards": [card.to_dict() for card in hand],
        })

    def _prediction_prompt(self, room: Room) -> dict:
        return {
            "current_player": room.player_name(room.prediction_order[0]),
            "max_prediction": room.cards_this_round,
            "is_last": len(room.prediction_order) == 1,
            "forbidden": forbidden_prediction(
                room.cards_this_round, room.predictions, len(room.prediction_order)
            ),
        }

    async def _request_prediction(self, room: Room) -> None:
        if not room.prediction_order:
            return
        await room.broadcast({
            "type": "requestPrediction",
            "player_order": [room.player_name(pid) for pid in room.prediction_order],
            **self._prediction_prompt(room),
        })

    # =========================================================================
    # Predictions
    # =========================================================================

    async def make_prediction(self, player_id: str, code: str, prediction: int) -> None:
        room = self._get_room(code)
        async with room.game_lock:
            if room.state != GameState.PREDICTING:
                raise WrongPhaseError("Not in prediction phase")
            player = room.get_player(player_id)
            if player is None:
                raise NotInRoomError()
            if not 0 <= prediction <= room.cards_this_round:
                raise ValidationError(f"Prediction must be between 0 and {room.cards_this_round}")
            if not room.prediction_order or room.prediction_order[0] != player_id:
                raise NotYourTurnError("It's not your turn to predict")

            if len(room.prediction_order) == 1:
                others = sum(v for pid, v in room.predictions.items() if pid != player_id)
                if others + prediction == room.cards_this_round:
                    raise ForbiddenPredictionError()

            room.predictions[player_id] = prediction
            room.prediction_order.pop(0)
            logger.with_context(room_code=code, player_id=player_id).info(
                f"Player {player.name} predicted {prediction} tricks"
            )

            await room.broadcast({
                "type": "predictionMade",
                "player_name": player.name,
                "prediction": prediction,
            })

            if all(pid in room.predictions for pid in room.player_ids()):
                room.state = GameState.PLAYING
                await room.broadcast({
                    "type": "allPredictionsMade",
                    "predictions": {p.name: room.predictions[p.id] for p in room.players},
                })
                await self.start_play_phase(room)
            else:
                await room.broadcast({"type": "nextPlayerPredict", **self._prediction_prompt(room)})

    # =========================================================================
    # Play
    # =========================================================================

    async def start_play_phase(self, room: Room) -> None:
        room.current_play_order = rotate(room.player_ids(), room.turn_index)
        room.next_player_index = 0
        room.current_trick = []

        names = [room.player_name(pid) for pid in room.current_play_order]
        await room.broadcast({
            "type": "playPhaseStart",
            "first_player": names[0],
            "play_order": names,
        })
        logger.with_context(room_code=room.code).info(f"Play phase started. First player: {names[0]}")

        self.scheduler.schedule(
            room,
            self.delays.turn_notify,
            GameState.PLAYING,
            self._notify_turn,
            name="notify_first_player",
        )

    async def _notify_turn(self, room: Room) -> None:
        expected = room.expected_player()
        if expected is not None:
            await room.send_to(expected, {"type": "yourTurnToPlay"})

    async def play_card(self, player_id: str, code: str, card_index: int) -> None:
        room = self._get_room(code)
        async with room.game_lock:
            if room.state != GameState.PLAYING:
                raise WrongPhaseError("Not in play phase")
            player = room.get_player(player_id)
            if player is None:
                raise NotInRoomError()
            if room.expected_player() != player_id:
                raise NotYourTurnError("It's not your turn to play")

            hand = room.player_hands.get(player_id, [])
            if not 0 <= card_index < len(hand):
                raise InvalidCardError()
            lead_suit = room.current_trick[0].card.suit if room.current_trick else None
            if violates_follow_suit(hand, card_index, lead_suit):
                raise MustFollowSuitError()

            card = hand.pop(card_index)
            room.current_trick.append(TrickPlay(player_id, player.name, card))
            room.next_player_index += 1

            logger.with_context(room_code=code, player_id=player_id).info(f"Player {player.name} played {card}")

            await self._send_hand(room, player_id)
            await room.broadcast({
                "type": "cardPlayed",
                "player_name": player.name,
                "card": card.to_dict(),
            })

            if len(room.current_trick) >= len(room.players):
                await self._resolve_trick(room)
            else:
                await self._notify_turn(room)

    async def _resolve_trick(self, room: Room) -> None:
        winner = determine_trick_winner(room.current_trick, room.trump)
        room.tricks_won[winner.player_id] = room.tricks_won.get(winner.player_id, 0) + 1

        await room.broadcast({
            "type": "trickWon",
            "player_name": winner.player_name,
            "trick": [play.to_dict() for play in room.current_trick],
            "tricks_won": {p.name: room.tricks_won.get(p.id, 0) for p in room.players},
        })
        logger.with_context(room_code=room.code).info(f"Trick won by {winner.player_name} with {winner.card}")
        room.current_trick = []

        if room.total_tricks_won() >= room.cards_this_round:
            self.scheduler.schedule(
                room,
                self.delays.trick_display,
                GameState.PLAYING,
                self.end_round,
                name="end_round",
            )
            return

        room.current_play_order = rotate(room.player_ids(), room.seat_of(winner.player_id))
        room.next_player_index = 0
        self.scheduler.schedule(
            room,
            self.delays.trick_display,
            GameState.PLAYING,
            self._start_next_trick,
            name="next_trick",
        )

    async def _start_next_trick(self, room: Room) -> None:
        names = [room.player_name(pid) for pid in room.current_play_order]
        await room.broadcast({
            "type": "nextTrick",
            "first_player": names[0],
            "play_order": names,
        })
        await self._notify_turn(room)

    # =========================================================================
    # Scoring
    # =========================================================================

    async def end_round(self, room: Room) -> None:
        """Score the round, then schedule the next round or finish the game."""
        room.state = GameState.SCORING
        log = logger.with_context(room_code=room.code, round=room.current_round)

        results = []
        for player in room.players:
            predicted = room.predictions.get(player.id, 0)
            actual = room.tricks_won.get(player.id, 0)
            delta = round_score_delta(predicted, actual)
            room.scores[player.id] = room.scores.get(player.id, 0) + delta
            results.append({
                "name": player.name,
                "predicted": predicted,
                "actual": actual,
                "delta": delta,
                "score": room.scores[player.id],
            })

        await room.broadcast({
            "type": "roundEnd",
            "round": room.current_round,
            "results": results,
            "scores": room.score_table(),
        })
        log.info(f"Round {room.current_round} ended in room {room.code}")

        room.turn_index = (room.turn_index + 1) % len(room.players)
        progression = next_round_size(
            room.cards_this_round,
            room.ascending,
            room.settings.min_round_cards,
            room.settings.max_round_cards,
        )

        if progression is None:
            final_scores = room.score_table()
            await room.broadcast({"type": "gameOver", "final_scores": final_scores})
            log.info(f"Game over in room {room.code}: {final_scores}")

            room.reset_for_new_game()
            self.scheduler.schedule(
                room,
                self.delays.game_restart,
                GameState.WAITING,
                self._begin_game,
                name="restart_game",
            )
            return

        room.cards_this_round, room.ascending = progression
        room.current_round += 1
        self.scheduler.schedule(
            room,
            self.delays.next_round,
            GameState.SCORING,
            self.start_round,
            name="start_round",
        )

    # =========================================================================
    # Disconnects
    # =========================================================================

    async def handle_disconnect(self, player_id: str) -> None:
        """Remove a dropped connection from every room it sat in."""
        for room in self.room_manager.find_player_rooms(player_id):
            async with room.game_lock:
                await self._remove_from_room(room, player_id)

    async def _remove_from_room(self, room: Room, player_id: str) -> None:
        log = logger.with_context(room_code=room.code, player_id=player_id)
        departed = room.remove_player(player_id)
        if departed is None:
            return

        await room.broadcast({"type": "playerList", **room.player_list()})

        if room.state != GameState.WAITING:
            if len(room.players) >= MIN_PLAYERS:
                room.purge_player(player_id)
                await room.broadcast({
                    "type": "errorMessage",
                    "message": (
                        f"{departed.name} disconnected. Restarting current round "
                        f"with {len(room.players)} players."
                    ),
                })
                room.turn_index %= len(room.players)
                room.reset_round_state()
                room.state = GameState.PREDICTING
                room.epoch += 1
                self.scheduler.schedule(
                    room,
                    self.delays.disconnect_restart,
                    GameState.PREDICTING,
                    self.start_round,
                    name="restart_round",
                )
                log.info(f"Restarting round {room.current_round} in room {room.code} without {departed.name}")
            else:
                await room.broadcast({
                    "type": "gameEnded",
                    "reason": f"{departed.name} has disconnected",
                })
                room.reset_for_new_game()
                log.info(f"Game in room {room.code} ended: not enough players")

        log.info(f"Player {departed.name} disconnected from room {room.code}")

        if room.is_empty():
            self.room_manager.remove_room(room.code)
            log.info(f"Room {room.code} deleted (empty)")
