"""
Shared fixtures for the Judgment server tests.

The engine is built with a ManualScheduler so delayed transitions only
run when a test asks for them, and with MockWebSockets that record every
message sent.
"""

import pytest

from config import PhaseDelays
from engine import GameEngine
from game import Card, GameState, forbidden_prediction
from room import RoomManager
from scheduler import ScheduledTransition, TransitionScheduler


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)

    def last_message(self) -> dict:
        return self.messages[-1] if self.messages else {}

    def messages_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == msg_type]

    def clear(self):
        self.messages.clear()


class ManualScheduler(TransitionScheduler):
    """Scheduler driven by the test: transitions queue up on a virtual clock."""

    def __init__(self, room_manager: RoomManager):
        super().__init__(room_manager)
        self.now = 0.0
        self._seq = 0
        self.pending: list[tuple[float, int, ScheduledTransition]] = []

    def _enqueue(self, transition: ScheduledTransition) -> None:
        self._seq += 1
        self.pending.append((self.now + transition.delay, self._seq, transition))
        self.pending.sort(key=lambda item: (item[0], item[1]))

    def pending_count(self) -> int:
        return len(self.pending)

    def pending_names(self) -> list[str]:
        return [t.name for _, _, t in self.pending]

    async def run_next(self):
        """Fire the earliest pending transition. Returns (transition, ran) or None."""
        if not self.pending:
            return None
        due, _, transition = self.pending.pop(0)
        self.now = max(self.now, due)
        ran = await self.fire(transition)
        return transition, ran

    async def run_all(self, max_steps: int = 100) -> int:
        """Fire transitions until none are pending; returns how many ran."""
        ran_count = 0
        for _ in range(max_steps):
            result = await self.run_next()
            if result is None:
                return ran_count
            ran_count += result[1]
        raise AssertionError("Transitions kept scheduling more transitions")


def cards(*codes: str) -> list[Card]:
    return [Card.from_str(code) for code in codes]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def room_manager():
    return RoomManager()


@pytest.fixture
def scheduler(room_manager):
    return ManualScheduler(room_manager)


@pytest.fixture
def engine(room_manager, scheduler):
    return GameEngine(room_manager, scheduler, delays=PhaseDelays())


@pytest.fixture
def make_table(engine):
    """
    Build a room with seated players.

    Returns an async function yielding (room, sockets) where sockets maps
    player IDs p0, p1, ... to their MockWebSocket. p0 is the host.
    """
    async def _make(
        names=("Alice", "Bob", "Cara"),
        code="ROOM",
        min_cards=1,
        max_cards=3,
        decks=1,
        max_players=4,
    ):
        sockets = {}
        for i, name in enumerate(names):
            pid = f"p{i}"
            ws = MockWebSocket()
            sockets[pid] = ws
            if i == 0:
                await engine.create_room(pid, ws, code, name, max_players, decks, max_cards, min_cards)
            else:
                await engine.join_room(pid, ws, code, name)
        return engine.room_manager.get_room(code), sockets

    return _make


@pytest.fixture
def predict_all(engine):
    """Submit a legal prediction for every remaining predictor, in turn."""
    async def _predict(room, choose=None):
        while room.state == GameState.PREDICTING and room.prediction_order:
            pid = room.prediction_order[0]
            forbidden = forbidden_prediction(
                room.cards_this_round, room.predictions, len(room.prediction_order)
            )
            guess = choose(pid) if choose else 0
            if guess == forbidden:
                guess = 1 if guess == 0 else guess - 1
            await engine.make_prediction(pid, room.code, guess)

    return _predict


@pytest.fixture
def play_tricks(engine, scheduler):
    """
    Play every remaining trick of the round with the first legal card.

    Stops with the end_round transition still pending.
    """
    async def _play(room):
        while room.state == GameState.PLAYING and room.total_tricks_won() < room.cards_this_round:
            pid = room.expected_player()
            hand = room.player_hands[pid]
            lead = room.current_trick[0].card.suit if room.current_trick else None
            index = next((i for i, card in enumerate(hand) if card.suit == lead), 0)
            await engine.play_card(pid, room.code, index)
            if not room.current_trick and room.total_tricks_won() < room.cards_this_round:
                await scheduler.run_all()

    return _play
