"""
Game rules for Judgment.

This module holds the pure parts of the game: cards and decks, turn-order
rotation, trick resolution, scoring and the round-size progression. It has
no knowledge of rooms, connections or timers; the engine calls into it.

Judgment Rules Summary:
    - Each round every player is dealt the same number of cards
    - Players predict, in turn, how many tricks they will win
    - The last predictor may not make the predictions add up to the
      number of tricks available, so somebody always misses
    - Players must follow the lead suit if they can
    - Trump beats every other suit; the trump suit rotates each round
    - Round size climbs from the minimum to the maximum and back down
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, TypeVar

from constants import (
    CARDS_PER_DECK,
    EXACT_PREDICTION_BONUS,
    MIN_DECKS,
    MAX_PLAYERS,
    MIN_PLAYERS,
    MIN_ROUND_CARDS,
    POINTS_PER_TRICK,
    RANK_ORDER,
    TRUMP_ROTATION,
)
from config import config
from exceptions import ValidationError

T = TypeVar("T")


class GameState(str, Enum):
    """
    Phase of a room's game.

    WAITING: Lobby, or between games
    PREDICTING: Players are declaring their trick predictions
    PLAYING: Tricks are being played
    SCORING: Round finished, next round not yet dealt
    """

    WAITING = "waiting"
    PREDICTING = "predicting"
    PLAYING = "playing"
    SCORING = "scoring"


class Suit(str, Enum):
    """Card suits, in trump-rotation order."""

    SPADES = "Spades"
    DIAMONDS = "Diamonds"
    CLUBS = "Clubs"
    HEARTS = "Hearts"


class Rank(str, Enum):
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"


@dataclass
class Card:
    """
    A playing card.

    Attributes:
        suit: The card's suit.
        rank: The card's rank (2-10, J, Q, K, A).
        deck_id: Which deck this card came from (0-indexed, for multi-deck games).
    """

    suit: Suit
    rank: Rank
    deck_id: int = 0

    @property
    def strength(self) -> int:
        """Rank strength for trick comparison (2 low, Ace 14)."""
        return RANK_ORDER[self.rank.value]

    def to_dict(self) -> dict:
        return {"rank": self.rank.value, "suit": self.suit.value}

    @classmethod
    def from_str(cls, text: str) -> "Card":
        """Parse shorthand like "QH" or "10S" (used by tests and tooling)."""
        rank, suit_letter = text[:-1], text[-1].upper()
        suit = next(s for s in Suit if s.value[0] == suit_letter)
        return cls(suit, Rank(rank))

    def __str__(self) -> str:
        return f"{self.rank.value} of {self.suit.value}"


class Deck:
    """
    One or more standard 52-card decks shuffled together.

    A seed may be given for deterministic shuffling.
    """

    def __init__(self, num_decks: int = 1, seed: Optional[int] = None) -> None:
        self.cards: list[Card] = []
        for deck_idx in range(num_decks):
            for suit in Suit:
                for rank in Rank:
                    self.cards.append(Card(suit, rank, deck_id=deck_idx))
        self.shuffle(seed)

    def shuffle(self, seed: Optional[int] = None) -> None:
        random.Random(seed).shuffle(self.cards)


def create_deck(number_of_decks: int) -> list[Card]:
    """Return a freshly shuffled list of ``52 * number_of_decks`` cards."""
    return Deck(number_of_decks).cards


@dataclass
class TrickPlay:
    """One card played into the current trick."""

    player_id: str
    player_name: str
    card: Card

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "card": self.card.to_dict(),
        }


# =============================================================================
# Turn order
# =============================================================================

def rotate(sequence: Sequence[T], start: int) -> list[T]:
    """
    Return ``sequence`` reordered to begin at index ``start``.

    ``start`` wraps around the sequence length, so a turn index that has
    grown past the player count still lands on a seat.

        >>> rotate(["a", "b", "c"], 1)
        ['b', 'c', 'a']
    """
    if not sequence:
        return []
    start %= len(sequence)
    return list(sequence[start:]) + list(sequence[:start])


def trump_for_round(round_number: int) -> Suit:
    """Trump suit for a 1-based round number."""
    return Suit(TRUMP_ROTATION[(round_number - 1) % len(TRUMP_ROTATION)])


# =============================================================================
# Configuration
# =============================================================================

def validate_game_config(
    number_of_decks: int,
    min_round_cards: int,
    max_round_cards: int,
    max_players: int,
) -> None:
    """
    Check room settings, raising ValidationError on the first problem.

    The deck must hold enough cards to deal the largest round to a full room.
    """
    if number_of_decks < MIN_DECKS:
        raise ValidationError("Number of decks must be at least 1")
    if number_of_decks > config.MAX_DECKS:
        raise ValidationError(f"Number of decks cannot exceed {config.MAX_DECKS}")
    if min_round_cards < MIN_ROUND_CARDS:
        raise ValidationError("Minimum round cards must be at least 1")
    if max_round_cards < MIN_ROUND_CARDS:
        raise ValidationError("Maximum round cards must be at least 1")
    if min_round_cards > max_round_cards:
        raise ValidationError("Minimum cards cannot exceed maximum cards")
    if max_players < MIN_PLAYERS:
        raise ValidationError("Need at least 2 players")
    if max_players > MAX_PLAYERS:
        raise ValidationError(f"At most {MAX_PLAYERS} players per room")
    if max_round_cards * max_players > CARDS_PER_DECK * number_of_decks:
        raise ValidationError("Not enough cards for the specified configuration")


# =============================================================================
# Predictions
# =============================================================================

def forbidden_prediction(
    cards_this_round: int,
    predictions: dict[str, int],
    remaining_predictors: int,
) -> Optional[int]:
    """
    The value the last predictor may not choose, for display.

    Only defined when exactly one predictor remains and the value is a
    prediction they could otherwise make. Advisory: make_prediction
    re-checks the rule itself.
    """
    if remaining_predictors != 1:
        return None
    forbidden = cards_this_round - sum(predictions.values())
    if 0 <= forbidden <= cards_this_round:
        return forbidden
    return None


# =============================================================================
# Tricks
# =============================================================================

def violates_follow_suit(hand: Sequence[Card], card_index: int, lead_suit: Optional[Suit]) -> bool:
    """True if playing hand[card_index] breaks the must-follow-suit rule."""
    if lead_suit is None:
        return False
    if hand[card_index].suit == lead_suit:
        return False
    return any(card.suit == lead_suit for card in hand)


def determine_trick_winner(trick: Sequence[TrickPlay], trump: Suit) -> TrickPlay:
    """
    Pick the winning play of a completed trick.

    A trump card beats any non-trump card. Among trumps, or among lead-suit
    cards when no trump was played, the highest rank wins and an equal rank
    played later takes the trick (possible with multiple decks). A card of
    neither trump nor the lead suit never wins.
    """
    if not trick:
        raise ValueError("Cannot resolve an empty trick")

    lead_suit = trick[0].card.suit
    winner = trick[0]
    winner_is_trump = winner.card.suit == trump

    for play in trick[1:]:
        is_trump = play.card.suit == trump
        if is_trump and not winner_is_trump:
            winner = play
            winner_is_trump = True
        elif is_trump == winner_is_trump and (is_trump or play.card.suit == lead_suit):
            if play.card.strength >= winner.card.strength:
                winner = play

    return winner


# =============================================================================
# Scoring and round progression
# =============================================================================

def round_score_delta(predicted: int, actual: int) -> int:
    """Points gained (or lost) for one player's round."""
    if predicted == actual:
        return EXACT_PREDICTION_BONUS + actual * POINTS_PER_TRICK
    return -abs(predicted - actual)


def next_round_size(
    cards_this_round: int,
    ascending: bool,
    min_round_cards: int,
    max_round_cards: int,
) -> Optional[tuple[int, bool]]:
    """
    Advance the round size.

    Returns the next ``(cards_this_round, ascending)``, or None once the
    descent has reached the minimum and the game is over. With min=1 and
    max=3 the rounds run 1, 2, 3, 2, 1.
    """
    if ascending:
        if cards_this_round < max_round_cards:
            return cards_this_round + 1, True
        # Peak reached: turn around
        if cards_this_round > min_round_cards:
            return cards_this_round - 1, False
        return None

    if cards_this_round > min_round_cards:
        return cards_this_round - 1, False
    return None
