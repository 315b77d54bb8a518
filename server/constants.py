"""
Rule constants for Judgment.

This module is the single source of truth for rank ordering, the trump
rotation and round scoring.

Judgment Scoring:
    - Exact prediction: 10 points plus 11 per trick won
    - Missed prediction: lose 1 point per trick of difference
"""

# =============================================================================
# Cards
# =============================================================================

CARDS_PER_DECK = 52

# Comparison strength of each rank within a trick (Ace high)
RANK_ORDER: dict[str, int] = {
    '2': 2,
    '3': 3,
    '4': 4,
    '5': 5,
    '6': 6,
    '7': 7,
    '8': 8,
    '9': 9,
    '10': 10,
    'J': 11,
    'Q': 12,
    'K': 13,
    'A': 14,
}

# Trump suit for round N is TRUMP_ROTATION[(N - 1) % 4]
TRUMP_ROTATION: tuple[str, ...] = ("Spades", "Diamonds", "Clubs", "Hearts")


# =============================================================================
# Scoring
# =============================================================================

EXACT_PREDICTION_BONUS = 10
POINTS_PER_TRICK = 11


# =============================================================================
# Room Limits
# =============================================================================

MIN_PLAYERS = 2
MAX_PLAYERS = 4
MIN_DECKS = 1
MIN_ROUND_CARDS = 1
