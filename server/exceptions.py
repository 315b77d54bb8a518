"""
Game rule violations raised by the engine.

Every error is a user error: handlers catch GameError and report its
message to the offending connection, leaving room state untouched.
"""


class GameError(Exception):
    """Base class for all rejected player actions."""

    default_message = "Invalid action"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return self.args[0]


# ============ Room errors ============

class ValidationError(GameError):
    """A room setting or action argument is out of range."""
    default_message = "Invalid value"


class RoomExistsError(GameError):
    default_message = "Room already exists"


class NotFoundError(GameError):
    default_message = "Room not found"


class AlreadyJoinedError(GameError):
    default_message = "You are already in this room"


class GameInProgressError(GameError):
    default_message = "Game has already started"


class RoomFullError(GameError):
    default_message = "Room is full"


class NotHostError(GameError):
    default_message = "Only the host can start the game"


class NotEnoughPlayersError(GameError):
    default_message = "Need at least 2 players to start"


class NotInRoomError(GameError):
    default_message = "Player not found in room"


# ============ Turn errors ============

class WrongPhaseError(GameError):
    """The room is not in the state the action belongs to."""
    default_message = "Action not allowed in the current phase"


class NotYourTurnError(GameError):
    default_message = "It's not your turn"


class ForbiddenPredictionError(GameError):
    """The last predictor tried to make the total equal the tricks available."""
    default_message = "Last player's prediction cannot make total equal to number of tricks"


class InvalidCardError(GameError):
    default_message = "Invalid card selection"


class MustFollowSuitError(GameError):
    default_message = "You must follow the lead suit if possible"
