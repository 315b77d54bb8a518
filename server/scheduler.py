"""
Deferred phase transitions.

The engine never sleeps inside a handler. Anything that should happen
"after a pause" (prompting for predictions once hands are rendered, moving
on after a finished trick, dealing the next round) is scheduled here as a
ScheduledTransition and runs later on the same event loop.

Transitions are never cancelled when a room changes. Instead each one
remembers the room object, the state it expects and the room's epoch at
scheduling time, and when it fires it re-checks all three under the room
lock. If the room has gone, moved to another phase or been re-dealt, the
transition is dropped.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from game import GameState
from room import Room, RoomManager

logger = logging.getLogger(__name__)

TransitionAction = Callable[[Room], Awaitable[None]]


@dataclass
class ScheduledTransition:
    """A pending action for one room."""

    name: str
    room: Room
    expected_state: GameState
    epoch: int
    delay: float
    action: TransitionAction

    @property
    def room_code(self) -> str:
        return self.room.code

    def is_current(self, room: Optional[Room]) -> bool:
        """Whether the room this fires against is still the one it was scheduled for."""
        return (
            room is self.room
            and room.state == self.expected_state
            and room.epoch == self.epoch
        )


class TransitionScheduler:
    """
    Runs ScheduledTransitions after their delay on the running event loop.

    Args:
        room_manager: Store used to confirm the room still exists when a
            transition fires.
    """

    def __init__(self, room_manager: RoomManager) -> None:
        self.room_manager = room_manager
        self._tasks: set[asyncio.Task] = set()

    def schedule(
        self,
        room: Room,
        delay: float,
        expected_state: GameState,
        action: TransitionAction,
        name: str = "",
    ) -> ScheduledTransition:
        """
        Queue ``action`` to run against ``room`` after ``delay`` seconds.

        The action only runs if, at that time, the room is still registered
        under its code, is in ``expected_state`` and has not been re-dealt.
        """
        transition = ScheduledTransition(
            name=name or getattr(action, "__name__", "transition"),
            room=room,
            expected_state=expected_state,
            epoch=room.epoch,
            delay=delay,
            action=action,
        )
        self._enqueue(transition)
        return transition

    def _enqueue(self, transition: ScheduledTransition) -> None:
        task = asyncio.create_task(self._run_later(transition))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_later(self, transition: ScheduledTransition) -> None:
        await asyncio.sleep(transition.delay)
        try:
            await self.fire(transition)
        except Exception:
            logger.exception(f"Transition {transition.name} failed in room {transition.room_code}")

    async def fire(self, transition: ScheduledTransition) -> bool:
        """
        Run a transition now if it is still valid.

        Returns:
            True if the action ran, False if it was stale.
        """
        room = self.room_manager.get_room(transition.room_code)
        if room is None:
            logger.debug(f"Dropping {transition.name}: room {transition.room_code} is gone")
            return False

        async with room.game_lock:
            if not transition.is_current(room):
                logger.debug(
                    f"Dropping {transition.name} for room {room.code}: "
                    f"expected {transition.expected_state.value}/epoch {transition.epoch}, "
                    f"found {room.state.value}/epoch {room.epoch}"
                )
                return False
            await transition.action(room)
        return True

    def pending_count(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel every pending transition (server shutdown only)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
