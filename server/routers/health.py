"""
Health check endpoints for production deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (can the app handle requests?)
- /metrics - Room and game counts for monitoring
"""

import logging
from collections import Counter
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Service references (set during app initialization)
_room_manager = None
_scheduler = None


def set_health_dependencies(room_manager=None, scheduler=None):
    """Set dependencies for health checks."""
    global _room_manager, _scheduler
    _room_manager = room_manager
    _scheduler = scheduler


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - can the app accept games?

    Returns 503 until the room manager has been wired in.
    """
    ready = _room_manager is not None
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "starting",
            "checks": {"room_manager": {"status": "ok" if ready else "not_configured"}},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get("/metrics")
async def metrics():
    """Expose room and game metrics for dashboards and alerting."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = list(_room_manager)
        by_state = Counter(room.state.value for room in rooms)
        metrics_data.update({
            "active_rooms": len(rooms),
            "total_players": sum(len(room.players) for room in rooms),
            "games_in_progress": sum(count for state, count in by_state.items() if state != "waiting"),
            "rooms_by_state": dict(by_state),
        })

    if _scheduler is not None:
        metrics_data["pending_transitions"] = _scheduler.pending_count()

    return metrics_data
