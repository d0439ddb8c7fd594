# chatrelay/api/routes/metrics.py
from fastapi import APIRouter
from datetime import datetime, timezone

from chatrelay.core import state

router = APIRouter()

@router.get("/metrics")
async def get_metrics():
    """
    Relay throughput and capacity since process start.

    Example Response:
        {
            "total_messages": 1200,
            "uptime_hours": 2.5,
            "messages_per_second": 0.13,
            "concurrent_connections": 42,
            "active_rooms": 3
        }
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    total = state.event_router.messages_relayed

    if uptime_seconds > 0:
        messages_per_second = total / uptime_seconds
    else:
        messages_per_second = 0

    return {
        "total_messages": total,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),
        "concurrent_connections": state.connection_manager.connection_count,
        "active_rooms": len(state.room_index),
    }
