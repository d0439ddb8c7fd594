# chatrelay/api/routes/health.py

from fastapi import APIRouter

from chatrelay.core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns:
        dict: Status, open connections, joined sessions, rooms with members
    """
    return {
        "status": "healthy",
        "connections": state.connection_manager.connection_count,
        "sessions": len(state.session_registry),
        "rooms": len(state.room_index),
    }
