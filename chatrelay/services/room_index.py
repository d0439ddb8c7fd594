# chatrelay/services/room_index.py

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Set

logger = logging.getLogger(__name__)

# ============================================================================
# ROOM MEMBERSHIP INDEX
# ============================================================================

class RoomIndex:
    """
    Maps room name -> set of connection ids currently in that room.

    Rooms are created lazily the first time someone joins them. When
    ``prune_empty`` is on (the default), a room entry is dropped as soon
    as its last member leaves, so abandoned room names do not accumulate
    for the lifetime of the process. Clients cannot tell the difference:
    an unknown room and an empty room both report no members.

    Data Structures:
        rooms: Maps room name -> Set of connection ids
               Example: {"general": {"c1f3...", "9a0b..."}}

    Usage:
        index = RoomIndex()
        index.add("general", connection_id)
        recipients = index.members("general")   # frozenset snapshot
    """

    def __init__(self, prune_empty: bool = True) -> None:
        self.rooms: Dict[str, Set[str]] = {}
        self.prune_empty = prune_empty

    def ensure(self, room: str) -> Set[str]:
        """
        Get the live member set for ``room``, creating an empty one if absent.

        The returned set is the index's own; use ``members`` for a snapshot.
        """
        if room not in self.rooms:
            self.rooms[room] = set()
            logger.debug("Created room '%s'", room)
        return self.rooms[room]

    def add(self, room: str, connection_id: str) -> None:
        self.ensure(room).add(connection_id)

    def remove(self, room: str, connection_id: str) -> None:
        """
        Remove ``connection_id`` from ``room``.

        No-op if either the room or the member is unknown. Prunes the room
        entry once it is empty and pruning is enabled.
        """
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members and self.prune_empty:
            del self.rooms[room]
            logger.debug("Pruned empty room '%s'", room)

    def members(self, room: str) -> FrozenSet[str]:
        """Immutable snapshot of the room's members (empty if unknown)."""
        return frozenset(self.rooms.get(room, ()))

    def room_names(self) -> List[str]:
        return list(self.rooms.keys())

    def __len__(self) -> int:
        return len(self.rooms)
