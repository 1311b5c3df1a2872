"""Entity allocation service.

EntityAllocator is a stateful service that manages entity ID lifecycle.
"""

from __future__ import annotations

from worldvars.core.identity import EntityId, SystemEntity


class EntityAllocator:
    """Allocates entity IDs, recycling freed indices under a new generation.

    Indices below SystemEntity._RESERVED_COUNT are never handed out.
    """

    def __init__(self) -> None:
        self._next_index = SystemEntity._RESERVED_COUNT
        self._free: list[EntityId] = []
        self._live: dict[int, int] = {}  # index -> live generation

    def allocate(self) -> EntityId:
        """Allocate an entity ID, reusing a freed index when one is available.

        Returns:
            Newly allocated EntityId.
        """
        if self._free:
            entity = self._free.pop()
        else:
            entity = EntityId(index=self._next_index, generation=0)
            self._next_index += 1
        self._live[entity.index] = entity.generation
        return entity

    def deallocate(self, entity: EntityId) -> None:
        """Free an entity ID. Its index comes back with generation + 1.

        Args:
            entity: Entity ID to free.

        Raises:
            ValueError: If entity is not currently allocated.
        """
        if not self.is_alive(entity):
            raise ValueError(f"Cannot deallocate {entity}: not allocated")
        del self._live[entity.index]
        self._free.append(EntityId(index=entity.index, generation=entity.generation + 1))

    def is_alive(self, entity: EntityId) -> bool:
        """Check if an entity ID is allocated and not stale.

        Args:
            entity: Entity ID to check.

        Returns:
            True if the index is live with the same generation.
        """
        return self._live.get(entity.index) == entity.generation
