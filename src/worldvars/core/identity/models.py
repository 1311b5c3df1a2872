"""Entity identity models.

Usage:
    entity = EntityId(index=1042, generation=1)
    ref = entity.to_ref()            # "1042:1"
    EntityId.from_ref(ref) == entity

    SystemEntity.MODULE    # handle of the ephemeral module scope
    SystemEntity.CAMPAIGN  # handle of the global campaign scope
    SystemEntity.INVALID   # "no entity" sentinel
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EntityId:
    """Lightweight entity identifier with generation for safe handle reuse.

    A recycled index gets a new generation, so a handle kept across the
    referent's destruction never aliases the entity that reuses its slot.
    """

    index: int = 0
    generation: int = 0

    def __hash__(self) -> int:
        return hash((self.index, self.generation))

    def to_ref(self) -> str:
        """Encode as a stable reference string.

        Returns:
            String of the form "<index>:<generation>".
        """
        return f"{self.index}:{self.generation}"

    @classmethod
    def from_ref(cls, ref: str) -> EntityId | None:
        """Parse a reference produced by to_ref().

        Args:
            ref: Reference string.

        Returns:
            Parsed EntityId, or None if the string is not a valid reference.
        """
        index, sep, generation = ref.partition(":")
        if not sep:
            return None
        try:
            return cls(index=int(index), generation=int(generation))
        except ValueError:
            return None


class SystemEntity:
    """Reserved entity IDs. Never allocated, never destroyed."""

    MODULE = EntityId(index=0, generation=0)
    CAMPAIGN = EntityId(index=1, generation=0)
    INVALID = EntityId(index=0x7F000000, generation=0)

    _RESERVED_COUNT = 1000  # First 1000 indices reserved
