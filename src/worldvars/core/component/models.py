"""Component models: registry metadata."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ComponentTypeMeta:
    """Metadata for registered component types.

    Attributes:
        type_name: Fully qualified class name, used as the snapshot key.
        transient: Transient components describe where an entity is, not what
            it is, and are left out of snapshots.
    """

    type_name: str
    transient: bool
