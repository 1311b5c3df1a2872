"""Runtime value models and their stored document shapes.

Runtime values are what accessors take and return. Documents are the
Pydantic shapes the codec validates stored JSON against.

Usage:
    position = Vector3(1.0, 2.0, 0.5)
    spot = Location(area=area_id, position=position, facing=90.0)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict

from worldvars.core.identity import EntityId, SystemEntity


@dataclass(frozen=True, slots=True)
class Vector3:
    """Three-component position or direction."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True, slots=True)
class Location:
    """A point in an area, with facing in degrees.

    The area is a live handle. It is not stable across save/reload, so the
    codec stores the area's tag instead.
    """

    area: EntityId = SystemEntity.INVALID
    position: Vector3 = field(default_factory=Vector3)
    facing: float = 0.0

    def is_valid(self) -> bool:
        """Check whether the location points into an area."""
        return self.area != SystemEntity.INVALID


ZERO_VECTOR = Vector3()
INVALID_LOCATION = Location()


class VectorDocument(BaseModel):
    """Stored shape of a VECTOR value."""

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    x: float
    y: float
    z: float


class LocationDocument(BaseModel):
    """Stored shape of a LOCATION value."""

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    area: str
    position: VectorDocument
    facing: float


class LocalDocument(BaseModel):
    """One local variable inside an entity snapshot, value already encoded."""

    type: int
    name: str
    value: Any


class SnapshotDocument(BaseModel):
    """Stored shape of a SERIALIZED value: a full structural entity snapshot.

    Attributes:
        tag: Entity tag.
        kind: Entity kind (creature, item, placeable, ...).
        name: Display name.
        components: dump_component() documents of non-transient components.
        locals: Local variables with codec-encoded values.
        inventory: Snapshots of entities contained in this one.
    """

    tag: str = ""
    kind: str = ""
    name: str = ""
    components: list[dict[str, Any]] = []
    locals: list[LocalDocument] = []
    inventory: list[SnapshotDocument] = []
