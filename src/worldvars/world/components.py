"""Built-in components the host attaches to simulation entities.

These describe where an entity is and who it belongs to. They are transient:
snapshots carry identity fields and user components, and instantiate()
rebuilds placement from its arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from worldvars.core.component import component
from worldvars.core.identity import EntityId
from worldvars.core.values.models import Vector3


@component(transient=True)
@dataclass(slots=True)
class Identity:
    """Tag, kind and display name of an entity."""

    tag: str = ""
    kind: str = ""
    name: str = ""


@component(transient=True)
@dataclass(slots=True)
class Placement:
    """Position of an entity inside an area."""

    area: EntityId
    position: Vector3 = field(default_factory=Vector3)
    facing: float = 0.0


@component(transient=True)
@dataclass(slots=True)
class Owner:
    """Container (creature, chest, bag) holding an entity."""

    container: EntityId


@component(transient=True)
@dataclass(slots=True)
class Principal:
    """Marks a connected player and names their durable save."""

    key: str
