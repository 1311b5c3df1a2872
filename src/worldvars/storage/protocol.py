"""Protocols for the host services the variable layer builds on.

The variable layer never owns simulation state. It consumes:
- AttributeStore: typed, named, untagged per-entity locals (ephemeral)
- EntityHost: principal classification, stable entity references,
  area lookup by tag, and entity snapshot/instantiate

World implements both. Tests and embedders may supply their own.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from worldvars.core.identity import EntityId

if TYPE_CHECKING:
    from worldvars.core.values.models import Location
    from worldvars.core.vartype.models import VarType


@runtime_checkable
class AttributeStore(Protocol):
    """Primitive per-entity variable store keyed by (type, name)."""

    def get_local(self, entity: EntityId, var_type: VarType, name: str) -> Any | None:
        """Get a local variable, or None if unset."""
        ...

    def set_local(self, entity: EntityId, var_type: VarType, name: str, value: Any) -> None:
        """Set a local variable."""
        ...

    def delete_local(self, entity: EntityId, var_type: VarType, name: str) -> bool:
        """Delete a local variable. Returns True if it existed."""
        ...

    def iter_locals(self, entity: EntityId) -> Iterator[tuple[VarType, str, Any]]:
        """Iterate (type, name, value) for every local on an entity."""
        ...


@runtime_checkable
class EntityHost(Protocol):
    """Simulation services needed to classify handles and encode values."""

    def entity_exists(self, entity: EntityId) -> bool:
        """Check if entity is alive."""
        ...

    def is_principal(self, entity: EntityId) -> bool:
        """Check if entity is a currently connected player."""
        ...

    def principal_key(self, entity: EntityId) -> str | None:
        """Stable key naming a player's durable save, or None if not a player."""
        ...

    def reference(self, entity: EntityId) -> str:
        """Encode an entity as a stable reference string."""
        ...

    def resolve(self, ref: str) -> EntityId:
        """Resolve a reference. Returns SystemEntity.INVALID if the referent is gone."""
        ...

    def area_tag(self, area: EntityId) -> str:
        """Tag of an area, or "" if the entity is not an area."""
        ...

    def find_area(self, tag: str) -> EntityId:
        """Area with the given tag, or SystemEntity.INVALID."""
        ...

    def snapshot(self, entity: EntityId) -> dict[str, Any] | None:
        """Full structural snapshot of an entity, or None if it does not exist."""
        ...

    def instantiate(
        self,
        snapshot: dict[str, Any],
        location: Location | None = None,
        container: EntityId | None = None,
    ) -> EntityId:
        """Create a fresh entity from a snapshot, placed at location or in container."""
        ...


@runtime_checkable
class SimulationHost(AttributeStore, EntityHost, Protocol):
    """Everything the variable accessors need from the simulation."""

    pass
