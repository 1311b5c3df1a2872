"""Local in-memory entity storage.

Holds every simulation entity, its components, and its local variables.
Local variables are the primitive ephemeral attribute store: typed and named,
but untagged, unstamped and never persisted.

Usage:
    storage = LocalStorage()
    entity = storage.create_entity()
    storage.set_local(entity, VarType.INT, "hp", 10)
    storage.get_local(entity, VarType.INT, "hp")   # 10
"""

from __future__ import annotations

import copy as cp
from collections.abc import Iterator
from typing import Any, TypeVar

from worldvars.core.identity import EntityId
from worldvars.core.vartype.models import VarType, require_single
from worldvars.storage.allocator import EntityAllocator

T = TypeVar("T")


class LocalStorage:
    """Simple in-memory storage using nested dicts.

    Structure:
        _components[entity][component_type] = component_instance
        _locals[entity][(var_type, name)] = value

    Reserved entities (see SystemEntity) bypass the allocator and are added
    with add_reserved().
    """

    def __init__(self) -> None:
        self._allocator = EntityAllocator()
        self._components: dict[EntityId, dict[type, Any]] = {}
        self._locals: dict[EntityId, dict[tuple[VarType, str], Any]] = {}
        self._reserved: set[EntityId] = set()

    def create_entity(self) -> EntityId:
        """Create a new entity and return its ID."""
        entity = self._allocator.allocate()
        self._components[entity] = {}
        self._locals[entity] = {}
        return entity

    def add_reserved(self, entity: EntityId) -> None:
        """Make a reserved entity exist without going through the allocator."""
        self._reserved.add(entity)
        self._components.setdefault(entity, {})
        self._locals.setdefault(entity, {})

    def destroy_entity(self, entity: EntityId) -> None:
        """Destroy an entity, its components and its locals.

        Reserved entities and unknown entities are ignored.
        """
        if entity in self._reserved or not self.entity_exists(entity):
            return
        del self._components[entity]
        del self._locals[entity]
        self._allocator.deallocate(entity)

    def entity_exists(self, entity: EntityId) -> bool:
        """Check if an entity exists and is alive."""
        if entity in self._reserved:
            return True
        return entity in self._components and self._allocator.is_alive(entity)

    def all_entities(self) -> Iterator[EntityId]:
        """Iterate over all alive entities, reserved ones included."""
        for entity in list(self._components):
            if self.entity_exists(entity):
                yield entity

    # Components

    def get_component(
        self, entity: EntityId, component_type: type[T], copy: bool = True
    ) -> T | None:
        """Get a component from an entity.

        Args:
            entity: Entity to query.
            component_type: Type of component to retrieve.
            copy: Whether to return a deep copy (default True).

        Returns:
            Component instance or None if not present.
        """
        component = self._components.get(entity, {}).get(component_type)
        if component is None:
            return None
        return cp.deepcopy(component) if copy else component

    def set_component(self, entity: EntityId, component: Any) -> None:
        """Set or update a component on an entity. Unknown entities are ignored."""
        if not self.entity_exists(entity):
            return
        self._components[entity][type(component)] = component

    def has_component(self, entity: EntityId, component_type: type) -> bool:
        """Check if an entity has a component type."""
        return component_type in self._components.get(entity, {})

    def get_components(self, entity: EntityId, copy: bool = True) -> list[Any]:
        """All components on an entity, in insertion order."""
        components = list(self._components.get(entity, {}).values())
        return cp.deepcopy(components) if copy else components

    def query(
        self, *component_types: type, copy: bool = True
    ) -> Iterator[tuple[EntityId, tuple[Any, ...]]]:
        """Find entities with all specified components.

        O(n) scan over every entity.

        Yields:
            Tuples of (entity, (component1, component2, ...)) for each match.
        """
        for entity in self.all_entities():
            components = self._components[entity]
            if all(t in components for t in component_types):
                found = tuple(components[t] for t in component_types)
                yield entity, cp.deepcopy(found) if copy else found

    # Local variables

    def get_local(self, entity: EntityId, var_type: VarType, name: str) -> Any | None:
        """Get a local variable, or None if unset. Mutable values are copied."""
        value = self._locals.get(entity, {}).get((require_single(var_type), name))
        return cp.deepcopy(value)

    def set_local(self, entity: EntityId, var_type: VarType, name: str, value: Any) -> None:
        """Set a local variable. Unknown entities are ignored."""
        if not self.entity_exists(entity):
            return
        self._locals[entity][(require_single(var_type), name)] = cp.deepcopy(value)

    def delete_local(self, entity: EntityId, var_type: VarType, name: str) -> bool:
        """Delete a local variable. Returns True if it existed."""
        key = (require_single(var_type), name)
        entity_locals = self._locals.get(entity, {})
        if key not in entity_locals:
            return False
        del entity_locals[key]
        return True

    def iter_locals(self, entity: EntityId) -> Iterator[tuple[VarType, str, Any]]:
        """Iterate (type, name, value) for every local on an entity, sorted by key."""
        entries = sorted(
            self._locals.get(entity, {}).items(),
            key=lambda item: (int(item[0][0]), item[0][1]),
        )
        for (var_type, name), value in entries:
            yield var_type, name, cp.deepcopy(value)
