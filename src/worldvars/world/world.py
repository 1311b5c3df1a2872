"""World: the simulation host the variable layer runs against.

Owns every entity, its components and its local variables, and implements
the AttributeStore and EntityHost protocols.

Usage:
    world = World()

    area = world.create_area("town_square")
    pc = world.connect("alice", location=Location(area, Vector3(5, 5, 0)))
    chest = world.spawn(tag="chest", kind="placeable", location=world.location_of(pc))

    world.set_local(chest, VarType.INT, "gold", 100)

    doc = world.snapshot(chest)                    # structural copy
    copy = world.instantiate(doc, container=pc)    # fresh entity from it
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterator
from typing import Any, TypeVar

from worldvars.core.component import dump_component, get_registry, load_component
from worldvars.core.identity import EntityId, SystemEntity
from worldvars.core.types import Copy
from worldvars.core.values.codec import ValueCodec
from worldvars.core.values.models import INVALID_LOCATION, Location, SnapshotDocument
from worldvars.core.vartype import VarType, type_of
from worldvars.storage.local import LocalStorage
from worldvars.world.components import Identity, Owner, Placement, Principal

logger = logging.getLogger(__name__)

ComponentT = TypeVar("ComponentT")

AREA = "area"
PLAYER = "player"


class World:
    """Central simulation state.

    Args:
        storage: Entity storage (a fresh LocalStorage by default).
    """

    def __init__(self, storage: LocalStorage | None = None):
        self._storage = storage or LocalStorage()
        self._codec = ValueCodec(self)
        self._ensure_system_entities()

    def _ensure_system_entities(self) -> None:
        """Create reserved singleton entities if not present."""
        for entity in (SystemEntity.MODULE, SystemEntity.CAMPAIGN):
            self._storage.add_reserved(entity)

    # Entity lifecycle

    def spawn(
        self,
        *components: Any,
        tag: str = "",
        kind: str = "",
        name: str = "",
        location: Location | None = None,
        container: EntityId | None = None,
    ) -> EntityId:
        """Create an entity, optionally placed at a location or inside a container.

        Args:
            *components: Components to attach.
            tag: Entity tag.
            kind: Entity kind (area, player, creature, item, ...).
            name: Display name.
            location: Where to place the entity.
            container: Entity holding this one. Takes precedence over location.

        Returns:
            The new entity.
        """
        entity = self._storage.create_entity()
        self._storage.set_component(entity, Identity(tag=tag, kind=kind, name=name))
        seen_types: set[type] = set()
        for comp in components:
            comp_type = type(comp)
            if comp_type in seen_types:
                warnings.warn(
                    f"spawn() received multiple components of type {comp_type.__name__}. "
                    f"Only the last one will be kept.",
                    stacklevel=2,
                )
            seen_types.add(comp_type)
            self._storage.set_component(entity, comp)
        if container is not None:
            self._storage.set_component(entity, Owner(container))
        elif location is not None:
            self._storage.set_component(
                entity, Placement(location.area, location.position, location.facing)
            )
        return entity

    def destroy(self, entity: EntityId) -> None:
        """Destroy an entity and everything it contains."""
        for item in self.inventory(entity):
            self.destroy(item)
        self._storage.destroy_entity(entity)

    def create_area(self, tag: str, name: str = "") -> EntityId:
        """Create an area entity. Locations refer to areas by tag when stored."""
        return self.spawn(tag=tag, kind=AREA, name=name)

    def connect(
        self, key: str, tag: str = "", name: str = "", location: Location | None = None
    ) -> EntityId:
        """Create the entity of a player joining the world.

        Args:
            key: Stable key naming the player's durable save.
            tag: Entity tag.
            name: Display name.
            location: Where the player appears.

        Returns:
            The player's entity, valid until disconnect().
        """
        entity = self.spawn(Principal(key), tag=tag, kind=PLAYER, name=name, location=location)
        logger.debug("Player %s connected as %s", key, entity)
        return entity

    def disconnect(self, entity: EntityId) -> None:
        """Remove a player's entity. Handles kept by scripts become stale."""
        if self.is_principal(entity):
            logger.debug("Player %s disconnected", self.principal_key(entity))
            self.destroy(entity)

    # Component access

    def get_copy(
        self, entity: EntityId, component_type: type[ComponentT]
    ) -> Copy[ComponentT] | None:
        """Get a component copy. Modifications must be written back via set()."""
        return self._storage.get_component(entity, component_type, copy=True)

    def set(self, entity: EntityId, component: Any) -> None:
        """Set a component."""
        self._storage.set_component(entity, component)

    def query_copies(self, *component_types: type) -> Iterator[tuple[EntityId, ...]]:
        """Query entities with specified component types.

        Yields:
            (entity, component1, component2, ...) with copied components.
        """
        for entity, components in self._storage.query(*component_types, copy=True):
            yield (entity, *components)

    def tag_of(self, entity: EntityId) -> str:
        """Tag of an entity, or "" if it does not exist."""
        identity = self._storage.get_component(entity, Identity, copy=False)
        return identity.tag if identity is not None else ""

    def find_by_tag(self, tag: str, nth: int = 0) -> EntityId:
        """The nth entity with a tag, or SystemEntity.INVALID."""
        matches = [
            entity
            for entity, identity in self._storage.query(Identity, copy=False)
            if identity[0].tag == tag
        ]
        return matches[nth] if nth < len(matches) else SystemEntity.INVALID

    def location_of(self, entity: EntityId) -> Location:
        """Location of an entity, or the invalid location if it is not placed."""
        placement = self._storage.get_component(entity, Placement, copy=False)
        if placement is None:
            return INVALID_LOCATION
        return Location(placement.area, placement.position, placement.facing)

    def container_of(self, entity: EntityId) -> EntityId:
        """Entity holding this one, or SystemEntity.INVALID."""
        owner = self._storage.get_component(entity, Owner, copy=False)
        return owner.container if owner is not None else SystemEntity.INVALID

    def inventory(self, entity: EntityId) -> list[EntityId]:
        """Entities directly contained in an entity."""
        return [
            item
            for item, (owner,) in self._storage.query(Owner, copy=False)
            if owner.container == entity
        ]

    # AttributeStore

    def get_local(self, entity: EntityId, var_type: VarType, name: str) -> Any | None:
        """Get a local variable, or None if unset."""
        return self._storage.get_local(entity, var_type, name)

    def set_local(self, entity: EntityId, var_type: VarType, name: str, value: Any) -> None:
        """Set a local variable. Ignored for entities that do not exist."""
        self._storage.set_local(entity, var_type, name, value)

    def delete_local(self, entity: EntityId, var_type: VarType, name: str) -> bool:
        """Delete a local variable. Returns True if it existed."""
        return self._storage.delete_local(entity, var_type, name)

    def iter_locals(self, entity: EntityId) -> Iterator[tuple[VarType, str, Any]]:
        """Iterate (type, name, value) for every local on an entity."""
        return self._storage.iter_locals(entity)

    # EntityHost

    def entity_exists(self, entity: EntityId) -> bool:
        """Check if entity is alive."""
        return self._storage.entity_exists(entity)

    def is_principal(self, entity: EntityId) -> bool:
        """Check if entity is a connected player."""
        return self._storage.has_component(entity, Principal) and self.entity_exists(entity)

    def principal_key(self, entity: EntityId) -> str | None:
        """Durable save key of a connected player, or None."""
        principal = self._storage.get_component(entity, Principal, copy=False)
        return principal.key if principal is not None else None

    def reference(self, entity: EntityId) -> str:
        """Encode an entity as a stable reference string."""
        return entity.to_ref()

    def resolve(self, ref: str) -> EntityId:
        """Resolve a reference, or SystemEntity.INVALID if the referent is gone."""
        entity = EntityId.from_ref(ref)
        if entity is None or not self.entity_exists(entity):
            return SystemEntity.INVALID
        return entity

    def area_tag(self, area: EntityId) -> str:
        """Tag of an area, or "" if the entity is not an area."""
        identity = self._storage.get_component(area, Identity, copy=False)
        if identity is None or identity.kind != AREA:
            return ""
        return identity.tag

    def find_area(self, tag: str) -> EntityId:
        """Area with the given tag, or SystemEntity.INVALID."""
        if not tag:
            return SystemEntity.INVALID
        for entity, (identity,) in self._storage.query(Identity, copy=False):
            if identity.kind == AREA and identity.tag == tag:
                return entity
        return SystemEntity.INVALID

    def snapshot(self, entity: EntityId) -> dict[str, Any] | None:
        """Full structural snapshot of an entity.

        Includes identity, registered non-transient components, locals whose
        value matches their declared type, and the snapshots of everything the
        entity contains. Placement and ownership are not included.

        Returns:
            A SnapshotDocument-shaped dict, or None for reserved or missing entities.
        """
        if entity in (SystemEntity.MODULE, SystemEntity.CAMPAIGN):
            return None
        if not self.entity_exists(entity):
            return None

        registry = get_registry()
        identity = self._storage.get_component(entity, Identity, copy=False) or Identity()
        components = []
        for comp in self._storage.get_components(entity, copy=False):
            meta = registry.get_meta(type(comp))
            if meta is None or meta.transient:
                continue
            components.append(dump_component(comp))

        local_docs = []
        for var_type, name, value in self.iter_locals(entity):
            if type_of(value) != var_type:
                logger.debug("Snapshot of %s skips local %s of %r", entity, name, var_type)
                continue
            local_docs.append(
                {"type": int(var_type), "name": name, "value": self._codec.encode(var_type, value)}
            )

        return {
            "tag": identity.tag,
            "kind": identity.kind,
            "name": identity.name,
            "components": components,
            "locals": local_docs,
            "inventory": [
                doc for item in self.inventory(entity) if (doc := self.snapshot(item)) is not None
            ],
        }

    def instantiate(
        self,
        snapshot: dict[str, Any],
        location: Location | None = None,
        container: EntityId | None = None,
    ) -> EntityId:
        """Create a fresh entity from a snapshot.

        Args:
            snapshot: Document produced by snapshot().
            location: Where to place the entity.
            container: Entity to place it into. Takes precedence over location.

        Returns:
            The new entity, or SystemEntity.INVALID if the target container
            does not exist or the location is not inside an area.

        Raises:
            pydantic.ValidationError: If snapshot is not a snapshot document.
        """
        doc = SnapshotDocument.model_validate(snapshot)
        if container is not None:
            if not self.entity_exists(container):
                return SystemEntity.INVALID
            location = None
        elif location is not None and not location.is_valid():
            return SystemEntity.INVALID

        entity = self.spawn(
            *(load_component(c) for c in doc.components),
            tag=doc.tag,
            kind=doc.kind,
            name=doc.name,
            location=location,
            container=container,
        )
        for local in doc.locals:
            var_type = VarType(local.type)
            self.set_local(entity, var_type, local.name, self._codec.decode(var_type, local.value))
        for item in doc.inventory:
            self.instantiate(item.model_dump(), container=entity)
        return entity
