"""Typed variable accessors over the three storage scopes.

Every accessor takes a handle first. The handle picks the scope:
None or SystemEntity.MODULE for the ephemeral module scope,
SystemEntity.CAMPAIGN for the campaign, a connected player for that player.
Any other handle makes reads return the type's zero value and writes do
nothing.

Records are keyed by (type, name, tag). The same name may hold an INT and a
STRING at once, and an untagged record is distinct from a tagged one.

Usage:
    variables = Variables(world)

    variables.set_int(pc, "gold", 100)
    variables.increment_int(pc, "gold", 25)        # 125
    variables.get_int(pc, "gold")                  # 125
    variables.get_int(pc, "never_set")             # 0

    # Bound views
    campaign = variables.campaign
    campaign.set_string("ruler", "Aribeth", tag="neverwinter")
    campaign[VarType.STRING, "ruler", "neverwinter"]    # "Aribeth"

    # Bulk operations use case-sensitive globs
    variables.delete_by_pattern(None, types=VarType.INT, name="tmp_*")
"""

from __future__ import annotations

import functools
import logging
import warnings
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from worldvars.config.settings import VariableSettings
from worldvars.core.identity import EntityId, SystemEntity
from worldvars.core.query import PatternFilter, Statement, VariableRecord
from worldvars.core.query import operations as statements
from worldvars.core.types import Handle
from worldvars.core.values.codec import ValueCodec, zero_value
from worldvars.core.values.models import Location, Vector3
from worldvars.core.vartype import VarType
from worldvars.storage.sqlite import DatabaseProvider
from worldvars.world.migration import Migrator, unix_now
from worldvars.world.scope import Scope, ScopeRegistry

if TYPE_CHECKING:
    from worldvars.storage.protocol import SimulationHost

logger = logging.getLogger(__name__)


class Variables:
    """Entry point for scoped, typed, tagged variables.

    Args:
        host: Simulation host (usually a World).
        settings: Table names, data directory and separators. Loaded from
            the environment when omitted.
        clock: Returns the Unix time stamped on every write.
        databases: Opens the database of each scope. Built from settings
            when omitted.
    """

    def __init__(
        self,
        host: SimulationHost,
        settings: VariableSettings | None = None,
        clock: Callable[[], int] | None = None,
        databases: DatabaseProvider | None = None,
    ):
        self._host = host
        self._settings = settings or VariableSettings()
        self._clock = clock or unix_now
        self._databases = databases or DatabaseProvider(self._settings)
        self._registry = ScopeRegistry(host, self._databases, self._settings)
        self._codec = ValueCodec(host)
        self._migrator = Migrator(host, self._registry, self._codec, self._settings, self._clock)

    @property
    def registry(self) -> ScopeRegistry:
        """Scope registry resolving handles for this instance."""
        return self._registry

    def close(self) -> None:
        """Close every database. The module scope is discarded."""
        self._databases.close()
        self._registry.reset()

    def __enter__(self) -> Variables:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Bound views

    @property
    def module(self) -> ScopedVariables:
        """View bound to the ephemeral module scope."""
        return ScopedVariables(self, SystemEntity.MODULE)

    @property
    def campaign(self) -> ScopedVariables:
        """View bound to the campaign scope."""
        return ScopedVariables(self, SystemEntity.CAMPAIGN)

    def player(self, entity: EntityId) -> ScopedVariables:
        """View bound to a player's scope."""
        return ScopedVariables(self, entity)

    def scope(self, handle: Handle) -> ScopedVariables:
        """View bound to whatever scope the handle selects."""
        return ScopedVariables(self, handle)

    # Generic point access

    def set(self, handle: Handle, var_type: VarType, name: str, value: Any, tag: str = "") -> None:
        """Insert or overwrite one record.

        A SERIALIZED value naming an entity that does not exist is not stored.
        """
        scope = self._registry.resolve(handle)
        if scope is None:
            return
        raw = self._codec.encode(var_type, value)
        if raw is None:
            logger.debug("Nothing to store for %s %s on %s", var_type.name, name, handle)
            return
        scope.database.execute(
            statements.upsert_variable(scope.table, var_type, name, raw, tag, self._clock())
        )

    def get(
        self,
        handle: Handle,
        var_type: VarType,
        name: str,
        tag: str = "",
        *,
        location: Location | None = None,
        container: EntityId | None = None,
    ) -> Any:
        """Read one record, or the type's zero value when it is absent.

        Raises:
            CodecError: If the stored value does not have var_type's shape.
        """
        scope = self._registry.resolve(handle)
        if scope is None:
            return zero_value(var_type)
        rows = scope.database.execute(statements.select_variable(scope.table, var_type, name, tag))
        raw = rows[0]["value"] if rows else None
        return self._codec.decode(var_type, raw, location=location, container=container)

    def delete(self, handle: Handle, var_type: VarType, name: str, tag: str = "") -> Any:
        """Delete one record and return the value it held.

        Absent records return the zero value. SERIALIZED records return their
        snapshot document (None when absent) without instantiating it.
        """
        scope = self._registry.resolve(handle)
        if scope is None:
            return self._codec.decode_document(var_type, None)
        rows = scope.database.execute(statements.delete_variable(scope.table, var_type, name, tag))
        raw = rows[0]["value"] if rows else None
        return self._codec.decode_document(var_type, raw)

    def retag(self, handle: Handle, var_type: VarType, name: str, tag: str, new_tag: str) -> bool:
        """Move a record from one tag to another.

        A record already stored under new_tag is replaced.

        Returns:
            True if the record existed.
        """
        scope = self._registry.resolve(handle)
        if scope is None:
            return False
        statement = statements.retag_variable(
            scope.table, var_type, name, tag, new_tag, self._clock()
        )
        return scope.database.execute_count(statement) > 0

    def _accumulate(
        self,
        handle: Handle,
        var_type: VarType,
        name: str,
        delta: Any,
        tag: str,
        build: Callable[..., Statement],
    ) -> Any:
        scope = self._registry.resolve(handle)
        if scope is None:
            return zero_value(var_type)
        with scope.database.transaction():
            rows = scope.database.execute(
                build(scope.table, var_type, name, delta, tag, self._clock())
            )
            raw = rows[0]["value"]
            # SQLite turns an overflowing integer sum into a REAL
            if var_type == VarType.INT and not isinstance(raw, int):
                raise OverflowError(f"INT variable {name!r} would leave the 64-bit range")
        return self._codec.decode(var_type, raw)

    # INT

    def set_int(self, handle: Handle, name: str, value: int, tag: str = "") -> None:
        self.set(handle, VarType.INT, name, value, tag)

    def get_int(self, handle: Handle, name: str, tag: str = "") -> int:
        return self.get(handle, VarType.INT, name, tag)  # type: ignore[no-any-return]

    def delete_int(self, handle: Handle, name: str, tag: str = "") -> int:
        return self.delete(handle, VarType.INT, name, tag)  # type: ignore[no-any-return]

    def increment_int(self, handle: Handle, name: str, delta: int = 1, tag: str = "") -> int:
        """Add delta atomically and return the new value. Absent counts as 0.

        Values are 64-bit signed integers.

        Raises:
            OverflowError: If the result leaves the 64-bit range. The stored
                value is left unchanged.
        """
        return self._accumulate(  # type: ignore[no-any-return]
            handle, VarType.INT, name, int(delta), tag, statements.increment_variable
        )

    def decrement_int(self, handle: Handle, name: str, delta: int = 1, tag: str = "") -> int:
        """Subtract delta atomically and return the new value. Absent counts as 0."""
        return self.increment_int(handle, name, -int(delta), tag)

    # FLOAT

    def set_float(self, handle: Handle, name: str, value: float, tag: str = "") -> None:
        self.set(handle, VarType.FLOAT, name, value, tag)

    def get_float(self, handle: Handle, name: str, tag: str = "") -> float:
        return self.get(handle, VarType.FLOAT, name, tag)  # type: ignore[no-any-return]

    def delete_float(self, handle: Handle, name: str, tag: str = "") -> float:
        return self.delete(handle, VarType.FLOAT, name, tag)  # type: ignore[no-any-return]

    def increment_float(
        self, handle: Handle, name: str, delta: float = 1.0, tag: str = ""
    ) -> float:
        """Add delta atomically and return the new value. Absent counts as 0.0."""
        return self._accumulate(  # type: ignore[no-any-return]
            handle, VarType.FLOAT, name, float(delta), tag, statements.increment_variable
        )

    def decrement_float(
        self, handle: Handle, name: str, delta: float = 1.0, tag: str = ""
    ) -> float:
        """Subtract delta atomically and return the new value. Absent counts as 0.0."""
        return self.increment_float(handle, name, -float(delta), tag)

    # STRING

    def set_string(self, handle: Handle, name: str, value: str, tag: str = "") -> None:
        self.set(handle, VarType.STRING, name, value, tag)

    def get_string(self, handle: Handle, name: str, tag: str = "") -> str:
        return self.get(handle, VarType.STRING, name, tag)  # type: ignore[no-any-return]

    def delete_string(self, handle: Handle, name: str, tag: str = "") -> str:
        return self.delete(handle, VarType.STRING, name, tag)  # type: ignore[no-any-return]

    def append_string(self, handle: Handle, name: str, suffix: str, tag: str = "") -> str:
        """Append suffix atomically and return the new value. Absent counts as ""."""
        return self._accumulate(  # type: ignore[no-any-return]
            handle, VarType.STRING, name, str(suffix), tag, statements.append_variable
        )

    # ENTITY

    def set_entity(self, handle: Handle, name: str, value: EntityId, tag: str = "") -> None:
        self.set(handle, VarType.ENTITY, name, value, tag)

    def get_entity(self, handle: Handle, name: str, tag: str = "") -> EntityId:
        """Stored entity, or SystemEntity.INVALID if it no longer exists."""
        return self.get(handle, VarType.ENTITY, name, tag)  # type: ignore[no-any-return]

    def delete_entity(self, handle: Handle, name: str, tag: str = "") -> EntityId:
        return self.delete(handle, VarType.ENTITY, name, tag)  # type: ignore[no-any-return]

    # VECTOR

    def set_vector(self, handle: Handle, name: str, value: Vector3, tag: str = "") -> None:
        self.set(handle, VarType.VECTOR, name, value, tag)

    def get_vector(self, handle: Handle, name: str, tag: str = "") -> Vector3:
        return self.get(handle, VarType.VECTOR, name, tag)  # type: ignore[no-any-return]

    def delete_vector(self, handle: Handle, name: str, tag: str = "") -> Vector3:
        return self.delete(handle, VarType.VECTOR, name, tag)  # type: ignore[no-any-return]

    # LOCATION

    def set_location(self, handle: Handle, name: str, value: Location, tag: str = "") -> None:
        """Store a location. The area is stored by tag and looked up again on read."""
        self.set(handle, VarType.LOCATION, name, value, tag)

    def get_location(self, handle: Handle, name: str, tag: str = "") -> Location:
        return self.get(handle, VarType.LOCATION, name, tag)  # type: ignore[no-any-return]

    def delete_location(self, handle: Handle, name: str, tag: str = "") -> Location:
        return self.delete(handle, VarType.LOCATION, name, tag)  # type: ignore[no-any-return]

    # JSON

    def set_json(self, handle: Handle, name: str, value: Any, tag: str = "") -> None:
        self.set(handle, VarType.JSON, name, value, tag)

    def get_json(self, handle: Handle, name: str, tag: str = "") -> Any:
        return self.get(handle, VarType.JSON, name, tag)

    def delete_json(self, handle: Handle, name: str, tag: str = "") -> Any:
        return self.delete(handle, VarType.JSON, name, tag)

    # SERIALIZED

    def set_serialized(self, handle: Handle, name: str, value: EntityId, tag: str = "") -> None:
        """Store a full snapshot of an entity and everything it contains."""
        self.set(handle, VarType.SERIALIZED, name, value, tag)

    def get_serialized(
        self,
        handle: Handle,
        name: str,
        tag: str = "",
        *,
        location: Location | None = None,
        container: EntityId | None = None,
    ) -> EntityId:
        """Instantiate a fresh entity from a stored snapshot.

        Each call creates a new entity. The stored record is unchanged.

        Args:
            handle: Scope handle.
            name: Variable name.
            tag: Variable tag.
            location: Where to place the new entity.
            container: Entity to place it into. Takes precedence over location.

        Returns:
            The new entity, or SystemEntity.INVALID if nothing is stored or
            the target is not valid.
        """
        return self.get(  # type: ignore[no-any-return]
            handle, VarType.SERIALIZED, name, tag, location=location, container=container
        )

    def delete_serialized(
        self, handle: Handle, name: str, tag: str = ""
    ) -> dict[str, Any] | None:
        """Delete a snapshot and return its document, or None if absent."""
        return self.delete(handle, VarType.SERIALIZED, name, tag)  # type: ignore[no-any-return]

    # Bulk

    def delete_all(self, handle: Handle) -> int:
        """Delete every record of a scope. Returns the number removed."""
        scope = self._registry.resolve(handle)
        if scope is None:
            return 0
        removed = scope.database.execute_count(statements.delete_all(scope.table))
        logger.info("Cleared %d records from %s scope %s", removed, scope.kind.name, scope.key)
        return removed

    def delete_by_pattern(
        self,
        handle: Handle,
        types: VarType = VarType.ALL,
        name: str = "",
        tag: str = "",
        time: int = 0,
    ) -> int:
        """Delete every record matching a pattern.

        Empty name and tag globs match anything. A negative time selects
        records written before abs(time), a positive one records written
        after it.

        Returns:
            Number of records removed.
        """
        pattern = PatternFilter(types=types, name=name, tag=tag, time=time)
        if pattern.matches_nothing():
            warnings.warn(
                "delete_by_pattern() called with VarType.NONE deletes nothing.",
                stacklevel=2,
            )
            return 0
        scope = self._registry.resolve(handle)
        if scope is None:
            return 0
        self._check_unfiltered(pattern, "delete_by_pattern", scope)
        return scope.database.execute_count(statements.delete_by_pattern(scope.table, pattern))

    def get_by_pattern(
        self,
        handle: Handle,
        types: VarType = VarType.ALL,
        name: str = "",
        tag: str = "",
        time: int = 0,
    ) -> list[VariableRecord]:
        """Read every record matching a pattern, ordered by (type, name, tag).

        SERIALIZED records carry their snapshot document rather than a new
        entity.

        Raises:
            CodecError: If a stored value does not have its type's shape.
        """
        pattern = PatternFilter(types=types, name=name, tag=tag, time=time)
        scope = self._registry.resolve(handle)
        if scope is None or pattern.matches_nothing():
            return []
        self._check_unfiltered(pattern, "get_by_pattern", scope)
        rows = scope.database.execute(statements.select_by_pattern(scope.table, pattern))
        records = []
        for row in rows:
            var_type = VarType(row["type"])
            records.append(
                VariableRecord(
                    type=var_type,
                    varname=row["varname"],
                    tag=row["tag"],
                    value=self._codec.decode_document(var_type, row["value"]),
                    timestamp=row["timestamp"],
                )
            )
        return records

    def _check_unfiltered(self, pattern: PatternFilter, operation: str, scope: Scope) -> None:
        if pattern.is_unfiltered():
            logger.warning(
                "%s() without a filter touches every record of %s scope %s",
                operation,
                scope.kind.name,
                scope.key,
            )

    # Migration

    def copy_scope_to_scope(
        self,
        source: Handle,
        destination: Handle,
        pattern: PatternFilter | None = None,
        move: bool = False,
    ) -> int:
        """Copy (or move) matching records between two scopes. See Migrator."""
        return self._migrator.copy_scope_to_scope(source, destination, pattern, move)

    def copy_locals_to_scope(
        self,
        source: EntityId,
        destination: Handle,
        pattern: PatternFilter | None = None,
        tag: str = "",
        move: bool = False,
    ) -> int:
        """Copy (or move) an entity's locals into a scope under one tag. See Migrator."""
        return self._migrator.copy_locals_to_scope(source, destination, pattern, tag, move)

    def copy_scope_to_locals(
        self,
        source: Handle,
        target: EntityId,
        pattern: PatternFilter | None = None,
        move: bool = False,
    ) -> int:
        """Copy (or move) scope records into an entity's locals. See Migrator."""
        return self._migrator.copy_scope_to_locals(source, target, pattern, move)


_BOUND_ACCESSORS = frozenset(
    f"{verb}_{kind}"
    for verb in ("set", "get", "delete")
    for kind in ("int", "float", "string", "entity", "vector", "location", "json", "serialized")
) | {
    "set",
    "get",
    "delete",
    "retag",
    "increment_int",
    "decrement_int",
    "increment_float",
    "decrement_float",
    "append_string",
    "delete_all",
    "delete_by_pattern",
    "get_by_pattern",
}


class ScopedVariables:
    """Variables accessors with the handle already bound.

    Every accessor of Variables is available without its handle argument,
    plus dict-style access keyed by (type, name) or (type, name, tag).

    Usage:
        gold = variables.player(pc).get_int("gold")
        variables.campaign[VarType.INT, "day"] = 3
        del variables.module[VarType.STRING, "greeting"]
    """

    __slots__ = ("_variables", "_handle")

    def __init__(self, variables: Variables, handle: Handle):
        self._variables = variables
        self._handle = handle

    @property
    def handle(self) -> Handle:
        """The bound handle."""
        return self._handle

    def is_valid(self) -> bool:
        """Check whether the handle currently selects a scope."""
        return self._variables.registry.classify(self._handle) is not None

    def __getattr__(self, name: str) -> Any:
        if name in _BOUND_ACCESSORS:
            return functools.partial(getattr(self._variables, name), self._handle)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __getitem__(self, key: tuple[VarType, str] | tuple[VarType, str, str]) -> Any:
        return self._variables.get(self._handle, *key)

    def __setitem__(self, key: tuple[VarType, str] | tuple[VarType, str, str], value: Any) -> None:
        var_type, name, *tag = key
        self._variables.set(self._handle, var_type, name, value, *tag)

    def __delitem__(self, key: tuple[VarType, str] | tuple[VarType, str, str]) -> None:
        self._variables.delete(self._handle, *key)

    def __repr__(self) -> str:
        return f"ScopedVariables({self._handle!r})"
