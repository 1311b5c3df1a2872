"""Bulk copy and move between scopes and entity locals.

Every copy runs in the same order:
1. Export the matching source records as one ordered batch
2. Compute destination names
3. Write the batch to the destination inside one transaction
4. For a move, delete exactly the exported originals, only once step 3 committed

If step 3 raises, the source is left untouched. A crash between steps 3 and 4
leaves the records in both places.

Usage:
    migrator = Migrator(world, registry, codec, settings)

    # Promote quest state from the module scope into the campaign
    migrator.copy_scope_to_scope(None, SystemEntity.CAMPAIGN, PatternFilter(tag="quest_*"))

    # Hand a player's inventory locals to their durable scope
    migrator.copy_locals_to_scope(pc, pc, PatternFilter(name="inv_*"), tag="inv", move=True)
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections import Counter
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from worldvars.core.identity import EntityId
from worldvars.core.query import (
    PatternFilter,
    delete_variable,
    select_by_pattern,
    upsert_variable,
)
from worldvars.core.types import Handle
from worldvars.core.vartype import VarType, type_of

if TYPE_CHECKING:
    from worldvars.config.settings import VariableSettings
    from worldvars.core.values.codec import ValueCodec
    from worldvars.storage.protocol import SimulationHost
    from worldvars.world.scope import Scope, ScopeRegistry

logger = logging.getLogger(__name__)


def unix_now() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())


def flatten_local_names(
    records: Sequence[tuple[VarType, str, str]], separator: str = ":"
) -> list[str]:
    """Map tagged (type, varname, tag) records onto untagged local names.

    A record keeps its bare varname unless another record shares its
    (type, varname). In that case the untagged record keeps the bare name and
    tagged ones become varname + separator + tag. A qualified name that is
    still taken gets separator + 2, separator + 3, ... appended.

    Args:
        records: Distinct records in export order.
        separator: Joins varname and tag.

    Returns:
        One name per record, in the same order, unique per type.
    """
    group_sizes = Counter((var_type, varname) for var_type, varname, _ in records)
    names: list[str | None] = []
    taken: set[tuple[VarType, str]] = set()

    for var_type, varname, tag in records:
        if group_sizes[(var_type, varname)] == 1 or not tag:
            names.append(varname)
            taken.add((var_type, varname))
        else:
            names.append(None)

    for i, (var_type, varname, tag) in enumerate(records):
        if names[i] is not None:
            continue
        candidate = f"{varname}{separator}{tag}"
        suffix = 2
        while (var_type, candidate) in taken:
            candidate = f"{varname}{separator}{tag}{separator}{suffix}"
            suffix += 1
        names[i] = candidate
        taken.add((var_type, candidate))

    return [name for name in names if name is not None]


class Migrator:
    """Copies records between scopes and entity locals.

    Args:
        host: Simulation host holding entity locals.
        registry: Resolves handles to scopes.
        codec: Converts between local values and stored values.
        settings: Supplies the local name separator.
        clock: Returns the Unix time stamped on written records.
    """

    def __init__(
        self,
        host: SimulationHost,
        registry: ScopeRegistry,
        codec: ValueCodec,
        settings: VariableSettings,
        clock: Callable[[], int] = unix_now,
    ):
        self._host = host
        self._registry = registry
        self._codec = codec
        self._settings = settings
        self._clock = clock

    def copy_scope_to_scope(
        self,
        source: Handle,
        destination: Handle,
        pattern: PatternFilter | None = None,
        move: bool = False,
    ) -> int:
        """Copy matching records from one scope to another.

        Records keep their type, name and tag. Existing destination records
        with the same key are overwritten.

        Args:
            source: Handle of the source scope.
            destination: Handle of the destination scope.
            pattern: Records to copy (everything by default).
            move: Delete the copied records from the source afterwards.

        Returns:
            Number of records written.
        """
        pattern = pattern or PatternFilter()
        src = self._registry.resolve(source)
        dst = self._registry.resolve(destination)
        if src is None or dst is None:
            return 0
        if src.instance == dst.instance:
            logger.debug("Copy of %s scope %s onto itself skipped", src.kind.name, src.key)
            return 0

        rows = self._export(src, pattern)
        if not rows:
            return 0

        now = self._clock()
        with dst.database.transaction():
            for row in rows:
                dst.database.execute(
                    upsert_variable(
                        dst.table,
                        VarType(row["type"]),
                        row["varname"],
                        row["value"],
                        row["tag"],
                        now,
                    )
                )
        if move:
            self._delete_exported(src, rows)

        logger.info(
            "%s %d records from %s scope %s to %s scope %s",
            "Moved" if move else "Copied",
            len(rows),
            src.kind.name,
            src.key,
            dst.kind.name,
            dst.key,
        )
        return len(rows)

    def copy_locals_to_scope(
        self,
        source: EntityId,
        destination: Handle,
        pattern: PatternFilter | None = None,
        tag: str = "",
        move: bool = False,
    ) -> int:
        """Copy an entity's local variables into a scope.

        Only the type mask and name glob of the pattern apply, since locals
        carry no tag or timestamp. Locals whose value does not match their
        type are skipped.

        Args:
            source: Entity whose locals are copied.
            destination: Handle of the destination scope.
            pattern: Locals to copy (everything by default).
            tag: Tag given to every written record.
            move: Delete the copied locals afterwards.

        Returns:
            Number of records written.
        """
        pattern = pattern or PatternFilter()
        dst = self._registry.resolve(destination)
        if dst is None or not self._host.entity_exists(source):
            return 0

        entries: list[tuple[VarType, str, Any]] = []
        for var_type, name, value in self._host.iter_locals(source):
            if not pattern.matches_local(var_type, name):
                continue
            if type_of(value) != var_type:
                logger.debug("Local %s on %s is not a %s, skipped", name, source, var_type.name)
                continue
            raw = self._codec.encode(var_type, value)
            if raw is None:
                continue
            entries.append((var_type, name, raw))
        if not entries:
            return 0

        now = self._clock()
        with dst.database.transaction():
            for var_type, name, raw in entries:
                dst.database.execute(upsert_variable(dst.table, var_type, name, raw, tag, now))
        if move:
            for var_type, name, _ in entries:
                self._host.delete_local(source, var_type, name)

        logger.info(
            "%s %d locals from %s to %s scope %s",
            "Moved" if move else "Copied",
            len(entries),
            source,
            dst.kind.name,
            dst.key,
        )
        return len(entries)

    def copy_scope_to_locals(
        self,
        source: Handle,
        target: EntityId,
        pattern: PatternFilter | None = None,
        move: bool = False,
    ) -> int:
        """Copy scope records into an entity's local variables.

        Tagged records are flattened into the untagged local namespace with
        flatten_local_names(). SERIALIZED records are never copied.

        Args:
            source: Handle of the source scope.
            target: Entity receiving the locals.
            pattern: Records to copy (everything by default).
            move: Delete the copied records from the source afterwards.

        Returns:
            Number of locals written.

        Raises:
            CodecError: If a stored value does not match its type. Nothing
                is written in that case.
        """
        pattern = pattern or PatternFilter()
        src = self._registry.resolve(source)
        if src is None or not self._host.entity_exists(target):
            return 0

        rows = [row for row in self._export(src, pattern) if row["type"] != VarType.SERIALIZED]
        if not rows:
            return 0

        keys = [(VarType(row["type"]), row["varname"], row["tag"]) for row in rows]
        names = flatten_local_names(keys, self._settings.local_name_separator)
        values = [
            self._codec.decode(var_type, row["value"])
            for (var_type, _, _), row in zip(keys, rows, strict=True)
        ]

        for (var_type, _, _), name, value in zip(keys, names, values, strict=True):
            self._host.set_local(target, var_type, name, value)
        if move:
            self._delete_exported(src, rows)

        logger.info(
            "%s %d records from %s scope %s to locals of %s",
            "Moved" if move else "Copied",
            len(rows),
            src.kind.name,
            src.key,
            target,
        )
        return len(rows)

    def _export(self, scope: Scope, pattern: PatternFilter) -> list[sqlite3.Row]:
        if pattern.matches_nothing():
            return []
        return scope.database.execute(select_by_pattern(scope.table, pattern))

    def _delete_exported(self, scope: Scope, rows: Sequence[sqlite3.Row]) -> None:
        with scope.database.transaction():
            for row in rows:
                scope.database.execute(
                    delete_variable(scope.table, VarType(row["type"]), row["varname"], row["tag"])
                )
