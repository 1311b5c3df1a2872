"""Scope resolution: which table a handle's variables live in.

A handle is classified by attribute, never by lookup:
- None or SystemEntity.MODULE: the ephemeral module scope
- SystemEntity.CAMPAIGN: the global campaign scope
- a connected player: that player's scope
- anything else: invalid, and every operation on it is a silent no-op

Schema creation is lazy and idempotent. The registry records which scope
instances already have their table, so the CREATE statement runs at most
once per instance.

Usage:
    registry = ScopeRegistry(world, DatabaseProvider(settings), settings)
    scope = registry.resolve(pc)     # Scope(kind=PRINCIPAL, key="alice", ...)
    registry.resolve(some_rock)      # None
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from worldvars.core.identity import SystemEntity
from worldvars.core.query import create_table
from worldvars.core.types import Handle

if TYPE_CHECKING:
    from worldvars.config.settings import VariableSettings
    from worldvars.storage.protocol import EntityHost
    from worldvars.storage.sqlite import Database, DatabaseProvider

logger = logging.getLogger(__name__)


class ScopeKind(Enum):
    """Storage scope kinds."""

    EPHEMERAL = auto()  # Module scope, discarded on restart
    PRINCIPAL = auto()  # One per player, saved with the player
    GLOBAL = auto()  # One campaign database for the whole world


@dataclass(frozen=True, slots=True)
class Scope:
    """A variable table bound to the database of one scope instance.

    Attributes:
        kind: Scope kind.
        key: Instance key ("module", the player key, or the campaign name).
        table: Table holding this scope's records.
        database: Database the table lives in.
    """

    kind: ScopeKind
    key: str
    table: str
    database: Database

    @property
    def instance(self) -> tuple[ScopeKind, str]:
        """Identity of the scope instance, independent of the open connection."""
        return (self.kind, self.key)


class ScopeRegistry:
    """Resolves handles to scopes and owns per-instance schema state.

    Args:
        host: Classifies handles as players and names their saves.
        databases: Opens the database of each scope instance.
        settings: Table names and campaign name.
    """

    def __init__(
        self,
        host: EntityHost,
        databases: DatabaseProvider,
        settings: VariableSettings,
    ):
        self._host = host
        self._databases = databases
        self._settings = settings
        self._initialized: set[tuple[ScopeKind, str]] = set()

    def classify(self, handle: Handle) -> ScopeKind | None:
        """Classify a handle without touching any database.

        Args:
            handle: Entity handle, or None for the module scope.

        Returns:
            The scope kind, or None for an invalid handle.
        """
        if handle is None or handle == SystemEntity.MODULE:
            return ScopeKind.EPHEMERAL
        if handle == SystemEntity.CAMPAIGN:
            return ScopeKind.GLOBAL
        if self._host.is_principal(handle):
            return ScopeKind.PRINCIPAL
        return None

    def resolve(self, handle: Handle) -> Scope | None:
        """Resolve a handle to its scope, creating the table on first use.

        Args:
            handle: Entity handle, or None for the module scope.

        Returns:
            The bound scope, or None for an invalid handle.

        Raises:
            sqlite3.Error: If the database cannot be opened or the table created.
        """
        kind = self.classify(handle)
        if kind is None:
            logger.debug("Handle %s does not name a variable scope", handle)
            return None

        if kind is ScopeKind.EPHEMERAL:
            scope = Scope(kind, "module", self._settings.module_table, self._databases.module())
        elif kind is ScopeKind.GLOBAL:
            name = self._settings.campaign_name
            scope = Scope(kind, name, self._settings.campaign_table, self._databases.campaign())
        else:
            assert handle is not None
            key = self._host.principal_key(handle) or ""
            scope = Scope(kind, key, self._settings.player_table, self._databases.player(key))

        self.ensure_schema(scope)
        return scope

    def ensure_schema(self, scope: Scope) -> None:
        """Create the scope's table unless this instance was already initialized."""
        if scope.instance in self._initialized:
            return
        scope.database.execute(create_table(scope.table))
        self._initialized.add(scope.instance)
        logger.debug("Initialized %s table %s for %s", scope.kind.name, scope.table, scope.key)

    def is_initialized(self, scope: Scope) -> bool:
        """Check whether the scope instance's table has been created."""
        return scope.instance in self._initialized

    def reset(self) -> None:
        """Forget every initialization marker.

        Needed after the underlying databases were closed and reopened.
        """
        self._initialized.clear()
