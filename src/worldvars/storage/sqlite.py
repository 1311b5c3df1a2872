"""SQLite databases backing the variable scopes.

Three kinds of database are opened on demand:
- module: always in memory, lives as long as the process
- player: one file per player key under <data_directory>/players/
- campaign: one file named after the campaign under <data_directory>/

Without a data directory every database lives in memory, which is what tests
use.

Usage:
    provider = DatabaseProvider(VariableSettings(data_directory="./saves"))
    db = provider.player("alice")
    rows = db.execute(select_variable("player_variables", VarType.INT, "gold"))
    with db.transaction():
        ...
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import quote

from worldvars.core.query.models import Statement

if TYPE_CHECKING:
    from worldvars.config.settings import VariableSettings

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def file_stem(key: str) -> str:
    """Turn any key into a file name that stays inside its directory.

    Everything but letters, digits and "_.-~" is percent-encoded, and a
    leading dot is encoded too, so distinct keys never share a file.

    Usage:
        file_stem("alice")           # "alice"
        file_stem("Alice Smith")     # "Alice%20Smith"
        file_stem("../x")            # "%2E.%2Fx"
    """
    if not key:
        # quote() never emits a bare "%"
        return "%"
    stem = quote(key, safe="")
    if stem.startswith("."):
        stem = "%2E" + stem[1:]
    return stem


class Database:
    """One SQLite connection in autocommit mode.

    Each execute() is its own atomic statement. transaction() groups several
    statements explicitly.

    Args:
        name: Label used in logs.
        path: File path, or ":memory:".
    """

    def __init__(self, name: str, path: str | Path = MEMORY):
        self.name = name
        self.path = str(path)
        if self.path != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.path, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        logger.debug("Opened database %s at %s", name, self.path)

    def execute(self, statement: Statement) -> list[sqlite3.Row]:
        """Run a statement and return every row it produced.

        Rows are fetched eagerly so RETURNING statements finish before this
        returns.

        Raises:
            sqlite3.Error: Propagated unchanged.
        """
        cursor = self._conn.execute(statement.sql, statement.params)
        try:
            return cursor.fetchall()
        finally:
            cursor.close()

    def execute_count(self, statement: Statement) -> int:
        """Run a statement and return the number of rows it changed."""
        cursor = self._conn.execute(statement.sql, statement.params)
        try:
            return cursor.rowcount
        finally:
            cursor.close()

    @contextlib.contextmanager
    def transaction(self) -> Iterator[Database]:
        """Group statements into one transaction.

        Commits on success, rolls back and re-raises on any exception. Nested
        use joins the outer transaction.
        """
        if self._conn.in_transaction:
            yield self
            return
        self._conn.execute("BEGIN")
        try:
            yield self
        except BaseException as e:
            logger.debug("Transaction on %s failed, rolling back: %s", self.name, e)
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")

    @property
    def in_transaction(self) -> bool:
        """Whether a transaction is currently open."""
        return self._conn.in_transaction

    def close(self) -> None:
        """Close the connection. An in-memory database is discarded."""
        self._conn.close()
        logger.debug("Closed database %s", self.name)


class DatabaseProvider:
    """Opens and caches the databases behind each scope kind.

    Args:
        settings: Data directory and campaign name.
    """

    def __init__(self, settings: VariableSettings):
        self._settings = settings
        self._module: Database | None = None
        self._campaign: Database | None = None
        self._players: dict[str, Database] = {}

    def _path(self, *parts: str) -> str | Path:
        if self._settings.data_directory is None:
            return MEMORY
        return Path(self._settings.data_directory).joinpath(*parts)

    def module(self) -> Database:
        """The process-wide module database. Always in memory."""
        if self._module is None:
            self._module = Database("module", MEMORY)
        return self._module

    def campaign(self) -> Database:
        """The single campaign database shared by the whole world."""
        if self._campaign is None:
            name = self._settings.campaign_name
            self._campaign = Database(f"campaign:{name}", self._path(f"{name}.sqlite3"))
        return self._campaign

    def player(self, key: str) -> Database:
        """The durable database of one player.

        Any key is accepted. The file is named with file_stem(key).

        Args:
            key: Stable player key.
        """
        database = self._players.get(key)
        if database is None:
            path = self._path("players", f"{file_stem(key)}.sqlite3")
            database = Database(f"player:{key}", path)
            self._players[key] = database
        return database

    def close(self) -> None:
        """Close every open database."""
        for database in [self._module, self._campaign, *self._players.values()]:
            if database is not None:
                database.close()
        self._module = None
        self._campaign = None
        self._players.clear()
