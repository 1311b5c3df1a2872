"""Statement builders for variable tables.

Every builder is a pure function returning a Statement, so statement shapes
can be tested without a database. Point forms match the exact
(type, varname, tag) key, where an empty tag means "untagged". Bulk forms
take a PatternFilter, where an empty name or tag pattern means "any".
"""

from __future__ import annotations

import re
from typing import Any

from worldvars.core.query.models import PatternFilter, Predicate, Statement, Where
from worldvars.core.vartype.models import VarType, require_single

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_COLUMNS = "type, varname, tag, value, timestamp"


def validate_table_name(table: str) -> str:
    """Validate a table name before it is interpolated into SQL.

    Args:
        table: Table name to validate.

    Returns:
        The validated table name.

    Raises:
        ValueError: If the name is not a plain SQL identifier.
    """
    if not _TABLE_NAME.match(table):
        raise ValueError(f"Invalid table name: {table!r}")
    return table


def type_predicate(types: VarType) -> Predicate | None:
    """Convert a type mask to a predicate.

    Args:
        types: Type mask.

    Returns:
        None for ALL (no filtering), an always-false predicate for NONE,
        otherwise a bitwise test against the mask.
    """
    if types == VarType.ALL:
        return None
    if types == VarType.NONE:
        return Predicate("0")
    return Predicate("(type & :mask) != 0", {"mask": int(types)})


def time_predicate(time: int) -> Predicate | None:
    """Convert a signed time threshold to a predicate.

    Args:
        time: Negative for "before abs(time)", positive for "after time",
            zero for no predicate.
    """
    if time < 0:
        return Predicate("timestamp < :time", {"time": -time})
    if time > 0:
        return Predicate("timestamp > :time", {"time": time})
    return None


def pattern_where(pattern: PatternFilter) -> Where:
    """Build the AND of every non-empty predicate of a pattern filter."""
    where = Where()
    if pattern.name:
        where = where.and_("varname GLOB :name_glob", name_glob=pattern.name)
    if pattern.tag:
        where = where.and_("tag GLOB :tag_glob", tag_glob=pattern.tag)
    where = where.with_predicate(type_predicate(pattern.types))
    return where.with_predicate(time_predicate(pattern.time))


def key_where(var_type: VarType, name: str, tag: str = "") -> Where:
    """Build the exact-key condition for point statements."""
    return (
        Where()
        .and_("type = :type", type=int(require_single(var_type)))
        .and_("varname = :varname", varname=name)
        .and_("tag = :tag", tag=tag)
    )


def create_table(table: str) -> Statement:
    """Statement creating a variable table if it does not exist.

    The value column has no declared type so numbers stay numbers and
    documents stay text.
    """
    table = validate_table_name(table)
    return Statement(
        f"CREATE TABLE IF NOT EXISTS {table} ("
        "type INTEGER NOT NULL, "
        "varname TEXT NOT NULL, "
        "tag TEXT NOT NULL DEFAULT '', "
        "value, "
        "timestamp INTEGER NOT NULL, "
        "PRIMARY KEY (type, varname, tag))"
    )


def select_variable(table: str, var_type: VarType, name: str, tag: str = "") -> Statement:
    """Point select: the value of one exact key, at most one row."""
    table = validate_table_name(table)
    where = key_where(var_type, name, tag)
    return Statement(f"SELECT value FROM {table}{where.sql()}", where.params())


def upsert_variable(
    table: str, var_type: VarType, name: str, value: Any, tag: str, timestamp: int
) -> Statement:
    """Point upsert keyed on (type, varname, tag)."""
    table = validate_table_name(table)
    return Statement(
        f"INSERT INTO {table} ({_COLUMNS}) "
        "VALUES (:type, :varname, :tag, :value, :timestamp) "
        "ON CONFLICT (type, varname, tag) DO UPDATE SET "
        "value = excluded.value, tag = excluded.tag, timestamp = excluded.timestamp",
        {
            "type": int(require_single(var_type)),
            "varname": name,
            "tag": tag,
            "value": value,
            "timestamp": timestamp,
        },
    )


def retag_variable(
    table: str, var_type: VarType, name: str, tag: str, new_tag: str, timestamp: int
) -> Statement:
    """Move a record from one tag to another.

    A record already stored under the new tag is replaced, so the key stays
    unique.
    """
    table = validate_table_name(table)
    where = key_where(var_type, name, tag)
    params = where.params() | {"new_tag": new_tag, "timestamp": timestamp}
    return Statement(
        f"UPDATE OR REPLACE {table} SET tag = :new_tag, timestamp = :timestamp{where.sql()}",
        params,
    )


def delete_variable(table: str, var_type: VarType, name: str, tag: str = "") -> Statement:
    """Point delete returning the removed value."""
    table = validate_table_name(table)
    where = key_where(var_type, name, tag)
    return Statement(f"DELETE FROM {table}{where.sql()} RETURNING value", where.params())


def delete_by_pattern(table: str, pattern: PatternFilter) -> Statement:
    """Bulk delete of every row matching the filter.

    An unfiltered pattern deletes the whole table.
    """
    table = validate_table_name(table)
    where = pattern_where(pattern)
    return Statement(f"DELETE FROM {table}{where.sql()}", where.params())


def delete_all(table: str) -> Statement:
    """Delete every row of a table."""
    return delete_by_pattern(table, PatternFilter())


def select_by_pattern(table: str, pattern: PatternFilter) -> Statement:
    """Bulk select of full records, ordered by key."""
    table = validate_table_name(table)
    where = pattern_where(pattern)
    return Statement(
        f"SELECT {_COLUMNS} FROM {table}{where.sql()} ORDER BY type, varname, tag",
        where.params(),
    )


def _accumulate(
    table: str,
    var_type: VarType,
    name: str,
    delta: Any,
    tag: str,
    timestamp: int,
    operator: str,
) -> Statement:
    table = validate_table_name(table)
    return Statement(
        f"INSERT INTO {table} ({_COLUMNS}) "
        "VALUES (:type, :varname, :tag, :value, :timestamp) "
        "ON CONFLICT (type, varname, tag) DO UPDATE SET "
        f"value = value {operator} excluded.value, timestamp = excluded.timestamp "
        "RETURNING value",
        {
            "type": int(require_single(var_type)),
            "varname": name,
            "tag": tag,
            "value": delta,
            "timestamp": timestamp,
        },
    )


def increment_variable(
    table: str, var_type: VarType, name: str, delta: int | float, tag: str, timestamp: int
) -> Statement:
    """Add delta to a numeric record, returning the new value.

    A missing record is created holding delta, as if it had been zero.
    """
    return _accumulate(table, var_type, name, delta, tag, timestamp, "+")


def append_variable(
    table: str, var_type: VarType, name: str, suffix: str, tag: str, timestamp: int
) -> Statement:
    """Append suffix to a string record, returning the new value.

    A missing record is created holding suffix, as if it had been empty.
    """
    return _accumulate(table, var_type, name, suffix, tag, timestamp, "||")
