"""Query models: pattern filters, predicates, and built statements.

Usage:
    # Everything tagged "quest_*" that is an INT or FLOAT
    PatternFilter(types=VarType.INT | VarType.FLOAT, tag="quest_*")

    # Anything written before Unix time 1700000000
    PatternFilter(time=-1700000000)

    # WHERE clauses are assembled from a predicate list, never by hand
    where = Where().and_("varname GLOB :name_glob", name_glob="hp_*")
    where.sql()     # " WHERE varname GLOB :name_glob"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Any

from worldvars.core.vartype.models import VarType


@dataclass(frozen=True)
class PatternFilter:
    """Transient selector for bulk operations. Never cached or persisted.

    Attributes:
        types: Type mask. NONE matches nothing, ALL omits the predicate.
        name: Case-sensitive glob on varname. Empty means any name.
        tag: Case-sensitive glob on tag. Empty means any tag (not "untagged").
        time: Negative selects rows written before abs(time), positive rows
            written after time, zero disables the predicate.
    """

    types: VarType = VarType.ALL
    name: str = ""
    tag: str = ""
    time: int = 0

    def is_unfiltered(self) -> bool:
        """Check whether this filter selects every row of a scope."""
        return self.types == VarType.ALL and not self.name and not self.tag and not self.time

    def matches_nothing(self) -> bool:
        """Check whether the type mask excludes every row."""
        return self.types == VarType.NONE

    def matches_local(self, var_type: VarType, name: str) -> bool:
        """Evaluate the type and name predicates against an untagged local.

        Locals carry neither tag nor timestamp, so those predicates are ignored.
        """
        if not self.types & var_type:
            return False
        return not self.name or fnmatchcase(name, self.name)


@dataclass(frozen=True, slots=True)
class Predicate:
    """One SQL condition and the named parameters it binds."""

    clause: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Where:
    """AND-joined list of predicates.

    Immutable - and_() returns a new instance.
    """

    predicates: tuple[Predicate, ...] = ()

    def and_(self, clause: str, **params: Any) -> Where:
        """Append a condition.

        Raises:
            ValueError: If a parameter name is already bound by another predicate.
        """
        return self.with_predicate(Predicate(clause, params))

    def with_predicate(self, predicate: Predicate | None) -> Where:
        """Append a prebuilt predicate. None is ignored."""
        if predicate is None:
            return self
        clash = set(predicate.params) & set(self.params())
        if clash:
            raise ValueError(f"Parameter already bound: {sorted(clash)}")
        return Where(self.predicates + (predicate,))

    def sql(self) -> str:
        """Render the WHERE clause, or an empty string when there are no predicates."""
        if not self.predicates:
            return ""
        return " WHERE " + " AND ".join(p.clause for p in self.predicates)

    def params(self) -> dict[str, Any]:
        """Merge the parameters of every predicate."""
        merged: dict[str, Any] = {}
        for predicate in self.predicates:
            merged.update(predicate.params)
        return merged

    def __len__(self) -> int:
        return len(self.predicates)


@dataclass(frozen=True, slots=True)
class Statement:
    """Parameterized SQL ready for execution."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class VariableRecord:
    """One stored variable, as returned by bulk selects.

    Attributes:
        type: Single variable type.
        varname: Variable name.
        tag: Grouping tag, "" when untagged.
        value: Decoded value (SERIALIZED records carry their snapshot document).
        timestamp: Unix time of the last write.
    """

    type: VarType
    varname: str
    tag: str
    value: Any
    timestamp: int
