"""Query functionality: pattern filters and statement builders."""

from worldvars.core.query.models import (
    PatternFilter,
    Predicate,
    Statement,
    VariableRecord,
    Where,
)
from worldvars.core.query.operations import (
    append_variable,
    create_table,
    delete_all,
    delete_by_pattern,
    delete_variable,
    increment_variable,
    key_where,
    pattern_where,
    retag_variable,
    select_by_pattern,
    select_variable,
    time_predicate,
    type_predicate,
    upsert_variable,
    validate_table_name,
)

__all__ = [
    # Models
    "PatternFilter",
    "Predicate",
    "Statement",
    "Where",
    "VariableRecord",
    # Predicates
    "type_predicate",
    "time_predicate",
    "pattern_where",
    "key_where",
    "validate_table_name",
    # Statements
    "create_table",
    "select_variable",
    "upsert_variable",
    "retag_variable",
    "delete_variable",
    "delete_by_pattern",
    "delete_all",
    "select_by_pattern",
    "increment_variable",
    "append_variable",
]
