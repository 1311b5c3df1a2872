"""Core functionalities: stateless models and pure operations.

Architecture Note:
    core/ contains pure, stateless functionalities: identity, the variable
    type registry, value models and codec, and the statement builders.
    For stateful services, see storage/ and world/.
"""

from worldvars.core.component import (
    ComponentRegistry,
    ComponentTypeMeta,
    component,
    dump_component,
    get_registry,
    load_component,
)
from worldvars.core.identity import EntityId, SystemEntity
from worldvars.core.query import PatternFilter, Statement, Where
from worldvars.core.types import Copy, Handle
from worldvars.core.values import (
    INVALID_LOCATION,
    ZERO_VECTOR,
    CodecError,
    Location,
    ValueCodec,
    Vector3,
    zero_value,
)
from worldvars.core.vartype import VarType, require_single, type_of

__all__ = [
    # Types
    "Copy",
    "Handle",
    # Identity
    "EntityId",
    "SystemEntity",
    # Component
    "component",
    "get_registry",
    "ComponentRegistry",
    "ComponentTypeMeta",
    "dump_component",
    "load_component",
    # Variable types
    "VarType",
    "type_of",
    "require_single",
    # Values
    "Vector3",
    "Location",
    "ZERO_VECTOR",
    "INVALID_LOCATION",
    "ValueCodec",
    "CodecError",
    "zero_value",
    # Query
    "PatternFilter",
    "Statement",
    "Where",
]
