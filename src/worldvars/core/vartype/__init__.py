"""Variable type registry: bit flags and runtime classification."""

from worldvars.core.vartype.models import VarType, require_single
from worldvars.core.vartype.operations import type_of

__all__ = [
    "VarType",
    "type_of",
    "require_single",
]
