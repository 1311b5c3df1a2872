"""Mapping runtime values to their variable type."""

from __future__ import annotations

from typing import Any

from worldvars.core.identity import EntityId
from worldvars.core.values.models import Location, Vector3
from worldvars.core.vartype.models import VarType


def type_of(value: Any) -> VarType:
    """Classify a runtime value.

    Only a fixed set of kinds is recognized. Everything else, including bool
    and None, maps to VarType.NONE and is skipped by bulk copies. There is no
    runtime kind for VarType.SERIALIZED.

    Args:
        value: Runtime value.

    Returns:
        The matching single VarType, or VarType.NONE.
    """
    if isinstance(value, bool):
        return VarType.NONE
    if isinstance(value, int):
        return VarType.INT
    if isinstance(value, float):
        return VarType.FLOAT
    if isinstance(value, str):
        return VarType.STRING
    if isinstance(value, EntityId):
        return VarType.ENTITY
    if isinstance(value, Vector3):
        return VarType.VECTOR
    if isinstance(value, Location):
        return VarType.LOCATION
    if isinstance(value, dict | list):
        return VarType.JSON
    return VarType.NONE

