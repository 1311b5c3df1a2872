"""Variable type registry.

Each type is a distinct bit so callers can combine them into filter masks.

Usage:
    mask = VarType.INT | VarType.FLOAT
    VarType.FLOAT in mask             # True
    list(mask.singles())              # [VarType.INT, VarType.FLOAT]
    VarType.ALL & ~VarType.SERIALIZED
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import IntFlag


class VarType(IntFlag):
    """Closed enumeration of storable value kinds.

    INT, FLOAT and STRING are stored natively. ENTITY is a reference to a
    live simulation entity, SERIALIZED a full snapshot of one. VECTOR,
    LOCATION and JSON are stored as documents.
    """

    NONE = 0
    INT = 1
    FLOAT = 2
    STRING = 4
    ENTITY = 8
    VECTOR = 16
    LOCATION = 32
    JSON = 64
    SERIALIZED = 128
    ALL = INT | FLOAT | STRING | ENTITY | VECTOR | LOCATION | JSON | SERIALIZED

    def singles(self) -> Iterator[VarType]:
        """Iterate the individual types contained in this mask, lowest bit first."""
        for member in _SINGLE_TYPES:
            if self & member:
                yield member

    def is_single(self) -> bool:
        """Check whether this value names exactly one type (not a mask or sentinel)."""
        return self in _SINGLE_TYPES


_SINGLE_TYPES = (
    VarType.INT,
    VarType.FLOAT,
    VarType.STRING,
    VarType.ENTITY,
    VarType.VECTOR,
    VarType.LOCATION,
    VarType.JSON,
    VarType.SERIALIZED,
)


def require_single(var_type: VarType) -> VarType:
    """Validate that a type names exactly one stored kind.

    Raises:
        ValueError: If var_type is NONE, ALL or a multi-bit mask.
    """
    if not VarType(var_type).is_single():
        raise ValueError(f"Expected a single variable type, got {var_type!r}")
    return VarType(var_type)
