"""Value codec: runtime values to stored column values and back.

INT, FLOAT and STRING are stored natively. Everything else is stored as JSON
text or, for entity references, as a stable reference string.

Decoding never fails for a missing row: None decodes to the type's zero
value. A stored value that does not have its type's shape raises CodecError.

Usage:
    codec = ValueCodec(world)
    raw = codec.encode(VarType.VECTOR, Vector3(1, 2, 3))  # '{"x":1.0,"y":2.0,"z":3.0}'
    codec.decode(VarType.VECTOR, raw)                    # Vector3(1.0, 2.0, 3.0)
    codec.decode(VarType.VECTOR, None)                   # Vector3(0.0, 0.0, 0.0)
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from worldvars.core.identity import EntityId, SystemEntity
from worldvars.core.values.models import (
    INVALID_LOCATION,
    ZERO_VECTOR,
    Location,
    LocationDocument,
    SnapshotDocument,
    Vector3,
    VectorDocument,
)
from worldvars.core.vartype.models import VarType, require_single

if TYPE_CHECKING:
    from worldvars.storage.protocol import EntityHost


class CodecError(ValueError):
    """Raised when a stored value does not match its declared type's shape."""

    pass


_ZERO_VALUES: dict[VarType, Any] = {
    VarType.INT: 0,
    VarType.FLOAT: 0.0,
    VarType.STRING: "",
    VarType.ENTITY: SystemEntity.INVALID,
    VarType.VECTOR: ZERO_VECTOR,
    VarType.LOCATION: INVALID_LOCATION,
    VarType.JSON: None,
    VarType.SERIALIZED: SystemEntity.INVALID,
}


def zero_value(var_type: VarType) -> Any:
    """Return the canonical value reported for a variable that does not exist.

    Args:
        var_type: Single variable type.

    Returns:
        0, 0.0, "", the invalid entity, the zero vector, the invalid location,
        None (JSON), or the invalid entity (SERIALIZED).
    """
    return _ZERO_VALUES[require_single(var_type)]


class ValueCodec:
    """Bidirectional conversion between runtime values and column values.

    Entity references, area tags, snapshots and instantiation are delegated to
    the host, since only the simulation knows which entities exist.

    Args:
        host: Simulation host resolving references and snapshots.
    """

    def __init__(self, host: EntityHost):
        self._host = host

    def encode(self, var_type: VarType, value: Any) -> Any:
        """Convert a runtime value to its stored form.

        Args:
            var_type: Single variable type.
            value: Runtime value.

        Returns:
            int, float or str for the column, or None when a SERIALIZED
            value names an entity that does not exist.

        Raises:
            CodecError: If a VECTOR or LOCATION component is not finite.
        """
        var_type = require_single(var_type)
        if var_type == VarType.INT:
            return int(value)
        if var_type == VarType.FLOAT:
            return float(value)
        if var_type == VarType.STRING:
            return str(value)
        if var_type == VarType.ENTITY:
            return self._host.reference(value)
        if var_type == VarType.VECTOR:
            return _build(VectorDocument, var_type, x=value.x, y=value.y, z=value.z)
        if var_type == VarType.LOCATION:
            position = value.position
            return _build(
                LocationDocument,
                var_type,
                area=self._host.area_tag(value.area),
                position={"x": position.x, "y": position.y, "z": position.z},
                facing=value.facing,
            )
        if var_type == VarType.JSON:
            return json.dumps(value)
        snapshot = self._host.snapshot(value)
        if snapshot is None:
            return None
        return json.dumps(snapshot)

    def decode(
        self,
        var_type: VarType,
        raw: Any,
        *,
        location: Location | None = None,
        container: EntityId | None = None,
    ) -> Any:
        """Convert a stored value back to its runtime form.

        Decoding a SERIALIZED value instantiates a new entity at location, or
        inside container when one is given. No other type has side effects.

        Args:
            var_type: Single variable type.
            raw: Column value, or None for a missing row.
            location: Where a SERIALIZED entity is placed.
            container: Entity a SERIALIZED entity is placed into.

        Returns:
            Runtime value, or the type's zero value if raw is None.

        Raises:
            CodecError: If raw does not have the shape var_type requires.
        """
        var_type = require_single(var_type)
        if raw is None:
            return _ZERO_VALUES[var_type]

        if var_type == VarType.INT:
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise CodecError(f"INT variable holds {type(raw).__name__}: {raw!r}")
            return raw
        if var_type == VarType.FLOAT:
            if isinstance(raw, bool) or not isinstance(raw, int | float):
                raise CodecError(f"FLOAT variable holds {type(raw).__name__}: {raw!r}")
            return float(raw)
        if var_type in (VarType.STRING, VarType.ENTITY):
            if not isinstance(raw, str):
                raise CodecError(
                    f"{var_type.name} variable holds {type(raw).__name__}: {raw!r}"
                )
            return raw if var_type == VarType.STRING else self._host.resolve(raw)
        if var_type == VarType.VECTOR:
            vector = _validate(VectorDocument, raw, var_type)
            return Vector3(vector.x, vector.y, vector.z)
        if var_type == VarType.LOCATION:
            location_doc = _validate(LocationDocument, raw, var_type)
            return Location(
                area=self._host.find_area(location_doc.area),
                position=Vector3(
                    location_doc.position.x, location_doc.position.y, location_doc.position.z
                ),
                facing=location_doc.facing,
            )
        if var_type == VarType.JSON:
            return _load_json(raw, var_type)
        snapshot = _validate(SnapshotDocument, raw, var_type)
        return self._host.instantiate(
            snapshot.model_dump(), location=location, container=container
        )

    def decode_document(self, var_type: VarType, raw: Any) -> Any:
        """Decode without side effects.

        Identical to decode() except that SERIALIZED values are returned as
        their validated snapshot document instead of being instantiated.
        """
        if require_single(var_type) == VarType.SERIALIZED:
            if raw is None:
                return None
            return _validate(SnapshotDocument, raw, var_type).model_dump()
        return self.decode(var_type, raw)


def _build(model: type[BaseModel], var_type: VarType, **fields: Any) -> str:
    try:
        return model(**fields).model_dump_json()
    except ValidationError as e:
        raise CodecError(f"{var_type.name} value cannot be stored: {e}") from e


def _load_json(raw: Any, var_type: VarType) -> Any:
    if not isinstance(raw, str):
        raise CodecError(f"{var_type.name} variable holds {type(raw).__name__}: {raw!r}")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise CodecError(f"{var_type.name} variable holds invalid JSON: {e}") from e


def _validate[M](model: type[M], raw: Any, var_type: VarType) -> M:
    if not isinstance(raw, str):
        raise CodecError(f"{var_type.name} variable holds {type(raw).__name__}: {raw!r}")
    try:
        return model.model_validate_json(raw)  # type: ignore[attr-defined,no-any-return]
    except ValidationError as e:
        raise CodecError(f"{var_type.name} variable has unexpected shape: {e}") from e
