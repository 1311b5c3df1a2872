"""Runtime value kinds and the codec that stores them."""

from worldvars.core.values.models import (
    INVALID_LOCATION,
    ZERO_VECTOR,
    Location,
    LocationDocument,
    SnapshotDocument,
    Vector3,
    VectorDocument,
)
from worldvars.core.values.codec import CodecError, ValueCodec, zero_value

__all__ = [
    # Models
    "Vector3",
    "Location",
    "ZERO_VECTOR",
    "INVALID_LOCATION",
    # Documents
    "VectorDocument",
    "LocationDocument",
    "SnapshotDocument",
    # Codec
    "ValueCodec",
    "CodecError",
    "zero_value",
]
