"""Entity identity functionality: lightweight IDs and well-known entities."""

from worldvars.core.identity.models import EntityId, SystemEntity

__all__ = [
    "EntityId",
    "SystemEntity",
]
