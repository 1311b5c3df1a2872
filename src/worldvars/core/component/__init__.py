"""Component functionality: registry, decorator, and snapshot helpers."""

from worldvars.core.component.core import (
    ComponentRegistry,
    component,
    dump_component,
    get_registry,
    load_component,
)
from worldvars.core.component.models import ComponentTypeMeta

__all__ = [
    # Models
    "ComponentTypeMeta",
    # Core
    "component",
    "get_registry",
    "ComponentRegistry",
    "dump_component",
    "load_component",
]
