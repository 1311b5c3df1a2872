"""Component registry, decorator, and snapshot helpers.

Components are plain dataclasses or Pydantic models attached to simulation
entities. Registering them gives each type a stable name so an entity can be
snapshotted into a JSON document and instantiated again later.

Usage:
    @component
    @dataclass(slots=True)
    class Hitpoints:
        current: int
        maximum: int

    doc = dump_component(Hitpoints(5, 10))
    # {"type": "game.Hitpoints", "data": {"current": 5, "maximum": 10}}
    load_component(doc) == Hitpoints(5, 10)
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import is_dataclass
from typing import Any, overload

from worldvars.core.component.models import ComponentTypeMeta


class ComponentRegistry:
    """Process-local registry of component types.

    Maps types to metadata and qualified names back to types, which is what
    snapshot restore needs.
    """

    def __init__(self) -> None:
        self._by_type: dict[type, ComponentTypeMeta] = {}
        self._by_name: dict[str, type] = {}

    def register(self, cls: type, transient: bool = False) -> ComponentTypeMeta:
        """Register a component type and return its metadata.

        Args:
            cls: Component class to register.
            transient: If True, the component is excluded from snapshots.

        Returns:
            Component metadata with the qualified type name.

        Raises:
            RuntimeError: If another class is registered under the same name.
        """
        if cls in self._by_type:
            return self._by_type[cls]

        type_name = f"{cls.__module__}.{cls.__qualname__}"
        existing = self._by_name.get(type_name)
        if existing is not None and existing is not cls:
            raise RuntimeError(f"Component name collision: {cls} and {existing} as {type_name}")

        meta = ComponentTypeMeta(type_name=type_name, transient=transient)
        self._by_type[cls] = meta
        self._by_name[type_name] = cls
        return meta

    def get_meta(self, cls: type) -> ComponentTypeMeta | None:
        """Get metadata for a registered component type."""
        return self._by_type.get(cls)

    def get_type(self, type_name: str) -> type | None:
        """Get component type by its qualified name."""
        return self._by_name.get(type_name)


# Module-level registry instance
_registry = ComponentRegistry()


def get_registry() -> ComponentRegistry:
    """Access the global component registry.

    Returns:
        The process-local ComponentRegistry instance.
    """
    return _registry


def _is_pydantic(cls: type) -> bool:
    """Check if class is a Pydantic model without importing pydantic."""
    for base in cls.__mro__:
        if base.__module__.startswith("pydantic") and base.__name__ == "BaseModel":
            return True
    return False


@overload
def component(cls: type) -> type: ...


@overload
def component(cls: None = None, *, transient: bool = False) -> Callable[[type], type]: ...


def component(
    cls: type | None = None, *, transient: bool = False
) -> type | Callable[[type], type]:
    """Register a dataclass or Pydantic model as a component type.

    Supports three forms:
        @component                    # bare decorator
        @component()                  # parenthesized, no args
        @component(transient=True)    # factory with args

    Args:
        cls: The class to register, or None if called with arguments.
        transient: If True, the component is not part of entity snapshots.

    Returns:
        Decorated class or decorator function.

    Raises:
        TypeError: If class is neither a dataclass nor Pydantic model.

    Note:
        Apply @component AFTER @dataclass.
    """

    def decorator(c: type) -> type:
        if not (is_dataclass(c) or _is_pydantic(c)):
            raise TypeError(
                f"Component {c.__name__} must be a dataclass or Pydantic model. "
                f"Did you forget @dataclass decorator?"
            )
        meta = _registry.register(c, transient=transient)
        c.__component_meta__ = meta  # type: ignore
        return c

    if cls is None:
        return decorator
    return decorator(cls)


def dump_component(instance: Any) -> dict[str, Any]:
    """Serialize a registered component to a JSON-compatible document.

    Dataclass fields must themselves be JSON-compatible; nested dataclasses
    are flattened to dicts and are not rebuilt by load_component().

    Args:
        instance: Component instance.

    Returns:
        Document with "type" (qualified name) and "data" keys.

    Raises:
        TypeError: If the component type is not registered.
    """
    meta = _registry.get_meta(type(instance))
    if meta is None:
        raise TypeError(f"{type(instance).__name__} is not a registered component")
    if _is_pydantic(type(instance)):
        data = instance.model_dump(mode="json")
    else:
        data = dataclasses.asdict(instance)
    return {"type": meta.type_name, "data": data}


def load_component(doc: dict[str, Any]) -> Any:
    """Rebuild a component from a dump_component() document.

    Args:
        doc: Document with "type" and "data" keys.

    Returns:
        New component instance.

    Raises:
        LookupError: If the type is not registered in this process.
    """
    cls = _registry.get_type(doc["type"])
    if cls is None:
        raise LookupError(f"Unknown component type: {doc['type']}")
    if _is_pydantic(cls):
        return cls.model_validate(doc["data"])  # type: ignore[attr-defined]
    return cls(**doc["data"])
