"""Storage backends."""

from worldvars.storage.allocator import EntityAllocator
from worldvars.storage.local import LocalStorage
from worldvars.storage.protocol import AttributeStore, EntityHost, SimulationHost
from worldvars.storage.sqlite import Database, DatabaseProvider

__all__ = [
    "AttributeStore",
    "EntityHost",
    "SimulationHost",
    "EntityAllocator",
    "LocalStorage",
    "Database",
    "DatabaseProvider",
]
