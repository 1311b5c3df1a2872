"""Core type definitions for worldvars."""

from worldvars.core.identity import EntityId

type Copy[T] = T
"""Type alias indicating a value is a copy that won't auto-persist.

Mutations to a Copy[T] do NOT affect world state. Write changes back
explicitly, e.g. via world.set(entity, component).
"""

type Handle = EntityId | None
"""Type alias for the scope selector taken by every variable accessor.

None (or SystemEntity.MODULE) selects the ephemeral module scope,
SystemEntity.CAMPAIGN the global campaign scope, and a connected player's
EntityId that player's scope. Any other entity is an invalid handle.
"""
