"""World state and variable scopes.

Architecture Note:
    world/ is a stateful service layer that owns entities and the databases
    behind each variable scope. Unlike core/ (stateless functionalities),
    world/ maintains runtime state and opens connections.
"""

from worldvars.world.components import Identity, Owner, Placement, Principal
from worldvars.world.migration import Migrator, flatten_local_names, unix_now
from worldvars.world.scope import Scope, ScopeKind, ScopeRegistry
from worldvars.world.variables import ScopedVariables, Variables
from worldvars.world.world import World

__all__ = [
    "World",
    # Components
    "Identity",
    "Placement",
    "Owner",
    "Principal",
    # Scopes
    "Scope",
    "ScopeKind",
    "ScopeRegistry",
    # Variables
    "Variables",
    "ScopedVariables",
    "Migrator",
    "flatten_local_names",
    "unix_now",
]
