"""worldvars: scoped, typed, tagged variables for a game world.

Usage:
    from worldvars import Location, Variables, VarType, Vector3, World

    world = World()
    area = world.create_area("town_square")
    pc = world.connect("alice", location=Location(area, Vector3(5, 5, 0)))

    variables = Variables(world)
    variables.set_int(pc, "gold", 100)                      # player scope
    variables.set_string(None, "weather", "rain")           # module scope
    variables.campaign.set_int("day", 3, tag="calendar")    # campaign scope

    # Move everything tagged "quest_*" from the module into the campaign
    variables.copy_scope_to_scope(
        None, SystemEntity.CAMPAIGN, PatternFilter(tag="quest_*"), move=True
    )
"""

__version__ = "0.1.0"

# Configuration
from worldvars.config import VariableSettings

# Core primitives
from worldvars.core import (
    INVALID_LOCATION,
    ZERO_VECTOR,
    CodecError,
    EntityId,
    Handle,
    Location,
    PatternFilter,
    SystemEntity,
    VarType,
    Vector3,
    component,
    type_of,
    zero_value,
)
from worldvars.core.query import VariableRecord

# Storage
from worldvars.storage import (
    AttributeStore,
    DatabaseProvider,
    EntityHost,
    LocalStorage,
)

# World and variables
from worldvars.world import (
    ScopedVariables,
    ScopeKind,
    Variables,
    World,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "VariableSettings",
    # Core
    "EntityId",
    "SystemEntity",
    "Handle",
    "component",
    "VarType",
    "type_of",
    "Vector3",
    "Location",
    "ZERO_VECTOR",
    "INVALID_LOCATION",
    "CodecError",
    "zero_value",
    "PatternFilter",
    "VariableRecord",
    # World
    "World",
    "Variables",
    "ScopedVariables",
    "ScopeKind",
    # Storage
    "AttributeStore",
    "EntityHost",
    "LocalStorage",
    "DatabaseProvider",
]
