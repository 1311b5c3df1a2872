from dataclasses import dataclass

from worldvars import (
    Location,
    PatternFilter,
    SystemEntity,
    Variables,
    VariableSettings,
    VarType,
    Vector3,
    World,
    component,
)


@component
@dataclass
class Durability:
    """Wear on an item. Saved with snapshots."""

    current: int
    maximum: int


def main() -> None:
    world = World()
    square = world.create_area("town_square", name="Town Square")
    spawn_point = Location(square, Vector3(10, 4, 0), facing=90.0)

    alice = world.connect("alice", name="Alice", location=spawn_point)

    with Variables(world, VariableSettings(campaign_name="demo")) as variables:
        # Per-player state
        variables.set_int(alice, "gold", 50)
        print(f"Alice has {variables.increment_int(alice, 'gold', 25)} gold.")

        # Quest progress starts in the module scope, tagged by quest
        module = variables.module
        module.set_int("stage", 2, tag="quest_rats")
        module.set_string("giver", "Aldo", tag="quest_rats")
        module.set_location("home", spawn_point)

        # Promote quest state into the campaign once the quest is accepted
        moved = variables.copy_scope_to_scope(
            None, SystemEntity.CAMPAIGN, PatternFilter(tag="quest_*"), move=True
        )
        print(f"Moved {moved} quest records into the campaign.")
        print(f"Stage: {variables.campaign[VarType.INT, 'stage', 'quest_rats']}")

        # Store a whole item, then hand out a fresh copy of it
        sword = world.spawn(Durability(80, 100), tag="sword", kind="item", container=alice)
        world.set_local(sword, VarType.STRING, "engraving", "For Alice")
        variables.set_serialized(alice, "heirloom", sword)
        world.destroy(sword)

        copy = variables.get_serialized(alice, "heirloom", container=alice)
        print(f"Restored {world.tag_of(copy)}: {world.get_copy(copy, Durability)}")
        print(f"Engraving: {world.get_local(copy, VarType.STRING, 'engraving')}")

        for record in variables.get_by_pattern(alice, types=VarType.INT | VarType.SERIALIZED):
            print(f"  {record.type.name:<10} {record.varname:<10} tag={record.tag!r}")


if __name__ == "__main__":
    main()
