"""Tests for the typed variable accessors."""

import logging
import math
import warnings

import pytest

from worldvars import (
    INVALID_LOCATION,
    ZERO_VECTOR,
    CodecError,
    Location,
    SystemEntity,
    VarType,
    Vector3,
)
from worldvars.core.query import Statement


@pytest.fixture
def rock(world):
    return world.spawn(tag="rock")


# Point access


@pytest.mark.parametrize("handle", [None, SystemEntity.MODULE, SystemEntity.CAMPAIGN])
def test_set_then_get(variables, handle):
    variables.set_int(handle, "hp", 12)
    variables.set_float(handle, "speed", 1.5)
    variables.set_string(handle, "name", "Aldo")

    assert variables.get_int(handle, "hp") == 12
    assert variables.get_float(handle, "speed") == 1.5
    assert variables.get_string(handle, "name") == "Aldo"


def test_none_and_module_handle_share_a_scope(variables):
    variables.set_int(None, "hp", 5)
    assert variables.get_int(SystemEntity.MODULE, "hp") == 5


def test_upsert_is_idempotent(variables, clock):
    """PROPERTY: Two writes to one key leave one record holding the last value and time."""
    variables.set_int(None, "hp", 1)
    clock.advance(10)
    variables.set_int(None, "hp", 2)

    records = variables.get_by_pattern(None, name="hp")
    assert len(records) == 1
    assert records[0].value == 2
    assert records[0].timestamp == clock.now


def test_key_includes_type(variables):
    variables.set_int(None, "mark", 1)
    variables.set_string(None, "mark", "one")
    assert variables.get_int(None, "mark") == 1
    assert variables.get_string(None, "mark") == "one"


def test_key_includes_tag(variables):
    """CRITICAL: Tagged and untagged records with one name are distinct.

    Why: Quest scripts keep per-quest copies of common names like "stage".
    """
    variables.set_int(None, "stage", 1)
    variables.set_int(None, "stage", 4, tag="quest_rats")

    assert variables.get_int(None, "stage") == 1
    assert variables.get_int(None, "stage", tag="quest_rats") == 4
    assert variables.get_int(None, "stage", tag="quest_wolves") == 0


@pytest.mark.parametrize(
    ("getter", "expected"),
    [
        ("get_int", 0),
        ("get_float", 0.0),
        ("get_string", ""),
        ("get_entity", SystemEntity.INVALID),
        ("get_vector", ZERO_VECTOR),
        ("get_location", INVALID_LOCATION),
        ("get_json", None),
        ("get_serialized", SystemEntity.INVALID),
    ],
)
def test_missing_variables_read_zero(variables, getter, expected):
    """PROPERTY: Reading a variable that was never set returns its zero value."""
    assert getattr(variables, getter)(None, "never_set") == expected


def test_delete_returns_removed_value(variables):
    variables.set_string(None, "name", "Aldo")
    assert variables.delete_string(None, "name") == "Aldo"
    assert variables.get_string(None, "name") == ""
    assert variables.delete_string(None, "name") == ""


def test_compound_values(variables, world, area):
    spot = Location(area, Vector3(3, 4, 0), facing=45.0)
    npc = world.spawn(tag="aldo")

    variables.set_vector(None, "wind", Vector3(1, 0, 0))
    variables.set_location(None, "home", spot)
    variables.set_entity(None, "giver", npc)
    variables.set_json(None, "flags", {"met": True, "stages": [1, 2]})

    assert variables.get_vector(None, "wind") == Vector3(1, 0, 0)
    assert variables.get_location(None, "home") == spot
    assert variables.get_entity(None, "giver") == npc
    assert variables.get_json(None, "flags") == {"met": True, "stages": [1, 2]}


def test_entity_reference_to_destroyed_entity(variables, world):
    npc = world.spawn(tag="aldo")
    variables.set_entity(None, "giver", npc)
    world.destroy(npc)
    assert variables.get_entity(None, "giver") == SystemEntity.INVALID


def test_corrupt_value_raises(variables):
    scope = variables.registry.resolve(None)
    scope.database.execute(
        Statement(
            f"INSERT INTO {scope.table} (type, varname, tag, value, timestamp) "
            "VALUES (:type, 'wind', '', 'not a vector', 0)",
            {"type": int(VarType.VECTOR)},
        )
    )
    with pytest.raises(CodecError):
        variables.get_vector(None, "wind")


# Increment and append


def test_increment_from_absent(variables):
    """PROPERTY: Incrementing a missing counter treats it as zero."""
    assert variables.increment_int(None, "kills") == 1
    assert variables.increment_int(None, "kills", 4) == 5
    assert variables.decrement_int(None, "kills", 2) == 3
    assert variables.get_int(None, "kills") == 3


def test_float_increment(variables):
    assert variables.increment_float(None, "xp", 0.5) == 0.5
    assert variables.decrement_float(None, "xp", 2.0) == -1.5
    assert isinstance(variables.get_float(None, "xp"), float)


def test_append_from_absent(variables):
    """PROPERTY: Appending to a missing string treats it as empty."""
    assert variables.append_string(None, "log", "a") == "a"
    assert variables.append_string(None, "log", "bc") == "abc"


def test_increment_respects_tag(variables):
    variables.increment_int(None, "kills", 2, tag="quest_rats")
    assert variables.get_int(None, "kills") == 0
    assert variables.get_int(None, "kills", tag="quest_rats") == 2


def test_increment_updates_timestamp(variables, clock):
    variables.increment_int(None, "kills")
    clock.advance(60)
    variables.increment_int(None, "kills")
    assert variables.get_by_pattern(None, name="kills")[0].timestamp == clock.now


def test_increment_int_overflow_leaves_value(variables):
    """64-bit counters refuse to overflow instead of turning into floats."""
    top = 2**63 - 1
    variables.set_int(None, "big", top)
    with pytest.raises(OverflowError):
        variables.increment_int(None, "big")
    assert variables.get_int(None, "big") == top

    variables.set_int(None, "small", -(2**63))
    with pytest.raises(OverflowError):
        variables.decrement_int(None, "small")
    assert variables.get_int(None, "small") == -(2**63)


def test_non_finite_vector_is_not_stored(variables):
    variables.set_vector(None, "wind", Vector3(1, 0, 0))
    with pytest.raises(CodecError):
        variables.set_vector(None, "wind", Vector3(math.inf, 0, 0))
    assert variables.get_vector(None, "wind") == Vector3(1, 0, 0)


# Retag


def test_retag_moves_record(variables):
    variables.set_int(None, "stage", 3, tag="draft")
    assert variables.retag(None, VarType.INT, "stage", "draft", "quest_rats")
    assert variables.get_int(None, "stage", tag="draft") == 0
    assert variables.get_int(None, "stage", tag="quest_rats") == 3


def test_retag_missing_record(variables):
    assert not variables.retag(None, VarType.INT, "stage", "draft", "quest_rats")


def test_retag_replaces_destination(variables):
    variables.set_int(None, "stage", 1, tag="a")
    variables.set_int(None, "stage", 2, tag="b")
    variables.retag(None, VarType.INT, "stage", "a", "b")
    assert [r.value for r in variables.get_by_pattern(None, name="stage")] == [1]


# Invalid handles


def test_invalid_handle_is_silent_noop(variables, rock):
    """CRITICAL: Writes through a non-scope handle do nothing and reads return zero.

    Why: Scripts routinely pass arbitrary objects as handles.
    """
    variables.set_int(rock, "hp", 5)
    assert variables.get_int(rock, "hp") == 0
    assert variables.increment_int(rock, "hp", 3) == 0
    assert variables.append_string(rock, "log", "x") == ""
    assert variables.delete_int(rock, "hp") == 0
    assert not variables.retag(rock, VarType.INT, "hp", "", "t")
    assert variables.delete_all(rock) == 0
    assert variables.get_by_pattern(rock) == []
    assert variables.delete_serialized(rock, "copy") is None
    # Nothing leaked into any real scope
    assert variables.get_by_pattern(None) == []


def test_disconnected_player_handle_is_invalid(variables, world, pc):
    variables.set_int(pc, "gold", 10)
    world.disconnect(pc)
    assert variables.get_int(pc, "gold") == 0


# Scope isolation


def test_scopes_are_isolated(variables, world, pc):
    """PROPERTY: A write in one scope is invisible in every other scope."""
    bob = world.connect("bob")
    variables.set_int(None, "gold", 1)
    variables.set_int(SystemEntity.CAMPAIGN, "gold", 2)
    variables.set_int(pc, "gold", 3)

    assert variables.get_int(None, "gold") == 1
    assert variables.get_int(SystemEntity.CAMPAIGN, "gold") == 2
    assert variables.get_int(pc, "gold") == 3
    assert variables.get_int(bob, "gold") == 0


def test_player_scope_survives_reconnect(variables, world, pc):
    variables.set_int(pc, "gold", 30)
    world.disconnect(pc)
    again = world.connect("alice")
    assert variables.get_int(again, "gold") == 30


# Pattern operations


@pytest.fixture
def populated(variables, clock):
    variables.set_int(None, "hp", 10)
    variables.set_int(None, "hp_max", 20, tag="stats")
    clock.advance(100)
    variables.set_string(None, "giver", "Aldo", tag="quest_rats")
    variables.set_int(None, "stage", 2, tag="quest_rats")
    variables.set_int(None, "stage", 5, tag="quest_wolves")
    return variables


def keys(records):
    return [(r.type, r.varname, r.tag) for r in records]


def test_get_by_pattern_orders_by_key(populated):
    assert keys(populated.get_by_pattern(None, types=VarType.INT)) == [
        (VarType.INT, "hp", ""),
        (VarType.INT, "hp_max", "stats"),
        (VarType.INT, "stage", "quest_rats"),
        (VarType.INT, "stage", "quest_wolves"),
    ]


def test_pattern_filters_combine(populated):
    records = populated.get_by_pattern(None, types=VarType.INT, tag="quest_*")
    assert [r.value for r in records] == [2, 5]
    assert keys(populated.get_by_pattern(None, name="hp*", tag="stats")) == [
        (VarType.INT, "hp_max", "stats")
    ]


def test_time_filter_sign(populated, clock):
    cutoff = clock.now - 50
    before = populated.get_by_pattern(None, time=-cutoff)
    after = populated.get_by_pattern(None, time=cutoff)
    assert {r.varname for r in before} == {"hp", "hp_max"}
    assert {r.varname for r in after} == {"giver", "stage"}


def test_delete_by_pattern(populated):
    assert populated.delete_by_pattern(None, tag="quest_*") == 3
    assert keys(populated.get_by_pattern(None)) == [
        (VarType.INT, "hp", ""),
        (VarType.INT, "hp_max", "stats"),
    ]


def test_delete_by_pattern_none_mask_warns(populated):
    with pytest.warns(UserWarning, match="VarType.NONE"):
        assert populated.delete_by_pattern(None, types=VarType.NONE) == 0
    assert len(populated.get_by_pattern(None)) == 5


def test_unfiltered_delete_logs_warning(populated, caplog):
    with caplog.at_level(logging.WARNING, logger="worldvars.world.variables"):
        assert populated.delete_by_pattern(None) == 5
    assert "without a filter" in caplog.text


def test_delete_all_is_explicit(populated, caplog):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        with caplog.at_level(logging.WARNING, logger="worldvars.world.variables"):
            assert populated.delete_all(None) == 5
    assert caplog.text == ""
    assert populated.get_by_pattern(None, name="*") == []


def test_pattern_operations_stay_in_scope(populated):
    populated.set_int(SystemEntity.CAMPAIGN, "hp", 99)
    populated.delete_all(None)
    assert populated.get_int(SystemEntity.CAMPAIGN, "hp") == 99


# Serialized entities


def test_serialized_round_trip(variables, world, area, pc, durability_cls):
    """Storing a snapshot and reading it back yields a fresh, equal entity."""
    sword = world.spawn(durability_cls(80, 100), tag="sword", kind="item", container=pc)
    gem = world.spawn(tag="gem", kind="item", container=sword)
    world.set_local(sword, VarType.STRING, "engraving", "For Alice")
    variables.set_serialized(pc, "heirloom", sword)
    world.destroy(sword)
    assert not world.entity_exists(gem)

    first = variables.get_serialized(pc, "heirloom", container=pc)
    second = variables.get_serialized(pc, "heirloom", location=Location(area, Vector3()))

    assert first != second
    assert world.container_of(first) == pc
    assert world.location_of(second).area == area
    assert world.get_copy(first, durability_cls) == durability_cls(80, 100)
    assert world.get_local(first, VarType.STRING, "engraving") == "For Alice"
    assert [world.tag_of(item) for item in world.inventory(first)] == ["gem"]


def test_serialized_of_missing_entity_not_stored(variables, world):
    sword = world.spawn(tag="sword")
    world.destroy(sword)
    variables.set_serialized(None, "copy", sword)
    assert variables.get_by_pattern(None) == []


def test_serialized_into_missing_container_is_invalid(variables, world):
    sword = world.spawn(tag="sword")
    chest = world.spawn(tag="chest")
    variables.set_serialized(None, "copy", sword)
    world.destroy(chest)
    assert variables.get_serialized(None, "copy", container=chest) == SystemEntity.INVALID


def test_delete_serialized_returns_document(variables, world):
    sword = world.spawn(tag="sword", kind="item")
    variables.set_serialized(None, "copy", sword)
    before = len(list(world.query_copies()))

    doc = variables.delete_serialized(None, "copy")

    assert doc["tag"] == "sword"
    assert len(list(world.query_copies())) == before
    assert variables.delete_serialized(None, "copy") is None


def test_get_by_pattern_does_not_instantiate(variables, world):
    sword = world.spawn(tag="sword")
    variables.set_serialized(None, "copy", sword)
    before = len(list(world.query_copies()))

    (record,) = variables.get_by_pattern(None, types=VarType.SERIALIZED)

    assert record.value["tag"] == "sword"
    assert len(list(world.query_copies())) == before


# Bound views


def test_scoped_views(variables, pc):
    variables.player(pc).set_int("gold", 5)
    variables.campaign.set_string("ruler", "Aribeth", tag="neverwinter")
    variables.module.increment_int("ticks")

    assert variables.get_int(pc, "gold") == 5
    assert variables.get_string(SystemEntity.CAMPAIGN, "ruler", "neverwinter") == "Aribeth"
    assert variables.get_int(None, "ticks") == 1


def test_scoped_dict_access(variables):
    view = variables.scope(None)
    view[VarType.INT, "hp"] = 7
    view[VarType.INT, "hp", "quest"] = 9

    assert view[VarType.INT, "hp"] == 7
    assert view[VarType.INT, "hp", "quest"] == 9
    del view[VarType.INT, "hp"]
    assert view[VarType.INT, "hp"] == 0


def test_scoped_view_validity(variables, rock, pc):
    assert variables.module.is_valid()
    assert variables.player(pc).is_valid()
    assert not variables.scope(rock).is_valid()


def test_scoped_view_rejects_unknown_names(variables):
    with pytest.raises(AttributeError):
        variables.module.copy_scope_to_scope
