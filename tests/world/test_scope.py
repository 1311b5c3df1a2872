"""Tests for scope classification and lazy schema creation."""

import sqlite3

import pytest

from worldvars import DatabaseProvider, SystemEntity, VariableSettings, Variables, VarType
from worldvars.core.query import Statement, select_variable
from worldvars.world import ScopeKind, ScopeRegistry


@pytest.fixture
def registry(world, settings):
    databases = DatabaseProvider(settings)
    yield ScopeRegistry(world, databases, settings)
    databases.close()


def test_module_scope_handles(registry):
    assert registry.classify(None) is ScopeKind.EPHEMERAL
    assert registry.classify(SystemEntity.MODULE) is ScopeKind.EPHEMERAL


def test_campaign_scope_handle(registry):
    assert registry.classify(SystemEntity.CAMPAIGN) is ScopeKind.GLOBAL


def test_connected_player_has_principal_scope(registry, pc):
    assert registry.classify(pc) is ScopeKind.PRINCIPAL
    scope = registry.resolve(pc)
    assert scope is not None
    assert scope.key == "alice"
    assert scope.table == "player_variables"


def test_non_player_entities_are_invalid(registry, world, area):
    """CRITICAL: Only module, campaign and connected players name a scope.

    Why: Writes through any other handle must be silent no-ops, never land
    in some default table.
    """
    rock = world.spawn(tag="rock")
    assert registry.classify(rock) is None
    assert registry.classify(area) is None
    assert registry.classify(SystemEntity.INVALID) is None
    assert registry.resolve(rock) is None


def test_disconnected_player_is_invalid(registry, world, pc):
    world.disconnect(pc)
    assert registry.classify(pc) is None


def test_schema_created_once_per_instance(registry):
    """The CREATE statement runs on first resolve only, until reset()."""
    scope = registry.resolve(None)
    assert registry.is_initialized(scope)
    scope.database.execute(Statement(f"DROP TABLE {scope.table}"))

    again = registry.resolve(None)
    with pytest.raises(sqlite3.OperationalError):
        again.database.execute(select_variable(again.table, VarType.INT, "hp"))

    registry.reset()
    assert not registry.is_initialized(again)
    scope = registry.resolve(None)
    assert scope.database.execute(select_variable(scope.table, VarType.INT, "hp")) == []


def test_each_player_has_its_own_instance(registry, world):
    alice = world.connect("alice")
    bob = world.connect("bob")
    a = registry.resolve(alice)
    b = registry.resolve(bob)
    assert a.instance != b.instance
    assert a.database is not b.database
    assert registry.is_initialized(a) and registry.is_initialized(b)


def test_reconnected_player_reuses_instance(registry, world):
    first = world.connect("alice")
    scope = registry.resolve(first)
    world.disconnect(first)
    second = world.connect("alice")

    assert first != second
    assert registry.resolve(second).instance == scope.instance


@pytest.mark.parametrize("key", ["Alice Smith", "clan/alice", "../../etc", ""])
def test_any_player_key_names_a_scope(registry, world, variables, key):
    """Player keys are never rejected, whatever characters they contain."""
    pc = world.connect(key)
    scope = registry.resolve(pc)
    assert scope is not None
    assert scope.kind is ScopeKind.PRINCIPAL
    assert scope.key == key

    variables.set_int(pc, "gold", 5)
    assert variables.increment_int(pc, "gold") == 6
    assert variables.get_int(pc, "gold") == 6


def test_player_key_with_path_characters_stays_in_data_directory(world, tmp_path):
    settings = VariableSettings(_env_file=None, data_directory=str(tmp_path))
    pc = world.connect("Alice Smith/../../x")
    with Variables(world, settings) as variables:
        variables.set_string(pc, "title", "Knight")
        assert variables.get_string(pc, "title") == "Knight"

    saves = list((tmp_path / "players").iterdir())
    assert [path.name for path in saves] == ["Alice%20Smith%2F..%2F..%2Fx.sqlite3"]
    assert sorted(path.name for path in tmp_path.iterdir()) == ["players"]
