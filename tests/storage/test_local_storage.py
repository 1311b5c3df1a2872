"""Unit tests for LocalStorage entities, components and locals."""

from dataclasses import dataclass

import pytest

from worldvars import SystemEntity, VarType, component
from worldvars.storage import EntityAllocator, LocalStorage


@component
@dataclass(slots=True)
class Inventory:
    items: list[str]


@pytest.fixture
def storage() -> LocalStorage:
    return LocalStorage()


def test_allocator_skips_reserved_indices() -> None:
    entity = EntityAllocator().allocate()
    assert entity.index >= SystemEntity._RESERVED_COUNT


def test_allocator_recycles_with_new_generation() -> None:
    """CRITICAL: A recycled index never compares equal to its previous holder.

    Why: Stale handles must not alias a newer entity.
    """
    allocator = EntityAllocator()
    first = allocator.allocate()
    allocator.deallocate(first)
    second = allocator.allocate()

    assert second.index == first.index
    assert second.generation == first.generation + 1
    assert not allocator.is_alive(first)
    assert allocator.is_alive(second)


def test_allocator_rejects_double_free() -> None:
    allocator = EntityAllocator()
    entity = allocator.allocate()
    allocator.deallocate(entity)
    with pytest.raises(ValueError):
        allocator.deallocate(entity)


def test_reserved_entities_survive_destroy(storage: LocalStorage) -> None:
    storage.add_reserved(SystemEntity.MODULE)
    storage.destroy_entity(SystemEntity.MODULE)
    assert storage.entity_exists(SystemEntity.MODULE)


def test_destroy_removes_components_and_locals(storage: LocalStorage) -> None:
    entity = storage.create_entity()
    storage.set_component(entity, Inventory(["rope"]))
    storage.set_local(entity, VarType.INT, "hp", 3)

    storage.destroy_entity(entity)

    assert not storage.entity_exists(entity)
    assert storage.get_component(entity, Inventory) is None
    assert storage.get_local(entity, VarType.INT, "hp") is None


def test_get_component_returns_copy_by_default(storage: LocalStorage) -> None:
    entity = storage.create_entity()
    storage.set_component(entity, Inventory(["rope"]))

    inventory = storage.get_component(entity, Inventory)
    assert inventory is not None
    inventory.items.append("torch")

    assert storage.get_component(entity, Inventory) == Inventory(["rope"])


def test_locals_are_keyed_by_type_and_name(storage: LocalStorage) -> None:
    """The same name may hold one value per type."""
    entity = storage.create_entity()
    storage.set_local(entity, VarType.INT, "mark", 1)
    storage.set_local(entity, VarType.STRING, "mark", "one")

    assert storage.get_local(entity, VarType.INT, "mark") == 1
    assert storage.get_local(entity, VarType.STRING, "mark") == "one"


def test_local_values_are_copied(storage: LocalStorage) -> None:
    entity = storage.create_entity()
    value = {"stages": [1]}
    storage.set_local(entity, VarType.JSON, "quest", value)
    value["stages"].append(2)

    stored = storage.get_local(entity, VarType.JSON, "quest")
    assert stored == {"stages": [1]}
    stored["stages"].append(3)
    assert storage.get_local(entity, VarType.JSON, "quest") == {"stages": [1]}


def test_delete_local_reports_presence(storage: LocalStorage) -> None:
    entity = storage.create_entity()
    storage.set_local(entity, VarType.INT, "zero", 0)

    assert storage.delete_local(entity, VarType.INT, "zero")
    assert not storage.delete_local(entity, VarType.INT, "zero")


def test_iter_locals_sorted_by_type_then_name(storage: LocalStorage) -> None:
    entity = storage.create_entity()
    storage.set_local(entity, VarType.STRING, "a", "x")
    storage.set_local(entity, VarType.INT, "b", 2)
    storage.set_local(entity, VarType.INT, "a", 1)

    assert list(storage.iter_locals(entity)) == [
        (VarType.INT, "a", 1),
        (VarType.INT, "b", 2),
        (VarType.STRING, "a", "x"),
    ]


def test_locals_reject_type_masks(storage: LocalStorage) -> None:
    entity = storage.create_entity()
    with pytest.raises(ValueError):
        storage.set_local(entity, VarType.INT | VarType.FLOAT, "hp", 1)


def test_writes_to_unknown_entities_are_ignored(storage: LocalStorage) -> None:
    entity = storage.create_entity()
    storage.destroy_entity(entity)
    storage.set_local(entity, VarType.INT, "hp", 1)
    storage.set_component(entity, Inventory([]))
    assert storage.get_local(entity, VarType.INT, "hp") is None
    assert not storage.has_component(entity, Inventory)


def test_query_finds_entities_with_all_components(storage: LocalStorage) -> None:
    with_inventory = storage.create_entity()
    storage.create_entity()
    storage.set_component(with_inventory, Inventory(["rope"]))

    found = [entity for entity, _ in storage.query(Inventory)]
    assert found == [with_inventory]
