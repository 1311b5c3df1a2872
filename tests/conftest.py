"""Shared test fixtures."""

import sys

import pytest

# Ensure src is in path
sys.path.insert(0, "src")

from dataclasses import dataclass

from worldvars import Location, Variables, VariableSettings, Vector3, World, component


@pytest.fixture
def world():
    """Fresh World instance."""
    return World()


@pytest.fixture
def settings():
    """In-memory settings, independent of the environment."""
    return VariableSettings(_env_file=None, data_directory=None)


class FakeClock:
    """Controllable Unix clock."""

    def __init__(self, now: int = 1_700_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def variables(world, settings, clock):
    """Variables over in-memory databases, closed after the test."""
    with Variables(world, settings, clock=clock) as variables:
        yield variables


@pytest.fixture
def area(world):
    return world.create_area("town_square", name="Town Square")


@pytest.fixture
def pc(world, area):
    """A connected player standing in the town square."""
    return world.connect("alice", name="Alice", location=Location(area, Vector3(1.0, 2.0, 0.0)))


@component
@dataclass(slots=True)
class FixtureDurability:
    current: int
    maximum: int


@pytest.fixture
def durability_cls():
    return FixtureDurability
