"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable track factories, a fake clock
and fake repositories shared by the claim, geometry and tool tests.
"""
from __future__ import annotations

import math
import os
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Sequence, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from territory_claim.errors import RepositoryError
from territory_claim.models import Coordinate, Territory
from territory_claim.repository.memory import InMemoryTerritoryRepository

ORIGIN = (31.2304, 121.4737)
T0 = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)
_R = 6_371_000.0


# --- Factory helpers -------------------------------------------------
def offset(north_m: float, east_m: float, origin: Tuple[float, float] = ORIGIN) -> Tuple[float, float]:
    """Return the lat/lon reached by moving north/east (metres) from origin."""

    lat0, lon0 = origin
    lat = lat0 + math.degrees(north_m / _R)
    lon = lon0 + math.degrees(east_m / (_R * math.cos(math.radians(lat0))))
    return lat, lon


def make_samples(
    offsets_m: Sequence[Tuple[float, float]],
    *,
    step_s: float = 60.0,
    accuracy_m: float = 5.0,
    start: datetime = T0,
) -> List[Coordinate]:
    samples = []
    for index, (north, east) in enumerate(offsets_m):
        lat, lon = offset(north, east)
        samples.append(
            Coordinate(
                lat,
                lon,
                accuracy_m=accuracy_m,
                timestamp=start + timedelta(seconds=step_s * index),
            )
        )
    return samples


SQUARE_OFFSETS = [(0, 0), (0, 100), (100, 100), (100, 0), (2, 1)]
FIGURE_EIGHT_OFFSETS = [(0, 0), (100, 100), (100, 0), (0, 100), (1, 2)]


def make_square_samples(**kwargs) -> List[Coordinate]:
    """100 m x 100 m square walked clockwise, closing 2 m from the start."""

    return make_samples(SQUARE_OFFSETS, **kwargs)


def make_figure_eight_samples(**kwargs) -> List[Coordinate]:
    """Bow-tie loop with the same bounding box as the square."""

    return make_samples(FIGURE_EIGHT_OFFSETS, **kwargs)


def make_territory(
    territory_id: str,
    owner_id: str,
    offsets_m: Sequence[Tuple[float, float]],
    **kwargs,
) -> Territory:
    boundary = tuple(Coordinate(*offset(north, east)) for north, east in offsets_m)
    return Territory(id=territory_id, owner_id=owner_id, boundary=boundary, **kwargs)


class FakeClock:
    """Deterministic clock advanced manually by tests."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FlakyRepository(InMemoryTerritoryRepository):
    """In-memory repository whose first ``failures`` saves raise."""

    def __init__(self, failures: int = 1, territories=None):
        super().__init__(territories)
        self.failures = failures
        self.save_calls = 0

    def save(self, territory: Territory) -> Territory:
        self.save_calls += 1
        if self.save_calls <= self.failures:
            raise RepositoryError("backend timeout")
        return super().save(territory)


class UnavailableRepository(InMemoryTerritoryRepository):
    """Repository whose nearby query always fails."""

    def find_active_territories(self, near, radius_m):
        raise RepositoryError("backend unreachable")


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def square_samples():
    return make_square_samples()


@pytest.fixture
def figure_eight_samples():
    return make_figure_eight_samples()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_repository():
    return InMemoryTerritoryRepository()
