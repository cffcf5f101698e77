"""Tests for POI proximity evaluation and the prompt gate."""

from __future__ import annotations

import pytest

from conftest import T0, FakeClock, offset
from territory_claim.models import POI, Coordinate, POICategory
from territory_claim.proximity import ProximityPromptGate, danger_level, evaluate


def _poi(poi_id, north, east, category=POICategory.STORE):
    return POI(id=poi_id, name=poi_id.title(), coordinate=Coordinate(*offset(north, east)), category=category)


HERE = Coordinate(*offset(0, 0))


def test_poi_at_27m_included_and_80m_excluded():
    near = _poi("near", 0, 27)
    far = _poi("far", 80, 0)

    events = evaluate(HERE, {near, far}, threshold_m=50.0, now=T0)

    assert [event.poi_id for event in events] == ["near"]
    assert events[0].distance_m == pytest.approx(27.0, abs=0.1)
    assert events[0].timestamp == T0
    assert events[0].poi is near


def test_results_sorted_by_ascending_distance():
    pois = [_poi("b", 40, 0), _poi("a", 0, 10), _poi("c", -45, 0), _poi("d", 0, 51)]
    events = evaluate(HERE, pois)
    assert [event.poi_id for event in events] == ["a", "b", "c"]
    distances = [event.distance_m for event in events]
    assert distances == sorted(distances)


def test_evaluate_empty_catalog_and_bad_threshold():
    assert evaluate(HERE, []) == []
    with pytest.raises(ValueError):
        evaluate(HERE, [_poi("a", 0, 10)], threshold_m=-1)


@pytest.mark.parametrize(
    "category, level",
    [
        (POICategory.RESTAURANT, 1),
        (POICategory.CAFE, 1),
        (POICategory.HOSPITAL, 2),
        (POICategory.PHARMACY, 2),
        (POICategory.SUPERMARKET, 3),
        (POICategory.CONVENIENCE, 3),
        (POICategory.STORE, 3),
        (POICategory.OTHER, 3),
        (POICategory.GAS_STATION, 4),
        ("gas_station", 4),
    ],
)
def test_danger_level_table(category, level):
    assert danger_level(category) == level


def test_gate_allows_one_prompt_at_a_time():
    gate = ProximityPromptGate(clock=FakeClock())
    events = evaluate(HERE, [_poi("a", 0, 10), _poi("b", 0, 20)], now=T0)

    assert gate.offer(events).poi_id == "a"
    assert gate.offer(events) is None
    assert gate.active.poi_id == "a"


def test_gate_dismiss_cooldown():
    clock = FakeClock()
    gate = ProximityPromptGate(cooldown_s=60.0, clock=clock)
    events = evaluate(HERE, [_poi("a", 0, 10)], now=T0)

    gate.offer(events)
    gate.dismiss("a")
    assert gate.active is None

    clock.advance(30)
    assert gate.offer(events) is None
    clock.advance(31)
    assert gate.offer(events).poi_id == "a"


def test_gate_skips_scavenged_pois():
    gate = ProximityPromptGate(clock=FakeClock())
    events = evaluate(HERE, [_poi("a", 0, 10), _poi("b", 0, 20)], now=T0)

    gate.offer(events)
    gate.mark_scavenged("a")

    assert gate.is_scavenged("a")
    assert gate.offer(events).poi_id == "b"
    gate.reset()
    assert not gate.is_scavenged("a")
    assert gate.offer(events).poi_id == "a"
