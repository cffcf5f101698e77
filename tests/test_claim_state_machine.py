"""Tests for the claim attempt lifecycle."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging

import pytest

from conftest import (
    FakeClock,
    FlakyRepository,
    UnavailableRepository,
    make_figure_eight_samples,
    make_samples,
    make_square_samples,
    make_territory,
)
from territory_claim.claims import (
    ClaimConfig,
    ClaimEventKind,
    ClaimState,
    ClaimStateMachine,
)
from territory_claim.errors import (
    AttemptAlreadyActive,
    InvalidTransition,
    PersistenceFailed,
    RepositoryError,
)
from territory_claim.models import FailureReason, RejectionReason
from territory_claim.repository.memory import InMemoryTerritoryRepository


def _machine(repository=None, config=None, clock=None):
    return ClaimStateMachine(
        "player-1",
        repository if repository is not None else InMemoryTerritoryRepository(),
        config or ClaimConfig(),
        clock=clock or FakeClock(),
        id_factory=lambda: "terr-0001",
    )


def _walk(machine, samples):
    machine.start()
    for sample in samples:
        machine.ingest_sample(sample)


def test_square_walk_completes_with_expected_area_and_points():
    repository = InMemoryTerritoryRepository()
    machine = _machine(repository)
    _walk(machine, make_square_samples())

    outcome = machine.finish()

    assert outcome.state is ClaimState.COMPLETED
    assert outcome.persisted
    territory = outcome.territory
    assert territory is not None
    assert territory.point_count == 4
    assert territory.area_m2 == pytest.approx(10_000, rel=0.05)
    assert territory.owner_id == "player-1"
    assert machine.state is ClaimState.COMPLETED
    assert repository.get("terr-0001").area_m2 == pytest.approx(territory.area_m2)
    assert machine.pending_territory is None


def test_figure_eight_fails_as_self_intersecting():
    machine = _machine()
    _walk(machine, make_figure_eight_samples())

    outcome = machine.finish()

    assert outcome.state is ClaimState.FAILED
    assert outcome.reason is FailureReason.SELF_INTERSECTING
    assert outcome.territory is None
    assert machine.state is ClaimState.FAILED


def test_figure_eight_passing_within_tolerance_of_itself_still_fails():
    # The return pass runs 0.2 m from the first pass's vertex at the crossing.
    machine = _machine()
    _walk(
        machine,
        make_samples([(0, 0), (50, 100), (150, 200), (-50, 200), (50.2, 100), (100, 0)]),
    )

    outcome = machine.finish()

    assert outcome.state is ClaimState.FAILED
    assert outcome.reason is FailureReason.SELF_INTERSECTING


def test_two_distinct_points_closing_loop_fails_too_few_points():
    machine = _machine()
    _walk(machine, make_samples([(0, 0), (0, 50), (1, 1)]))

    outcome = machine.finish()

    assert outcome.reason is FailureReason.TOO_FEW_POINTS


def test_tiny_loop_fails_area_too_small():
    config = ClaimConfig(min_distance_m=1.0, closure_tolerance_m=2.0)
    machine = _machine(config=config)
    _walk(machine, make_samples([(0, 0), (0, 4), (4, 4), (4, 0), (0.5, 0.5)]))

    outcome = machine.finish()

    assert outcome.reason is FailureReason.AREA_TOO_SMALL


def test_optional_minimum_walked_distance():
    config = ClaimConfig(min_total_distance_m=1_000.0)
    machine = _machine(config=config)
    _walk(machine, make_square_samples())

    assert machine.finish().reason is FailureReason.PATH_TOO_SHORT


def test_overlap_with_existing_territory_fails():
    existing = make_territory(
        "terr-other", "player-2", [(50, 50), (50, 150), (150, 150), (150, 50)]
    )
    machine = _machine(InMemoryTerritoryRepository([existing]))
    _walk(machine, make_square_samples())

    outcome = machine.finish()

    assert outcome.reason is FailureReason.OVERLAPS_EXISTING_TERRITORY
    assert "terr-other" in (outcome.failure.detail or "")


def test_own_overlap_can_be_ignored_and_neighbours_do_not_block():
    own = make_territory("terr-own", "PLAYER-1", [(50, 50), (50, 150), (150, 150), (150, 50)])
    neighbour = make_territory(
        "terr-next", "player-2", [(0, 100), (0, 200), (100, 200), (100, 100)]
    )
    repository = InMemoryTerritoryRepository([own, neighbour])
    machine = _machine(repository, config=ClaimConfig(check_own_overlap=False))
    _walk(machine, make_square_samples())

    outcome = machine.finish()

    assert outcome.state is ClaimState.COMPLETED


def test_repository_outage_during_overlap_check():
    machine = _machine(UnavailableRepository())
    _walk(machine, make_square_samples())

    outcome = machine.finish()

    assert outcome.reason is FailureReason.OVERLAP_CHECK_UNAVAILABLE
    assert machine.state is ClaimState.FAILED


@pytest.mark.parametrize("prepare", ["tracking", "completed", "failed", "cancelled"])
def test_start_outside_idle_raises_without_state_change(prepare):
    machine = _machine()
    machine.start()
    if prepare == "completed":
        for sample in make_square_samples():
            machine.ingest_sample(sample)
        machine.finish()
    elif prepare == "failed":
        machine.finish()
    elif prepare == "cancelled":
        machine.cancel()
    state_before = machine.state
    path_before = machine.recorder.current_path()

    with pytest.raises(AttemptAlreadyActive):
        machine.start()

    assert machine.state is state_before
    assert machine.recorder.current_path() == path_before


def test_cancel_discards_path_and_next_attempt_starts_empty():
    machine = _machine()
    _walk(machine, make_square_samples()[:3])
    assert machine.recorder.point_count == 3

    machine.cancel()

    assert machine.state is ClaimState.CANCELLED
    assert machine.recorder.point_count == 0
    machine.reset()
    machine.start()
    assert machine.state is ClaimState.TRACKING
    assert machine.recorder.current_path() == ()


def test_wrong_state_operations_raise_invalid_transition():
    machine = _machine()
    with pytest.raises(InvalidTransition):
        machine.ingest_sample(make_square_samples()[0])
    with pytest.raises(InvalidTransition):
        machine.finish()
    with pytest.raises(InvalidTransition):
        machine.cancel()
    with pytest.raises(InvalidTransition):
        machine.retry_persist()
    machine.start()
    with pytest.raises(InvalidTransition):
        machine.reset()


def test_persistence_failure_is_retryable_without_new_samples(caplog):
    repository = FlakyRepository(failures=1)
    machine = _machine(repository)
    _walk(machine, make_square_samples())

    with caplog.at_level(logging.WARNING):
        outcome = machine.finish()

    assert outcome.state is ClaimState.COMPLETED
    assert not outcome.persisted
    assert isinstance(outcome.persistence_error, PersistenceFailed)
    assert isinstance(outcome.persistence_error.cause, RepositoryError)
    assert outcome.persistence_error.territory is outcome.territory
    assert machine.state is ClaimState.COMPLETED
    assert machine.pending_territory is outcome.territory
    assert "kept for retry" in caplog.text

    stored = machine.retry_persist()

    assert stored is outcome.territory
    assert repository.save_calls == 2
    assert repository.get(stored.id).area_m2 == pytest.approx(stored.area_m2)
    assert machine.pending_territory is None
    assert machine.last_outcome.persisted


def test_retry_persist_raises_when_backend_still_down():
    repository = FlakyRepository(failures=5)
    machine = _machine(repository)
    _walk(machine, make_square_samples())
    outcome = machine.finish()

    with pytest.raises(PersistenceFailed) as excinfo:
        machine.retry_persist()

    assert excinfo.value.territory is outcome.territory
    assert machine.pending_territory is outcome.territory


def test_event_sequence_for_successful_claim():
    machine = _machine()
    events = []
    machine.subscribe(events.append)
    samples = make_square_samples()
    machine.start()
    for sample in samples:
        machine.ingest_sample(sample)
    machine.ingest_sample(samples[-1])  # duplicate timestamp
    machine.finish()

    kinds = [event.kind for event in events]
    assert kinds == [
        ClaimEventKind.TRACKING_STARTED,
        ClaimEventKind.LOOP_CLOSED,
        ClaimEventKind.SAMPLE_REJECTED,
        ClaimEventKind.VALIDATING,
        ClaimEventKind.COMPLETED,
        ClaimEventKind.PERSISTED,
    ]
    rejected = events[2]
    assert rejected.reason is RejectionReason.OUT_OF_ORDER
    assert events[4].territory is not None
    assert events[4].state is ClaimState.COMPLETED


def test_failed_and_cancelled_events_carry_reason():
    machine = _machine()
    events = []
    unsubscribe = machine.subscribe(events.append)
    _walk(machine, make_figure_eight_samples())
    machine.finish()
    failed = events[-1]
    assert failed.kind is ClaimEventKind.FAILED
    assert failed.reason is FailureReason.SELF_INTERSECTING

    machine.reset()
    machine.start()
    machine.cancel()
    assert events[-1].kind is ClaimEventKind.CANCELLED

    unsubscribe()
    count = len(events)
    machine.reset()
    machine.start()
    assert len(events) == count


def test_listener_on_executor_and_finish_async():
    machine = _machine()
    seen = []
    with ThreadPoolExecutor(max_workers=1) as executor:
        machine.subscribe(lambda event: seen.append(event.kind), executor)
        _walk(machine, make_square_samples())
        future = machine.finish_async(executor)
        outcome = future.result(timeout=30)
    assert outcome.state is ClaimState.COMPLETED
    assert ClaimEventKind.COMPLETED in seen
    assert ClaimEventKind.PERSISTED in seen


def test_failing_listener_does_not_break_the_machine(caplog):
    machine = _machine()

    def explode(_event):
        raise RuntimeError("listener bug")

    machine.subscribe(explode)
    with caplog.at_level(logging.ERROR, logger="ClaimStateMachine"):
        machine.start()
    assert machine.state is ClaimState.TRACKING
    assert "listener failed" in caplog.text.lower()


def test_config_from_env_uses_module_constants(monkeypatch):
    from territory_claim import config

    monkeypatch.setattr(config, "CLAIM_MIN_AREA_M2", 500.0)
    built = ClaimConfig.from_env(closure_tolerance_m=20.0)
    assert built.min_area_m2 == 500.0
    assert built.closure_tolerance_m == 20.0
    with pytest.raises(TypeError):
        ClaimConfig.from_env(unknown_field=1)


def test_failing_id_factory_leaves_attempt_tracking():
    def broken_ids():
        raise RuntimeError("id service down")

    machine = ClaimStateMachine(
        "player-1", InMemoryTerritoryRepository(), ClaimConfig(), clock=FakeClock(), id_factory=broken_ids
    )
    _walk(machine, make_square_samples())

    with pytest.raises(RuntimeError):
        machine.finish()

    assert machine.state is ClaimState.TRACKING
    machine.cancel()
    assert machine.state is ClaimState.CANCELLED


def test_unexpected_validation_error_moves_to_failed(monkeypatch, caplog):
    machine = _machine()
    events = []
    machine.subscribe(events.append)
    _walk(machine, make_square_samples())

    def explode(_request):
        raise ValueError("projection blew up")

    monkeypatch.setattr(machine._validator, "validate", explode)
    with caplog.at_level(logging.ERROR, logger="ClaimStateMachine"):
        with pytest.raises(ValueError):
            machine.finish()

    assert machine.state is ClaimState.FAILED
    assert events[-1].kind is ClaimEventKind.FAILED
    assert "projection blew up" in events[-1].detail
    assert "Validation aborted" in caplog.text
    machine.reset()
    machine.start()
    assert machine.state is ClaimState.TRACKING


def test_unsaved_territories_are_all_kept_for_retry(caplog):
    ids = iter(["terr-a", "terr-b"])
    repository = FlakyRepository(failures=2)
    machine = ClaimStateMachine(
        "player-1", repository, ClaimConfig(), clock=FakeClock(), id_factory=lambda: next(ids)
    )
    _walk(machine, make_square_samples())
    first = machine.finish().territory
    machine.reset()
    _walk(machine, make_square_samples())
    with caplog.at_level(logging.WARNING, logger="ClaimStateMachine"):
        second = machine.finish().territory

    assert "terr-a is still waiting to be saved" in caplog.text
    assert machine.pending_territories == [first, second]
    assert machine.pending_territory is second

    assert machine.retry_persist("terr-a") is first
    assert machine.retry_persist() is second
    assert machine.pending_territories == []
    assert repository.get("terr-a") is not None
    with pytest.raises(InvalidTransition):
        machine.retry_persist("terr-a")
