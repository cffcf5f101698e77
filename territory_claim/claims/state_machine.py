"""Lifecycle of a single territory claim attempt.

``IDLE -> TRACKING -> VALIDATING -> COMPLETED | FAILED`` and
``TRACKING -> CANCELLED``. Terminal states return to ``IDLE`` through
``reset()``.

Validation is geometric only. Saving the resulting territory is a separate
step: a save failure leaves the machine COMPLETED and keeps the territory for
``retry_persist()``.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import threading
from typing import Callable, Dict, List, Optional
import uuid

from ..errors import (
    AttemptAlreadyActive,
    InvalidTransition,
    PersistenceFailed,
    ValidationFailed,
)
from ..models import Coordinate, Territory
from ..repository.base import TerritoryRepository
from ..tracking.recorder import PathRecorder
from .models import ClaimConfig, ClaimEvent, ClaimEventKind, ClaimOutcome, ClaimState
from .validation import ClaimValidator, ValidationRequest

Clock = Callable[[], datetime]
Listener = Callable[[ClaimEvent], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_territory_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True, eq=False)
class _Subscription:
    listener: Listener
    executor: Optional[Executor]


class ClaimStateMachine:
    """Drives one player's claim attempts.

    A single writer is expected to feed samples; the internal lock only keeps
    misuse from corrupting state. Listeners are called after the lock is
    released, on their executor when one was given.
    """

    def __init__(
        self,
        owner_id: str,
        repository: TerritoryRepository,
        config: ClaimConfig | None = None,
        clock: Clock | None = None,
        logger: logging.Logger | None = None,
        *,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        if not owner_id:
            raise ValueError("owner_id is required")
        self.owner_id = owner_id
        self.repository = repository
        self.config = config or ClaimConfig.from_env()
        self._clock = clock or _utc_now
        self._log = logger or logging.getLogger(self.__class__.__name__)
        self._id_factory = id_factory or _new_territory_id
        self._validator = ClaimValidator(self.config, repository, self._log)
        self._lock = threading.RLock()
        self._state = ClaimState.IDLE
        self._recorder: PathRecorder = self.config.build_recorder()
        self._started_at: Optional[datetime] = None
        self._loop_closed = False
        self._pending: Dict[str, Territory] = {}
        self._last_outcome: Optional[ClaimOutcome] = None
        self._subscriptions: List[_Subscription] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> ClaimState:
        with self._lock:
            return self._state

    @property
    def recorder(self) -> PathRecorder:
        return self._recorder

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at

    @property
    def loop_closed(self) -> bool:
        return self._loop_closed

    @property
    def pending_territory(self) -> Optional[Territory]:
        """Most recent validated territory whose save has not succeeded yet."""

        with self._lock:
            if not self._pending:
                return None
            return next(reversed(self._pending.values()))

    @property
    def pending_territories(self) -> List[Territory]:
        """Every unsaved territory, oldest first."""

        with self._lock:
            return list(self._pending.values())

    @property
    def last_outcome(self) -> Optional[ClaimOutcome]:
        return self._last_outcome

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(
        self, listener: Listener, executor: Executor | None = None
    ) -> Callable[[], None]:
        """Register ``listener`` for claim events; returns an unsubscribe callable."""

        subscription = _Subscription(listener, executor)
        with self._lock:
            self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            with self._lock:
                if subscription in self._subscriptions:
                    self._subscriptions.remove(subscription)

        return unsubscribe

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self) -> None:
        with self._lock:
            if self._state is not ClaimState.IDLE:
                raise AttemptAlreadyActive(
                    f"Cannot start a claim while {self._state.value}"
                )
            self._recorder.reset()
            self._started_at = self._clock()
            self._loop_closed = False
            self._state = ClaimState.TRACKING
            event = self._event(ClaimEventKind.TRACKING_STARTED)
        self._log.info("Claim tracking started for owner=%s", self.owner_id)
        self._emit(event)

    def ingest_sample(self, sample: Coordinate) -> bool:
        events: List[ClaimEvent] = []
        with self._lock:
            self._require(ClaimState.TRACKING, "ingest samples")
            accepted = self._recorder.ingest(sample)
            if not accepted:
                events.append(
                    self._event(
                        ClaimEventKind.SAMPLE_REJECTED,
                        reason=self._recorder.last_rejection,
                        sample=sample,
                    )
                )
            elif not self._loop_closed and self._recorder.is_closed(
                self.config.closure_tolerance_m, self.config.closure_min_points
            ):
                self._loop_closed = True
                distance = self._recorder.distance_to_start(sample) or 0.0
                events.append(
                    self._event(
                        ClaimEventKind.LOOP_CLOSED,
                        sample=sample,
                        detail=f"{distance:.1f} m from start",
                    )
                )
        for event in events:
            if event.kind is ClaimEventKind.LOOP_CLOSED:
                self._log.info(
                    "Loop closed after %d points (%s)",
                    self._recorder.point_count,
                    event.detail,
                )
            self._emit(event)
        return accepted

    def finish(self) -> ClaimOutcome:
        """Validate the recorded path and, on success, save the territory.

        Blocking; bounded by the recorder capacity.
        """

        with self._lock:
            self._require(ClaimState.TRACKING, "finish")
            request = ValidationRequest(
                territory_id=self._id_factory(),
                owner_id=self.owner_id,
                path=self._recorder.current_path(),
                walked_distance_m=self._recorder.cumulative_distance_m,
                started_at=self._started_at,
                completed_at=self._clock(),
            )
            self._state = ClaimState.VALIDATING
            validating = self._event(ClaimEventKind.VALIDATING)
        self._log.info("Validating claim path with %d points", len(request.path))
        self._emit(validating)

        try:
            territory = self._validator.validate(request)
        except ValidationFailed as exc:
            with self._lock:
                self._state = ClaimState.FAILED
                self._recorder.reset()
                outcome = ClaimOutcome(ClaimState.FAILED, failure=exc)
                self._last_outcome = outcome
                event = self._event(
                    ClaimEventKind.FAILED, reason=exc.reason, detail=exc.detail
                )
            self._log.warning("Claim failed: %s", exc)
            self._emit(event)
            return outcome
        except Exception as exc:
            with self._lock:
                self._state = ClaimState.FAILED
                self._recorder.reset()
                self._last_outcome = ClaimOutcome(ClaimState.FAILED)
                event = self._event(ClaimEventKind.FAILED, detail=str(exc))
            self._log.error("Validation aborted: %s", exc, exc_info=True)
            self._emit(event)
            raise

        with self._lock:
            self._state = ClaimState.COMPLETED
            self._recorder.reset()
            for waiting in self._pending.values():
                self._log.warning(
                    "Territory %s is still waiting to be saved; now also holding %s",
                    waiting.id,
                    territory.id,
                )
            self._pending[territory.id] = territory
            completed = self._event(ClaimEventKind.COMPLETED, territory=territory)
        self._emit(completed)

        error = self._persist(territory)
        outcome = ClaimOutcome(
            ClaimState.COMPLETED, territory=territory, persistence_error=error
        )
        self._last_outcome = outcome
        return outcome

    def finish_async(self, executor: Executor) -> "Future[ClaimOutcome]":
        """Run :meth:`finish` on ``executor``."""

        return executor.submit(self.finish)

    def cancel(self) -> None:
        with self._lock:
            self._require(ClaimState.TRACKING, "cancel")
            self._recorder.reset()
            self._loop_closed = False
            self._state = ClaimState.CANCELLED
            event = self._event(ClaimEventKind.CANCELLED)
        self._log.info("Claim cancelled for owner=%s", self.owner_id)
        self._emit(event)

    def reset(self) -> None:
        """Return from a terminal state to IDLE. No-op when already idle."""

        with self._lock:
            if self._state is ClaimState.IDLE:
                return
            if not self._state.is_terminal:
                raise InvalidTransition(
                    f"Cannot reset while {self._state.value}; cancel or finish first"
                )
            self._recorder.reset()
            self._started_at = None
            self._loop_closed = False
            self._state = ClaimState.IDLE

    def retry_persist(self, territory_id: Optional[str] = None) -> Territory:
        """Save a retained territory again without re-validating it.

        Defaults to the most recent unsaved territory. Raises
        :class:`PersistenceFailed` when the save fails again.
        """

        with self._lock:
            if territory_id is None:
                territory = self.pending_territory
            else:
                territory = self._pending.get(territory_id)
        if territory is None:
            raise InvalidTransition("No validated territory is waiting to be saved")
        error = self._persist(territory)
        if error is not None:
            raise error
        if self._last_outcome is not None and self._last_outcome.territory is territory:
            self._last_outcome = ClaimOutcome(ClaimState.COMPLETED, territory=territory)
        return territory

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _persist(self, territory: Territory) -> Optional[PersistenceFailed]:
        try:
            self.repository.save(territory)
        except Exception as exc:
            error = PersistenceFailed(territory, exc)
            self._log.warning(
                "Saving territory %s failed; kept for retry: %s", territory.id, exc
            )
            self._emit(
                self._event(
                    ClaimEventKind.PERSISTENCE_FAILED,
                    territory=territory,
                    detail=str(exc),
                )
            )
            return error
        with self._lock:
            if self._pending.get(territory.id) is territory:
                del self._pending[territory.id]
        self._log.info("Territory %s saved", territory.id)
        self._emit(self._event(ClaimEventKind.PERSISTED, territory=territory))
        return None

    def _require(self, expected: ClaimState, action: str) -> None:
        if self._state is not expected:
            raise InvalidTransition(
                f"Cannot {action} while {self._state.value}; expected {expected.value}"
            )

    def _event(self, kind: ClaimEventKind, **kwargs) -> ClaimEvent:
        return ClaimEvent(kind=kind, state=self._state, timestamp=self._clock(), **kwargs)

    def _emit(self, event: ClaimEvent) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            if subscription.executor is not None:
                subscription.executor.submit(self._deliver, subscription.listener, event)
            else:
                self._deliver(subscription.listener, event)

    def _deliver(self, listener: Listener, event: ClaimEvent) -> None:
        try:
            listener(event)
        except Exception as exc:
            self._log.error(
                "Claim listener failed on %s: %s", event.kind.value, exc, exc_info=True
            )


__all__ = ["ClaimStateMachine"]
