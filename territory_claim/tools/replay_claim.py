"""Replay a recorded GPS track through the claim engine.

Example::

    python -m territory_claim.tools.replay_claim walk.gpx --output maps/walk.html
"""

from __future__ import annotations

import argparse
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..claim_log import ClaimLogBuffer
from ..claims.collision import CollisionResult, assess_path, check_start_position
from ..claims.models import ClaimConfig, ClaimEvent, ClaimEventKind, ClaimOutcome
from ..claims.state_machine import ClaimStateMachine
from ..models import Coordinate, Territory
from ..repository.memory import InMemoryTerritoryRepository
from .track_io import TrackFormatError, load_track
from .visualization import create_claim_map


@dataclass(slots=True)
class ReplayResult:
    outcome: ClaimOutcome
    accepted: int
    rejected: Dict[str, int]
    path: List[Coordinate]
    events: List[ClaimEvent] = field(default_factory=list)
    start_collision: Optional[CollisionResult] = None
    path_collision: Optional[CollisionResult] = None


def replay_track(
    samples: Sequence[Coordinate],
    *,
    owner_id: str = "replay",
    existing: Sequence[Territory] = (),
    config: ClaimConfig | None = None,
    repository: InMemoryTerritoryRepository | None = None,
) -> ReplayResult:
    """Feed ``samples`` into a fresh state machine and finish the claim.

    The machine's clock follows the sample timestamps so the resulting
    territory carries the times of the original walk.
    """

    if not samples:
        raise ValueError("Track contains no samples")
    repo = repository or InMemoryTerritoryRepository(existing)
    current = {"now": samples[0].timestamp or datetime.now(timezone.utc)}
    machine = ClaimStateMachine(
        owner_id,
        repo,
        config,
        clock=lambda: current["now"],
    )
    events: List[ClaimEvent] = []
    machine.subscribe(events.append)

    start_collision = check_start_position(samples[0], owner_id, list(existing))
    machine.start()
    accepted = 0
    for sample in samples:
        if sample.timestamp is not None:
            current["now"] = sample.timestamp
        if machine.ingest_sample(sample):
            accepted += 1
    path = list(machine.recorder.current_path())
    path_collision = assess_path(path, owner_id, list(existing))
    outcome = machine.finish()

    rejected = Counter(
        event.reason.value
        for event in events
        if event.kind is ClaimEventKind.SAMPLE_REJECTED and event.reason is not None
    )
    return ReplayResult(
        outcome=outcome,
        accepted=accepted,
        rejected=dict(rejected),
        path=path,
        events=events,
        start_collision=start_collision,
        path_collision=path_collision,
    )


def load_territories(path: Path) -> List[Territory]:
    """Load backend territory rows (a JSON array) from ``path``."""

    with path.open("r", encoding="utf-8") as handle:
        rows = json.load(handle)
    if not isinstance(rows, list):
        raise ValueError(f"{path} must contain a JSON array of territory rows")
    return [Territory.from_payload(row) for row in rows]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replay a recorded track (CSV or GPX) as a territory claim."
    )
    parser.add_argument("track", type=Path, help="Track file (.csv or .gpx)")
    parser.add_argument("--owner", default="replay", help="Claimant id")
    parser.add_argument(
        "--existing",
        type=Path,
        help="JSON array of existing territory rows used for overlap checks",
    )
    parser.add_argument("--min-area-m2", type=float)
    parser.add_argument("--closure-tolerance-m", type=float)
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional HTML map output path",
    )
    parser.add_argument(
        "--log-export",
        type=Path,
        help="Optional path for the plain-text claim log export",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point used via ``python -m territory_claim.tools.replay_claim``."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )
    log_buffer = ClaimLogBuffer.install()
    try:
        return _run(args, log_buffer)
    finally:
        logging.getLogger().removeHandler(log_buffer)


def _run(args: argparse.Namespace, log_buffer: ClaimLogBuffer) -> int:
    try:
        samples = load_track(args.track)
        existing = load_territories(args.existing) if args.existing else []
    except (TrackFormatError, OSError, ValueError) as exc:
        logging.error("Failed to load input: %s", exc)
        return 1

    overrides = {}
    if args.min_area_m2 is not None:
        overrides["min_area_m2"] = args.min_area_m2
    if args.closure_tolerance_m is not None:
        overrides["closure_tolerance_m"] = args.closure_tolerance_m
    config = ClaimConfig.from_env(**overrides)

    try:
        result = replay_track(
            samples, owner_id=args.owner, existing=existing, config=config
        )
    except ValueError as exc:
        logging.error("%s", exc)
        return 1

    logging.info(
        "Replayed %d samples: %d accepted, rejected=%s",
        len(samples),
        result.accepted,
        result.rejected or "{}",
    )
    if result.path_collision is not None and result.path_collision.message:
        logging.warning("Collision check: %s", result.path_collision.message)

    outcome = result.outcome
    if outcome.succeeded and outcome.territory is not None:
        logging.info(
            "Claim completed: %s, %d points",
            outcome.territory.formatted_area,
            outcome.territory.point_count,
        )
    else:
        logging.error("Claim failed: %s", outcome.failure)

    if args.output:
        create_claim_map(
            result.path,
            territory=outcome.territory,
            existing=existing,
            output_html_path=args.output,
        )
        logging.info("Claim map written to %s", args.output)

    if args.log_export:
        args.log_export.parent.mkdir(parents=True, exist_ok=True)
        args.log_export.write_text(log_buffer.export(), encoding="utf-8")

    return 0 if outcome.succeeded else 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
