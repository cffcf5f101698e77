"""Tests for the track loaders and the replay CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from conftest import (
    SQUARE_OFFSETS,
    T0,
    make_figure_eight_samples,
    make_square_samples,
    make_territory,
)
from territory_claim.claims import ClaimState
from territory_claim.tools import replay_track
from territory_claim.tools.replay_claim import main
from territory_claim.tools.track_io import (
    TrackFormatError,
    load_csv_track,
    load_track,
    parse_timestamp,
)


def _write_csv(path: Path, samples, header="latitude,longitude,timestamp,accuracy") -> Path:
    lines = [header]
    for sample in samples:
        lines.append(
            f"{sample.latitude},{sample.longitude},"
            f"{sample.timestamp.isoformat().replace('+00:00', 'Z')},{sample.accuracy_m}"
        )
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _write_gpx(path: Path, samples) -> Path:
    points = "\n".join(
        f'<trkpt lat="{s.latitude}" lon="{s.longitude}"><ele>12.5</ele>'
        f"<time>{s.timestamp.isoformat().replace('+00:00', 'Z')}</time></trkpt>"
        for s in samples
    )
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">'
        f"<trk><trkseg>{points}</trkseg></trk></gpx>",
        encoding="utf-8",
    )
    return path


@pytest.mark.parametrize(
    "raw, expected_seconds",
    [
        ("2025-03-01T08:00:00Z", 0),
        ("2025-03-01T08:00:30+00:00", 30),
        (str(int(T0.timestamp())), 0),
        (str(int(T0.timestamp() * 1000) + 1500), 1.5),
    ],
)
def test_parse_timestamp_formats(raw, expected_seconds):
    assert (parse_timestamp(raw) - T0).total_seconds() == pytest.approx(expected_seconds)


def test_csv_loader_accepts_aliases_and_skips_bad_rows(tmp_path, caplog):
    path = tmp_path / "walk.csv"
    path.write_text(
        "lat,lng,geoTime,horizontalAccuracy\n"
        "31.2304,121.4737,2025-03-01T08:00:00Z,4\n"
        "bad,121.4737,2025-03-01T08:01:00Z,4\n"
        "31.2305,121.4738,2025-03-01T08:02:00Z,\n",
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING):
        samples, summary = load_csv_track(path)

    assert summary.rows_total == 3
    assert summary.rows_skipped == 1
    assert samples[0].accuracy_m == 4.0
    assert samples[1].accuracy_m is None
    assert "Skipped 1 unparseable rows" in caplog.text


def test_csv_without_required_columns_is_rejected(tmp_path):
    path = tmp_path / "walk.csv"
    path.write_text("x,y\n1,2\n", encoding="utf-8")
    with pytest.raises(TrackFormatError):
        load_track(path)


def test_gpx_loader_reads_namespaced_points(tmp_path):
    samples = make_square_samples()
    loaded = load_track(_write_gpx(tmp_path / "walk.gpx", samples))

    assert len(loaded) == len(samples)
    assert loaded[0].as_latlon() == pytest.approx(samples[0].as_latlon())
    assert loaded[0].altitude == 12.5
    assert loaded[-1].timestamp == samples[-1].timestamp
    assert loaded[0].accuracy_m is None


def test_replay_track_completes_square_and_warns_near_rival():
    rival = make_territory("rival", "you", [(0, 130), (0, 230), (100, 230), (100, 130)])
    result = replay_track(make_square_samples(), owner_id="me", existing=[rival])

    assert result.outcome.state is ClaimState.COMPLETED
    assert result.accepted == len(SQUARE_OFFSETS)
    assert result.rejected == {}
    assert not result.start_collision.has_collision
    assert result.path_collision.message is not None


def test_replay_track_requires_samples():
    with pytest.raises(ValueError):
        replay_track([])


def test_cli_writes_map_and_log_export(tmp_path, caplog):
    caplog.set_level(logging.INFO)
    track = _write_csv(tmp_path / "square.csv", make_square_samples())
    existing = tmp_path / "existing.json"
    rival = make_territory("rival", "you", [(300, 0), (300, 100), (400, 100), (400, 0)])
    existing.write_text(json.dumps([rival.to_payload()]), encoding="utf-8")
    output = tmp_path / "out" / "claim.html"
    log_export = tmp_path / "out" / "claim.log"

    code = main(
        [
            str(track),
            "--owner",
            "me",
            "--existing",
            str(existing),
            "--output",
            str(output),
            "--log-export",
            str(log_export),
        ]
    )

    assert code == 0
    assert output.exists()
    report = log_export.read_text(encoding="utf-8")
    assert report.startswith("=== Territory claim log ===")
    assert "Claim completed" in report


def test_cli_reports_failed_claim(tmp_path):
    track = _write_gpx(tmp_path / "eight.gpx", make_figure_eight_samples())
    assert main([str(track)]) == 2


def test_cli_rejects_unreadable_input(tmp_path):
    bad = tmp_path / "walk.txt"
    bad.write_text("nothing here", encoding="utf-8")
    assert main([str(bad)]) == 1
    assert main([str(tmp_path / "missing.csv")]) == 1


def test_cli_overrides_min_area(tmp_path):
    track = _write_csv(tmp_path / "square.csv", make_square_samples())
    assert main([str(track), "--min-area-m2", "50000"]) == 2
