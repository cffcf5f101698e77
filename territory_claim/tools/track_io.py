"""Load recorded GPS tracks (CSV or GPX) as location samples."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from defusedxml import ElementTree as ET

from ..models import Coordinate

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

_LAT_COLUMNS = ("latitude", "lat")
_LON_COLUMNS = ("longitude", "lon", "lng")
_TIME_COLUMNS = ("timestamp", "time", "geoTime")
_ACCURACY_COLUMNS = ("accuracy", "accuracy_m", "horizontalAccuracy")
_ALTITUDE_COLUMNS = ("altitude", "ele", "elevation")


class TrackFormatError(ValueError):
    """Raised when a track file cannot be interpreted."""


@dataclass(frozen=True, slots=True)
class TrackSummary:
    rows_total: int
    rows_parsed: int
    rows_skipped: int


def load_track(path: PathLike) -> List[Coordinate]:
    """Load samples from ``path``, choosing the parser by file extension."""

    track_path = Path(path)
    suffix = track_path.suffix.lower()
    if suffix == ".csv":
        samples, _summary = load_csv_track(track_path)
        return samples
    if suffix == ".gpx":
        return load_gpx_track(track_path)
    raise TrackFormatError(f"Unsupported track format '{suffix}' (use .csv or .gpx)")


def parse_timestamp(value: str) -> datetime:
    """Parse ISO-8601 (trailing Z allowed) or epoch seconds/milliseconds."""

    text = value.strip()
    if not text:
        raise ValueError("empty timestamp")
    try:
        number = float(text)
    except ValueError:
        number = None
    if number is not None:
        # Millisecond epochs are 13 digits; seconds stay below 1e11 until 5138.
        if number > 1e11:
            number /= 1000.0
        return datetime.fromtimestamp(number, tz=timezone.utc)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def load_csv_track(path: PathLike) -> tuple[List[Coordinate], TrackSummary]:
    """Read a CSV export with latitude, longitude and timestamp columns.

    Accuracy and altitude columns are optional. A negative accuracy is kept as
    is so the recorder can reject it as an invalid fix.
    """

    csv_path = Path(path)
    samples: List[Coordinate] = []
    rows_total = 0
    with csv_path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        fieldnames = reader.fieldnames or ()
        columns = _resolve_columns(fieldnames)
        for row in reader:
            rows_total += 1
            try:
                samples.append(_row_to_sample(row, columns))
            except (TypeError, ValueError):
                continue

    summary = TrackSummary(
        rows_total=rows_total,
        rows_parsed=len(samples),
        rows_skipped=rows_total - len(samples),
    )
    if summary.rows_skipped:
        LOGGER.warning(
            "Skipped %d unparseable rows in %s", summary.rows_skipped, csv_path
        )
    return samples, summary


def _resolve_columns(fieldnames: Sequence[str]) -> Dict[str, Optional[str]]:
    available = set(fieldnames)

    def pick(options: Sequence[str]) -> Optional[str]:
        for option in options:
            if option in available:
                return option
        return None

    columns = {
        "lat": pick(_LAT_COLUMNS),
        "lon": pick(_LON_COLUMNS),
        "time": pick(_TIME_COLUMNS),
        "accuracy": pick(_ACCURACY_COLUMNS),
        "altitude": pick(_ALTITUDE_COLUMNS),
    }
    missing = [name for name in ("lat", "lon", "time") if columns[name] is None]
    if missing:
        raise TrackFormatError(
            f"CSV is missing required columns {missing}; found {list(fieldnames)}"
        )
    return columns


def _row_to_sample(row: Dict[str, str], columns: Dict[str, Optional[str]]) -> Coordinate:
    def optional_float(key: str) -> Optional[float]:
        column = columns[key]
        if column is None:
            return None
        raw = (row.get(column) or "").strip()
        return float(raw) if raw else None

    return Coordinate(
        latitude=float(row[columns["lat"]]),
        longitude=float(row[columns["lon"]]),
        altitude=optional_float("altitude"),
        accuracy_m=optional_float("accuracy"),
        timestamp=parse_timestamp(row[columns["time"]]),
    )


def load_gpx_track(path: PathLike) -> List[Coordinate]:
    """Read every ``<trkpt>`` of a GPX 1.0/1.1 file in document order."""

    tree = ET.parse(str(path))
    root = tree.getroot()
    samples: List[Coordinate] = []
    for element in root.iter():
        if _local_name(element.tag) != "trkpt":
            continue
        try:
            lat = float(element.attrib["lat"])
            lon = float(element.attrib["lon"])
        except (KeyError, ValueError):
            continue
        altitude: Optional[float] = None
        timestamp: Optional[datetime] = None
        for child in element:
            name = _local_name(child.tag)
            text = (child.text or "").strip()
            if not text:
                continue
            if name == "ele":
                try:
                    altitude = float(text)
                except ValueError:
                    altitude = None
            elif name == "time":
                try:
                    timestamp = parse_timestamp(text)
                except ValueError:
                    timestamp = None
        samples.append(
            Coordinate(lat, lon, altitude=altitude, timestamp=timestamp)
        )
    if not samples:
        raise TrackFormatError(f"GPX file {path} contains no track points")
    return samples


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


__all__ = [
    "TrackFormatError",
    "TrackSummary",
    "load_csv_track",
    "load_gpx_track",
    "load_track",
    "parse_timestamp",
]
