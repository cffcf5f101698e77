"""Render a claim attempt on an interactive Leaflet map."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

import folium

from ..models import POI, Coordinate, Territory

PathLike = Union[str, Path]

_PATH_COLOR = "#2c7bb6"
_CLAIM_COLOR = "#1a9641"
_EXISTING_COLOR = "#d73027"
_POI_COLOR = "#fdae61"


def create_claim_map(
    path: Sequence[Coordinate],
    *,
    territory: Optional[Territory] = None,
    existing: Iterable[Territory] = (),
    pois: Iterable[POI] = (),
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Draw the walked path, the claimed polygon and nearby territories.

    Raises:
        ValueError: If there is nothing to centre the map on.
    """

    if path:
        center = path[0].as_latlon()
    elif territory is not None:
        center = territory.boundary[0].as_latlon()
    else:
        raise ValueError("A path or territory is required to build the map")

    folium_map = folium.Map(location=center, zoom_start=17, control_scale=True)

    for other in existing:
        folium.Polygon(
            other.to_coordinates(),
            color=_EXISTING_COLOR,
            weight=2,
            fill=True,
            fill_opacity=0.2,
            tooltip=f"{other.display_name} ({other.formatted_area})",
        ).add_to(folium_map)

    if territory is not None:
        folium.Polygon(
            territory.to_coordinates(),
            color=_CLAIM_COLOR,
            weight=3,
            fill=True,
            fill_opacity=0.35,
            tooltip=f"Claimed: {territory.formatted_area}",
        ).add_to(folium_map)

    if len(path) >= 2:
        folium.PolyLine(
            [point.as_latlon() for point in path],
            color=_PATH_COLOR,
            weight=4,
            opacity=0.8,
            tooltip="Recorded path",
        ).add_to(folium_map)
    if path:
        folium.CircleMarker(
            location=center,
            radius=6,
            color=_PATH_COLOR,
            fill=True,
            fill_color=_PATH_COLOR,
            tooltip="Start",
        ).add_to(folium_map)

    for poi in pois:
        folium.CircleMarker(
            location=poi.coordinate.as_latlon(),
            radius=5,
            color=_POI_COLOR,
            fill=True,
            fill_color=_POI_COLOR,
            tooltip=f"{poi.name} ({poi.category.value}, danger {poi.danger_level})",
        ).add_to(folium_map)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_claim_map"]
