"""Tests for the claim map renderer."""

from __future__ import annotations

from pathlib import Path

import folium
import pytest

from conftest import make_square_samples, make_territory, offset
from territory_claim.models import POI, Coordinate, POICategory
from territory_claim.tools.visualization import create_claim_map


def test_claim_map_renders_all_layers(tmp_path: Path) -> None:
    path = make_square_samples()
    claimed = make_territory("mine", "me", [(0, 0), (0, 100), (100, 100), (100, 0)])
    rival = make_territory(
        "rival", "you", [(200, 0), (200, 100), (300, 100), (300, 0)], name="Rival block"
    )
    shop = POI("p-1", "Corner Shop", Coordinate(*offset(50, 150)), POICategory.CONVENIENCE)
    output = tmp_path / "maps" / "claim.html"

    result = create_claim_map(
        path, territory=claimed, existing=[rival], pois=[shop], output_html_path=output
    )

    assert isinstance(result, folium.Map)
    assert output.exists()
    html = output.read_text(encoding="utf-8")
    assert "Rival block" in html
    assert "Corner Shop" in html
    assert "Recorded path" in html


def test_claim_map_without_path_centres_on_territory() -> None:
    claimed = make_territory("mine", "me", [(0, 0), (0, 100), (100, 100), (100, 0)])
    result = create_claim_map([], territory=claimed)
    assert result.location == pytest.approx(list(claimed.boundary[0].as_latlon()))


def test_claim_map_needs_something_to_draw() -> None:
    with pytest.raises(ValueError):
        create_claim_map([])
