"""Tests for report caption formatting."""

from __future__ import annotations

import pytest

from src.relay.caption import format_location_caption


def test_coordinates_have_six_decimals() -> None:
    caption = format_location_caption(-6.2, 106.816666)
    assert caption.splitlines()[0] == "Report received from LAT: -6.200000, LNG: 106.816666"


def test_includes_maps_link() -> None:
    caption = format_location_caption(1.5, 2.25)
    assert "[Open in Maps](https://www.google.com/maps?q=1.500000,2.250000)" in caption


def test_note_is_appended() -> None:
    caption = format_location_caption(0, 0, note="  broken streetlight ")
    assert caption.splitlines()[-1] == "broken streetlight"


def test_blank_note_is_ignored() -> None:
    assert len(format_location_caption(0, 0, note="   ").splitlines()) == 2


@pytest.mark.parametrize(("lat", "lng"), [(90.1, 0), (-91, 0), (0, 180.5), (0, -181)])
def test_out_of_range_rejected(lat: float, lng: float) -> None:
    with pytest.raises(ValueError):
        format_location_caption(lat, lng)
