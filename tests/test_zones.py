import math

import pytest

from ergride.zones import (
    Zone,
    get_hr_zone,
    get_power_zone,
    hr_zone_boundaries,
    power_zone_boundaries,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "watts,zone,name",
    [
        (0, 1, "Recovery"),
        (100, 1, "Recovery"),
        (111, 1, "Recovery"),
        (114, 2, "Endurance"),
        (151, 2, "Endurance"),
        (154, 3, "Tempo"),
        (211, 4, "Threshold"),
        (240, 5, "VO2max"),
        (244, 6, "Anaerobic"),
        (304, 7, "Neuromuscular"),
        (1500, 7, "Neuromuscular"),
    ],
)
def test_power_zone_bands(watts, zone, name):
    assert get_power_zone(watts, 200) == Zone(zone, name)


@pytest.mark.unit
@pytest.mark.parametrize("ftp", [None, 0, -10])
def test_power_zone_without_ftp(ftp):
    assert get_power_zone(250, ftp) == Zone(0, "N/A")


@pytest.mark.unit
@pytest.mark.parametrize(
    "hr,zone",
    [(100, 1), (113, 1), (115, 2), (132, 2), (134, 3), (151, 3), (153, 4), (170, 4), (172, 5), (210, 5)],
)
def test_hr_zone_bands(hr, zone):
    assert get_hr_zone(hr, 190).zone == zone


@pytest.mark.unit
def test_hr_zone_without_max_hr():
    assert get_hr_zone(150, None).zone == 0
    assert get_hr_zone(150, 0).name == "N/A"


@pytest.mark.unit
def test_power_zone_boundaries():
    boundaries = power_zone_boundaries(250)

    assert [b.zone for b in boundaries] == [1, 2, 3, 4, 5, 6, 7]
    assert [b.max_value for b in boundaries[:-1]] == [138, 188, 225, 262, 300, 375]
    assert boundaries[0].name == "Recovery"
    assert math.isinf(boundaries[-1].max_value)
    assert boundaries[-1].name == "Neuromuscular"


@pytest.mark.unit
def test_hr_zone_boundaries():
    boundaries = hr_zone_boundaries(190)

    assert [(b.max_percent, b.max_value) for b in boundaries] == [
        (60, 114),
        (70, 133),
        (80, 152),
        (90, 171),
        (100, 190),
    ]
    assert boundaries[-1].name == "Max"


@pytest.mark.unit
def test_boundaries_without_reference():
    assert power_zone_boundaries(None) == []
    assert hr_zone_boundaries(0) == []
