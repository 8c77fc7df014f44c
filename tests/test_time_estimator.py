import pytest

from timewise.config import Activity, Settings
from timewise.time_estimator import adjusted_leg_hours, format_time_hhmm, step_time_hours


def test_hike_overlaps_horizontal_and_vertical():
    s = Settings(speed_flat_kmh=4, speed_vert_mh=300)
    # 1 h horizontal, 1 h vertical
    assert step_time_hours(4.0, 300.0, 0.0, s) == pytest.approx(1.5)


def test_snowshoe_adds_horizontal_and_vertical():
    s = Settings(speed_flat_kmh=4, speed_vert_mh=300, activity=Activity.SNOWSHOE)
    assert step_time_hours(4.0, 300.0, 0.0, s) == pytest.approx(2.0)


def test_flat_step_is_distance_over_speed():
    s = Settings(speed_flat_kmh=5)
    assert step_time_hours(0.1, 0.0, 0.0, s) == pytest.approx(0.02)


def test_descent_applies_downhill_factor():
    s = Settings(speed_flat_kmh=4, speed_vert_mh=300, downhill_factor=0.5)
    up = step_time_hours(4.0, 300.0, 0.0, s)
    down = step_time_hours(4.0, 0.0, 300.0, s)
    assert down == pytest.approx(up * 0.5)


def test_adjusted_leg_hours():
    assert adjusted_leg_hours(2.0) == 2.0
    assert adjusted_leg_hours(2.0, cond_pct=10) == pytest.approx(2.2)
    assert adjusted_leg_hours(2.0, cond_pct=-50, stops_min=30) == pytest.approx(1.5)


@pytest.mark.parametrize(
    "hours, expected",
    [(0.0, "0:00"), (0.5, "0:30"), (12.75, "12:45"), (1.999, "2:00"), (0.0125, "0:01")],
)
def test_format_time_hhmm(hours, expected):
    assert format_time_hhmm(hours) == expected
