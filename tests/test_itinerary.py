import pytest

from timewise.course_model import Track
from timewise.itinerary import LEG_COLUMNS, compute_legs, leg_metrics, time_rollups
from timewise.roadbook import LegKey, Roadbook


@pytest.fixture
def track() -> Track:
    return Track(
        lat_lngs=[(0.0, 0.01 * i) for i in range(5)],
        elevation_m=[100.0, 110.0, 120.0, 115.0, 110.0],
        break_idx=[0],
        cum_dist_km=[0.0, 1.0, 2.0, 3.0, 4.0],
        cum_ascent_m=[0.0, 10.0, 20.0, 20.0, 20.0],
        cum_descent_m=[0.0, 0.0, 0.0, 5.0, 10.0],
        cum_time_h=[0.0, 0.25, 0.5, 0.75, 1.0],
    )


@pytest.fixture
def roadbook() -> Roadbook:
    rb = Roadbook()
    rb.ensure_endpoints(5)
    rb.add_index(2, 5, label="Col")
    return rb


def test_leg_metrics_subtracts_cumulatives(track):
    m = leg_metrics(track, 1, 3)
    assert m == {"dist_km": 2.0, "ascent_m": 10.0, "descent_m": 5.0, "base_h": 0.5}


def test_compute_legs_without_overrides(track, roadbook):
    legs = compute_legs(track, roadbook)

    assert list(legs.columns) == LEG_COLUMNS
    assert legs["name"].tolist() == ["Start → Col", "Col → Finish"]
    assert legs["key"].tolist() == [LegKey(0, 2), LegKey(2, 4)]
    assert legs["dist_km"].sum() == pytest.approx(track.totals.dist_km)
    assert legs["total_h"].tolist() == pytest.approx([0.5, 0.5])
    assert legs["remaining_h"].iloc[-1] == pytest.approx(0.0)


def test_compute_legs_with_stops_and_conditions(track, roadbook):
    roadbook.leg_stops_min[LegKey(0, 2)] = 30
    roadbook.leg_cond_pct[LegKey(2, 4)] = 10
    roadbook.leg_critical[LegKey(2, 4)] = True

    legs = compute_legs(track, roadbook)

    assert legs["total_h"].tolist() == pytest.approx([1.0, 0.55])
    assert legs["cum_time_h"].tolist() == pytest.approx([1.0, 1.55])
    assert legs["remaining_h"].tolist() == pytest.approx([0.55, 0.0])
    assert legs["critical"].tolist() == [False, True]
    assert legs["cum_descent_m"].tolist() == pytest.approx([0.0, 10.0])


def test_time_rollups(track, roadbook):
    roadbook.leg_stops_min[LegKey(0, 2)] = 30
    roadbook.leg_cond_pct[LegKey(2, 4)] = 10

    r = time_rollups(track, roadbook)

    assert r["base_h"] == pytest.approx(1.0)
    assert r["activity_with_cond_h"] == pytest.approx(1.05)
    assert r["stops_h"] == pytest.approx(0.5)
    assert r["total_h"] == pytest.approx(1.55)


def test_single_waypoint_has_no_legs(track):
    rb = Roadbook()
    rb.add_index(0, 5)

    assert compute_legs(track, rb).empty
    r = time_rollups(track, rb)
    assert r["total_h"] == track.totals.time_h
