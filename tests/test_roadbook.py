from timewise.course_model import Track
from timewise.loaders.gpx_loader import GpxWaypoint
from timewise.roadbook import FINISH_LABEL, START_LABEL, LegKey, Roadbook


def _line_track(n: int) -> Track:
    return Track(lat_lngs=[(0.0, 0.001 * i) for i in range(n)], elevation_m=[0.0] * n, break_idx=[0])


def test_ensure_endpoints_adds_locked_start_and_finish():
    rb = Roadbook()
    rb.ensure_endpoints(10)

    assert rb.indices == [0, 9]
    assert rb.labels[0] == START_LABEL
    assert rb.labels[9] == FINISH_LABEL
    assert rb.locked == {0, 9}
    assert rb.remove_index(0) is False


def test_add_index_rounds_clamps_and_names():
    rb = Roadbook()
    rb.ensure_endpoints(10)

    assert rb.add_index(4.5, 10) == 5
    assert rb.add_index(42, 10) == 9  # clamped onto Finish
    assert rb.indices == [0, 5, 9]
    assert rb.labels[5] == "WP 2"


def test_existing_index_only_takes_label_over_placeholder():
    rb = Roadbook()
    rb.add_index(3, 10, label="Bridge")
    rb.add_index(3, 10, label="Other")
    assert rb.labels[3] == "Bridge"

    rb.set_label(3, "   ")
    assert rb.labels[3] == "#3"
    rb.add_index(3, 10, label="Ford")
    assert rb.labels[3] == "Ford"


def test_remove_and_reset():
    rb = Roadbook()
    rb.ensure_endpoints(10)
    rb.add_index(5, 10, label="Lake")
    key = LegKey(0, 5)
    rb.leg_stops_min[key] = 15

    assert rb.remove_index(5) is True
    assert 5 not in rb.labels
    assert rb.remove_index(5) is False

    rb.add_index(5, 10)
    rb.reset(10)
    assert rb.indices == [0, 9]
    assert rb.leg_stops_min == {}


def test_leg_keys_and_names():
    rb = Roadbook()
    rb.ensure_endpoints(10)
    rb.add_index(5, 10, label="Lake")

    keys = rb.leg_keys(10)
    assert keys == [LegKey(0, 5), LegKey(5, 9)]
    assert rb.leg_name(keys[0]) == "Start → Lake"

    rb.set_leg_label(keys[0], "Approach")
    assert rb.leg_name(keys[0]) == "Approach"
    rb.set_leg_label(keys[0], "")
    assert rb.leg_name(keys[0]) == "Start → Lake"

    rb.set_leg_observation(keys[1], "  icy  ")
    assert rb.leg_observations[keys[1]] == "icy"
    rb.set_leg_observation(keys[1], "")
    assert keys[1] not in rb.leg_observations


def test_leg_key_string_form():
    key = LegKey(3, 17)
    assert key.to_str() == "3|17"
    assert LegKey.from_str("3|17") == key


def test_import_waypoints_snaps_and_dedupes():
    track = _line_track(11)
    rb = Roadbook()
    added = rb.import_waypoints(
        [
            GpxWaypoint(0.0001, 0.0049, "Hut"),
            GpxWaypoint(0.0, 0.0051, "Hut again"),  # same nearest index
            GpxWaypoint(0.0, 0.0080, "Pass"),
        ],
        track,
    )
    rb.ensure_endpoints(len(track))

    assert added == 2
    assert rb.indices == [0, 5, 8, 10]
    assert rb.labels[5] == "Hut"
    assert rb.labels[8] == "Pass"
