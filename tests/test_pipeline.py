import pytest

from conftest import make_gpx
from timewise.config import Settings
from timewise.pipeline import PipelineConfig, rebuild_with_settings, refresh, run_pipeline
from timewise.roadbook import LegKey


def test_pipeline_golden_path(sample_gpx_text):
    """
    Golden-path test:
    - real GPX with two segments and one waypoint
    - full pipeline
    """
    res = run_pipeline(PipelineConfig(gpx_text=sample_gpx_text, gpx_name="sample_route.gpx"))

    track = res.track
    assert not track.is_empty
    assert len(track.break_idx) == 2
    assert len(track.cum_time_h) == len(track)

    rb = res.roadbook
    assert rb.indices[0] == 0 and rb.indices[-1] == track.last_index
    assert [rb.labels[i] for i in rb.indices] == ["Start", "Hut", "Finish"]

    assert len(res.legs) == 2
    assert res.legs["dist_km"].sum() == pytest.approx(track.totals.dist_km)
    assert res.rollups["total_h"] == pytest.approx(track.totals.time_h)
    assert res.gpx_name == "sample_route.gpx"


def test_pipeline_without_waypoint_import(sample_gpx_text):
    res = run_pipeline(PipelineConfig(gpx_text=sample_gpx_text, import_waypoints=False))
    assert res.roadbook.indices == [0, res.track.last_index]


def test_pipeline_sanitizes_settings(sample_gpx_text):
    res = run_pipeline(PipelineConfig(gpx_text=sample_gpx_text, settings=Settings(spacing_m=0.1, speed_flat_kmh=-1)))
    assert res.settings.spacing_m == 1.0
    assert res.settings.speed_flat_kmh == 4.0


def test_pipeline_without_track_raises():
    text = make_gpx([[(0, 0, 1)]])  # one point only
    with pytest.raises(ValueError, match="No track segments"):
        run_pipeline(PipelineConfig(gpx_text=text))


def test_refresh_applies_roadbook_edits(sample_gpx_text):
    res = run_pipeline(PipelineConfig(gpx_text=sample_gpx_text))
    key = res.roadbook.leg_keys()[0]
    res.roadbook.leg_stops_min[key] = 60

    res2 = refresh(res)
    assert res2.rollups["total_h"] == pytest.approx(res.rollups["total_h"] + 1.0)
    assert res2.legs["stops_min"].iloc[0] == 60


def test_rebuild_with_settings_keeps_waypoints(sample_gpx_text):
    res = run_pipeline(PipelineConfig(gpx_text=sample_gpx_text))
    res.roadbook.set_label(0, "Car park")
    res.roadbook.leg_cond_pct[LegKey(0, res.roadbook.indices[1])] = 20

    res2 = rebuild_with_settings(res, Settings(spacing_m=20))

    assert len(res2.track) < len(res.track)
    rb = res2.roadbook
    assert [rb.labels[i] for i in rb.indices] == ["Car park", "Hut", "Finish"]
    assert rb.indices[-1] == res2.track.last_index
    assert rb.locked == {0, res2.track.last_index}
    assert rb.leg_cond_pct == {}
    assert res2.track.totals.dist_km == pytest.approx(res.track.totals.dist_km, rel=1e-3)
