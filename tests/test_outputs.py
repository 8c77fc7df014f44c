import pandas as pd

from timewise.config import Settings
from timewise.course_model import Track, build_track
from timewise.itinerary import compute_legs, time_rollups
from timewise.loaders.gpx_loader import parse_gpx_segments
from timewise.outputs.export_pdf import generate_roadbook_pdf
from timewise.outputs.output_formatter import (
    ROADBOOK_HEADERS,
    export_roadbook_csv,
    fmt_hrs,
    fmt_km,
    fmt_m,
    make_roadbook_table,
    make_summary_table,
)
from timewise.roadbook import LegKey, Roadbook


def _no_legs() -> pd.DataFrame:
    return compute_legs(Track(), Roadbook())


def _planned(sample_gpx_text):
    track = build_track(parse_gpx_segments(sample_gpx_text), Settings())
    rb = Roadbook()
    rb.ensure_endpoints(len(track))
    mid = rb.add_index(len(track) // 2, len(track), label="Hut")
    rb.leg_critical[LegKey(0, mid)] = True
    rb.leg_observations[LegKey(mid, track.last_index)] = "Exposed ridge → take care"
    return track, compute_legs(track, rb), time_rollups(track, rb)


def test_value_formatting():
    assert fmt_km(0.85) == "850 m"
    assert fmt_km(1.234) == "1.23 km"
    assert fmt_hrs(0.5) == "0:30 h"
    assert fmt_m(12.5) == "13 m"


def test_summary_table(sample_gpx_text):
    track, _, rollups = _planned(sample_gpx_text)
    table = make_summary_table(track, rollups)

    assert table["metric"].tolist()[0] == "Distance"
    assert table["value"].iloc[0] == fmt_km(track.totals.dist_km)


def test_roadbook_table_and_csv(sample_gpx_text):
    _, legs, _ = _planned(sample_gpx_text)
    table = make_roadbook_table(legs)

    assert list(table.columns) == list(ROADBOOK_HEADERS.values())
    assert table["Critical"].tolist() == ["Yes", ""]
    assert table["Name"].tolist() == ["Start → Hut", "Hut → Finish"]

    csv_text = export_roadbook_csv(legs)
    lines = csv_text.strip().split("\n")
    assert lines[0].startswith("#,Name,Critical,Leg – d")
    assert len(lines) == 3


def test_empty_roadbook_table():
    table = make_roadbook_table(_no_legs())
    assert table.empty
    assert list(table.columns) == list(ROADBOOK_HEADERS.values())


def test_generate_roadbook_pdf(sample_gpx_text):
    track, legs, rollups = _planned(sample_gpx_text)
    pdf = generate_roadbook_pdf(track, legs, rollups, title="Sample → Route")

    assert isinstance(pdf, bytes)
    assert pdf.startswith(b"%PDF")


def test_generate_roadbook_pdf_without_legs(sample_gpx_text):
    track, _, rollups = _planned(sample_gpx_text)
    pdf = generate_roadbook_pdf(track, _no_legs(), rollups)
    assert pdf.startswith(b"%PDF")
