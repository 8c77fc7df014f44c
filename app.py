from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import streamlit as st

from timewise.config import (
    DEADBAND_RANGE_M,
    SMOOTH_WIN_RANGE_M,
    SPACING_RANGE_M,
    Activity,
    Settings,
    load_settings_from_env,
    settings_for_activity,
)
from timewise.course_model import nearest_index_on_track
from timewise.outputs.export_pdf import generate_roadbook_pdf
from timewise.outputs.output_formatter import (
    export_roadbook_csv,
    fmt_hrs,
    fmt_km,
    fmt_m,
    make_roadbook_table,
    make_summary_table,
)
from timewise.pipeline import PipelineResult, rebuild_with_settings, refresh
from timewise.plan_io import (
    PlanError,
    open_plan_or_gpx,
    parse_plan_text,
    plan_file_stem,
    plan_to_json,
    serialize_plan,
)
from timewise.utils.numbers import parse_cond_percent, sanitize_int

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("timewise.app")


# =========================================================
# Cached pipeline runner
# =========================================================
@st.cache_data(show_spinner=False)
def cached_open(
    text: str,
    filename: str,
    spacing_m: float,
    smooth_win_m: float,
    elev_deadband_m: float,
    speed_flat_kmh: float,
    speed_vert_mh: float,
    downhill_factor: float,
    activity: str,
) -> PipelineResult:
    settings = Settings(
        spacing_m=spacing_m,
        smooth_win_m=smooth_win_m,
        elev_deadband_m=elev_deadband_m,
        speed_flat_kmh=speed_flat_kmh,
        speed_vert_mh=speed_vert_mh,
        downhill_factor=downhill_factor,
        activity=Activity.parse(activity),
    )
    return open_plan_or_gpx(text, settings, gpx_name=filename)


# =========================================================
# Session state
# =========================================================
def _init_state() -> None:
    st.session_state.setdefault("result", None)
    st.session_state.setdefault("gpx_text", None)
    st.session_state.setdefault("file_name", None)


_init_state()


# =========================================================
# Page setup
# =========================================================
st.set_page_config(page_title="Timewise Roadbook", layout="wide")
st.title("🥾 Timewise Roadbook")
st.caption("Upload a GPX track (or a saved plan) to estimate hiking times and build a roadbook.")


# =========================================================
# Sidebar: input + settings
# =========================================================
st.sidebar.header("Get started")

upload = st.sidebar.file_uploader("GPX track or saved plan (.json)", type=["gpx", "json"])

env_settings = load_settings_from_env()
activity_names = [a.value for a in Activity]
activity = st.sidebar.selectbox(
    "Activity",
    activity_names,
    index=activity_names.index(env_settings.activity.value),
    format_func=str.capitalize,
)
preset = settings_for_activity(activity, base=env_settings)

with st.sidebar.expander("Advanced settings", expanded=False):
    spacing_m = st.number_input(
        "Resample spacing (m)", min_value=SPACING_RANGE_M[0], max_value=SPACING_RANGE_M[1], value=preset.spacing_m, step=1.0
    )
    smooth_win_m = st.number_input(
        "Smoothing window (m)",
        min_value=SMOOTH_WIN_RANGE_M[0],
        max_value=SMOOTH_WIN_RANGE_M[1],
        value=preset.smooth_win_m,
        step=5.0,
    )
    elev_deadband_m = st.number_input(
        "Elevation deadband (m)",
        min_value=DEADBAND_RANGE_M[0],
        max_value=DEADBAND_RANGE_M[1],
        value=preset.elev_deadband_m,
        step=0.5,
    )
    speed_flat_kmh = st.number_input("Flat speed (km/h)", min_value=0.1, value=preset.speed_flat_kmh, step=0.5)
    speed_vert_mh = st.number_input("Vertical speed (m/h)", min_value=1.0, value=preset.speed_vert_mh, step=10.0)
    downhill_factor = st.number_input(
        "Downhill factor", min_value=0.05, max_value=5.0, value=preset.downhill_factor, step=0.05, format="%.4f"
    )

settings = replace(
    preset,
    spacing_m=float(spacing_m),
    smooth_win_m=float(smooth_win_m),
    elev_deadband_m=float(elev_deadband_m),
    speed_flat_kmh=float(speed_flat_kmh),
    speed_vert_mh=float(speed_vert_mh),
    downhill_factor=float(downhill_factor),
)

import_wpts = st.sidebar.toggle("Import GPX waypoints", value=True)

run_btn = st.sidebar.button("Open", type="primary", disabled=upload is None)

st.sidebar.divider()

apply_btn = st.sidebar.button(
    "Apply settings to current track",
    disabled=st.session_state["result"] is None,
)

if st.sidebar.button("Clear cache"):
    st.cache_data.clear()
    st.session_state.clear()
    st.rerun()


# =========================================================
# Actions
# =========================================================
def _open_upload(text: str, filename: str) -> Tuple[Optional[PipelineResult], Optional[str]]:
    try:
        with st.spinner("Building track..."):
            res = cached_open(
                text=text,
                filename=filename,
                spacing_m=settings.spacing_m,
                smooth_win_m=settings.smooth_win_m,
                elev_deadband_m=settings.elev_deadband_m,
                speed_flat_kmh=settings.speed_flat_kmh,
                speed_vert_mh=settings.speed_vert_mh,
                downhill_factor=settings.downhill_factor,
                activity=settings.activity.value,
            )
    except (ValueError, PlanError) as e:
        logger.warning("Could not open %s: %s", filename, e)
        return None, str(e)

    is_gpx = text.lstrip("\ufeff").strip().startswith("<")
    if is_gpx and not import_wpts:
        res.roadbook.reset(len(res.track))
        res = refresh(res)

    st.session_state["result"] = res
    st.session_state["gpx_text"] = text if is_gpx else _embedded_gpx(text)
    st.session_state["file_name"] = res.gpx_name or filename
    return res, None


def _embedded_gpx(plan_text: str) -> Optional[str]:
    try:
        return parse_plan_text(plan_text).get("gpxText")
    except PlanError:
        return None


def _store(res: PipelineResult) -> None:
    st.session_state["result"] = refresh(res)


# =========================================================
# Control flow
# =========================================================
error_msg = None

if run_btn and upload is not None:
    raw = upload.getvalue().decode("utf-8-sig", errors="replace")
    _, error_msg = _open_upload(raw, upload.name)

if apply_btn and st.session_state["result"] is not None:
    st.session_state["result"] = rebuild_with_settings(st.session_state["result"], settings)

if error_msg:
    st.error(f"Could not open file: {error_msg}")

result: Optional[PipelineResult] = st.session_state["result"]
if result is None:
    st.info("Upload a GPX file (or a saved plan) and click **Open**.")
    st.stop()

track = result.track
totals = track.totals
rollups = result.rollups


# =========================================================
# Header summary
# =========================================================
c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("File", st.session_state.get("file_name") or "—")
c2.metric("Distance", fmt_km(totals.dist_km))
c3.metric("Ascent / Descent", f"{fmt_m(totals.ascent_m)} / {fmt_m(totals.descent_m)}")
c4.metric("Activity time", fmt_hrs(rollups["activity_with_cond_h"]))
c5.metric("Total time", fmt_hrs(rollups["total_h"]))


# =========================================================
# Tabs
# =========================================================
tab_track, tab_roadbook, tab_export = st.tabs(["📍 Track", "📒 Roadbook", "💾 Export"])

with tab_track:
    df = track.to_dataframe()

    st.subheader("Map")
    st.map(df[["lat", "lon"]], size=2)

    st.subheader("Elevation profile")
    wp_idx = list(result.roadbook.indices)
    wp_df = pd.DataFrame(
        {
            "km": [track.cum_dist_km[i] for i in wp_idx],
            "elev_m": [track.elevation_m[i] for i in wp_idx],
            "name": [result.roadbook.waypoint_name(i) for i in wp_idx],
        }
    )

    # Prefer Plotly if installed; fallback to line_chart
    try:
        import plotly.graph_objects as go

        fig = go.Figure()
        fig.add_trace(
            go.Scatter(
                x=df["cum_dist_km"],
                y=df["elev_m"],
                mode="lines",
                name="Elevation",
                hovertemplate="Distance: %{x:.2f} km<br>Elevation: %{y:.0f} m<extra></extra>",
            )
        )
        fig.add_trace(
            go.Scatter(
                x=wp_df["km"],
                y=wp_df["elev_m"],
                mode="markers+text",
                name="Waypoints",
                text=wp_df["name"],
                textposition="top center",
                hovertemplate="%{text}<br>km %{x:.2f}<br>Elevation %{y:.0f} m<extra></extra>",
            )
        )
        fig.update_layout(
            height=420,
            margin=dict(l=10, r=10, t=10, b=10),
            xaxis_title="Distance (km)",
            yaxis_title="Elevation (m)",
            hovermode="x unified",
        )
        st.plotly_chart(fig, use_container_width=True)

    except ImportError:
        st.line_chart(df.set_index("cum_dist_km")["elev_m"])

    st.subheader("Summary")
    st.dataframe(make_summary_table(track, rollups), use_container_width=True, hide_index=True)

with tab_roadbook:
    st.subheader("Waypoints")

    add_mode = st.radio("Add waypoint by", ["Distance (km)", "Coordinates"], horizontal=True)
    with st.form("add_wp", clear_on_submit=True):
        if add_mode == "Distance (km)":
            km = st.number_input("km along track", min_value=0.0, max_value=float(totals.dist_km), value=0.0)
            lat = lon = None
        else:
            km = None
            lat = st.number_input("Latitude", value=float(track.lat_lngs[0][0]), format="%.6f")
            lon = st.number_input("Longitude", value=float(track.lat_lngs[0][1]), format="%.6f")
        wp_name = st.text_input("Name (optional)")
        if st.form_submit_button("Add waypoint"):
            if km is not None:
                idx = int(np.searchsorted(np.asarray(track.cum_dist_km), km, side="left"))
            else:
                idx = nearest_index_on_track((lat, lon), track.lat_lngs)
            result.roadbook.add_index(idx, len(track), label=wp_name)
            _store(result)
            st.rerun()

    removable = [i for i in result.roadbook.indices if i not in result.roadbook.locked]
    if removable:
        to_remove = st.multiselect(
            "Remove waypoints",
            removable,
            format_func=lambda i: f"{result.roadbook.waypoint_name(i)} ({fmt_km(track.cum_dist_km[i])})",
        )
        if st.button("Remove selected", disabled=not to_remove):
            for i in to_remove:
                result.roadbook.remove_index(i)
            _store(result)
            st.rerun()

    if st.button("Reset roadbook"):
        result.roadbook.reset(len(track))
        _store(result)
        st.rerun()

    st.subheader("Legs")
    legs = result.legs
    if legs.empty:
        st.info("Add at least two waypoints to get legs.")
    else:
        editable = legs[["idx", "name", "critical", "stops_min", "cond_pct", "observations"]].copy()
        edited = st.data_editor(
            editable,
            hide_index=True,
            use_container_width=True,
            disabled=["idx"],
            column_config={
                "idx": st.column_config.NumberColumn("#"),
                "name": st.column_config.TextColumn("Name"),
                "critical": st.column_config.CheckboxColumn("Critical"),
                "stops_min": st.column_config.NumberColumn("Stops (min)", min_value=0, step=5),
                "cond_pct": st.column_config.NumberColumn("Cond (%)", min_value=-90, max_value=300, step=5),
                "observations": st.column_config.TextColumn("Observations"),
            },
            key="legs_editor",
        )

        if not edited.equals(editable):
            rb = result.roadbook
            for key, (_, row) in zip(legs["key"], edited.iterrows()):
                name = str(row["name"] or "")
                if name.strip() == rb.default_leg_label(key):
                    rb.set_leg_label(key, "")
                else:
                    rb.set_leg_label(key, name)
                rb.leg_critical[key] = bool(row["critical"])
                rb.leg_stops_min[key] = sanitize_int(row["stops_min"])
                rb.leg_cond_pct[key] = parse_cond_percent(row["cond_pct"])
                rb.set_leg_observation(key, str(row["observations"] or ""))
            _store(result)
            st.rerun()

        st.dataframe(make_roadbook_table(legs), use_container_width=True, hide_index=True)

with tab_export:
    st.subheader("Downloads")
    stem = plan_file_stem(st.session_state.get("file_name"))
    title = (st.session_state.get("file_name") or "Route").rsplit(".", 1)[0]

    st.download_button(
        "Roadbook (CSV)",
        data=export_roadbook_csv(result.legs),
        file_name=f"{stem}_roadbook.csv",
        mime="text/csv",
        disabled=result.legs.empty,
    )
    st.download_button(
        "Roadbook (PDF)",
        data=generate_roadbook_pdf(track, result.legs, rollups, title=title),
        file_name=f"{stem}_roadbook.pdf",
        mime="application/pdf",
    )

    plan = serialize_plan(result, st.session_state.get("gpx_text"))
    if plan is not None:
        st.download_button(
            "Plan (JSON)",
            data=plan_to_json(plan),
            file_name=f"{stem}_plan.json",
            mime="application/json",
        )
