# timewise/outputs/export_pdf.py
"""
Printable roadbook: summary figures plus the leg table, one A4 landscape
document.
"""

from __future__ import annotations

from typing import Dict

import pandas as pd
from fpdf import FPDF

from timewise.course_model import Track
from timewise.outputs.output_formatter import fmt_hrs, fmt_km, fmt_m, minutes_to_text, percent_to_text

_REPLACEMENTS = {
    "→": "->",
    "Σ": "S",
    "↑": "+",
    "↓": "-",
    "–": "-",
}

# (header, column, width mm)
_TABLE_LAYOUT = [
    ("#", "idx", 8),
    ("Name", "name", 62),
    ("Crit.", "critical", 11),
    ("d", "dist_km", 19),
    ("Up", "ascent_m", 15),
    ("Down", "descent_m", 15),
    ("Sum d", "cum_dist_km", 20),
    ("t", "base_h", 17),
    ("Stops", "stops_min", 16),
    ("Cond", "cond_pct", 14),
    ("Total", "total_h", 17),
    ("Sum t", "cum_time_h", 17),
    ("Rem", "remaining_h", 17),
]


class RoadbookPDF(FPDF):
    def __init__(self, title: str):
        super().__init__(orientation="L", unit="mm", format="A4")
        self.title_text = title

    def header(self):
        self.set_font("Helvetica", "B", 14)
        self.cell(0, 9, f"Roadbook: {self.title_text}", new_x="LMARGIN", new_y="NEXT", align="C")
        self.ln(2)

    def footer(self):
        self.set_y(-12)
        self.set_font("Helvetica", "I", 8)
        self.cell(0, 8, f"Page {self.page_no()}", align="C")


def _sanitize_text(text: str) -> str:
    """Core PDF fonts are latin-1 only."""
    for src, dst in _REPLACEMENTS.items():
        text = text.replace(src, dst)
    return text.encode("latin-1", "replace").decode("latin-1")


def _cell_text(col: str, value) -> str:
    if col in ("dist_km", "cum_dist_km"):
        return fmt_km(float(value))
    if col in ("ascent_m", "descent_m"):
        return fmt_m(float(value))
    if col in ("base_h", "total_h", "cum_time_h", "remaining_h"):
        return fmt_hrs(float(value))
    if col == "stops_min":
        return minutes_to_text(int(value))
    if col == "cond_pct":
        return percent_to_text(value)
    if col == "critical":
        return "Yes" if value else ""
    return _sanitize_text(str(value))


def generate_roadbook_pdf(track: Track, legs: pd.DataFrame, rollups: Dict[str, float], title: str = "Route") -> bytes:
    """
    Render the roadbook as PDF bytes.

    Args:
        track: Built track (used for the distance/ascent/descent totals)
        legs: DataFrame from itinerary.compute_legs
        rollups: Dict from itinerary.time_rollups
        title: Shown in the page header

    Returns:
        PDF document as bytes
    """
    pdf = RoadbookPDF(_sanitize_text(title or "Route"))
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    totals = track.totals
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 8, "Summary", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 10)
    for label, value in (
        ("Distance", fmt_km(totals.dist_km)),
        ("Ascent", fmt_m(totals.ascent_m)),
        ("Descent", fmt_m(totals.descent_m)),
        ("Estimated activity time", fmt_hrs(rollups["activity_with_cond_h"])),
        ("Estimated total time", fmt_hrs(rollups["total_h"])),
    ):
        pdf.cell(0, 6, f"{label}: {value}", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    if legs.empty:
        pdf.cell(0, 6, "No legs: add at least two waypoints.", new_x="LMARGIN", new_y="NEXT")
        return bytes(pdf.output())

    pdf.set_font("Helvetica", "B", 9)
    for header, _, width in _TABLE_LAYOUT:
        pdf.cell(width, 7, header, border=1, align="C")
    pdf.ln()

    pdf.set_font("Helvetica", "", 8)
    for _, row in legs.iterrows():
        for _, col, width in _TABLE_LAYOUT:
            text = _cell_text(col, row[col])
            # keep long names on one line
            while col == "name" and len(text) > 4 and pdf.get_string_width(text) > width - 2:
                text = text[:-4] + "..."
            pdf.cell(width, 6, text, border=1)
        pdf.ln()

        obs = str(row.get("observations") or "").strip()
        if obs:
            pdf.set_font("Helvetica", "I", 8)
            pdf.multi_cell(0, 5, _sanitize_text(f"   {obs}"), new_x="LMARGIN", new_y="NEXT")
            pdf.set_font("Helvetica", "", 8)

    return bytes(pdf.output())
