from __future__ import annotations

"""
Report generator
----------------
This module renders a DOCX report from a PipelineResult.

Contents:
- dataset dimensions and row counts (raw, after filtering, labels, types)
- data-quality notes (unknown damage exponent codes)
- three charts: health ranking, economic ranking, health vs log10 damage
- two tables: high economic / low health impact, and the reverse
- a reproducibility footer

Report dependencies (python-docx, matplotlib) are imported lazily so the
pipeline itself can run without them.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import os
import tempfile

from .engine import PipelineResult
from .models import AggregateRow, LongRow

logger = logging.getLogger(__name__)


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class DatasetCitation:
    """Minimal dataset citation metadata for the DOCX report."""
    database_name: str = "Storm Events Database"
    institutional_author: str = "NOAA National Centers for Environmental Information"
    website: str = "https://www.ncdc.noaa.gov/stormevents/"
    file_name: Optional[str] = None
    lookup_file_name: Optional[str] = None


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Storm Events: Health and Economic Impact"
    subtitle: str = "Which event types are most harmful across the United States?"
    citation: DatasetCitation = field(default_factory=DatasetCitation)
    dpi: int = 200


# -----------------------------
# Helpers
# -----------------------------

def _stacked(rows: Sequence[LongRow], measures: Tuple[str, str]) -> Tuple[List[str], Dict[str, List[float]]]:
    """Turn long rows back into (labels, {measure: values}) in rank order."""
    labels: List[str] = []
    values: Dict[str, List[float]] = {m: [] for m in measures}
    for r in rows:
        if r.event_type not in labels:
            labels.append(r.event_type)
        values[r.measure].append(float(r.value))
    return labels, values


def _fmt_usd_billions(v: float) -> str:
    return f"{v / 1e9:,.2f}"


# -----------------------------
# Main entry point used by CLI
# -----------------------------

def generate_docx_report(
    result: PipelineResult,
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
) -> str:
    """Generate the DOCX report + charts for one pipeline run."""
    config = config or ReportConfig()

    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e

    if not result.aggregates:
        raise ValueError("No events to report on (nothing left after filtering).")

    # -----------------------------
    # 1) Charts
    # -----------------------------
    with tempfile.TemporaryDirectory(prefix="stormimpact_report_") as tmpdir:
        # Each chart is: (title, file_path, caption)
        chart_paths: List[Tuple[str, str, str]] = []

        def _save(filename: str) -> str:
            path = os.path.join(tmpdir, filename)
            plt.tight_layout()
            plt.savefig(path, dpi=config.dpi)
            plt.close()
            return path

        def _stacked_bar(title: str, rows: Sequence[LongRow], measures: Tuple[str, str],
                         ylabel: str, caption: str, filename: str) -> None:
            labels, values = _stacked(rows, measures)
            x = np.arange(len(labels))
            plt.figure(figsize=(9, 5))
            bottom = np.zeros(len(labels))
            for m in measures:
                v = np.array(values[m])
                plt.bar(x, v, bottom=bottom, label=m)
                bottom = bottom + v
            plt.xticks(x, labels, rotation=45, ha="right")
            plt.title(title)
            plt.ylabel(ylabel)
            plt.legend()
            chart_paths.append((title, _save(filename), caption))

        top_n = result.config.top_n
        _stacked_bar(
            f"Top {top_n} event types by fatalities and injuries",
            result.health, ("fatalities", "injuries"),
            "People",
            "Bars are stacked: fatalities below, injuries on top. Ranked by their sum.",
            "health_ranking.png",
        )
        _stacked_bar(
            f"Top {top_n} event types by property and crop damage",
            result.economic, ("property", "crop"),
            "Damage (billions US$)",
            "Bars are stacked: property damage below, crop damage on top. Ranked by their sum.",
            "economic_ranking.png",
        )

        points = [c for c in result.combined if c.log10_damage is not None]
        if points:
            title = "Health impact vs economic impact per event type"
            plt.figure(figsize=(7, 5))
            plt.scatter([c.log10_damage for c in points], [c.health_total for c in points])
            plt.title(title)
            plt.xlabel("log10(total damage, US$)")
            plt.ylabel("Fatalities + injuries")
            chart_paths.append((
                title, _save("health_vs_damage.png"),
                "Each point is one event type; event types without any damage are omitted.",
            ))

        # -----------------------------
        # 2) DOCX
        # -----------------------------
        doc = Document()
        style = doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(11)

        def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
            p = doc.add_paragraph()
            r = p.add_run(text)
            r.bold = bold
            r.italic = italic
            r.font.size = Pt(size)
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER

        def _kv(key: str, value: str) -> None:
            p = doc.add_paragraph()
            r = p.add_run(f"{key}: ")
            r.bold = True
            p.add_run(value)

        def _aggregate_table(rows: Sequence[AggregateRow]) -> None:
            t = doc.add_table(rows=1, cols=5)
            h = t.rows[0].cells
            h[0].text = "Event type"
            h[1].text = "Fatalities"
            h[2].text = "Injuries"
            h[3].text = "Property (bn US$)"
            h[4].text = "Crop (bn US$)"
            for a in rows:
                r = t.add_row().cells
                r[0].text = a.event_type
                r[1].text = f"{a.fatalities:,}"
                r[2].text = f"{a.injuries:,}"
                r[3].text = _fmt_usd_billions(a.property_damage_usd)
                r[4].text = _fmt_usd_billions(a.crop_damage_usd)

        _center_title(config.title, 20, bold=True)
        _center_title(config.subtitle, 12, italic=True)

        ds = result.dataset
        doc.add_paragraph("")
        doc.add_heading("Data processing", level=1)
        _kv("Raw table dimensions", f"{ds.n_rows:,} rows x {ds.n_cols} columns")
        _kv("Rows with non-zero impact", f"{len(result.kept):,}")
        _kv("Distinct raw event labels", f"{len(result.raw_labels):,}")
        _kv("Canonical event types", str(len(result.aggregates)))
        doc.add_paragraph(
            "Rows where fatalities, injuries, property damage and crop damage are all zero "
            "were dropped. Raw event labels were mapped onto the storm-data event types with "
            "a lookup table, and damage amounts were scaled by their exponent codes "
            "(K = thousand, M = million, B = billion)."
        )

        if result.unknown_codes:
            doc.add_heading("Data-quality notes", level=2)
            doc.add_paragraph(
                "These exponent codes are not K, M or B; the damage values carrying them were counted as zero:"
            )
            for code, n in sorted(result.unknown_codes.items()):
                doc.add_paragraph(f"{code!r}: {n:,} value(s)", style="List Bullet")

        doc.add_paragraph("")
        doc.add_heading("Results", level=1)
        for title, path, caption in chart_paths:
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(6.5))
            doc.add_paragraph(caption)
            doc.add_paragraph("")

        doc.add_heading("High economic impact, low health impact", level=2)
        if result.low_health_high_economic:
            _aggregate_table(result.low_health_high_economic)
        else:
            doc.add_paragraph(f"Every top-{top_n} economic event type is also a top-{top_n} health event type.")

        doc.add_paragraph("")
        doc.add_heading("High health impact, low economic impact", level=2)
        if result.high_health_low_economic:
            _aggregate_table(result.high_health_low_economic)
        else:
            doc.add_paragraph(f"Every top-{top_n} health event type is also a top-{top_n} economic event type.")

        # -----------------------------
        # Reproducibility footer
        # -----------------------------
        doc.add_paragraph("")
        doc.add_heading("Reproducibility", level=1)
        from . import __version__
        from datetime import datetime as _dt
        doc.add_paragraph(f"stormimpact version: {__version__}")
        doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")
        cit = config.citation
        if cit.file_name:
            doc.add_paragraph(f"Dataset file: {cit.file_name}")
        if cit.lookup_file_name:
            doc.add_paragraph(f"Category lookup table: {cit.lookup_file_name}")
        doc.add_paragraph(f"Label order: {result.config.label_order}"
                          f" ({'strict' if result.config.strict_order else 'keyed only'})")
        doc.add_paragraph("Ranking ties are broken by event type name (A-Z).")
        doc.add_paragraph(f"Source: {cit.institutional_author}. {cit.database_name}. {cit.website}")

        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        doc.save(out_path)
    logger.info("Report written to %s", out_path)
    return out_path
