"""PDF export for generated crime reports."""

import hashlib
from pathlib import Path
from typing import Dict, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle


PAGE_MARGIN = 20 * mm
CONTENT_WIDTH = A4[0] - (PAGE_MARGIN * 2)

styles = getSampleStyleSheet()

TITLE_STYLE = ParagraphStyle(
    name="ReportTitle",
    parent=styles["Title"],
    fontName="Helvetica-Bold",
    fontSize=16,
    leading=20,
    alignment=0,
    spaceAfter=12,
)

NOTE_STYLE = ParagraphStyle(name="Note", fontName="Helvetica", fontSize=8, leading=10)

HEADING_STYLE = ParagraphStyle(
    name="SectionHeading",
    fontName="Helvetica-Bold",
    fontSize=11,
    leading=14,
    spaceBefore=4,
    spaceAfter=6,
    keepWithNext=True,
)

BODY_STYLE = ParagraphStyle(
    name="BodyText",
    fontName="Helvetica",
    fontSize=9,
    leading=12,
    wordWrap="CJK",
    splitLongWords=True,
)

LABEL_STYLE = ParagraphStyle(name="LabelText", parent=BODY_STYLE, fontName="Helvetica-Bold")

GRID_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("LEFTPADDING", (0, 0), (-1, -1), 4),
        ("RIGHTPADDING", (0, 0), (-1, -1), 4),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]
)


def _para(value, style: ParagraphStyle = BODY_STYLE) -> Paragraph:
    text = escape(str(value if value is not None else "").strip())
    return Paragraph(text or "N/A", style)


def _kv_table(rows: List[List]) -> Table:
    table_rows = [[_para(label, LABEL_STYLE), _para(value)] for label, value in rows]
    table = Table(table_rows, colWidths=[55 * mm, CONTENT_WIDTH - (55 * mm)], hAlign="LEFT")
    table.setStyle(GRID_STYLE)
    return table


def _breakdown_table(title: str, counts: Dict[str, int]) -> Table:
    rows = [[_para(title, LABEL_STYLE), _para("Crimes", LABEL_STYLE)]]
    if not counts:
        rows.append([_para("No crimes in range"), _para(0)])
    for key, value in counts.items():
        rows.append([_para(key), _para(value)])
    table = Table(rows, colWidths=[CONTENT_WIDTH - (30 * mm), 30 * mm], repeatRows=1, hAlign="LEFT")
    table.setStyle(GRID_STYLE)
    return table


def generate_report_pdf(payload: Dict, output_path: str) -> str:
    """Render a report payload to ``output_path`` and return its sha256 checksum."""
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    doc = SimpleDocTemplate(
        output_path,
        pagesize=A4,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
        title=payload.get("title") or "Crime Report",
    )

    story: List = [
        Paragraph(escape(payload.get("title") or "Crime Report"), TITLE_STYLE),
        Paragraph("Generated by RedLens from verified crime records.", NOTE_STYLE),
        Spacer(1, 8),
        _kv_table(
            [
                ["Report ID", payload.get("reportId")],
                ["Report Type", payload.get("type")],
                ["Period", f"{payload.get('startDate')} to {payload.get('endDate')}"],
                ["Area Filter", payload.get("filterArea") or "All areas"],
                ["Severity Filter", payload.get("filterSeverity") or "All severities"],
                ["Total Crimes", payload.get("totalCrimes")],
                ["Average Safety Score", payload.get("averageSafetyScore")],
                ["Generated By", payload.get("generatedBy")],
                ["Generated At (UTC)", payload.get("generatedAt")],
            ]
        ),
        Spacer(1, 10),
    ]

    summary = payload.get("summary") or {}
    sections = [
        ("By Crime Type", "byType"),
        ("By Severity", "bySeverity"),
        ("By Status", "byStatus"),
        ("By Area", "byArea"),
    ]
    for heading, key in sections:
        story.append(Paragraph(heading, HEADING_STYLE))
        story.append(_breakdown_table(heading.replace("By ", ""), summary.get(key) or {}))
        story.append(Spacer(1, 8))

    doc.build(story)

    with open(output_path, "rb") as handle:
        checksum = hashlib.sha256(handle.read()).hexdigest()

    return checksum
