"""
Write a PDF report of the tracked changes of one refinement.
"""

from __future__ import annotations

from typing import Dict, List

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import KeepTogether, PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .models import ChangeRecord
from .tracking import change_statistics


def _escape_for_rl(s: str, truncate_chars: int = 4000) -> str:
    """Basic escaping for ReportLab Paragraph markup."""
    s = s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    if truncate_chars and len(s) > truncate_chars:
        s = s[:truncate_chars] + "\n...[truncated]..."
    return s.replace("\n", "<br/>")


def _counts_table(stats: Dict[str, Dict[str, int]]) -> Table:
    rows = [["Group", "Value", "Count"]]
    for group, label in (("change_type", "Type"), ("semantic_impact", "Impact"), ("user_decision", "Decision")):
        for value, count in sorted(stats[group].items()):
            rows.append([label, value, str(count)])

    table = Table(rows, colWidths=[4 * cm, 5 * cm, 2.5 * cm], hAlign="LEFT")
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.black),
                ("ALIGN", (2, 0), (2, -1), "RIGHT"),
            ]
        )
    )
    return table


def _change_block(i: int, r: ChangeRecord, styles, truncate_chars: int) -> KeepTogether:
    flow = [
        Paragraph(
            f"<b>Change #{i}</b> - {r.change_type.value} - impact {r.semantic_impact.value} - "
            f"confidence {r.confidence_score:.2f} - {r.user_decision.value}",
            styles["Heading3"],
        ),
        Paragraph(
            f"Original [{r.original_start}, {r.original_end}) / Enhanced [{r.enhanced_start}, {r.enhanced_end})",
            styles["Normal"],
        ),
        Spacer(1, 0.2 * cm),
    ]
    for label, text in (("Original text", r.original_text), ("Enhanced text", r.enhanced_text)):
        if not text:
            continue
        flow.append(Paragraph(f"<b>{label}:</b>", styles["Normal"]))
        flow.append(Paragraph(f"<font name='Courier'>{_escape_for_rl(text, truncate_chars)}</font>", styles["BodyText"]))
        flow.append(Spacer(1, 0.2 * cm))
    return KeepTogether(flow)


def save_change_report_pdf(
    records: List[ChangeRecord],
    out_pdf_path: str,
    *,
    title: str = "Change Tracking Report",
    truncate_chars: int = 4000,
) -> None:
    styles = getSampleStyleSheet()
    story = [
        Paragraph(f"<b>{_escape_for_rl(title)}</b>", styles["Title"]),
        Spacer(1, 0.5 * cm),
        Paragraph(f"<b>Total changes:</b> {len(records)}", styles["Normal"]),
        Spacer(1, 0.3 * cm),
    ]

    if records:
        story.append(_counts_table(change_statistics(records)))
        story.append(PageBreak())
        for i, r in enumerate(records, start=1):
            story.append(_change_block(i, r, styles, truncate_chars))

    doc = SimpleDocTemplate(
        out_pdf_path,
        pagesize=A4,
        leftMargin=2 * cm,
        rightMargin=2 * cm,
        topMargin=2 * cm,
        bottomMargin=2 * cm,
    )
    doc.build(story)
