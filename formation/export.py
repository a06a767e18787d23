"""PNG and PDF exports of a formation board."""

from __future__ import annotations

import io
import os
import tempfile
from typing import Any, Dict, List

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.patches import Circle, Rectangle  # noqa: E402

from reportlab.lib import colors  # noqa: E402
from reportlab.lib.pagesizes import A4  # noqa: E402
from reportlab.lib.styles import getSampleStyleSheet  # noqa: E402
from reportlab.lib.units import inch  # noqa: E402
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle  # noqa: E402

from .config import PITCH_ASPECT  # noqa: E402

PITCH_GREEN = "#3a7d44"
CHIP_COLOR = "#1f3b73"
EMPTY_COLOR = "#cfd8dc"


def _draw_pitch(ax) -> None:
    ax.add_patch(Rectangle((0, 0), 100, 100, facecolor=PITCH_GREEN, edgecolor="white", linewidth=2))
    ax.plot([0, 100], [50, 50], color="white", linewidth=1)
    ax.add_patch(Circle((50, 50), 9, fill=False, edgecolor="white", linewidth=1))
    # penalty boxes at both ends
    ax.add_patch(Rectangle((22, 0), 56, 14, fill=False, edgecolor="white", linewidth=1))
    ax.add_patch(Rectangle((22, 86), 56, 14, fill=False, edgecolor="white", linewidth=1))


def render_png(summary: Dict[str, Any], dpi: int = 160) -> bytes:
    fig, ax = plt.subplots(figsize=(8, 6))
    _draw_pitch(ax)

    for row in summary.get("starters", []):
        x, y = row["x_norm"], row["y_norm"]
        filled = bool(row.get("player_id"))
        ax.add_patch(Circle((x, y), 3.2, facecolor=CHIP_COLOR if filled else EMPTY_COLOR, edgecolor="white"))
        if filled:
            ax.text(x, y, str(row.get("jersey_number") or ""), color="white", ha="center", va="center", fontsize=8)
            ax.text(x, y + 6, str(row.get("player_name") or ""), color="white", ha="center", fontsize=7)
        else:
            ax.text(x, y + 6, row.get("label", ""), color="white", ha="center", fontsize=7)

    bench = [r for r in summary.get("subs", []) if r.get("player_id")]
    if bench:
        names = ", ".join(f"#{r.get('jersey_number')} {r.get('player_name')}" for r in bench)
        ax.text(50, 108, f"Bench: {names}", ha="center", fontsize=7, wrap=True)

    ax.set_xlim(-2, 102)
    ax.set_ylim(112, -6)
    ax.set_aspect(PITCH_ASPECT)
    ax.axis("off")
    ax.set_title(f"Formation {summary.get('preset')}")

    buffer = io.BytesIO()
    fig.tight_layout()
    fig.savefig(buffer, format="png", dpi=dpi)
    plt.close(fig)
    return buffer.getvalue()


def export_png(summary: Dict[str, Any], path: str) -> str:
    with open(path, "wb") as f:
        f.write(render_png(summary))
    return path


def _lineup_table(rows: List[List[str]]) -> Table:
    table = Table(rows, colWidths=[0.8 * inch, 0.8 * inch, 3.4 * inch])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("FONT", (0, 0), (-1, -1), "Helvetica", 9),
            ]
        )
    )
    return table


def render_pdf(summary: Dict[str, Any]) -> bytes:
    styles = getSampleStyleSheet()
    story: List[Any] = []
    story.append(Paragraph("Team Sheet", styles["Title"]))
    story.append(
        Paragraph(f"Team {summary.get('team_id')} • Formation {summary.get('preset')}", styles["Heading2"])
    )
    story.append(Spacer(1, 0.2 * inch))

    with tempfile.TemporaryDirectory() as tmp:
        pitch_path = export_png(summary, os.path.join(tmp, "pitch.png"))
        story.append(Image(pitch_path, width=6.0 * inch, height=4.5 * inch))
        story.append(Spacer(1, 0.2 * inch))

        story.append(Paragraph("Starting XI", styles["Heading3"]))
        rows = [["Pos", "No.", "Player"]]
        for row in summary.get("starters", []):
            rows.append([row.get("label", ""), str(row.get("jersey_number") or "-"), row.get("player_name") or "-"])
        story.append(_lineup_table(rows))
        story.append(Spacer(1, 0.2 * inch))

        bench = [r for r in summary.get("subs", []) if r.get("player_id")]
        story.append(Paragraph("Substitutes", styles["Heading3"]))
        if bench:
            rows = [["Bench", "No.", "Player"]]
            for row in bench:
                rows.append([str(row["index"] + 1), str(row.get("jersey_number") or "-"), row.get("player_name") or "-"])
            story.append(_lineup_table(rows))
        else:
            story.append(Paragraph("No substitutes named.", styles["BodyText"]))

        buffer = io.BytesIO()
        SimpleDocTemplate(buffer, pagesize=A4, title="Team Sheet").build(story)
    return buffer.getvalue()


def export_pdf(summary: Dict[str, Any], path: str) -> str:
    with open(path, "wb") as f:
        f.write(render_pdf(summary))
    return path
