from formation.export import export_pdf, export_png, render_pdf, render_png
from formation.render import board_summary, render_text
from formation.state import PersistedFormation, PlayerRef
from formation.store import FormationStore


def _store():
    stored = PersistedFormation("2-3-1", starters={"gk": "p1", "st": "p2"}, subs=[None, "p3"])
    store = FormationStore(lambda team_id: stored, lambda team_id, formation: None)
    store.register_players([
        PlayerRef(player_id="p1", jersey_number="1", player_name="Alex Keeper"),
        PlayerRef(player_id="p2", jersey_number="9", player_name="Sam Striker"),
        PlayerRef(player_id="p3", jersey_number="14", player_name="Jo Bench"),
        PlayerRef(player_id="p4", jersey_number="22", player_name="Lee Spare"),
    ])
    store.init("t1")
    return store


def test_board_summary_lists_every_slot():
    summary = board_summary(_store())
    assert summary["preset"] == "2-3-1"
    assert summary["status"] == "saved"
    assert len(summary["starters"]) == 7
    gk = summary["starters"][0]
    assert gk["position_id"] == "gk"
    assert gk["player_name"] == "Alex Keeper"
    empty = [row for row in summary["starters"] if row["player_id"] is None]
    assert len(empty) == 5
    assert summary["subs"][1]["jersey_number"] == "14"
    assert summary["unassigned"][0]["player_id"] == "p4"


def test_render_text():
    text = render_text(board_summary(_store()))
    assert text.startswith("FORMATION 2-3-1")
    assert "Team: t1 | Status: saved" in text
    assert "#9 Sam Striker" in text
    assert "- 1. (empty)" in text
    assert "- 2. #14 Jo Bench" in text
    assert "Unassigned" in text


def test_render_text_with_empty_bench():
    summary = board_summary(_store())
    summary["subs"] = []
    summary["unassigned"] = []
    text = render_text(summary)
    assert "- none" in text
    assert "Unassigned" not in text


def test_png_and_pdf_exports(tmp_path):
    summary = board_summary(_store())
    assert render_png(summary).startswith(b"\x89PNG")
    assert render_pdf(summary).startswith(b"%PDF")

    png_path = export_png(summary, str(tmp_path / "board.png"))
    pdf_path = export_pdf(summary, str(tmp_path / "board.pdf"))
    assert (tmp_path / "board.png").stat().st_size > 0
    assert pdf_path.endswith("board.pdf")
    assert png_path.endswith("board.png")
