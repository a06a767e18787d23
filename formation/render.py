from __future__ import annotations

from typing import Any, Dict, List, Optional

from .state import PlayerRef
from .store import FormationStore


def _player_fields(store: FormationStore, player_id: Optional[str]) -> Dict[str, Any]:
    if player_id is None:
        return {"player_id": None, "player_name": None, "jersey_number": None}
    ref = store.player(player_id) or PlayerRef(player_id=player_id)
    return {
        "player_id": player_id,
        "player_name": ref.player_name or player_id,
        "jersey_number": ref.jersey_number,
    }


def board_summary(store: FormationStore) -> Dict[str, Any]:
    """Plain-data snapshot of a board used by text, PNG and PDF output."""
    state = store.state
    starters: List[Dict[str, Any]] = []
    for slot in store.catalog.slots_for(state.preset):
        row = {
            "position_id": slot.position_id,
            "label": slot.label,
            "x_norm": slot.x_norm,
            "y_norm": slot.y_norm,
        }
        row.update(_player_fields(store, state.starters.get(slot.position_id)))
        starters.append(row)

    subs = []
    for index, pid in enumerate(state.subs):
        row = {"index": index}
        row.update(_player_fields(store, pid))
        subs.append(row)

    return {
        "team_id": store.team_id,
        "preset": state.preset,
        "status": store.status.value,
        "starters": starters,
        "subs": subs,
        "unassigned": [_player_fields(store, pid) for pid in state.unassigned],
    }


def _name(row: Dict[str, Any]) -> str:
    if not row.get("player_id"):
        return "(empty)"
    number = row.get("jersey_number")
    prefix = f"#{number} " if number else ""
    return f"{prefix}{row.get('player_name')}"


def render_text(summary: Dict[str, Any]) -> str:
    lines = []
    lines.append(f"FORMATION {summary.get('preset')}")
    lines.append(f"Team: {summary.get('team_id')} | Status: {summary.get('status')}")
    lines.append("")

    lines.append("Starters")
    for row in summary.get("starters", []):
        lines.append(f"- {row.get('label', ''):<4} {_name(row)}")

    lines.append("")
    lines.append("Bench")
    subs = summary.get("subs", [])
    if not subs:
        lines.append("- none")
    for row in subs:
        lines.append(f"- {row.get('index', 0) + 1}. {_name(row)}")

    unassigned = summary.get("unassigned", [])
    if unassigned:
        lines.append("")
        lines.append("Unassigned")
        for row in unassigned:
            lines.append(f"- {_name(row)}")

    return "\n".join(lines)
