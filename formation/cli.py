from __future__ import annotations

import argparse
import json
import logging
from typing import Any, List, Optional

from dotenv import load_dotenv

from .config import board_settings_from_env
from .errors import UnknownPreset
from .export import export_pdf, export_png
from .render import board_summary, render_text
from .state import PersistedFormation, PlayerRef
from .store import FormationStore


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: str, obj: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2)


def _roster_from_json(raw: List[dict]) -> List[PlayerRef]:
    return [
        PlayerRef(
            player_id=str(p.get("playerId") or p.get("id")),
            label=p.get("label") or p.get("position") or "SUB",
            jersey_number=str(p.get("jerseyNumber") or ""),
            player_name=p.get("playerName") or p.get("name") or "",
        )
        for p in raw
    ]


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render or rearrange a saved team formation")
    parser.add_argument("--input", default=None, help="Formation JSON (presetName, starters, subs)")
    parser.add_argument("--roster", default=None, help="Roster JSON array of players")
    parser.add_argument("--team", default="local", help="Team id shown on the output")
    parser.add_argument("--preset", default=None, help="Switch to this preset before rendering")
    parser.add_argument("--write", action="store_true", help="Write the changed formation back to --input")
    parser.add_argument(
        "--output-format", choices=["text", "json", "png", "pdf"], default="text", help="Output format"
    )
    parser.add_argument("--output", default=None, help="Output path (required for png/pdf)")
    parser.add_argument("--debug", action="store_true", help="Print debug logs")
    return parser.parse_args()


def main() -> None:
    load_dotenv()
    args = _parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    if args.output_format in ("png", "pdf") and not args.output:
        raise SystemExit(f"--output is required for {args.output_format} output")

    def load(team_id: str) -> Optional[PersistedFormation]:
        if not args.input:
            return None
        return PersistedFormation.from_json(_read_json(args.input))

    def save(team_id: str, formation: PersistedFormation) -> None:
        if args.write and args.input:
            _write_json(args.input, formation.to_json())

    store = FormationStore(load, save, settings=board_settings_from_env())
    roster = _roster_from_json(_read_json(args.roster)) if args.roster else []
    store.register_players(roster)
    store.init(args.team)
    if roster:
        store.map_players_to_positions(roster, persist=args.write)

    if args.preset:
        try:
            change = store.change_preset(args.preset)
        except UnknownPreset:
            suggestions = store.catalog.suggest(args.preset)
            hint = f" (did you mean {', '.join(suggestions)}?)" if suggestions else ""
            raise SystemExit(f"Unknown preset {args.preset!r}{hint}")
        for pid in change.evicted:
            print(f"warning: {pid} no longer fits on the bench and is unassigned")
    if args.write and not store.state.saved:
        store.save_now()

    summary = board_summary(store)
    if args.output_format == "png":
        export_png(summary, args.output)
        return
    if args.output_format == "pdf":
        export_pdf(summary, args.output)
        return

    output_text = json.dumps(summary, indent=2) if args.output_format == "json" else render_text(summary)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output_text)
    else:
        print(output_text)


if __name__ == "__main__":
    main()
