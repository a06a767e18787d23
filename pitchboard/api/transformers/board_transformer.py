"""Transform board views and engine results to the frontend format."""

import dataclasses
from enum import Enum
from typing import Any, Dict, List, Optional

from formation.board import FormationBoard
from formation.presets import PresetCatalog
from formation.store import MoveResult, PresetChange
from formation.surface import DropResult, DropTarget


def _to_camel_case(snake_str: str) -> str:
    """Convert snake_case to camelCase."""
    components = snake_str.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


def _camelize(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            _to_camel_case(f.name): _camelize(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_camelize(v) for v in value]
    return value


def transform_board_to_frontend(board: FormationBoard) -> Dict[str, Any]:
    """Board payload: the rendered view plus the raw lineup."""
    state = board.store.state
    payload = _camelize(board.view())
    payload["saved"] = state.saved
    payload["lineup"] = {
        "starters": dict(state.starters),
        "subs": list(state.subs),
        "unassigned": list(state.unassigned),
    }
    payload["benchCapacity"] = board.store.settings.bench_capacity
    return payload


def transform_presets(catalog: PresetCatalog) -> List[Dict[str, Any]]:
    presets = []
    for name in catalog.preset_names():
        slots = catalog.slots_for(name)
        presets.append({
            "name": name,
            "slotCount": len(slots),
            "slots": [_camelize(slot) for slot in slots],
        })
    return presets


def transform_move_result(result: MoveResult) -> Dict[str, Any]:
    return {
        "changed": result.changed,
        "notice": result.notice,
        "code": result.code,
    }


def transform_preset_change(change: PresetChange) -> Dict[str, Any]:
    return {
        "changed": change.changed,
        "preset": change.state.preset,
        "evicted": list(change.evicted),
    }


def transform_drop_result(result: DropResult) -> Dict[str, Any]:
    snap_back: Optional[Dict[str, float]] = None
    if result.snap_back is not None:
        snap_back = {"x": result.snap_back.x, "y": result.snap_back.y}
    return {
        "outcome": result.outcome.value,
        "changed": result.changed,
        "notice": result.notice,
        "code": result.result.code if result.result else None,
        "snapBack": snap_back,
    }


def transform_targets(targets: List[DropTarget]) -> List[Dict[str, Any]]:
    return [_camelize(t) for t in targets]
