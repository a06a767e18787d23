"""Built-in formation presets.

Every preset is an ordered tuple of slots with coordinates normalized to the
0-100 range on both axes (x grows towards the right touchline, y grows towards
our own goal). Raw layouts go through a spacing pass when the catalog is built
so that chips on the same row or column never overlap on a small pitch.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from rapidfuzz import fuzz, process

from .errors import UnknownPreset

logger = logging.getLogger(__name__)

MAX_SLOTS = 11
MIN_SPACING = 25.0
EDGE_MIN = 5.0
EDGE_MAX = 95.0
GOALKEEPER_Y = 95.0


@dataclass(frozen=True)
class Slot:
    """A named position on the pitch a starter may occupy."""

    position_id: str
    label: str
    x_norm: float
    y_norm: float


@dataclass(frozen=True)
class Preset:
    name: str
    slots: Tuple[Slot, ...]

    @property
    def position_ids(self) -> List[str]:
        return [s.position_id for s in self.slots]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _space_axis(positions: List[dict], group_axis: str, spread_axis: str) -> None:
    groups: Dict[int, List[dict]] = defaultdict(list)
    for pos in positions:
        groups[_round_half_up(pos[group_axis] / 10) * 10].append(pos)

    for group in groups.values():
        if len(group) <= 1:
            continue
        group.sort(key=lambda p: p[spread_axis])
        for prev, curr in zip(group, group[1:]):
            gap = curr[spread_axis] - prev[spread_axis]
            if gap < MIN_SPACING:
                shift = (MIN_SPACING - gap) / 2
                curr[spread_axis] = min(EDGE_MAX, curr[spread_axis] + shift)
                prev[spread_axis] = max(EDGE_MIN, prev[spread_axis] - shift)


def _spread(positions: List[dict]) -> None:
    for pos in positions:
        if pos["label"] == "GK":
            continue
        dist_x = pos["x"] - 50
        dist_y = pos["y"] - 50
        if dist_x > 0:
            pos["x"] = min(EDGE_MAX, pos["x"] + dist_x * 0.15)
        elif dist_x < 0:
            pos["x"] = max(EDGE_MIN, pos["x"] + dist_x * 0.15)

        if dist_y < 0:
            # forwards are pushed further up the pitch
            pos["y"] = max(10.0, pos["y"] + dist_y * 0.2)
        elif pos["label"] not in ("CB", "LB", "RB"):
            pos["y"] = min(90.0, pos["y"] + dist_y * 0.1)


def build_slots(name: str, raw: Sequence[Tuple[str, str, float, float]]) -> Tuple[Slot, ...]:
    """Run a raw (id, label, x, y) layout through the spacing pipeline."""
    positions = [{"id": pid, "label": label, "x": float(x), "y": float(y)} for pid, label, x, y in raw]

    _space_axis(positions, group_axis="y", spread_axis="x")
    _space_axis(positions, group_axis="x", spread_axis="y")
    _spread(positions)
    for pos in positions:
        if pos["label"] == "GK":
            pos["y"] = GOALKEEPER_Y

    if len(positions) > MAX_SLOTS:
        logger.warning(f"Preset {name} has {len(positions)} positions, trimming to {MAX_SLOTS}")
        positions = positions[:MAX_SLOTS]

    seen = set()
    for pos in positions:
        if pos["id"] in seen:
            raise ValueError(f"Duplicate position id {pos['id']!r} in preset {name}")
        seen.add(pos["id"])

    return tuple(
        Slot(
            position_id=pos["id"],
            label=pos["label"],
            x_norm=min(100.0, max(0.0, pos["x"])),
            y_norm=min(100.0, max(0.0, pos["y"])),
        )
        for pos in positions
    )


RAW_PRESETS: Dict[str, List[Tuple[str, str, float, float]]] = {
    "4-4-2": [
        ("gk", "GK", 50, 95),
        ("lb", "LB", 15, 75),
        ("cb1", "CB", 35, 75),
        ("cb2", "CB", 65, 75),
        ("rb", "RB", 85, 75),
        ("lm", "LM", 15, 45),
        ("cm1", "CM", 35, 45),
        ("cm2", "CM", 65, 45),
        ("rm", "RM", 85, 45),
        ("st1", "ST", 35, 15),
        ("st2", "ST", 65, 15),
    ],
    "4-3-3": [
        ("gk", "GK", 50, 95),
        ("lb", "LB", 15, 75),
        ("cb1", "CB", 35, 75),
        ("cb2", "CB", 65, 75),
        ("rb", "RB", 85, 75),
        ("cdm", "CDM", 50, 55),
        ("cm1", "CM", 30, 45),
        ("cm2", "CM", 70, 45),
        ("lw", "LW", 15, 15),
        ("st", "ST", 50, 15),
        ("rw", "RW", 85, 15),
    ],
    "3-5-2": [
        ("gk", "GK", 50, 95),
        ("cb1", "CB", 25, 75),
        ("cb2", "CB", 50, 75),
        ("cb3", "CB", 75, 75),
        ("lwb", "LWB", 10, 60),
        ("cm1", "CM", 30, 45),
        ("cdm", "CDM", 50, 50),
        ("cm2", "CM", 70, 45),
        ("rwb", "RWB", 90, 60),
        ("st1", "ST", 35, 15),
        ("st2", "ST", 65, 15),
    ],
    "3-4-3": [
        ("gk", "GK", 50, 95),
        ("cb1", "CB", 25, 75),
        ("cb2", "CB", 50, 75),
        ("cb3", "CB", 75, 75),
        ("lm", "LM", 15, 50),
        ("cm1", "CM", 35, 45),
        ("cm2", "CM", 65, 45),
        ("rm", "RM", 85, 50),
        ("lw", "LW", 15, 15),
        ("st", "ST", 50, 15),
        ("rw", "RW", 85, 15),
    ],
    "4-2-3-1": [
        ("gk", "GK", 50, 95),
        ("lb", "LB", 15, 75),
        ("cb1", "CB", 35, 75),
        ("cb2", "CB", 65, 75),
        ("rb", "RB", 85, 75),
        ("cdm1", "CDM", 35, 60),
        ("cdm2", "CDM", 65, 60),
        ("cam1", "CAM", 25, 35),
        ("cam2", "CAM", 50, 30),
        ("cam3", "CAM", 75, 35),
        ("st", "ST", 50, 15),
    ],
    "4-1-4-1": [
        ("gk", "GK", 50, 95),
        ("lb", "LB", 15, 75),
        ("cb1", "CB", 35, 75),
        ("cb2", "CB", 65, 75),
        ("rb", "RB", 85, 75),
        ("cdm", "CDM", 50, 60),
        ("lm", "LM", 15, 40),
        ("cm1", "CM", 35, 40),
        ("cm2", "CM", 65, 40),
        ("rm", "RM", 85, 40),
        ("st", "ST", 50, 15),
    ],
    "5-2-2-1": [
        ("gk", "GK", 50, 95),
        ("lwb", "LWB", 10, 70),
        ("cb1", "CB", 30, 75),
        ("cb2", "CB", 50, 75),
        ("cb3", "CB", 70, 75),
        ("rwb", "RWB", 90, 70),
        ("cm1", "CM", 30, 50),
        ("cm2", "CM", 70, 50),
        ("cam1", "CAM", 25, 30),
        ("cam2", "CAM", 75, 30),
        ("st", "ST", 50, 15),
    ],
    "4-1-2-1-2": [
        ("gk", "GK", 50, 95),
        ("lb", "LB", 15, 75),
        ("cb1", "CB", 35, 75),
        ("cb2", "CB", 65, 75),
        ("rb", "RB", 85, 75),
        ("cdm", "CDM", 50, 60),
        ("lcm", "CM", 30, 45),
        ("rcm", "CM", 70, 45),
        ("cam", "CAM", 50, 30),
        ("lst", "ST", 35, 15),
        ("rst", "ST", 65, 15),
    ],
    "4-5-1": [
        ("gk", "GK", 50, 95),
        ("lb", "LB", 15, 75),
        ("cb1", "CB", 35, 75),
        ("cb2", "CB", 65, 75),
        ("rb", "RB", 85, 75),
        ("lm", "LM", 10, 45),
        ("lcm", "CM", 30, 45),
        ("cm", "CM", 50, 45),
        ("rcm", "CM", 70, 45),
        ("rm", "RM", 90, 45),
        ("st", "ST", 50, 15),
    ],
    "4-2-2-2": [
        ("gk", "GK", 50, 95),
        ("lb", "LB", 15, 75),
        ("cb1", "CB", 35, 75),
        ("cb2", "CB", 65, 75),
        ("rb", "RB", 85, 75),
        ("cdm1", "CDM", 35, 60),
        ("cdm2", "CDM", 65, 60),
        ("cam1", "CAM", 30, 35),
        ("cam2", "CAM", 70, 35),
        ("st1", "ST", 35, 15),
        ("st2", "ST", 65, 15),
    ],
    # small-sided formats
    "3-2-3": [
        ("gk", "GK", 50, 95),
        ("cb1", "CB", 25, 75),
        ("cb2", "CB", 50, 75),
        ("cb3", "CB", 75, 75),
        ("cm1", "CM", 35, 45),
        ("cm2", "CM", 65, 45),
        ("lw", "LW", 15, 15),
        ("st", "ST", 50, 15),
        ("rw", "RW", 85, 15),
    ],
    "2-3-1": [
        ("gk", "GK", 50, 95),
        ("cb1", "CB", 30, 75),
        ("cb2", "CB", 70, 75),
        ("lm", "LM", 15, 45),
        ("cm", "CM", 50, 45),
        ("rm", "RM", 85, 45),
        ("st", "ST", 50, 15),
    ],
}


class PresetCatalog:
    """Read-only registry of presets, keyed by name in declaration order."""

    def __init__(self, presets: Iterable[Preset]):
        self._presets: Dict[str, Preset] = {}
        for preset in presets:
            if preset.name in self._presets:
                raise ValueError(f"Duplicate preset name: {preset.name}")
            self._presets[preset.name] = preset

    @classmethod
    def from_raw(cls, raw: Dict[str, Sequence[Tuple[str, str, float, float]]]) -> "PresetCatalog":
        return cls(Preset(name=name, slots=build_slots(name, layout)) for name, layout in raw.items())

    def __contains__(self, name: object) -> bool:
        return name in self._presets

    def preset_names(self) -> List[str]:
        return list(self._presets)

    def get(self, name: str) -> Preset:
        try:
            return self._presets[name]
        except KeyError:
            raise UnknownPreset(name) from None

    def slots_for(self, name: str) -> Tuple[Slot, ...]:
        return self.get(name).slots

    def suggest(self, name: str, limit: int = 3) -> List[str]:
        """Closest preset names to ``name``, best first. Dashes are ignored."""
        compact = {preset.replace("-", ""): preset for preset in self._presets}
        matches = process.extract(
            name.replace("-", "").strip(),
            list(compact),
            scorer=fuzz.ratio,
            limit=limit,
            score_cutoff=50,
        )
        return [compact[match[0]] for match in matches]


DEFAULT_CATALOG = PresetCatalog.from_raw(RAW_PRESETS)


def preset_names() -> List[str]:
    return DEFAULT_CATALOG.preset_names()


def slots_for(name: str) -> Tuple[Slot, ...]:
    return DEFAULT_CATALOG.slots_for(name)
