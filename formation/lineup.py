"""Placement rules shared by board initialisation and preset changes."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .presets import PresetCatalog, Slot
from .state import FormationState, PersistedFormation, PlayerRef

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "placeholder-"

Lineup = Tuple[Dict[str, str], List[Optional[str]], List[str]]


def placeholder_roster(count: int) -> List[PlayerRef]:
    """Deterministic stand-in players numbered from 1."""
    return [
        PlayerRef(
            player_id=f"{PLACEHOLDER_PREFIX}{n}",
            label="SUB",
            jersey_number=str(n),
            player_name=f"Player {n}",
        )
        for n in range(1, count + 1)
    ]


def is_placeholder(player_id: str) -> bool:
    return player_id.startswith(PLACEHOLDER_PREFIX)


def _unique(ids: Iterable[str]) -> List[str]:
    seen: Set[str] = set()
    out = []
    for pid in ids:
        if pid in seen:
            continue
        seen.add(pid)
        out.append(pid)
    return out


def seed_lineup(slots: Sequence[Slot], player_ids: Sequence[str], bench_capacity: int) -> Lineup:
    """Fill slots in declaration order, then the bench, then the pool."""
    ordered = _unique(player_ids)
    starters = {slot.position_id: pid for slot, pid in zip(slots, ordered)}
    rest = ordered[len(starters):]
    subs: List[Optional[str]] = list(rest[:bench_capacity])
    unassigned = rest[bench_capacity:]
    return starters, subs, unassigned


def place_on_bench(subs: List[Optional[str]], player_id: str, bench_capacity: int) -> bool:
    """Put a player in the first empty bench cell, or append. Mutates ``subs``."""
    for index, occupant in enumerate(subs):
        if occupant is None:
            subs[index] = player_id
            return True
    if len(subs) < bench_capacity:
        subs.append(player_id)
        return True
    return False


def lineup_violations(state: FormationState, slots: Sequence[Slot], bench_capacity: int) -> List[str]:
    problems = []
    slot_ids = {s.position_id for s in slots}
    unknown = sorted(set(state.starters) - slot_ids)
    if unknown:
        problems.append(f"starters reference unknown slots: {', '.join(unknown)}")
    if len(state.subs) > bench_capacity:
        problems.append(f"bench holds {len(state.subs)} cells, capacity is {bench_capacity}")
    counts: Dict[str, int] = {}
    for pid in state.iter_player_ids():
        counts[pid] = counts.get(pid, 0) + 1
    dupes = sorted(pid for pid, n in counts.items() if n > 1)
    if dupes:
        problems.append(f"players placed more than once: {', '.join(dupes)}")
    return problems


def hydrate(
    persisted: PersistedFormation,
    catalog: PresetCatalog,
    default_preset: str,
    bench_capacity: int,
    roster_ids: Optional[Sequence[str]] = None,
) -> FormationState:
    """Build a valid state from a stored document.

    Players on slots the preset does not define are moved to the bench,
    repeated ids keep their first placement, and the bench never grows past
    its capacity: surplus players fill earlier gaps or land in the unassigned
    pool, and trailing empty cells are dropped.
    """
    preset = persisted.preset_name
    if preset not in catalog:
        logger.warning(f"Stored formation uses unknown preset {preset!r}, falling back to {default_preset}")
        preset = default_preset
    slots = catalog.slots_for(preset)
    slot_ids = {s.position_id for s in slots}

    seen: Set[str] = set()
    starters: Dict[str, str] = {}
    for slot in slots:
        pid = persisted.starters.get(slot.position_id)
        if pid and pid not in seen:
            starters[slot.position_id] = pid
            seen.add(pid)

    orphans = []
    for position_id, pid in persisted.starters.items():
        if position_id not in slot_ids and pid not in seen:
            logger.warning(f"Slot {position_id!r} is not part of {preset}, moving {pid} to the bench")
            orphans.append(pid)
            seen.add(pid)

    subs: List[Optional[str]] = []
    unassigned: List[str] = []
    for pid in persisted.subs:
        if pid is None or pid in seen:
            if len(subs) < bench_capacity:
                subs.append(None)
            continue
        seen.add(pid)
        if len(subs) < bench_capacity:
            subs.append(pid)
        elif not place_on_bench(subs, pid, bench_capacity):
            unassigned.append(pid)

    for pid in orphans:
        if not place_on_bench(subs, pid, bench_capacity):
            unassigned.append(pid)

    while subs and subs[-1] is None:
        subs.pop()

    for pid in roster_ids or []:
        if pid not in seen:
            seen.add(pid)
            unassigned.append(pid)

    return FormationState(
        preset=preset,
        starters=starters,
        subs=subs,
        unassigned=unassigned,
        saved=True,
        loading=False,
    )


def remap_for_preset(
    state: FormationState,
    old_slots: Sequence[Slot],
    new_slots: Sequence[Slot],
    bench_capacity: int,
) -> Tuple[Dict[str, str], List[Optional[str]], List[str]]:
    """Carry starters over to another preset by declaration order.

    Returns the new starters, the new bench, and the players evicted from the
    bench because it overflowed.
    """
    filled = [state.starters[s.position_id] for s in old_slots if s.position_id in state.starters]
    starters = {slot.position_id: pid for slot, pid in zip(new_slots, filled)}
    surplus = filled[len(starters):]

    subs: List[Optional[str]] = list(surplus) + list(state.subs)
    evicted: List[str] = []
    while len(subs) > bench_capacity:
        hole = _last_empty_index(subs)
        if hole is not None:
            del subs[hole]
        else:
            evicted.insert(0, subs.pop())
    return starters, subs, evicted


def _last_empty_index(subs: List[Optional[str]]) -> Optional[int]:
    for index in range(len(subs) - 1, -1, -1):
        if subs[index] is None:
            return index
    return None
