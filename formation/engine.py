"""Assignment engine.

``apply_move`` is a pure function from a formation state and a move
descriptor to a new state. A move either fully applies or raises a
``MoveRejected`` subclass; the input state is never modified.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Union

from .config import BENCH_CAPACITY
from .errors import BenchFull, InvalidMove
from .lineup import lineup_violations, place_on_bench
from .presets import DEFAULT_CATALOG, PresetCatalog, Slot
from .state import UNASSIGNED, FormationState, Location, LocationKind


@dataclass(frozen=True)
class MoveToSlot:
    player_id: str
    target_position_id: str
    was_starter: bool = False
    original_position_id: Optional[str] = None
    original_sub_index: Optional[int] = None


@dataclass(frozen=True)
class MoveToSubSlot:
    player_id: str
    target_sub_index: int
    was_starter: bool = False
    original_position_id: Optional[str] = None
    original_sub_index: Optional[int] = None


@dataclass(frozen=True)
class SwapPlayers:
    player_a_id: str
    player_b_id: str


@dataclass(frozen=True)
class DemoteToSubsGeneral:
    player_id: str
    original_position_id: Optional[str] = None


Move = Union[MoveToSlot, MoveToSubSlot, SwapPlayers, DemoteToSubsGeneral]


class _Draft:
    """Mutable working copy of a lineup."""

    def __init__(self, state: FormationState):
        self.starters: Dict[str, str] = dict(state.starters)
        self.subs: List[Optional[str]] = list(state.subs)
        self.unassigned: List[str] = list(state.unassigned)

    def write(self, location: Location, player_id: Optional[str], pool_index: Optional[int] = None) -> None:
        if location.kind is LocationKind.SLOT:
            if player_id is None:
                self.starters.pop(location.position_id, None)
            else:
                self.starters[location.position_id] = player_id
        elif location.kind is LocationKind.SUB:
            index = location.sub_index
            if index >= len(self.subs):
                self.subs.extend([None] * (index + 1 - len(self.subs)))
            self.subs[index] = player_id
        else:
            if player_id is None:
                del self.unassigned[pool_index]
            else:
                self.unassigned[pool_index] = player_id


def location_from_origin(
    was_starter: bool,
    original_position_id: Optional[str],
    original_sub_index: Optional[int],
) -> Location:
    if was_starter:
        if original_position_id is None:
            raise InvalidMove("A starter move needs its original position")
        return Location(LocationKind.SLOT, position_id=original_position_id)
    if original_sub_index is not None:
        return Location(LocationKind.SUB, sub_index=original_sub_index)
    return UNASSIGNED


def _verified_origin(state: FormationState, player_id: str, claimed: Location) -> Location:
    actual = state.location_of(player_id)
    if actual is None:
        raise InvalidMove(f"Player {player_id} is not on this board")
    if actual != claimed:
        raise InvalidMove(f"Player {player_id} is no longer at its drag origin")
    return actual


def _pool_index(state: FormationState, location: Location, player_id: str) -> Optional[int]:
    if location.kind is LocationKind.UNASSIGNED:
        return state.unassigned.index(player_id)
    return None


def _finish(
    state: FormationState,
    draft: _Draft,
    slots: Sequence[Slot],
    bench_capacity: int,
) -> FormationState:
    ordered = {s.position_id: draft.starters[s.position_id] for s in slots if s.position_id in draft.starters}
    if len(ordered) != len(draft.starters):
        raise InvalidMove("Move targets a slot outside the active preset")
    result = replace(state, starters=ordered, subs=draft.subs, unassigned=draft.unassigned)

    problems = lineup_violations(result, slots, bench_capacity)
    if Counter(result.iter_player_ids()) != Counter(state.iter_player_ids()):
        problems.append("move would add or drop a player")
    if problems:
        raise InvalidMove("; ".join(problems))
    return result


def _move_to_slot(state: FormationState, move: MoveToSlot, slots: Sequence[Slot], bench_capacity: int) -> FormationState:
    if move.target_position_id not in {s.position_id for s in slots}:
        raise InvalidMove(f"Unknown slot {move.target_position_id!r} for preset {state.preset}")
    origin = _verified_origin(
        state,
        move.player_id,
        location_from_origin(move.was_starter, move.original_position_id, move.original_sub_index),
    )
    if origin.kind is LocationKind.SLOT and origin.position_id == move.target_position_id:
        return state

    occupant = state.starters.get(move.target_position_id)
    draft = _Draft(state)
    # the displaced occupant takes the mover's old place
    draft.write(origin, occupant, _pool_index(state, origin, move.player_id))
    draft.starters[move.target_position_id] = move.player_id
    return _finish(state, draft, slots, bench_capacity)


def _move_to_sub_slot(
    state: FormationState, move: MoveToSubSlot, slots: Sequence[Slot], bench_capacity: int
) -> FormationState:
    target = move.target_sub_index
    if not 0 <= target < bench_capacity:
        raise InvalidMove(f"Bench cell {target} is outside a bench of {bench_capacity}")
    origin = _verified_origin(
        state,
        move.player_id,
        location_from_origin(move.was_starter, move.original_position_id, move.original_sub_index),
    )
    if origin.kind is LocationKind.SUB and origin.sub_index == target:
        return state

    occupant = state.subs[target] if target < len(state.subs) else None
    draft = _Draft(state)
    draft.write(origin, occupant, _pool_index(state, origin, move.player_id))
    draft.write(Location(LocationKind.SUB, sub_index=target), move.player_id)
    return _finish(state, draft, slots, bench_capacity)


def _swap_players(state: FormationState, move: SwapPlayers, slots: Sequence[Slot], bench_capacity: int) -> FormationState:
    if move.player_a_id == move.player_b_id:
        return state
    loc_a = state.location_of(move.player_a_id)
    loc_b = state.location_of(move.player_b_id)
    if loc_a is None or loc_b is None:
        missing = move.player_a_id if loc_a is None else move.player_b_id
        raise InvalidMove(f"Player {missing} is not on this board")

    index_a = _pool_index(state, loc_a, move.player_a_id)
    index_b = _pool_index(state, loc_b, move.player_b_id)
    draft = _Draft(state)
    draft.write(loc_a, move.player_b_id, index_a)
    draft.write(loc_b, move.player_a_id, index_b)
    return _finish(state, draft, slots, bench_capacity)


def _demote_to_subs(
    state: FormationState, move: DemoteToSubsGeneral, slots: Sequence[Slot], bench_capacity: int
) -> FormationState:
    location = state.location_of(move.player_id)
    if location is None or location.kind is not LocationKind.SLOT:
        raise InvalidMove(f"Player {move.player_id} is not a starter")
    if move.original_position_id is not None and location.position_id != move.original_position_id:
        raise InvalidMove(f"Player {move.player_id} is no longer at its drag origin")

    draft = _Draft(state)
    if not place_on_bench(draft.subs, move.player_id, bench_capacity):
        raise BenchFull(f"The bench is full ({bench_capacity} players)")
    del draft.starters[location.position_id]
    return _finish(state, draft, slots, bench_capacity)


def apply_move(
    state: FormationState,
    move: Move,
    catalog: PresetCatalog = DEFAULT_CATALOG,
    bench_capacity: int = BENCH_CAPACITY,
) -> FormationState:
    """Return the state after ``move``.

    A no-op move returns ``state`` itself. Rejected moves raise ``BenchFull``
    or ``InvalidMove``.
    """
    slots = catalog.slots_for(state.preset)
    if isinstance(move, MoveToSlot):
        return _move_to_slot(state, move, slots, bench_capacity)
    if isinstance(move, MoveToSubSlot):
        return _move_to_sub_slot(state, move, slots, bench_capacity)
    if isinstance(move, SwapPlayers):
        return _swap_players(state, move, slots, bench_capacity)
    if isinstance(move, DemoteToSubsGeneral):
        return _demote_to_subs(state, move, slots, bench_capacity)
    raise TypeError(f"Unsupported move: {move!r}")
