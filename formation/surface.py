"""Headless interaction surface of the formation board.

Turns pointer gestures into assignment-engine moves and lays the board out in
pixels. The browser (or any other front end) only reports pointer positions;
hit testing, drop resolution and snap-back all happen here so the engine stays
free of any rendering concern.

Drag lifecycle::

    IDLE --begin_drag--> DRAGGING --drop--> {SLOT, SUB, PLAYER, BENCH, INVALID} --> IDLE
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .config import (
    BENCH_CELL_PADDING_PX,
    BENCH_STRIP_GAP_PX,
    BENCH_STRIP_HEIGHT_PX,
    MIN_CHIP_RADIUS_PX,
    PITCH_ASPECT,
)
from .engine import DemoteToSubsGeneral, Move, MoveToSlot, MoveToSubSlot, SwapPlayers
from .errors import BenchFull, InvalidDropTarget, InvalidMove, ReadOnlyBoard
from .state import Location, LocationKind, PlayerRef, SaveStatus
from .store import FormationStore, MoveResult

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 800.0


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    def contains(self, point: Point) -> bool:
        return self.x <= point.x < self.x + self.width and self.y <= point.y < self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)


class PitchGeometry:
    """Pixel layout of the pitch and the bench strip below it."""

    def __init__(self, width: float, bench_capacity: int):
        self.bench_capacity = bench_capacity
        self.resize(width)

    def resize(self, width: float) -> None:
        if width <= 0:
            raise ValueError(f"Pitch width must be positive, got {width}")
        self.width = float(width)
        self.height = self.width * PITCH_ASPECT

    @property
    def chip_radius(self) -> float:
        return max(MIN_CHIP_RADIUS_PX, self.width * 0.035)

    def to_pixels(self, x_norm: float, y_norm: float) -> Point:
        return Point(x_norm / 100 * self.width, y_norm / 100 * self.height)

    @property
    def bench_strip(self) -> Rect:
        return Rect(0.0, self.height + BENCH_STRIP_GAP_PX, self.width, float(BENCH_STRIP_HEIGHT_PX))

    def bench_cell(self, index: int) -> Rect:
        # cells are inset; the margins around them belong to the strip itself
        strip = self.bench_strip
        cell_width = strip.width / max(1, self.bench_capacity)
        pad = BENCH_CELL_PADDING_PX
        return Rect(
            strip.x + index * cell_width + pad,
            strip.y + pad,
            cell_width - 2 * pad,
            strip.height - 2 * pad,
        )

    @property
    def total_height(self) -> float:
        return self.bench_strip.y + self.bench_strip.height


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class DropKind(str, Enum):
    SLOT = "slot"
    SUB = "sub"
    PLAYER = "player"
    BENCH = "bench"
    INVALID = "invalid"


@dataclass(frozen=True)
class DropTarget:
    kind: DropKind
    position_id: Optional[str] = None
    sub_index: Optional[int] = None
    player_id: Optional[str] = None


@dataclass
class DragHandle:
    player_id: str
    origin: Location
    origin_point: Optional[Point]
    active: bool = True

    @property
    def was_starter(self) -> bool:
        return self.origin.kind is LocationKind.SLOT


@dataclass
class DropResult:
    outcome: DropKind
    move: Optional[Move] = None
    result: Optional[MoveResult] = None
    snap_back: Optional[Point] = None

    @property
    def changed(self) -> bool:
        return bool(self.result and self.result.changed)

    @property
    def notice(self) -> Optional[str]:
        return self.result.notice if self.result else None


@dataclass
class ChipView:
    player_id: str
    jersey_number: str
    player_name: str
    label: str
    location: str
    x: Optional[float] = None
    y: Optional[float] = None
    position_id: Optional[str] = None
    sub_index: Optional[int] = None
    draggable: bool = False
    highlighted: bool = False


@dataclass
class PlaceholderView:
    position_id: str
    label: str
    x: float
    y: float
    droppable: bool = False


@dataclass
class BenchCellView:
    index: int
    x: float
    y: float
    width: float
    height: float
    player_id: Optional[str] = None
    droppable: bool = False


@dataclass
class BoardView:
    team_id: Optional[str]
    preset: str
    width: float
    height: float
    status: SaveStatus
    read_only: bool
    chips: List[ChipView] = field(default_factory=list)
    placeholders: List[PlaceholderView] = field(default_factory=list)
    bench: List[BenchCellView] = field(default_factory=list)
    unassigned: List[ChipView] = field(default_factory=list)
    dragging: Optional[str] = None


class InteractionSurface:
    """Drag-and-drop front of one board. The store is injected, never global."""

    def __init__(self, store: FormationStore, can_edit: bool, width: float = DEFAULT_WIDTH):
        self.store = store
        self.can_edit = can_edit
        self.geometry = PitchGeometry(width, store.settings.bench_capacity)
        self.phase = DragPhase.IDLE
        self._handle: Optional[DragHandle] = None

    def resize(self, width: float) -> None:
        self.geometry.resize(width)

    # -- layout ----------------------------------------------------------

    def slot_points(self) -> Dict[str, Point]:
        slots = self.store.catalog.slots_for(self.store.state.preset)
        return {s.position_id: self.geometry.to_pixels(s.x_norm, s.y_norm) for s in slots}

    def point_of(self, location: Location) -> Optional[Point]:
        if location.kind is LocationKind.SLOT:
            return self.slot_points().get(location.position_id)
        if location.kind is LocationKind.SUB:
            return self.geometry.bench_cell(location.sub_index).center
        return None

    def _chip_points(self) -> Dict[str, Point]:
        state = self.store.state
        points = self.slot_points()
        chips = {pid: points[pos] for pos, pid in state.starters.items() if pos in points}
        for index, pid in enumerate(state.subs):
            if pid is not None:
                chips[pid] = self.geometry.bench_cell(index).center
        return chips

    # -- drag protocol ---------------------------------------------------

    def begin_drag(self, player_id: str) -> DragHandle:
        if not self.can_edit:
            raise ReadOnlyBoard("This formation is read-only for the current viewer")
        location = self.store.state.location_of(player_id)
        if location is None:
            raise InvalidMove(f"Player {player_id} is not on this board")
        if self._handle is not None:
            logger.debug(f"Abandoning drag of {self._handle.player_id}")
            self._handle.active = False
        self._handle = DragHandle(player_id=player_id, origin=location, origin_point=self.point_of(location))
        self.phase = DragPhase.DRAGGING
        return self._handle

    def cancel(self, handle: Optional[DragHandle] = None) -> None:
        if handle is not None and handle is not self._handle:
            return
        if self._handle is not None:
            self._handle.active = False
        self._handle = None
        self.phase = DragPhase.IDLE

    def resolve_drop(self, point: Point, handle: Optional[DragHandle] = None) -> Optional[DropTarget]:
        """Find what lies under ``point``, ignoring the chip being dragged."""
        handle = handle or self._handle
        dragged = handle.player_id if handle else None
        radius = self.geometry.chip_radius

        nearest: Optional[str] = None
        nearest_distance = radius
        for pid, center in self._chip_points().items():
            if pid == dragged:
                continue
            distance = point.distance_to(center)
            if distance <= nearest_distance:
                nearest, nearest_distance = pid, distance
        if nearest is not None:
            return DropTarget(DropKind.PLAYER, player_id=nearest)

        state = self.store.state
        for position_id, center in self.slot_points().items():
            occupant = state.starters.get(position_id)
            if occupant is not None and occupant != dragged:
                continue
            if point.distance_to(center) <= radius:
                return DropTarget(DropKind.SLOT, position_id=position_id)

        for index in range(self.geometry.bench_capacity):
            if self.geometry.bench_cell(index).contains(point):
                return DropTarget(DropKind.SUB, sub_index=index)

        if self.geometry.bench_strip.contains(point):
            return DropTarget(DropKind.BENCH)
        return None

    def move_for(self, handle: DragHandle, target: DropTarget) -> Optional[Move]:
        origin = handle.origin
        if target.kind is DropKind.PLAYER:
            return SwapPlayers(handle.player_id, target.player_id)
        if target.kind is DropKind.SLOT:
            return MoveToSlot(
                handle.player_id,
                target.position_id,
                was_starter=handle.was_starter,
                original_position_id=origin.position_id,
                original_sub_index=origin.sub_index,
            )
        if target.kind is DropKind.SUB:
            return MoveToSubSlot(
                handle.player_id,
                target.sub_index,
                was_starter=handle.was_starter,
                original_position_id=origin.position_id,
                original_sub_index=origin.sub_index,
            )
        if target.kind is DropKind.BENCH:
            if handle.was_starter:
                return DemoteToSubsGeneral(handle.player_id, origin.position_id)
            if origin.kind is LocationKind.UNASSIGNED:
                return MoveToSubSlot(handle.player_id, self._first_free_bench_index())
        return None

    def _first_free_bench_index(self) -> int:
        subs = self.store.state.subs
        for index, occupant in enumerate(subs):
            if occupant is None:
                return index
        return len(subs)

    def drop(self, handle: DragHandle, point: Point) -> DropResult:
        if not handle.active or handle is not self._handle:
            logger.debug(f"Ignoring drop of stale drag for {handle.player_id}")
            return DropResult(DropKind.INVALID, snap_back=handle.origin_point)

        target = self.resolve_drop(point, handle)
        self.cancel(handle)
        if target is None:
            missed = MoveResult(changed=False, state=self.store.state, code=InvalidDropTarget.code)
            return DropResult(DropKind.INVALID, result=missed, snap_back=handle.origin_point)

        move = self.move_for(handle, target)
        if move is None:
            return DropResult(target.kind, snap_back=handle.origin_point)
        if isinstance(move, MoveToSubSlot) and move.target_sub_index >= self.geometry.bench_capacity:
            notice = f"The bench is full ({self.geometry.bench_capacity} players)"
            rejected = MoveResult(changed=False, state=self.store.state, notice=notice, code=BenchFull.code)
            return DropResult(target.kind, move=move, result=rejected, snap_back=handle.origin_point)

        result = self.store.apply(move)
        snap_back = handle.origin_point if not result.changed else None
        return DropResult(target.kind, move=move, result=result, snap_back=snap_back)

    def valid_targets(self, handle: Optional[DragHandle] = None) -> List[DropTarget]:
        """Everything a chip may currently be dropped on, for highlighting."""
        handle = handle or self._handle
        if handle is None or not self.can_edit:
            return []
        state = self.store.state
        targets = [
            DropTarget(DropKind.PLAYER, player_id=pid)
            for pid in self._chip_points()
            if pid != handle.player_id
        ]
        targets += [
            DropTarget(DropKind.SLOT, position_id=pos)
            for pos in self.slot_points()
            if state.starters.get(pos) in (None, handle.player_id)
        ]
        targets += [DropTarget(DropKind.SUB, sub_index=i) for i in range(self.geometry.bench_capacity)]
        if handle.was_starter or handle.origin.kind is LocationKind.UNASSIGNED:
            targets.append(DropTarget(DropKind.BENCH))
        return targets

    # -- rendering -------------------------------------------------------

    def _chip(self, player_id: str, location: Location, point: Optional[Point], label: str) -> ChipView:
        ref = self.store.player(player_id) or PlayerRef(player_id=player_id)
        return ChipView(
            player_id=player_id,
            jersey_number=ref.jersey_number,
            player_name=ref.player_name or player_id,
            label=label or ref.label,
            location=location.kind.value,
            x=point.x if point else None,
            y=point.y if point else None,
            position_id=location.position_id,
            sub_index=location.sub_index,
            draggable=self.can_edit,
        )

    def view(self) -> BoardView:
        state = self.store.state
        slots = self.store.catalog.slots_for(state.preset)
        points = self.slot_points()
        targets = set(self.valid_targets())
        dragging = self._handle.player_id if self._handle else None

        board = BoardView(
            team_id=self.store.team_id,
            preset=state.preset,
            width=self.geometry.width,
            height=self.geometry.height,
            status=self.store.status,
            read_only=not self.can_edit,
            dragging=dragging,
        )
        for slot in slots:
            point = points[slot.position_id]
            pid = state.starters.get(slot.position_id)
            if pid is None:
                board.placeholders.append(
                    PlaceholderView(
                        position_id=slot.position_id,
                        label=slot.label,
                        x=point.x,
                        y=point.y,
                        droppable=DropTarget(DropKind.SLOT, position_id=slot.position_id) in targets,
                    )
                )
                continue
            chip = self._chip(pid, Location(LocationKind.SLOT, position_id=slot.position_id), point, slot.label)
            chip.highlighted = DropTarget(DropKind.PLAYER, player_id=pid) in targets
            board.chips.append(chip)

        for index in range(self.geometry.bench_capacity):
            cell = self.geometry.bench_cell(index)
            pid = state.subs[index] if index < len(state.subs) else None
            board.bench.append(
                BenchCellView(
                    index=index,
                    x=cell.x,
                    y=cell.y,
                    width=cell.width,
                    height=cell.height,
                    player_id=pid,
                    droppable=DropTarget(DropKind.SUB, sub_index=index) in targets,
                )
            )
            if pid is not None:
                chip = self._chip(pid, Location(LocationKind.SUB, sub_index=index), cell.center, "")
                chip.highlighted = DropTarget(DropKind.PLAYER, player_id=pid) in targets
                board.chips.append(chip)

        for pid in state.unassigned:
            board.unassigned.append(self._chip(pid, Location(LocationKind.UNASSIGNED), None, ""))
        return board
