import pytest

from formation.config import BoardSettings
from formation.errors import BenchFull, InvalidDropTarget, InvalidMove, ReadOnlyBoard
from formation.state import PersistedFormation, PlayerRef, SaveStatus
from formation.store import FormationStore
from formation.surface import DragPhase, DropKind, InteractionSurface, PitchGeometry, Point


def _surface(persisted=None, can_edit=True, width=800.0, roster=()):
    store = FormationStore(
        lambda team_id: persisted,
        lambda team_id, formation: None,
        settings=BoardSettings(save_debounce_s=0.01),
    )
    store.register_players([PlayerRef(player_id=pid) for pid in roster])
    store.init("t1")
    return InteractionSurface(store, can_edit=can_edit, width=width)


def _strip_margin(surface):
    strip = surface.geometry.bench_strip
    return Point(strip.x + 1, strip.y + 1)


def test_geometry_follows_width():
    geometry = PitchGeometry(800, 7)
    assert geometry.height == 450
    assert geometry.chip_radius == pytest.approx(28)
    geometry.resize(300)
    assert geometry.chip_radius == 18
    assert geometry.bench_strip.y > geometry.height
    with pytest.raises(ValueError):
        geometry.resize(0)


def test_bench_cells_sit_inside_the_strip():
    geometry = PitchGeometry(700, 7)
    strip = geometry.bench_strip
    for index in range(7):
        cell = geometry.bench_cell(index)
        assert strip.contains(cell.center)
    assert not geometry.bench_cell(0).contains(Point(strip.x + 1, strip.y + 1))


def test_read_only_board_cannot_start_a_drag():
    surface = _surface(can_edit=False)
    with pytest.raises(ReadOnlyBoard):
        surface.begin_drag("placeholder-1")


def test_dragging_an_unknown_player_is_rejected():
    with pytest.raises(InvalidMove):
        _surface().begin_drag("ghost")


def test_drop_on_another_chip_swaps():
    surface = _surface()
    points = surface.slot_points()
    handle = surface.begin_drag("placeholder-2")
    assert surface.phase is DragPhase.DRAGGING

    result = surface.drop(handle, points["cb1"])
    assert result.outcome is DropKind.PLAYER
    assert result.changed
    assert result.snap_back is None
    assert surface.store.state.starters["cb1"] == "placeholder-2"
    assert surface.store.state.starters["lb"] == "placeholder-3"
    assert surface.phase is DragPhase.IDLE


def test_drop_on_bench_strip_demotes_and_back_to_empty_slot():
    surface = _surface()
    st = surface.slot_points()["st"]

    result = surface.drop(surface.begin_drag("placeholder-10"), _strip_margin(surface))
    assert result.outcome is DropKind.BENCH
    assert surface.store.state.subs == ["placeholder-10"]
    assert "st" not in surface.store.state.starters

    result = surface.drop(surface.begin_drag("placeholder-10"), st)
    assert result.outcome is DropKind.SLOT
    assert surface.store.state.starters["st"] == "placeholder-10"
    assert surface.store.state.subs == [None]


def test_drop_on_bench_cell():
    surface = _surface()
    cell = surface.geometry.bench_cell(3)
    result = surface.drop(surface.begin_drag("placeholder-7"), cell.center)
    assert result.outcome is DropKind.SUB
    assert surface.store.state.subs == [None, None, None, "placeholder-7"]


def test_drop_on_own_slot_snaps_back_without_change():
    surface = _surface()
    gk = surface.slot_points()["gk"]
    handle = surface.begin_drag("placeholder-1")
    result = surface.drop(handle, Point(gk.x + 3, gk.y - 2))
    assert result.outcome is DropKind.SLOT
    assert not result.changed
    assert result.snap_back == gk
    assert surface.store.state.saved is True


def test_drop_outside_every_target_snaps_back():
    surface = _surface()
    handle = surface.begin_drag("placeholder-5")
    result = surface.drop(handle, Point(-50, -50))
    assert result.outcome is DropKind.INVALID
    assert result.result.code == InvalidDropTarget.code
    assert result.notice is None
    assert result.snap_back == handle.origin_point
    assert surface.store.state.saved is True


def test_stale_drag_is_ignored():
    surface = _surface()
    first = surface.begin_drag("placeholder-2")
    surface.begin_drag("placeholder-3")
    result = surface.drop(first, surface.slot_points()["gk"])
    assert result.outcome is DropKind.INVALID
    assert surface.store.state.starters["gk"] == "placeholder-1"


def test_cancel_returns_to_idle():
    surface = _surface()
    handle = surface.begin_drag("placeholder-2")
    surface.cancel(handle)
    assert surface.phase is DragPhase.IDLE
    assert not handle.active
    assert surface.valid_targets() == []


def _full_bench():
    starters = {pid: f"p{i}" for i, pid in enumerate(
        ["gk", "lb", "cb1", "cb2", "rb", "cdm", "cm1", "cm2", "lw", "st", "rw"], start=1)}
    return PersistedFormation("4-3-3", starters=starters, subs=[f"s{i}" for i in range(1, 8)])


def test_demote_to_full_bench_shows_a_notice():
    surface = _surface(_full_bench())
    result = surface.drop(surface.begin_drag("p10"), _strip_margin(surface))
    assert result.outcome is DropKind.BENCH
    assert not result.changed
    assert result.result.code == BenchFull.code
    assert "full" in result.notice
    assert result.snap_back is not None


def test_unassigned_player_to_full_bench_shows_a_notice():
    surface = _surface(_full_bench(), roster=["u1"])
    assert surface.store.state.unassigned == ["u1"]
    result = surface.drop(surface.begin_drag("u1"), _strip_margin(surface))
    assert result.result.code == BenchFull.code
    assert surface.store.state.unassigned == ["u1"]


def test_valid_targets_during_drag():
    surface = _surface()
    surface.drop(surface.begin_drag("placeholder-10"), _strip_margin(surface))
    handle = surface.begin_drag("placeholder-1")
    kinds = {}
    for target in surface.valid_targets(handle):
        kinds.setdefault(target.kind, []).append(target)
    assert any(t.position_id == "st" for t in kinds[DropKind.SLOT])
    assert any(t.position_id == "gk" for t in kinds[DropKind.SLOT])
    assert all(t.player_id != "placeholder-1" for t in kinds[DropKind.PLAYER])
    assert len(kinds[DropKind.SUB]) == 7
    assert DropKind.BENCH in kinds


def test_view_lists_chips_placeholders_and_bench():
    surface = _surface()
    surface.drop(surface.begin_drag("placeholder-10"), _strip_margin(surface))
    view = surface.view()
    assert view.preset == "4-3-3"
    assert view.status is SaveStatus.UNSAVED
    assert len(view.chips) == 11
    assert [p.position_id for p in view.placeholders] == ["st"]
    assert len(view.bench) == 7
    assert view.bench[0].player_id == "placeholder-10"
    assert all(chip.draggable for chip in view.chips)


def test_read_only_view_marks_nothing_droppable():
    view = _surface(can_edit=False).view()
    assert view.read_only
    assert not any(chip.draggable for chip in view.chips)
    assert not any(cell.droppable for cell in view.bench)


def test_layout_scales_with_resize():
    surface = _surface()
    before = surface.slot_points()["rw"]
    surface.resize(400)
    after = surface.slot_points()["rw"]
    assert after.x == pytest.approx(before.x / 2)
    assert after.y == pytest.approx(before.y / 2)
