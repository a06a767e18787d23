import pytest

from formation.board import FormationBoard
from formation.config import BoardSettings
from formation.errors import ReadOnlyBoard
from formation.state import PersistedFormation, PlayerRef, SaveStatus


def _roster(count):
    return [PlayerRef(player_id=f"p{i}", jersey_number=str(i), player_name=f"Player {i}") for i in range(1, count + 1)]


def _mount(is_manager, stored=None, players=None):
    saves = []
    statuses = []
    board = FormationBoard.mount(
        "t1",
        is_manager,
        load=lambda team_id: stored,
        save=lambda team_id, formation: saves.append(formation),
        players=players,
        settings=BoardSettings(save_debounce_s=0.01),
        on_status=statuses.append,
    )
    return board, saves, statuses


def test_manager_mount_maps_roster_and_marks_unsaved():
    board, _, statuses = _mount(True, players=_roster(13))
    state = board.store.state
    assert board.team_id == "t1"
    assert board.is_manager
    assert state.starters["gk"] == "p1"
    assert state.subs == ["p12", "p13"]
    assert board.status is SaveStatus.UNSAVED
    assert statuses[-1] is SaveStatus.UNSAVED


def test_read_only_mount_shows_roster_without_writing():
    board, saves, _ = _mount(False, players=_roster(11))
    assert board.store.state.starters["gk"] == "p1"
    assert board.status is SaveStatus.SAVED
    assert saves == []
    assert board.view().read_only


def test_mount_without_roster_shows_placeholders():
    board, _, _ = _mount(True)
    assert board.store.state.starters["gk"] == "placeholder-1"
    assert board.status is SaveStatus.SAVED


def test_saved_formation_wins_over_roster_order():
    stored = PersistedFormation("4-4-2", starters={"gk": "p5", "st1": "p1"}, subs=["p2"])
    board, _, _ = _mount(True, stored=stored, players=_roster(4))
    state = board.store.state
    assert state.preset == "4-4-2"
    assert state.starters == {"gk": "p5", "st1": "p1"}
    assert state.unassigned == ["p3", "p4"]


def test_change_preset_requires_a_manager():
    board, _, _ = _mount(False)
    with pytest.raises(ReadOnlyBoard):
        board.change_preset("4-4-2")
    assert board.store.state.preset == "4-3-3"


def test_change_preset_cancels_a_running_drag():
    board, _, _ = _mount(True)
    handle = board.surface.begin_drag("placeholder-4")
    change = board.change_preset("3-5-2")
    assert change.changed
    assert not handle.active
    assert board.view().dragging is None
