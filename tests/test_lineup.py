from formation.lineup import (
    hydrate,
    is_placeholder,
    lineup_violations,
    placeholder_roster,
    remap_for_preset,
    seed_lineup,
)
from formation.presets import DEFAULT_CATALOG, RAW_PRESETS, PresetCatalog, slots_for
from formation.state import FormationState, PersistedFormation


def _full_433(subs=()):
    slots = slots_for("4-3-3")
    starters = {slot.position_id: f"p{i}" for i, slot in enumerate(slots, start=1)}
    return FormationState(preset="4-3-3", starters=starters, subs=list(subs))


def test_placeholder_roster():
    players = placeholder_roster(3)
    assert [p.player_id for p in players] == ["placeholder-1", "placeholder-2", "placeholder-3"]
    assert players[2].jersey_number == "3"
    assert players[2].player_name == "Player 3"
    assert is_placeholder("placeholder-9")
    assert not is_placeholder("p9")


def test_seed_lineup_fills_slots_then_bench_then_pool():
    ids = [f"p{i}" for i in range(1, 21)]
    starters, subs, unassigned = seed_lineup(slots_for("4-3-3"), ids, 7)
    assert list(starters.values()) == ids[:11]
    assert list(starters) == [s.position_id for s in slots_for("4-3-3")]
    assert subs == ids[11:18]
    assert unassigned == ids[18:]


def test_seed_lineup_ignores_repeated_ids():
    starters, subs, unassigned = seed_lineup(slots_for("2-3-1"), ["a", "a", "b"], 7)
    assert list(starters.values()) == ["a", "b"]
    assert subs == []
    assert unassigned == []


def test_hydrate_unknown_preset_falls_back_to_default():
    persisted = PersistedFormation(preset_name="9-9-9", starters={"gk": "a"})
    state = hydrate(persisted, DEFAULT_CATALOG, "4-3-3", 7)
    assert state.preset == "4-3-3"
    assert state.starters == {"gk": "a"}


def test_hydrate_moves_players_on_foreign_slots_to_the_bench():
    persisted = PersistedFormation(
        preset_name="4-3-3",
        starters={"gk": "a", "lm": "b"},
        subs=[None, "c"],
    )
    state = hydrate(persisted, DEFAULT_CATALOG, "4-3-3", 7)
    assert state.starters == {"gk": "a"}
    assert state.subs == ["b", "c"]


def test_hydrate_keeps_first_placement_of_duplicates():
    persisted = PersistedFormation(preset_name="4-3-3", starters={"gk": "a"}, subs=["a", "c"])
    state = hydrate(persisted, DEFAULT_CATALOG, "4-3-3", 7)
    assert state.subs == [None, "c"]
    assert list(state.iter_player_ids()).count("a") == 1


def test_hydrate_sends_bench_overflow_to_the_pool():
    subs = [f"s{i}" for i in range(1, 10)]
    persisted = PersistedFormation(preset_name="4-3-3", subs=subs)
    state = hydrate(persisted, DEFAULT_CATALOG, "4-3-3", 7)
    assert state.subs == subs[:7]
    assert state.unassigned == ["s8", "s9"]


def test_hydrate_drops_empty_bench_cells_past_capacity():
    subs = [f"s{i}" for i in range(1, 8)] + [None]
    persisted = PersistedFormation(preset_name="4-3-3", starters={"gk": "a", "st": "b"}, subs=subs)
    state = hydrate(persisted, DEFAULT_CATALOG, "4-3-3", 7)
    assert state.subs == subs[:7]
    assert state.unassigned == []
    assert lineup_violations(state, slots_for("4-3-3"), 7) == []


def test_hydrate_trims_an_all_empty_padded_bench():
    persisted = PersistedFormation(preset_name="4-3-3", starters={"gk": "a"}, subs=[None] * 9)
    state = hydrate(persisted, DEFAULT_CATALOG, "4-3-3", 7)
    assert state.subs == []
    assert lineup_violations(state, slots_for("4-3-3"), 7) == []


def test_hydrate_fills_bench_gaps_before_overflowing():
    subs = [None] * 7 + ["s8", "s9"]
    persisted = PersistedFormation(preset_name="4-3-3", subs=subs)
    state = hydrate(persisted, DEFAULT_CATALOG, "4-3-3", 7)
    assert state.subs == ["s8", "s9"]
    assert state.unassigned == []


def test_hydrate_adds_unplaced_roster_players_to_the_pool():
    persisted = PersistedFormation(preset_name="4-3-3", starters={"gk": "a"}, subs=["b"])
    state = hydrate(persisted, DEFAULT_CATALOG, "4-3-3", 7, roster_ids=["a", "b", "c", "d"])
    assert state.unassigned == ["c", "d"]
    assert state.saved is True


def test_remap_to_ten_slots_demotes_exactly_one():
    catalog = PresetCatalog.from_raw(
        {"4-3-3": RAW_PRESETS["4-3-3"], "4-4-1": RAW_PRESETS["4-4-2"][:10]}
    )
    state = _full_433()
    starters, subs, evicted = remap_for_preset(
        state, catalog.slots_for("4-3-3"), catalog.slots_for("4-4-1"), 7
    )
    assert len(starters) == 10
    assert subs == ["p11"]
    assert evicted == []


def test_remap_evicts_from_the_end_of_a_full_bench():
    state = _full_433(subs=[f"s{i}" for i in range(1, 8)])
    starters, subs, evicted = remap_for_preset(state, slots_for("4-3-3"), slots_for("3-2-3"), 7)
    assert len(starters) == 9
    assert subs == ["p10", "p11", "s1", "s2", "s3", "s4", "s5"]
    assert evicted == ["s6", "s7"]


def test_remap_drops_empty_bench_cells_before_players():
    state = _full_433(subs=["s1", None, None])
    starters, subs, evicted = remap_for_preset(state, slots_for("4-3-3"), slots_for("3-2-3"), 3)
    assert subs == ["p10", "p11", "s1"]
    assert evicted == []
