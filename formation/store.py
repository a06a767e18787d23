"""Per-board formation state store.

The store owns the ``FormationState`` of one open board. Every change goes
through ``apply`` / ``change_preset`` / ``map_players_to_positions``; each
commit marks the board dirty and schedules a debounced write through the
``save`` callable. Failed writes never roll back the local lineup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence

from .config import BoardSettings
from .engine import Move, apply_move
from .errors import InvalidMove, MoveRejected, PersistenceFailure, UnknownPreset
from .lineup import hydrate, is_placeholder, lineup_violations, placeholder_roster, remap_for_preset, seed_lineup
from .presets import DEFAULT_CATALOG, PresetCatalog
from .saver import DebouncedSaver
from .state import FormationState, PersistedFormation, PlayerRef, SaveStatus

logger = logging.getLogger(__name__)

LoadFormation = Callable[[str], Optional[PersistedFormation]]
SaveFormation = Callable[[str, PersistedFormation], None]
StatusListener = Callable[[SaveStatus], None]


@dataclass
class MoveResult:
    changed: bool
    state: FormationState
    notice: Optional[str] = None
    code: Optional[str] = None

    @property
    def rejected(self) -> bool:
        return self.code is not None


@dataclass
class PresetChange:
    changed: bool
    state: FormationState
    evicted: List[str] = field(default_factory=list)


class FormationStore:
    def __init__(
        self,
        load: LoadFormation,
        save: SaveFormation,
        catalog: PresetCatalog = DEFAULT_CATALOG,
        settings: Optional[BoardSettings] = None,
    ):
        self._load = load
        self._save = save
        self._catalog = catalog
        self.settings = settings or BoardSettings()
        self.team_id: Optional[str] = None
        self._state = FormationState(preset=self.settings.default_preset)
        self._players: Dict[str, PlayerRef] = {}
        self._listeners: List[StatusListener] = []
        self._generation = 0
        # generation of the newest lineup known to be stored
        self._saved_generation = 0
        self._saves_in_flight = 0
        self.last_error: Optional[BaseException] = None
        self._saver = DebouncedSaver(self._start_save, self._finish_save, self.settings.save_debounce_s)

    @property
    def state(self) -> FormationState:
        return self._state

    @property
    def catalog(self) -> PresetCatalog:
        return self._catalog

    @property
    def saver(self) -> DebouncedSaver:
        return self._saver

    @property
    def status(self) -> SaveStatus:
        if self._saves_in_flight:
            return SaveStatus.SAVING
        return SaveStatus.SAVED if self._state.saved else SaveStatus.UNSAVED

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        status = self.status
        for listener in list(self._listeners):
            listener(status)

    def player(self, player_id: str) -> Optional[PlayerRef]:
        return self._players.get(player_id)

    def register_players(self, players: Sequence[PlayerRef]) -> None:
        for p in players:
            self._players[p.player_id] = p

    # -- lifecycle -------------------------------------------------------

    def init(self, team_id: str) -> FormationState:
        """Load the stored formation of ``team_id`` or seed placeholders."""
        self.team_id = team_id
        self._state = replace(self._state, loading=True)
        self._emit()

        persisted: Optional[PersistedFormation] = None
        try:
            persisted = self._load(team_id)
        except PersistenceFailure as e:
            logger.warning(f"Could not load formation for team {team_id}: {e}")
        except ValueError as e:
            logger.warning(f"Stored formation for team {team_id} is malformed: {e}")

        if persisted is not None:
            logger.info(f"Loaded formation {persisted.preset_name} for team {team_id}")
            state = hydrate(
                persisted,
                self._catalog,
                self.settings.default_preset,
                self.settings.bench_capacity,
                roster_ids=list(self._players),
            )
        else:
            logger.info(f"No stored formation for team {team_id}, using placeholders")
            state = self._placeholder_state(self.settings.default_preset)

        self._state = replace(state, loading=False, saved=True)
        self._generation += 1
        self._saved_generation = self._generation
        self._emit()
        return self._state

    def _placeholder_state(self, preset: str) -> FormationState:
        slots = self._catalog.slots_for(preset)
        players = placeholder_roster(len(slots))
        self.register_players(players)
        starters, subs, unassigned = seed_lineup(
            slots, [p.player_id for p in players], self.settings.bench_capacity
        )
        return FormationState(preset=preset, starters=starters, subs=subs, unassigned=unassigned)

    def map_players_to_positions(self, players: Sequence[PlayerRef], persist: bool = True) -> FormationState:
        """Bring the live roster onto the board.

        A board that still shows placeholders is reseeded from ``players``;
        a board that already references real players only picks up roster
        players it does not know yet, in the unassigned pool. With
        ``persist=False`` (read-only viewers) the reseeded lineup is shown
        but not written back.
        """
        if not players:
            return self._state
        self.register_players(players)

        if any(not is_placeholder(pid) for pid in self._state.iter_player_ids()):
            known = set(self._state.iter_player_ids())
            newcomers = [p.player_id for p in players if p.player_id not in known]
            if newcomers:
                self._state = replace(self._state, unassigned=self._state.unassigned + newcomers)
            return self._state

        slots = self._catalog.slots_for(self._state.preset)
        starters, subs, unassigned = seed_lineup(
            slots, [p.player_id for p in players], self.settings.bench_capacity
        )
        seeded = replace(self._state, starters=starters, subs=subs, unassigned=unassigned)
        if persist:
            self._commit(seeded)
        else:
            self._state = seeded
        return self._state

    # -- mutations -------------------------------------------------------

    def change_preset(self, preset_name: str) -> PresetChange:
        try:
            new_slots = self._catalog.slots_for(preset_name)
        except UnknownPreset:
            logger.error(f"change_preset called with unknown preset {preset_name!r}")
            raise
        if preset_name == self._state.preset:
            return PresetChange(changed=False, state=self._state)

        old_slots = self._catalog.slots_for(self._state.preset)
        starters, subs, evicted = remap_for_preset(
            self._state, old_slots, new_slots, self.settings.bench_capacity
        )
        candidate = replace(
            self._state,
            preset=preset_name,
            starters=starters,
            subs=subs,
            unassigned=self._state.unassigned + evicted,
        )
        problems = lineup_violations(candidate, new_slots, self.settings.bench_capacity)
        if problems:
            raise InvalidMove("; ".join(problems))
        if evicted:
            logger.info(f"Preset change to {preset_name} left {len(evicted)} player(s) unassigned")
        self._commit(candidate)
        return PresetChange(changed=True, state=self._state, evicted=evicted)

    def apply(self, move: Move) -> MoveResult:
        try:
            new_state = apply_move(self._state, move, self._catalog, self.settings.bench_capacity)
        except MoveRejected as e:
            logger.info(f"Move rejected for team {self.team_id}: {e}")
            return MoveResult(changed=False, state=self._state, notice=str(e), code=e.code)

        if new_state is self._state or new_state.same_lineup(self._state):
            return MoveResult(changed=False, state=self._state)
        self._commit(new_state)
        return MoveResult(changed=True, state=self._state)

    def _commit(self, new_state: FormationState) -> None:
        self._state = replace(new_state, saved=False)
        self._generation += 1
        self._saver.schedule()
        self._emit()

    # -- persistence -----------------------------------------------------

    def _start_save(self):
        snapshot = self._state.to_persisted()
        team_id = self.team_id
        self._saves_in_flight += 1
        self._emit()
        return self._generation, lambda: self._save(team_id, snapshot)

    def _finish_save(self, generation: int, error: Optional[BaseException]) -> None:
        self._saves_in_flight -= 1
        if error is not None:
            if generation < self._saved_generation:
                logger.debug(f"Ignoring failed save of an older lineup for team {self.team_id}: {error!r}")
            else:
                self._record_failure(error)
        else:
            self._saved_generation = max(self._saved_generation, generation)
            if generation == self._generation:
                self._mark_saved()
        self._emit()

    def _mark_saved(self) -> None:
        self._state = replace(self._state, saved=True)
        self.last_error = None
        logger.info(f"Formation saved for team {self.team_id}")

    def _record_failure(self, error: BaseException) -> None:
        self._state = replace(self._state, saved=False)
        self.last_error = error
        if isinstance(error, PersistenceFailure):
            logger.error(f"Saving formation for team {self.team_id} failed: {error}")
        else:
            logger.error(f"Unexpected error saving formation for team {self.team_id}: {error!r}")

    def save_now(self) -> bool:
        """Write the current lineup synchronously. Returns True on success."""
        if self.team_id is None:
            raise RuntimeError("FormationStore.init() must run before saving")
        self._saver.cancel_pending()
        generation = self._generation
        self._saves_in_flight += 1
        self._emit()
        try:
            self._save(self.team_id, self._state.to_persisted())
        except PersistenceFailure as e:
            self._record_failure(e)
            return False
        else:
            self._saved_generation = max(self._saved_generation, generation)
            if generation == self._generation:
                self._mark_saved()
            return True
        finally:
            self._saves_in_flight -= 1
            self._emit()

    def retry_save(self) -> bool:
        if self._state.saved:
            return True
        return self.save_now()

    async def flush(self) -> bool:
        """Write any unsaved changes and wait for the outcome.

        Must run on the event loop. Returns the resulting ``saved`` flag.
        """
        if not self._state.saved and not self._saver.busy:
            self._saver.schedule()
        await self._saver.drain()
        return self._state.saved
