"""Mountable formation board: one store plus its interaction surface."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .config import BoardSettings
from .errors import ReadOnlyBoard
from .presets import DEFAULT_CATALOG, PresetCatalog
from .state import PlayerRef, SaveStatus
from .store import FormationStore, LoadFormation, PresetChange, SaveFormation, StatusListener
from .surface import DEFAULT_WIDTH, BoardView, InteractionSurface

logger = logging.getLogger(__name__)


class FormationBoard:
    def __init__(self, store: FormationStore, surface: InteractionSurface):
        self.store = store
        self.surface = surface

    @classmethod
    def mount(
        cls,
        team_id: str,
        is_manager: bool,
        load: LoadFormation,
        save: SaveFormation,
        players: Optional[Sequence[PlayerRef]] = None,
        catalog: PresetCatalog = DEFAULT_CATALOG,
        settings: Optional[BoardSettings] = None,
        width: float = DEFAULT_WIDTH,
        on_status: Optional[StatusListener] = None,
    ) -> "FormationBoard":
        """Create the board of ``team_id`` and load its lineup.

        ``players`` is the roster when the host already fetched it; live
        players replace the placeholders of a board that has never been
        arranged. Only managers write that first arrangement back.
        """
        store = FormationStore(load, save, catalog=catalog, settings=settings)
        if on_status is not None:
            store.subscribe(on_status)
        if players:
            store.register_players(players)
        store.init(team_id)
        if players:
            store.map_players_to_positions(players, persist=is_manager)
        logger.info(f"Mounted formation board for team {team_id} (manager={is_manager})")
        return cls(store, InteractionSurface(store, can_edit=is_manager, width=width))

    @property
    def team_id(self) -> Optional[str]:
        return self.store.team_id

    @property
    def is_manager(self) -> bool:
        return self.surface.can_edit

    @property
    def status(self) -> SaveStatus:
        return self.store.status

    def change_preset(self, preset_name: str) -> PresetChange:
        if not self.is_manager:
            raise ReadOnlyBoard("Only managers can change the formation")
        self.surface.cancel()
        return self.store.change_preset(preset_name)

    def view(self) -> BoardView:
        return self.surface.view()
