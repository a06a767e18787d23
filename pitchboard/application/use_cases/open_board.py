"""Use case for opening the formation board of a team."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Dict, Iterator, List, Optional, Set

from formation.board import FormationBoard
from formation.config import BoardSettings
from formation.errors import PersistenceFailure, UnknownPreset
from formation.presets import DEFAULT_CATALOG, PresetCatalog
from formation.state import PersistedFormation, PlayerRef
from formation.store import FormationStore
from formation.surface import DEFAULT_WIDTH, InteractionSurface

from ..ports.formation_repository import FormationRepositoryPort
from ..ports.team_service import PermissionPort, RosterPort
from ...domain.value_objects.types import ErrorCode

logger = logging.getLogger(__name__)

# Thread pool for running blocking I/O operations
_executor = ThreadPoolExecutor(max_workers=4)


@dataclass
class OpenBoardRequest:
    """Request to open a board."""

    team_id: str
    actor_id: str | None = None
    width: float = DEFAULT_WIDTH


@dataclass
class OpenBoardResult:
    """Result of opening a board."""

    success: bool
    board: FormationBoard | None = None
    error: str | None = None
    code: str | None = None


class BoardRegistry:
    """Stores of the boards opened by this process, one per team.

    All viewers of a team share the team's store, so moves and saves of
    that team are applied in one order. A store is dropped once its last
    viewer is released and its lineup is saved; a store whose save failed
    stays until a later save or shutdown writes it.
    """

    def __init__(self):
        self._stores: Dict[str, FormationStore] = {}
        self._viewers: Dict[str, int] = {}
        self._closing: Set[asyncio.Task] = set()
        self.lock = asyncio.Lock()

    def get(self, team_id: str) -> Optional[FormationStore]:
        return self._stores.get(team_id)

    def add(self, team_id: str, store: FormationStore) -> None:
        self._stores[team_id] = store

    def __contains__(self, team_id: object) -> bool:
        return team_id in self._stores

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._stores))

    def viewers(self, team_id: str) -> int:
        return self._viewers.get(team_id, 0)

    def acquire(self, team_id: str) -> None:
        self._viewers[team_id] = self.viewers(team_id) + 1

    def release(self, team_id: str) -> None:
        """Drop one viewer of ``team_id``. Must run on the event loop."""
        count = self.viewers(team_id) - 1
        if count > 0:
            self._viewers[team_id] = count
            return
        self._viewers.pop(team_id, None)
        store = self._stores.get(team_id)
        if store is None:
            return
        if store.saver.busy:
            task = asyncio.get_running_loop().create_task(self._evict_when_idle(team_id, store))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)
        else:
            self._evict(team_id, store)

    async def _evict_when_idle(self, team_id: str, store: FormationStore) -> None:
        await store.saver.drain()
        self._evict(team_id, store)

    def _evict(self, team_id: str, store: FormationStore) -> None:
        if self.viewers(team_id) or self._stores.get(team_id) is not store:
            return
        if not store.state.saved:
            logger.warning(f"Keeping unsaved board of team {team_id} open")
            return
        del self._stores[team_id]
        logger.info(f"Closed idle board of team {team_id}")

    async def flush_all(self) -> List[str]:
        """Write every unsaved board; returns the teams still unsaved."""
        unsaved = []
        for team_id in self:
            if not await self._stores[team_id].flush():
                logger.error(f"Formation of team {team_id} is still unsaved")
                unsaved.append(team_id)
        return unsaved


class OpenBoardUseCase:
    """Use case for opening a formation board.

    This orchestrates:
    1. Resolving whether the actor manages the team
    2. Loading the saved formation and the roster (first open only)
    3. Mounting the shared store and a surface for this viewer
    """

    def __init__(
        self,
        formations: FormationRepositoryPort,
        roster: RosterPort,
        permissions: PermissionPort,
        settings: Optional[BoardSettings] = None,
        catalog: PresetCatalog = DEFAULT_CATALOG,
        registry: Optional[BoardRegistry] = None,
    ):
        self._formations = formations
        self._roster = roster
        self._permissions = permissions
        self.settings = settings or BoardSettings()
        self.catalog = catalog
        self.registry = registry or BoardRegistry()

    async def execute(self, request: OpenBoardRequest) -> OpenBoardResult:
        """Execute the open board use case.

        A successful result counts as a viewer of the team's store; hand it
        back with ``release`` when the viewer is done.

        Args:
            request: Open board request

        Returns:
            Result holding a board bound to the actor's permissions
        """
        loop = asyncio.get_running_loop()

        try:
            is_manager = await loop.run_in_executor(
                _executor,
                partial(self._permissions.can_edit_formation, request.team_id, request.actor_id),
            )
        except PersistenceFailure as e:
            logger.warning(f"Permission lookup failed for team {request.team_id}, opening read-only: {e}")
            is_manager = False

        try:
            async with self.registry.lock:
                store = self.registry.get(request.team_id)
                if store is None:
                    store = await self._mount_store(request.team_id, is_manager)
                    self.registry.add(request.team_id, store)
                self.registry.acquire(request.team_id)
        except UnknownPreset as e:
            return OpenBoardResult(
                success=False,
                error=str(e),
                code=ErrorCode.UNKNOWN_PRESET.value,
            )

        surface = InteractionSurface(store, can_edit=is_manager, width=request.width)
        return OpenBoardResult(success=True, board=FormationBoard(store, surface))

    def release(self, team_id: str) -> None:
        self.registry.release(team_id)

    async def _mount_store(self, team_id: str, is_manager: bool) -> FormationStore:
        loop = asyncio.get_running_loop()

        # Step 1: Load the saved document (run in thread to not block event loop)
        load_error: Optional[Exception] = None
        persisted: Optional[PersistedFormation] = None
        try:
            persisted = await loop.run_in_executor(
                _executor, partial(self._formations.load_formation, team_id)
            )
        except (PersistenceFailure, ValueError) as e:
            load_error = e

        # Step 2: Fetch the roster
        players: List[PlayerRef] = []
        try:
            players = await loop.run_in_executor(
                _executor, partial(self._roster.list_roster_players, team_id)
            )
        except PersistenceFailure as e:
            logger.warning(f"Roster unavailable for team {team_id}: {e}")

        def preloaded(_team_id: str) -> Optional[PersistedFormation]:
            if load_error is not None:
                raise load_error
            return persisted

        # Step 3: Mount on the loop so debounced saves run on it
        board = FormationBoard.mount(
            team_id,
            is_manager,
            load=preloaded,
            save=self._formations.save_formation,
            players=players,
            catalog=self.catalog,
            settings=self.settings,
        )
        return board.store
