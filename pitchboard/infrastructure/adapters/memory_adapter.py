"""In-process team adapter for local development and tests."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Set

from formation.errors import PersistenceFailure
from formation.state import PersistedFormation, PlayerRef

from ...application.ports.formation_repository import FormationRepositoryPort
from ...application.ports.team_service import PermissionPort, RosterPort

logger = logging.getLogger(__name__)


class InMemoryTeamAdapter(FormationRepositoryPort, RosterPort, PermissionPort):
    """Formations, rosters and managers kept in dictionaries.

    With ``managers=None`` every actor may edit every team.
    """

    def __init__(
        self,
        rosters: Optional[Dict[str, List[PlayerRef]]] = None,
        managers: Optional[Dict[str, Iterable[str]]] = None,
        formations: Optional[Dict[str, PersistedFormation]] = None,
    ):
        self.rosters = dict(rosters or {})
        self.managers: Optional[Dict[str, Set[str]]] = (
            None if managers is None else {team: set(ids) for team, ids in managers.items()}
        )
        self.formations: Dict[str, PersistedFormation] = dict(formations or {})
        self.save_count = 0
        # Set to simulate an unreachable backend.
        self.fail_saves = False
        self.fail_loads = False
        self._lock = threading.Lock()

    def load_formation(self, team_id: str) -> Optional[PersistedFormation]:
        if self.fail_loads:
            raise PersistenceFailure(f"formation store unavailable for team {team_id}")
        with self._lock:
            return self.formations.get(team_id)

    def save_formation(self, team_id: str, formation: PersistedFormation) -> None:
        if self.fail_saves:
            raise PersistenceFailure(f"formation store unavailable for team {team_id}")
        with self._lock:
            self.formations[team_id] = formation
            self.save_count += 1
        logger.debug(f"Stored formation {formation.preset_name} for team {team_id}")

    def list_roster_players(self, team_id: str) -> List[PlayerRef]:
        return list(self.rosters.get(team_id, []))

    def can_edit_formation(self, team_id: str, actor_id: Optional[str]) -> bool:
        if self.managers is None:
            return True
        return actor_id is not None and actor_id in self.managers.get(team_id, set())
