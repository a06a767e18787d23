"""Ports (interfaces) for roster and permission lookups."""

from abc import ABC, abstractmethod
from typing import List, Optional

from formation.state import PlayerRef

from ...domain.value_objects.types import ActorId, TeamId


class RosterPort(ABC):
    """Port for fetching the players of a team."""

    @abstractmethod
    def list_roster_players(self, team_id: TeamId) -> List[PlayerRef]:
        """List roster players in roster order.

        Args:
            team_id: Team identifier

        Returns:
            Players of the team; empty when the roster is unknown
        """
        ...


class PermissionPort(ABC):
    """Port for deciding who may edit a formation."""

    @abstractmethod
    def can_edit_formation(self, team_id: TeamId, actor_id: Optional[ActorId]) -> bool:
        """Return True when the actor manages the team."""
        ...
