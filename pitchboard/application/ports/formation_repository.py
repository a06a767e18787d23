"""Port (interface) for formation persistence."""

from abc import ABC, abstractmethod
from typing import Optional

from formation.state import PersistedFormation

from ...domain.value_objects.types import TeamId


class FormationRepositoryPort(ABC):
    """Port for loading and saving the formation document of a team."""

    @abstractmethod
    def load_formation(self, team_id: TeamId) -> Optional[PersistedFormation]:
        """Load the saved formation of a team.

        Args:
            team_id: Team identifier

        Returns:
            The persisted formation, or None when the team never saved one

        Raises:
            PersistenceFailure: When the backing store cannot be read
        """
        ...

    @abstractmethod
    def save_formation(self, team_id: TeamId, formation: PersistedFormation) -> None:
        """Write the formation document of a team, replacing the old one.

        Raises:
            PersistenceFailure: When the write does not succeed
        """
        ...
