"""Infrastructure adapters."""

from .backup_adapter import LocalBackupFormationRepository
from .memory_adapter import InMemoryTeamAdapter
from .roster_api_client import RosterApiClient

__all__ = [
    "InMemoryTeamAdapter",
    "LocalBackupFormationRepository",
    "RosterApiClient",
]
