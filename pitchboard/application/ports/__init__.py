"""Application ports (interfaces)."""

from .formation_repository import FormationRepositoryPort
from .team_service import PermissionPort, RosterPort

__all__ = [
    "FormationRepositoryPort",
    "PermissionPort",
    "RosterPort",
]
