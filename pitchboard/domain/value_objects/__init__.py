"""Domain value objects."""

from .types import ActorId, ErrorCode, TeamId

__all__ = [
    "ActorId",
    "ErrorCode",
    "TeamId",
]
