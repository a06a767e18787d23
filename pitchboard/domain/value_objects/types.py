"""Domain value objects and type aliases."""

from enum import Enum
from typing import NewType

# Type aliases for domain clarity
TeamId = NewType("TeamId", str)
ActorId = NewType("ActorId", str)


class ErrorCode(str, Enum):
    """Error codes returned to the front end."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN_PRESET = "UNKNOWN_PRESET"
    FORBIDDEN = "FORBIDDEN"
    BOARD_UNAVAILABLE = "BOARD_UNAVAILABLE"
    SAVE_FAILED = "SAVE_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
