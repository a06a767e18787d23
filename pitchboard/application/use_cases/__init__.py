"""Application use cases."""

from .open_board import (
    BoardRegistry,
    OpenBoardRequest,
    OpenBoardResult,
    OpenBoardUseCase,
)

__all__ = [
    "BoardRegistry",
    "OpenBoardRequest",
    "OpenBoardResult",
    "OpenBoardUseCase",
]
