"""Errors raised by the formation board."""

from __future__ import annotations


class FormationError(Exception):
    """Base class for formation board errors."""


class UnknownPreset(FormationError, ValueError):
    """Preset name is not registered in the catalog."""

    def __init__(self, name: str):
        super().__init__(f"Unknown formation preset: {name}")
        self.name = name


class MoveRejected(FormationError):
    """A move was refused; the formation state is unchanged."""

    code = "MOVE_REJECTED"


class BenchFull(MoveRejected):
    """No free bench cell is left for the player."""

    code = "BENCH_FULL"


class InvalidMove(MoveRejected):
    """The move references a stale location or would break the lineup."""

    code = "INVALID_MOVE"


class InvalidDropTarget(MoveRejected):
    """The pointer was released outside every slot and bench cell."""

    code = "INVALID_DROP_TARGET"


class PersistenceFailure(FormationError):
    """Loading or saving the formation through the team API failed."""


class ReadOnlyBoard(FormationError, PermissionError):
    """The viewer cannot edit this board."""
