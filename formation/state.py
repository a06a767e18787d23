"""Formation data model."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class SaveStatus(str, Enum):
    """Persistence status shown next to the board."""

    SAVED = "saved"
    UNSAVED = "unsaved"
    SAVING = "saving"


class LocationKind(str, Enum):
    SLOT = "slot"
    SUB = "sub"
    UNASSIGNED = "unassigned"


@dataclass(frozen=True)
class PlayerRef:
    """Roster player as handed over by the team API. Never mutated here."""

    player_id: str
    label: str = "SUB"
    jersey_number: str = ""
    player_name: str = ""


@dataclass(frozen=True)
class Location:
    kind: LocationKind
    position_id: Optional[str] = None
    sub_index: Optional[int] = None


UNASSIGNED = Location(LocationKind.UNASSIGNED)


@dataclass(frozen=True)
class PersistedFormation:
    """The JSON document stored by the team API."""

    preset_name: str
    starters: Dict[str, str] = field(default_factory=dict)
    subs: List[Optional[str]] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "presetName": self.preset_name,
            "starters": dict(self.starters),
            "subs": list(self.subs),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PersistedFormation":
        preset = data.get("presetName") or data.get("preset")
        if not preset:
            raise ValueError("Formation document has no presetName")
        starters = data.get("starters") or {}
        if not isinstance(starters, dict):
            raise ValueError("Formation starters must be an object of positionId -> playerId")
        subs = data.get("subs") or []
        if not isinstance(subs, list):
            raise ValueError("Formation subs must be an array")
        return cls(
            preset_name=str(preset),
            starters={str(k): str(v) for k, v in starters.items() if v is not None},
            subs=[str(s) if s is not None else None for s in subs],
        )


@dataclass(frozen=True)
class FormationState:
    """Lineup of one board.

    Instances are treated as immutable: transitions build new dicts and lists
    and return a new state via ``dataclasses.replace``.
    """

    preset: str
    starters: Dict[str, str] = field(default_factory=dict)
    subs: List[Optional[str]] = field(default_factory=list)
    unassigned: List[str] = field(default_factory=list)
    saved: bool = True
    loading: bool = False

    def iter_player_ids(self) -> Iterator[str]:
        yield from self.starters.values()
        yield from (s for s in self.subs if s is not None)
        yield from self.unassigned

    def location_of(self, player_id: str) -> Optional[Location]:
        for position_id, occupant in self.starters.items():
            if occupant == player_id:
                return Location(LocationKind.SLOT, position_id=position_id)
        for index, occupant in enumerate(self.subs):
            if occupant == player_id:
                return Location(LocationKind.SUB, sub_index=index)
        if player_id in self.unassigned:
            return UNASSIGNED
        return None

    def occupant_at(self, location: Location) -> Optional[str]:
        if location.kind is LocationKind.SLOT:
            return self.starters.get(location.position_id)
        if location.kind is LocationKind.SUB:
            if location.sub_index is not None and 0 <= location.sub_index < len(self.subs):
                return self.subs[location.sub_index]
        return None

    def same_lineup(self, other: "FormationState") -> bool:
        return (
            self.preset == other.preset
            and self.starters == other.starters
            and self.subs == other.subs
            and self.unassigned == other.unassigned
        )

    def with_flags(self, **flags: bool) -> "FormationState":
        return replace(self, **flags)

    def to_persisted(self) -> PersistedFormation:
        return PersistedFormation(
            preset_name=self.preset,
            starters=dict(self.starters),
            subs=list(self.subs),
        )
