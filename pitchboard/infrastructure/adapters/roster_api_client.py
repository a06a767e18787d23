"""Adapter for the team management REST API (formations, rosters, roles)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from formation.errors import PersistenceFailure
from formation.state import PersistedFormation, PlayerRef

from ...application.ports.formation_repository import FormationRepositoryPort
from ...application.ports.team_service import PermissionPort, RosterPort
from ...config import RosterApiConfig

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)


def player_from_api(item: Dict[str, Any]) -> Optional[PlayerRef]:
    """Map one roster entry of the team API to a PlayerRef."""
    player_id = item.get("id") or item.get("playerId") or item.get("userId")
    if player_id is None:
        return None
    name = item.get("name") or item.get("playerName")
    if not name:
        name = " ".join(p for p in (item.get("firstName"), item.get("lastName")) if p)
    jersey = item.get("jerseyNumber")
    return PlayerRef(
        player_id=str(player_id),
        label=item.get("position") or "SUB",
        jersey_number="" if jersey is None else str(jersey),
        player_name=name or "",
    )


@dataclass
class RosterApiClient(FormationRepositoryPort, RosterPort, PermissionPort):
    base_url: str
    api_key: str = ""
    timeout_s: int = 10

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update(
            {
                "content-type": "application/json",
                "accept": "application/json",
            }
        )
        if self.api_key:
            self.session.headers["authorization"] = f"Bearer {self.api_key}"

    @classmethod
    def from_config(cls, config: RosterApiConfig) -> "RosterApiClient":
        return cls(base_url=config.base_url, api_key=config.api_key, timeout_s=config.timeout_s)

    def request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        retries: int = 3,
        backoff_s: float = 0.6,
    ) -> Any:
        """Send a request and decode the JSON body.

        Returns None on 404. Raises PersistenceFailure on other errors once
        retries on 429/5xx and connection errors are used up.
        """
        url = self.base_url + path
        last_err: Optional[str] = None
        for attempt in range(retries):
            try:
                resp = self.session.request(
                    method, url, json=json_body, params=params, timeout=self.timeout_s
                )
            except requests.RequestException as exc:
                last_err = str(exc)
                time.sleep(backoff_s * (attempt + 1))
                continue

            if resp.status_code in RETRY_STATUSES:
                last_err = f"HTTP {resp.status_code}"
                time.sleep(backoff_s * (attempt + 1))
                continue
            if resp.status_code == 404:
                return None
            if resp.status_code >= 400:
                raise PersistenceFailure(f"{method} {path} returned HTTP {resp.status_code}")
            if not resp.content:
                return {}
            try:
                return resp.json()
            except ValueError as exc:
                raise PersistenceFailure(f"{method} {path} returned invalid JSON: {exc}")

        raise PersistenceFailure(f"{method} {path} failed after {retries} attempts. Last error: {last_err}")

    # FormationRepositoryPort

    def load_formation(self, team_id: str) -> Optional[PersistedFormation]:
        body = self.request("GET", f"/api/formations/{team_id}")
        if not body:
            return None
        document = body.get("schema_json", body) if isinstance(body, dict) else None
        if not isinstance(document, dict) or not (document.get("presetName") or document.get("preset")):
            return None
        return PersistedFormation.from_json(document)

    def save_formation(self, team_id: str, formation: PersistedFormation) -> None:
        self.request("PUT", f"/api/formations/{team_id}", json_body={"schema_json": formation.to_json()})
        logger.info(f"Saved formation {formation.preset_name} for team {team_id}")

    # RosterPort

    def list_roster_players(self, team_id: str) -> List[PlayerRef]:
        body = self.request("GET", f"/api/teams/{team_id}/players")
        if body is None:
            return []
        items = body if isinstance(body, list) else body.get("players") or []
        players = []
        for item in items:
            ref = player_from_api(item)
            if ref is None:
                logger.warning(f"Skipping roster entry without id for team {team_id}")
                continue
            players.append(ref)
        return players

    # PermissionPort

    def can_edit_formation(self, team_id: str, actor_id: Optional[str]) -> bool:
        if not actor_id:
            return False
        body = self.request(
            "GET", f"/api/teams/{team_id}/permissions", params={"actorId": actor_id}
        )
        if not body:
            return False
        if "canEditFormation" in body:
            return bool(body["canEditFormation"])
        return body.get("role") in ("manager", "coach", "admin")
