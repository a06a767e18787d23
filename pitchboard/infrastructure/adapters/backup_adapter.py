"""Formation repository decorator keeping a local JSON backup per team."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from formation.errors import PersistenceFailure
from formation.state import PersistedFormation

from ...application.ports.formation_repository import FormationRepositoryPort

logger = logging.getLogger(__name__)


class LocalBackupFormationRepository(FormationRepositoryPort):
    """Writes a backup file before every save and reads it when loads fail."""

    def __init__(self, inner: FormationRepositoryPort, backup_dir: Path):
        self._inner = inner
        self.backup_dir = Path(backup_dir)

    def backup_path(self, team_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", str(team_id))
        return self.backup_dir / f"formation_backup_{safe}.json"

    def write_backup(self, team_id: str, formation: PersistedFormation) -> None:
        path = self.backup_path(team_id)
        payload = {
            "teamId": team_id,
            "savedAt": datetime.now(timezone.utc).isoformat(),
            "formation": formation.to_json(),
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
        except OSError as e:
            logger.warning(f"Could not write formation backup {path}: {e}")

    def read_backup(self, team_id: str) -> Optional[PersistedFormation]:
        path = self.backup_path(team_id)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
            return PersistedFormation.from_json(payload["formation"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable formation backup {path}: {e}")
            return None

    def load_formation(self, team_id: str) -> Optional[PersistedFormation]:
        try:
            return self._inner.load_formation(team_id)
        except PersistenceFailure as e:
            backup = self.read_backup(team_id)
            if backup is None:
                raise
            logger.warning(f"Loading formation of team {team_id} from local backup: {e}")
            return backup

    def save_formation(self, team_id: str, formation: PersistedFormation) -> None:
        self.write_backup(team_id, formation)
        self._inner.save_formation(team_id, formation)
