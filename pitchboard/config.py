from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_TIMEOUT_S = 10


@dataclass(frozen=True)
class RosterApiConfig:
    base_url: str
    api_key: str = ""
    timeout_s: int = DEFAULT_TIMEOUT_S


def roster_api_config_from_env() -> Optional[RosterApiConfig]:
    """Team API settings, or None when ROSTER_API_URL is unset."""
    base_url = os.environ.get("ROSTER_API_URL", "").strip()
    if not base_url:
        return None
    timeout = os.environ.get("ROSTER_API_TIMEOUT_S", "").strip()
    return RosterApiConfig(
        base_url=base_url.rstrip("/"),
        api_key=os.environ.get("ROSTER_API_KEY", ""),
        timeout_s=int(timeout) if timeout else DEFAULT_TIMEOUT_S,
    )
