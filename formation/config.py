from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_PRESET = "4-3-3"
BENCH_CAPACITY = 7
SAVE_DEBOUNCE_MS = 500

# Pitch height is width * 9 / 16.
PITCH_ASPECT = 9 / 16
BENCH_STRIP_HEIGHT_PX = 72
BENCH_STRIP_GAP_PX = 16
BENCH_CELL_PADDING_PX = 6
MIN_CHIP_RADIUS_PX = 18


@dataclass(frozen=True)
class BoardSettings:
    default_preset: str = DEFAULT_PRESET
    bench_capacity: int = BENCH_CAPACITY
    save_debounce_s: float = SAVE_DEBOUNCE_MS / 1000.0
    backup_dir: Optional[Path] = None


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def board_settings_from_env() -> BoardSettings:
    backup_dir = os.environ.get("FORMATION_BACKUP_DIR")
    capacity = _int_from_env("FORMATION_BENCH_CAPACITY", BENCH_CAPACITY)
    if capacity < 0:
        raise ValueError("FORMATION_BENCH_CAPACITY must not be negative")
    return BoardSettings(
        default_preset=os.environ.get("FORMATION_DEFAULT_PRESET", DEFAULT_PRESET),
        bench_capacity=capacity,
        save_debounce_s=_int_from_env("FORMATION_SAVE_DEBOUNCE_MS", SAVE_DEBOUNCE_MS) / 1000.0,
        backup_dir=Path(backup_dir) if backup_dir else None,
    )
