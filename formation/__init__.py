"""Formation board engine: presets, lineup state, moves and drag-and-drop."""

__all__ = [
    "board",
    "cli",
    "config",
    "engine",
    "errors",
    "export",
    "lineup",
    "presets",
    "render",
    "saver",
    "state",
    "store",
    "surface",
]
