"""Pitchboard - formation board service for team management.

This package hosts formation boards for the browser front end using a
hexagonal layout.

Layers:
- domain: Identifiers and value objects shared by the layers
- application: Use cases and port interfaces
- infrastructure: Adapters for the team API, in-memory storage and backups
- api: REST and WebSocket endpoints
"""

__version__ = "1.0.0"
