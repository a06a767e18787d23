"""Main FastAPI application with hexagonal architecture."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from formation.config import board_settings_from_env
from formation.presets import DEFAULT_CATALOG

from . import __version__
from .api.rest.routes import router as formation_router
from .api.websocket.handlers import handle_formation_websocket
from .application.ports.formation_repository import FormationRepositoryPort
from .application.use_cases.open_board import OpenBoardUseCase
from .config import roster_api_config_from_env
from .infrastructure.adapters.backup_adapter import LocalBackupFormationRepository
from .infrastructure.adapters.memory_adapter import InMemoryTeamAdapter
from .infrastructure.adapters.roster_api_client import RosterApiClient

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def build_open_board_from_env() -> OpenBoardUseCase:
    """Wire adapters from environment variables.

    ROSTER_API_URL selects the team API; without it boards live in memory
    and every actor may edit. FORMATION_BACKUP_DIR adds local backups.
    """
    settings = board_settings_from_env()
    api_config = roster_api_config_from_env()
    if api_config is not None:
        team_api = RosterApiClient.from_config(api_config)
        logger.info(f"Using team API at {api_config.base_url}")
    else:
        team_api = InMemoryTeamAdapter()
        logger.warning("ROSTER_API_URL not set, formations are kept in memory")

    formations: FormationRepositoryPort = team_api
    if settings.backup_dir is not None:
        formations = LocalBackupFormationRepository(team_api, settings.backup_dir)

    return OpenBoardUseCase(
        formations=formations,
        roster=team_api,
        permissions=team_api,
        settings=settings,
        catalog=DEFAULT_CATALOG,
    )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    team_api_configured: bool
    open_boards: int


def create_app(open_board: Optional[OpenBoardUseCase] = None) -> FastAPI:
    """Create the API. Without ``open_board`` adapters come from the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        if app.state.open_board is None:
            app.state.open_board = build_open_board_from_env()
        yield
        # Shutdown: write boards still waiting for their debounced save
        unsaved = await app.state.open_board.registry.flush_all()
        if unsaved:
            logger.error(f"Shutting down with unsaved formations: {', '.join(unsaved)}")

    app = FastAPI(
        title="Pitchboard API",
        description="Formation board service: presets, lineups and drag-and-drop editing",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.open_board = open_board

    # CORS configuration for frontend integration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",  # Vite dev server
            "http://localhost:3000",  # Alternative dev port
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["meta"])
    async def root():
        """API root with information and available endpoints."""
        return {
            "name": "Pitchboard API",
            "version": __version__,
            "docs": "/docs",
            "endpoints": {
                "health": "GET /health",
                "presets": "GET /api/formations/presets",
                "formation": "GET /api/teams/{team_id}/formation",
                "moves": "POST /api/teams/{team_id}/formation/moves",
                "preset": "PUT /api/teams/{team_id}/formation/preset",
                "save": "POST /api/teams/{team_id}/formation/save",
                "export": "GET /api/teams/{team_id}/formation/export?format=png|pdf|text",
                "websocket": "WS /ws/formation/{team_id}",
            },
        }

    @app.get("/health", response_model=HealthResponse, tags=["meta"])
    async def health_check():
        """Check API health and configuration status."""
        use_case: Optional[OpenBoardUseCase] = app.state.open_board
        return HealthResponse(
            status="healthy",
            version=__version__,
            team_api_configured=roster_api_config_from_env() is not None,
            open_boards=len(list(use_case.registry)) if use_case else 0,
        )

    # Include REST routes
    app.include_router(formation_router)

    @app.websocket("/ws/formation/{team_id}")
    async def websocket_formation(websocket: WebSocket, team_id: str):
        """WebSocket endpoint for live drag-and-drop editing.

        Send {"action": "mount", "actorId": "...", "width": 800} first; see
        handle_formation_websocket for the other actions.
        """
        await handle_formation_websocket(websocket, team_id, app.state.open_board)

    return app


app = create_app()
