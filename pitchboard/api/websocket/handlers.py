"""WebSocket handlers for live drag-and-drop editing of a formation board."""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from formation.board import FormationBoard
from formation.errors import InvalidMove, ReadOnlyBoard, UnknownPreset
from formation.state import SaveStatus
from formation.surface import DEFAULT_WIDTH, DragHandle, Point

from ..transformers.board_transformer import (
    transform_board_to_frontend,
    transform_drop_result,
    transform_preset_change,
    transform_targets,
)
from ...application.use_cases.open_board import OpenBoardRequest, OpenBoardUseCase
from ...domain.value_objects.types import ErrorCode

logger = logging.getLogger(__name__)


class BoardSession:
    """One client connection editing one board."""

    def __init__(self, websocket: WebSocket, team_id: str, use_case: OpenBoardUseCase):
        self._websocket = websocket
        self.team_id = team_id
        self._use_case = use_case
        self.board: Optional[FormationBoard] = None
        self.handle: Optional[DragHandle] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending_sends: Set[asyncio.Task] = set()

    async def send(self, message_type: str, **fields: Any) -> None:
        await self._websocket.send_json({"type": message_type, **fields})

    async def send_board(self) -> None:
        await self.send("board", board=transform_board_to_frontend(self.board))

    async def send_error(self, code: ErrorCode, message: str) -> None:
        await self.send("error", code=code.value, message=message)

    def _on_status(self, status: SaveStatus) -> None:
        # Store listeners are synchronous; the push happens on the loop.
        saved = self.board.store.state.saved if self.board else False
        task = asyncio.get_running_loop().create_task(
            self.send("status", status=status.value, saved=saved)
        )
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)

    async def mount(self, data: Dict[str, Any]) -> None:
        if self.board is not None:
            await self.send_board()
            return
        result = await self._use_case.execute(
            OpenBoardRequest(
                team_id=self.team_id,
                actor_id=data.get("actorId"),
                width=float(data.get("width") or DEFAULT_WIDTH),
            )
        )
        if not result.success:
            await self.send_error(
                ErrorCode.BOARD_UNAVAILABLE,
                result.error or "Formation board could not be opened",
            )
            return
        self.board = result.board
        self._unsubscribe = self.board.store.subscribe(self._on_status)
        await self.send_board()

    async def dispatch(self, data: Dict[str, Any]) -> None:
        action = data.get("action")
        if action == "mount":
            await self.mount(data)
            return
        if self.board is None:
            await self.send_error(ErrorCode.INVALID_REQUEST, "Send a mount action first")
            return

        surface = self.board.surface
        if action == "resize":
            surface.resize(float(data.get("width", 0)))
            await self.send_board()
        elif action == "beginDrag":
            self.handle = surface.begin_drag(str(data.get("playerId")))
            await self.send(
                "dragging",
                playerId=self.handle.player_id,
                validTargets=transform_targets(surface.valid_targets(self.handle)),
            )
        elif action == "drop":
            if self.handle is None:
                await self.send_error(ErrorCode.INVALID_REQUEST, "No drag in progress")
                return
            handle, self.handle = self.handle, None
            result = surface.drop(handle, Point(float(data["x"]), float(data["y"])))
            await self.send("drop", **transform_drop_result(result))
            if result.notice:
                await self.send("notice", message=result.notice, code=result.result.code)
            await self.send_board()
        elif action == "cancelDrag":
            surface.cancel(self.handle)
            self.handle = None
            await self.send_board()
        elif action == "changePreset":
            self.handle = None
            change = self.board.change_preset(str(data.get("presetName")))
            await self.send("presetChanged", **transform_preset_change(change))
            if change.evicted:
                await self.send(
                    "notice",
                    message=f"{len(change.evicted)} player(s) moved to unassigned",
                    code="PLAYERS_UNASSIGNED",
                )
            await self.send_board()
        elif action == "save":
            if not self.board.is_manager:
                raise ReadOnlyBoard("Only managers can save the formation")
            saved = await self.board.store.flush()
            if not saved:
                await self.send_error(
                    ErrorCode.SAVE_FAILED,
                    f"Formation could not be saved: {self.board.store.last_error}",
                )
        else:
            await self.send_error(ErrorCode.INVALID_REQUEST, f"Unknown action: {action}")

    def close(self) -> None:
        if self.board is not None and self.handle is not None:
            self.board.surface.cancel(self.handle)
        self.handle = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.board is not None:
            self._use_case.release(self.team_id)
            self.board = None


async def handle_formation_websocket(
    websocket: WebSocket, team_id: str, use_case: OpenBoardUseCase
) -> None:
    """Handle a WebSocket connection editing the board of ``team_id``.

    Expected client messages:
    {"action": "mount", "actorId": "coach-1", "width": 800}
    {"action": "beginDrag", "playerId": "p7"}
    {"action": "drop", "x": 412.0, "y": 133.5}
    {"action": "cancelDrag"} | {"action": "resize", "width": 640}
    {"action": "changePreset", "presetName": "4-4-2"} | {"action": "save"}

    Server messages carry a "type": board, dragging, drop, presetChanged,
    status, notice or error.

    Args:
        websocket: FastAPI WebSocket connection
        team_id: Team whose board is edited
        use_case: Use case opening the shared board
    """
    await websocket.accept()
    session = BoardSession(websocket, team_id, use_case)

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except json.JSONDecodeError:
                await session.send_error(ErrorCode.INVALID_REQUEST, "Invalid JSON message")
                continue
            if not isinstance(data, dict):
                await session.send_error(ErrorCode.INVALID_REQUEST, "Messages must be JSON objects")
                continue

            try:
                await session.dispatch(data)
            except ReadOnlyBoard as e:
                await session.send_error(ErrorCode.FORBIDDEN, str(e))
            except UnknownPreset as e:
                suggestions = use_case.catalog.suggest(e.name)
                hint = f" (did you mean {', '.join(suggestions)}?)" if suggestions else ""
                await session.send_error(ErrorCode.UNKNOWN_PRESET, f"{e}{hint}")
            except InvalidMove as e:
                await session.send_error(ErrorCode.INVALID_REQUEST, str(e))
            except (KeyError, TypeError, ValueError) as e:
                await session.send_error(ErrorCode.INVALID_REQUEST, f"Malformed {data.get('action')} message: {e}")

    except WebSocketDisconnect:
        logger.debug(f"Formation socket for team {team_id} disconnected")
    finally:
        session.close()
