"""REST API routes for formation boards."""

import asyncio
from contextlib import asynccontextmanager
from functools import partial
from typing import AsyncIterator, Literal, Optional

from fastapi import APIRouter, Header, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, Field

from formation.board import FormationBoard
from formation.engine import DemoteToSubsGeneral, Move, MoveToSlot, MoveToSubSlot, SwapPlayers
from formation.errors import ReadOnlyBoard, UnknownPreset
from formation.export import render_pdf, render_png
from formation.render import board_summary, render_text
from formation.surface import DEFAULT_WIDTH

from ..transformers.board_transformer import (
    transform_board_to_frontend,
    transform_move_result,
    transform_preset_change,
    transform_presets,
)
from ...application.use_cases.open_board import OpenBoardRequest, OpenBoardUseCase
from ...domain.value_objects.types import ErrorCode

router = APIRouter(prefix="/api", tags=["formation"])


class MoveRequest(BaseModel):
    """Request body for a lineup move."""

    kind: Literal["moveToSlot", "moveToSubSlot", "swapPlayers", "demoteToSubs"]
    player_id: Optional[str] = Field(default=None, alias="playerId")
    target_position_id: Optional[str] = Field(default=None, alias="targetPositionId")
    target_sub_index: Optional[int] = Field(default=None, alias="targetSubIndex")
    was_starter: bool = Field(default=False, alias="wasStarter")
    original_position_id: Optional[str] = Field(default=None, alias="originalPositionId")
    original_sub_index: Optional[int] = Field(default=None, alias="originalSubIndex")
    player_a_id: Optional[str] = Field(default=None, alias="playerAId")
    player_b_id: Optional[str] = Field(default=None, alias="playerBId")

    class Config:
        populate_by_name = True

    def to_move(self) -> Move:
        """Build the engine move, raising ValueError on missing fields."""
        if self.kind == "swapPlayers":
            if not self.player_a_id or not self.player_b_id:
                raise ValueError("swapPlayers requires playerAId and playerBId")
            return SwapPlayers(self.player_a_id, self.player_b_id)

        if not self.player_id:
            raise ValueError(f"{self.kind} requires playerId")
        if self.kind == "demoteToSubs":
            return DemoteToSubsGeneral(self.player_id, self.original_position_id)
        if self.kind == "moveToSlot":
            if not self.target_position_id:
                raise ValueError("moveToSlot requires targetPositionId")
            return MoveToSlot(
                self.player_id,
                self.target_position_id,
                was_starter=self.was_starter,
                original_position_id=self.original_position_id,
                original_sub_index=self.original_sub_index,
            )
        if self.target_sub_index is None:
            raise ValueError("moveToSubSlot requires targetSubIndex")
        return MoveToSubSlot(
            self.player_id,
            self.target_sub_index,
            was_starter=self.was_starter,
            original_position_id=self.original_position_id,
            original_sub_index=self.original_sub_index,
        )


class PresetRequest(BaseModel):
    """Request body for changing the preset."""

    preset_name: str = Field(..., alias="presetName", min_length=1)

    class Config:
        populate_by_name = True


def _error(status_code: int, code: ErrorCode, message: str, **details) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code.value,
                "message": message,
                "details": details,
            }
        },
    )


@asynccontextmanager
async def _open_board(
    request: Request,
    team_id: str,
    actor_id: Optional[str],
    width: float = DEFAULT_WIDTH,
) -> AsyncIterator[FormationBoard]:
    use_case: OpenBoardUseCase = request.app.state.open_board
    result = await use_case.execute(
        OpenBoardRequest(team_id=team_id, actor_id=actor_id, width=width)
    )
    if not result.success:
        raise _error(
            500,
            ErrorCode.BOARD_UNAVAILABLE,
            result.error or "Formation board could not be opened",
            teamId=team_id,
        )
    try:
        yield result.board
    finally:
        use_case.release(team_id)


def _require_manager(board: FormationBoard, team_id: str) -> None:
    if not board.is_manager:
        raise _error(
            403,
            ErrorCode.FORBIDDEN,
            "Only team managers can edit the formation",
            teamId=team_id,
        )


@router.get("/formations/presets")
async def list_presets(request: Request):
    """List the formation presets with their slots."""
    use_case: OpenBoardUseCase = request.app.state.open_board
    return {
        "defaultPreset": use_case.settings.default_preset,
        "presets": transform_presets(use_case.catalog),
    }


@router.get("/teams/{team_id}/formation")
async def get_formation(
    request: Request,
    team_id: str,
    width: float = Query(DEFAULT_WIDTH, gt=0),
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
):
    """Get the formation board of a team as seen by the actor.

    Args:
        team_id: Team identifier
        width: Pitch width in pixels used for chip coordinates
        actor_id: Caller identity, decides whether the board is editable

    Returns:
        Board view in frontend format
    """
    async with _open_board(request, team_id, actor_id, width) as board:
        return transform_board_to_frontend(board)


@router.post("/teams/{team_id}/formation/moves")
async def apply_move(
    request: Request,
    team_id: str,
    body: MoveRequest,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
):
    """Apply one move to the lineup.

    Rejected moves (full bench, stale origin) leave the lineup unchanged and
    come back with ``changed: false`` and a notice.
    """
    async with _open_board(request, team_id, actor_id) as board:
        _require_manager(board, team_id)
        try:
            move = body.to_move()
        except ValueError as e:
            raise _error(400, ErrorCode.INVALID_REQUEST, str(e), teamId=team_id)

        result = board.store.apply(move)
        return {
            "result": transform_move_result(result),
            "board": transform_board_to_frontend(board),
        }


@router.put("/teams/{team_id}/formation/preset")
async def change_preset(
    request: Request,
    team_id: str,
    body: PresetRequest,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
):
    """Switch the formation preset, remapping players to the new slots."""
    async with _open_board(request, team_id, actor_id) as board:
        try:
            change = board.change_preset(body.preset_name)
        except ReadOnlyBoard as e:
            raise _error(403, ErrorCode.FORBIDDEN, str(e), teamId=team_id)
        except UnknownPreset as e:
            raise _error(
                400,
                ErrorCode.UNKNOWN_PRESET,
                str(e),
                presetName=body.preset_name,
                suggestions=board.store.catalog.suggest(body.preset_name),
                available=board.store.catalog.preset_names(),
            )
        return {
            "result": transform_preset_change(change),
            "board": transform_board_to_frontend(board),
        }


@router.post("/teams/{team_id}/formation/save")
async def save_formation(
    request: Request,
    team_id: str,
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
):
    """Write unsaved changes now and report the outcome (manual retry)."""
    async with _open_board(request, team_id, actor_id) as board:
        _require_manager(board, team_id)
        saved = await board.store.flush()
        if not saved:
            last_error = board.store.last_error
            raise _error(
                500,
                ErrorCode.SAVE_FAILED,
                f"Formation could not be saved: {last_error}",
                teamId=team_id,
            )
        return {"saved": True, "status": board.status.value}


@router.get("/teams/{team_id}/formation/export")
async def export_formation(
    request: Request,
    team_id: str,
    export_format: Literal["text", "png", "pdf"] = Query("png", alias="format"),
    actor_id: Optional[str] = Header(None, alias="X-Actor-Id"),
):
    """Export the board as plain text, a PNG pitch image or a PDF team sheet."""
    async with _open_board(request, team_id, actor_id) as board:
        summary = board_summary(board.store)
    if export_format == "text":
        return PlainTextResponse(render_text(summary))

    loop = asyncio.get_running_loop()
    try:
        if export_format == "png":
            content = await loop.run_in_executor(None, partial(render_png, summary))
            media_type = "image/png"
        else:
            content = await loop.run_in_executor(None, partial(render_pdf, summary))
            media_type = "application/pdf"
    except Exception as e:
        raise _error(
            500,
            ErrorCode.INTERNAL_ERROR,
            f"Error exporting formation: {str(e)}",
            teamId=team_id,
        )

    filename = f"formation_{team_id}.{export_format}"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
