from fastapi.testclient import TestClient

from formation.config import BoardSettings
from formation.state import PersistedFormation, PlayerRef
from pitchboard.application.use_cases.open_board import OpenBoardUseCase
from pitchboard.infrastructure.adapters.memory_adapter import InMemoryTeamAdapter
from pitchboard.main import create_app

COACH = {"X-Actor-Id": "coach"}
FAN = {"X-Actor-Id": "fan"}


def _roster(count):
    return [PlayerRef(player_id=f"p{i}", jersey_number=str(i), player_name=f"Player {i}") for i in range(1, count + 1)]


def _app(formations=None):
    adapter = InMemoryTeamAdapter(
        rosters={"t1": _roster(14)},
        managers={"t1": ["coach"]},
        formations=formations,
    )
    use_case = OpenBoardUseCase(
        formations=adapter,
        roster=adapter,
        permissions=adapter,
        settings=BoardSettings(save_debounce_s=0.01),
    )
    return create_app(use_case), adapter


def _error_code(response):
    return response.json()["detail"]["error"]["code"]


def test_health_and_root():
    app, _ = _app()
    with TestClient(app) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["status"] == "healthy"
        assert "websocket" in client.get("/").json()["endpoints"]


def test_list_presets():
    app, _ = _app()
    with TestClient(app) as client:
        body = client.get("/api/formations/presets").json()
    assert body["defaultPreset"] == "4-3-3"
    names = [p["name"] for p in body["presets"]]
    assert "4-4-2" in names and "2-3-1" in names
    small = next(p for p in body["presets"] if p["name"] == "2-3-1")
    assert small["slotCount"] == 7
    assert {"positionId", "label", "xNorm", "yNorm"} <= set(small["slots"][0])


def test_manager_gets_editable_board():
    app, _ = _app()
    with TestClient(app) as client:
        board = client.get("/api/teams/t1/formation", headers=COACH).json()
    assert board["preset"] == "4-3-3"
    assert board["readOnly"] is False
    assert board["lineup"]["starters"]["gk"] == "p1"
    assert board["lineup"]["subs"] == ["p12", "p13", "p14"]
    assert board["benchCapacity"] == 7
    assert len(board["bench"]) == 7
    assert all(chip["draggable"] for chip in board["chips"])


def test_other_actors_get_read_only_board():
    app, _ = _app()
    with TestClient(app) as client:
        board = client.get("/api/teams/t1/formation", headers=FAN).json()
        assert board["readOnly"] is True
        response = client.post(
            "/api/teams/t1/formation/moves",
            json={"kind": "swapPlayers", "playerAId": "p1", "playerBId": "p2"},
            headers=FAN,
        )
        assert response.status_code == 403
        assert _error_code(response) == "FORBIDDEN"


def test_swap_move_and_save():
    app, adapter = _app()
    with TestClient(app) as client:
        response = client.post(
            "/api/teams/t1/formation/moves",
            json={"kind": "swapPlayers", "playerAId": "p1", "playerBId": "p12"},
            headers=COACH,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["result"]["changed"] is True
        assert body["board"]["lineup"]["starters"]["gk"] == "p12"
        assert body["board"]["lineup"]["subs"][0] == "p1"

        saved = client.post("/api/teams/t1/formation/save", headers=COACH)
        assert saved.status_code == 200
        assert saved.json()["saved"] is True
    assert adapter.formations["t1"].starters["gk"] == "p12"


def test_rejected_move_returns_notice():
    starters = {pid: f"p{i}" for i, pid in enumerate(
        ["gk", "lb", "cb1", "cb2", "rb", "cdm", "cm1", "cm2", "lw", "st", "rw"], start=1)}
    full = PersistedFormation("4-3-3", starters=starters, subs=[f"p{i}" for i in range(12, 19)])
    app, _ = _app({"t1": full})
    with TestClient(app) as client:
        response = client.post(
            "/api/teams/t1/formation/moves",
            json={"kind": "demoteToSubs", "playerId": "p10", "originalPositionId": "st"},
            headers=COACH,
        )
    body = response.json()
    assert response.status_code == 200
    assert body["result"]["changed"] is False
    assert body["result"]["code"] == "BENCH_FULL"
    assert body["board"]["lineup"]["starters"]["st"] == "p10"


def test_incomplete_move_is_a_bad_request():
    app, _ = _app()
    with TestClient(app) as client:
        response = client.post(
            "/api/teams/t1/formation/moves",
            json={"kind": "moveToSlot", "playerId": "p12"},
            headers=COACH,
        )
        assert response.status_code == 400
        assert _error_code(response) == "INVALID_REQUEST"

        response = client.post(
            "/api/teams/t1/formation/moves",
            json={"kind": "teleport", "playerId": "p12"},
            headers=COACH,
        )
        assert response.status_code == 422


def test_change_preset():
    app, _ = _app()
    with TestClient(app) as client:
        response = client.put(
            "/api/teams/t1/formation/preset",
            json={"presetName": "3-2-3"},
            headers=COACH,
        )
        body = response.json()
        assert body["result"] == {"changed": True, "preset": "3-2-3", "evicted": []}
        assert len(body["board"]["lineup"]["starters"]) == 9
        assert body["board"]["lineup"]["subs"][:2] == ["p10", "p11"]

        unknown = client.put(
            "/api/teams/t1/formation/preset",
            json={"presetName": "1-9-1"},
            headers=COACH,
        )
        assert unknown.status_code == 400
        assert _error_code(unknown) == "UNKNOWN_PRESET"

        forbidden = client.put(
            "/api/teams/t1/formation/preset",
            json={"presetName": "4-4-2"},
            headers=FAN,
        )
        assert forbidden.status_code == 403


def test_failed_save_is_reported():
    app, adapter = _app()
    with TestClient(app) as client:
        client.get("/api/teams/t1/formation", headers=COACH)
        adapter.fail_saves = True
        client.post(
            "/api/teams/t1/formation/moves",
            json={"kind": "swapPlayers", "playerAId": "p3", "playerBId": "p4"},
            headers=COACH,
        )
        response = client.post("/api/teams/t1/formation/save", headers=COACH)
        assert response.status_code == 500
        assert _error_code(response) == "SAVE_FAILED"
        adapter.fail_saves = False
        assert client.post("/api/teams/t1/formation/save", headers=COACH).status_code == 200


def test_export_formats():
    app, _ = _app()
    with TestClient(app) as client:
        text = client.get("/api/teams/t1/formation/export", params={"format": "text"})
        assert text.status_code == 200
        assert text.text.startswith("FORMATION 4-3-3")

        png = client.get("/api/teams/t1/formation/export", params={"format": "png"})
        assert png.headers["content-type"] == "image/png"
        assert png.content.startswith(b"\x89PNG")

        assert client.get("/api/teams/t1/formation/export", params={"format": "gif"}).status_code == 422


def _receive(ws, message_type):
    while True:
        message = ws.receive_json()
        if message["type"] == message_type:
            return message


def test_websocket_drag_and_drop():
    app, _ = _app()
    with TestClient(app) as client:
        with client.websocket_connect("/ws/formation/t1") as ws:
            ws.send_json({"action": "beginDrag", "playerId": "p1"})
            assert _receive(ws, "error")["code"] == "INVALID_REQUEST"

            ws.send_json({"action": "mount", "actorId": "coach", "width": 800})
            board = _receive(ws, "board")["board"]
            target = next(chip for chip in board["chips"] if chip["playerId"] == "p2")

            ws.send_json({"action": "beginDrag", "playerId": "p1"})
            dragging = _receive(ws, "dragging")
            assert dragging["playerId"] == "p1"
            assert {"kind": "player", "positionId": None, "subIndex": None, "playerId": "p2"} in dragging["validTargets"]

            ws.send_json({"action": "drop", "x": target["x"], "y": target["y"]})
            drop = _receive(ws, "drop")
            assert drop["outcome"] == "player"
            assert drop["changed"] is True
            board = _receive(ws, "board")["board"]
            assert board["lineup"]["starters"]["gk"] == "p2"

            ws.send_json({"action": "changePreset", "presetName": "nope"})
            assert _receive(ws, "error")["code"] == "UNKNOWN_PRESET"

            ws.send_json({"action": "fly"})
            assert "Unknown action" in _receive(ws, "error")["message"]


def test_websocket_read_only_viewer_cannot_drag():
    app, _ = _app()
    with TestClient(app) as client:
        with client.websocket_connect("/ws/formation/t1") as ws:
            ws.send_json({"action": "mount", "actorId": "fan"})
            assert _receive(ws, "board")["board"]["readOnly"] is True
            ws.send_json({"action": "beginDrag", "playerId": "p1"})
            assert _receive(ws, "error")["code"] == "FORBIDDEN"


def test_unknown_preset_suggests_close_names():
    app, _ = _app()
    with TestClient(app) as client:
        response = client.put(
            "/api/teams/t1/formation/preset",
            json={"presetName": "433"},
            headers=COACH,
        )
    details = response.json()["detail"]["error"]["details"]
    assert details["suggestions"][0] == "4-3-3"
