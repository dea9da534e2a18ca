"""Tests for the FastAPI PerfectXO interface."""

from __future__ import annotations

from fastapi.testclient import TestClient

from perfectxo import ui
from perfectxo.ui import app


client = TestClient(app)
ui.AI_THINK_DELAY = (0.0, 0.0)


def _new_game(**payload):
    response = client.post("/api/game", json=payload)
    assert response.status_code == 200
    return response.json()


def _move(game_id, row, col):
    return client.post(f"/api/game/{game_id}/move", json={"row": row, "col": col})


def test_create_game_and_first_move():
    payload = _new_game()
    assert payload["currentPlayer"] == "X"
    assert payload["humanPlayer"] == "X"
    assert payload["aiPlayer"] == "O"
    assert payload["moveLog"] == []
    assert payload["board"] == [["", "", ""], ["", "", ""], ["", "", ""]]

    game_id = payload["id"]
    move_response = _move(game_id, 1, 1)
    assert move_response.status_code == 200
    state = move_response.json()
    assert state["moveLog"][0] == {"player": "X", "row": 1, "col": 1}
    assert state["board"][1][1] == "X"
    assert state["currentPlayer"] == "O"
    assert state["aiPending"] is True

    follow_up = client.get(f"/api/game/{game_id}")
    assert follow_up.status_code == 200
    final_state = follow_up.json()
    assert final_state["currentPlayer"] == "X"
    assert final_state["aiPending"] is False
    assert final_state["lastMove"]["player"] == "O"
    # Perfect reply to a centre opening is a corner
    assert final_state["board"][0][0] == "O"


def test_invalid_move_rejected():
    game_id = _new_game()["id"]
    assert _move(game_id, 0, 0).status_code == 200

    duplicate_move = _move(game_id, 0, 0)
    assert duplicate_move.status_code == 400
    assert duplicate_move.json()["detail"]


def test_out_of_range_move_fails_validation():
    game_id = _new_game()["id"]
    assert _move(game_id, 3, 0).status_code == 422


def test_rejects_unsupported_mark():
    response = client.post("/api/game", json={"humanPlayer": "Z"})
    assert response.status_code == 422


def test_engine_opens_when_human_plays_o():
    payload = _new_game(humanPlayer="O")
    assert payload["aiPlayer"] == "X"
    state = client.get(f"/api/game/{payload['id']}").json()
    assert state["board"][0][0] == "X"
    assert state["currentPlayer"] == "O"


def test_missing_game_returns_404():
    assert client.get("/api/game/unknown").status_code == 404
    assert _move("unknown", 0, 0).status_code == 404


def test_engine_wins_and_score_is_kept_across_reset():
    game_id = _new_game()["id"]
    # Always taking the first free cell loses to the engine
    while True:
        state = client.get(f"/api/game/{game_id}").json()
        if state["winner"] or state["drawn"]:
            break
        first = state["availableMoves"][0]
        assert _move(game_id, first["row"], first["col"]).status_code == 200

    state = client.get(f"/api/game/{game_id}").json()
    assert state["winner"] == "O"
    assert state["message"] == "O wins!"
    assert state["score"] == {"playerOne": 0, "playerTwo": 1, "draws": 0}
    assert state["availableMoves"] == []

    finished = _move(game_id, 2, 2)
    assert finished.status_code == 400

    reset = client.post(f"/api/game/{game_id}/reset")
    assert reset.status_code == 200
    fresh = reset.json()
    assert fresh["winner"] is None
    assert fresh["moveLog"] == []
    assert fresh["board"] == [["", "", ""], ["", "", ""], ["", "", ""]]
    assert fresh["score"]["playerTwo"] == 1


def test_engine_endpoint_returns_best_move():
    response = client.post(
        "/api/engine/move",
        json={"board": [["X", "X", ""], ["O", "", ""], ["", "", ""]]},
    )
    assert response.status_code == 200
    payload = response.json()
    assert (payload["row"], payload["col"]) == (0, 2)
    assert payload["value"] == -1
    assert payload["nodesVisited"] > 0


def test_engine_endpoint_pruning_switch():
    board = [["X", "", ""], ["", "", ""], ["", "", ""]]
    pruned = client.post("/api/engine/move", json={"board": board}).json()
    full = client.post(
        "/api/engine/move", json={"board": board, "pruning": False}
    ).json()
    assert (pruned["row"], pruned["col"], pruned["value"]) == (
        full["row"],
        full["col"],
        full["value"],
    )
    assert pruned["nodesVisited"] < full["nodesVisited"]


def test_engine_endpoint_rejects_bad_boards():
    short = client.post("/api/engine/move", json={"board": [["X", "", ""]]})
    assert short.status_code == 422
    skewed = client.post(
        "/api/engine/move",
        json={"board": [["O", "", ""], ["", "", ""], ["", "", ""]]},
    )
    assert skewed.status_code == 422


def test_engine_endpoint_rejects_finished_boards():
    response = client.post(
        "/api/engine/move",
        json={"board": [["X", "X", "X"], ["O", "O", ""], ["", "", ""]]},
    )
    assert response.status_code == 409


def test_index_serves_page():
    response = client.get("/")
    assert response.status_code == 200
    assert "PerfectXO" in response.text
