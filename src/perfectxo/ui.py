"""FastAPI-powered web UI for playing PerfectXO in the browser."""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import MinimaxAI, TerminalBoardQueried
from .game import Board, InvalidBoard, Mark, TicTacToeGame

logger = logging.getLogger(__name__)


@dataclass
class Scoreboard:
    """Running totals across games in one session; player one is X."""

    player_one: int = 0
    player_two: int = 0
    draws: int = 0

    def record(self, game: TicTacToeGame) -> None:
        if game.winner is Mark.X:
            self.player_one += 1
        elif game.winner is Mark.O:
            self.player_two += 1
        elif game.drawn:
            self.draws += 1


@dataclass
class GameSession:
    """Container for the live board, the engine opponent and the score."""

    game: TicTacToeGame
    ai: MinimaxAI
    human_player: Mark = Mark.X
    score: Scoreboard = field(default_factory=Scoreboard)
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="PerfectXO", description="Tic-tac-toe against a perfect player")


AI_THINK_DELAY: Tuple[float, float] = (0.2, 0.6)


class NewGameRequest(BaseModel):
    """Request payload for starting a new session."""

    model_config = ConfigDict(populate_by_name=True)

    human_player: str = Field(
        default="X",
        alias="humanPlayer",
        description="Mark played by the human; X always moves first",
    )

    @field_validator("human_player")
    @classmethod
    def ensure_playable_mark(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in (Mark.X.value, Mark.O.value):
            raise ValueError(f"Unsupported mark {value!r}. Choose X or O.")
        return value


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    row: int = Field(ge=0, le=2)
    col: int = Field(ge=0, le=2)


class EngineRequest(BaseModel):
    """Stateless engine query: a board snapshot and the pruning switch."""

    board: List[List[str]]
    pruning: bool = True


def _create_session(human_player: Mark) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    session = GameSession(
        game=TicTacToeGame(),
        ai=MinimaxAI(player=human_player.opponent()),
        human_player=human_player,
    )
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("session %s created, human plays %s", session_id, human_player.value)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _finish_if_over(game_id: str, session: GameSession) -> None:
    game = session.game
    if not game.finished:
        return
    session.score.record(game)
    logger.info(
        "session %s finished: %s",
        game_id,
        f"{game.winner.value} wins" if game.winner else "draw",
    )


def _record_move(session: GameSession, player: Mark, row: int, col: int) -> None:
    session.move_log.append({"player": player.value, "row": row, "col": col})


def _ai_should_move(session: GameSession) -> bool:
    game = session.game
    return not game.finished and game.current_player is session.ai.player


def _run_ai_turn(game_id: str) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))

    with session.lock:
        try:
            if not _ai_should_move(session):
                return
            row, col = session.ai.choose(session.game.board)
            player = session.game.play_move(row, col)
            _record_move(session, player, row, col)
            _finish_if_over(game_id, session)
        finally:
            session.ai_pending = False


def _message(game: TicTacToeGame) -> Optional[str]:
    if game.winner is not None:
        return f"{game.winner.value} wins!"
    if game.drawn:
        return "Draw!"
    return None


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        state: Dict[str, object] = {
            "id": game_id,
            "board": game.board.rows(),
            "currentPlayer": game.current_player.value,
            "humanPlayer": session.human_player.value,
            "aiPlayer": session.ai.player.value if session.ai.player else None,
            "winner": game.winner.value if game.winner else None,
            "drawn": game.drawn,
            "message": _message(game),
            "availableMoves": [
                {"row": row, "col": col} for row, col in game.available_moves()
            ],
            "score": {
                "playerOne": session.score.player_one,
                "playerTwo": session.score.player_two,
                "draws": session.score.draws,
            },
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _schedule_ai(
    game_id: str, session: GameSession, background_tasks: Optional[BackgroundTasks]
) -> None:
    # Caller holds session.lock.
    if _ai_should_move(session):
        session.ai_pending = True
        if background_tasks is not None:
            background_tasks.add_task(_run_ai_turn, game_id)


def _apply_player_move(
    game_id: str,
    session: GameSession,
    row: int,
    col: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with session.lock:
        game = session.game
        if game.finished:
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")

        if game.current_player is not session.human_player:
            raise HTTPException(status_code=400, detail="It is not your turn")

        try:
            player = game.play_move(row, col)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        _record_move(session, player, row, col)
        _finish_if_over(game_id, session)
        _schedule_ai(game_id, session, background_tasks)


@app.post("/api/game")
def create_game(
    background_tasks: BackgroundTasks, request: Optional[NewGameRequest] = None
) -> Dict[str, object]:
    human = Mark(request.human_player) if request else Mark.X
    game_id, session = _create_session(human)
    with session.lock:
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(
    game_id: str, request: MoveRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    session = _get_session(game_id)
    _apply_player_move(game_id, session, request.row, request.col, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str, background_tasks: BackgroundTasks) -> Dict[str, object]:
    """Start a fresh board in the same session; the score is kept."""
    session = _get_session(game_id)
    with session.lock:
        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")
        session.game.reset()
        session.move_log.clear()
        logger.info("session %s reset", game_id)
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/engine/move")
def engine_move(request: EngineRequest) -> Dict[str, object]:
    try:
        board = Board.from_rows(request.board)
    except InvalidBoard as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    ai = MinimaxAI(pruning=request.pruning)
    try:
        result = ai.search(board)
    except TerminalBoardQueried as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    row, col = result.move  # type: ignore[misc]
    return {
        "row": row,
        "col": col,
        "value": result.value,
        "nodesVisited": ai.nodes_visited,
    }


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>PerfectXO</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      body {
        margin: 0;
        background: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem 3rem;
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: 2rem;
        width: min(420px, 100%);
        text-align: center;
      }
      h1 {
        margin: 0 0 1rem;
        letter-spacing: 0.06em;
      }
      .score {
        display: flex;
        justify-content: space-around;
        margin-bottom: 1rem;
        font-weight: 600;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 6px;
        margin: 1rem auto;
        width: 270px;
      }
      .cell {
        height: 84px;
        font-size: 2.4rem;
        font-weight: 700;
        border-radius: 10px;
        border: 1px solid rgba(58, 102, 255, 0.25);
        background: #f6f8ff;
        cursor: pointer;
      }
      .cell.x { color: #3a66ff; }
      .cell.o { color: #ff5470; }
      .board.thinking .cell { cursor: wait; }
      #status { min-height: 1.5rem; }
      #message { min-height: 1.5rem; color: #b3261e; }
      button.primary {
        padding: 0.6rem 1.2rem;
        border-radius: 12px;
        border: none;
        background: #3a66ff;
        color: white;
        font-weight: 600;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>PerfectXO</h1>
      <div class=\"score\">
        <span>X: <span id=\"player-1-score\">0</span></span>
        <span>Draws: <span id=\"draw-score\">0</span></span>
        <span>O: <span id=\"player-2-score\">0</span></span>
      </div>
      <div id=\"status\">Setting up your game…</div>
      <div id=\"board\" class=\"board\"></div>
      <div id=\"message\" role=\"status\"></div>
      <button id=\"new-game\" class=\"primary\">New game</button>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const messageEl = document.getElementById('message');
      const newGameButton = document.getElementById('new-game');
      let gameId = null;
      let gameState = null;
      let pollHandle = null;
      let isRequestPending = false;

      function ensurePolling() {
        if (pollHandle === null) {
          pollHandle = setTimeout(poll, 250);
        }
      }

      async function poll() {
        pollHandle = null;
        if (!gameId) return;
        try {
          const response = await fetch(`/api/game/${gameId}`);
          if (response.ok) {
            setState(await response.json());
          }
        } catch (error) {
          console.error('Polling failed', error);
        }
      }

      async function post(url, body) {
        const response = await fetch(url, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: body ? JSON.stringify(body) : undefined,
        });
        const payload = await response.json().catch(() => ({}));
        if (!response.ok) {
          throw new Error(payload?.detail || 'Request failed');
        }
        return payload;
      }

      async function startSession() {
        try {
          setState(await post('/api/game', { humanPlayer: 'X' }));
        } catch (error) {
          messageEl.textContent = error.message;
        }
      }

      async function newGame() {
        if (!gameId || isRequestPending) return;
        isRequestPending = true;
        messageEl.textContent = '';
        try {
          setState(await post(`/api/game/${gameId}/reset`));
        } catch (error) {
          messageEl.textContent = error.message;
        } finally {
          isRequestPending = false;
        }
      }

      async function sendMove(row, col) {
        if (!gameState || gameState.winner || gameState.drawn || gameState.aiPending) return;
        if (isRequestPending) return;
        isRequestPending = true;
        messageEl.textContent = '';
        try {
          setState(await post(`/api/game/${gameId}/move`, { row, col }));
        } catch (error) {
          messageEl.textContent = error.message;
        } finally {
          isRequestPending = false;
        }
      }

      function setState(data) {
        gameId = data.id;
        gameState = data;
        render();
        if (data.aiPending && !data.winner && !data.drawn) {
          ensurePolling();
        }
      }

      function render() {
        boardEl.innerHTML = '';
        boardEl.classList.toggle('thinking', Boolean(gameState?.aiPending));
        gameState.board.forEach((rowCells, row) => {
          rowCells.forEach((mark, col) => {
            const cell = document.createElement('button');
            cell.className = 'cell' + (mark ? ' ' + mark.toLowerCase() : '');
            cell.textContent = mark;
            cell.addEventListener('click', () => sendMove(row, col));
            boardEl.appendChild(cell);
          });
        });
        document.getElementById('player-1-score').textContent = gameState.score.playerOne;
        document.getElementById('player-2-score').textContent = gameState.score.playerTwo;
        document.getElementById('draw-score').textContent = gameState.score.draws;
        if (gameState.message) {
          statusEl.textContent = gameState.message;
        } else if (gameState.aiPending) {
          statusEl.textContent = 'AI is thinking…';
        } else {
          statusEl.textContent = `Your move (${gameState.humanPlayer})`;
        }
      }

      newGameButton.addEventListener('click', newGame);
      startSession();
    </script>
  </body>
</html>
"""
