"""FastAPI-powered web UI for playing Tic-Tac-Toe in the browser."""

from __future__ import annotations

import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .ai import Difficulty, MinimaxAI
from .audit import AuditLog
from .errors import AppError, safe_guard
from .game import Scoreboard, TicTacToeGame, to_row_col

GameMode = Literal["human-vs-human", "human-vs-ai"]


@dataclass
class GameSession:
    """Container for an active game, its optional AI opponent and audit trail."""

    game_id: str
    game: TicTacToeGame
    ai: Optional[MinimaxAI]
    audit: AuditLog
    mode: GameMode = "human-vs-ai"
    move_log: List[Dict[str, object]] = field(default_factory=list)
    ai_pending: bool = False
    touched_at: float = field(default_factory=lambda: time.time())
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


SESSIONS: Dict[str, GameSession] = {}
SESSIONS_LOCK = threading.Lock()
# Shared by every game so totals and history outlive a single session.
SCOREBOARD = Scoreboard()
AUDIT_LOG = AuditLog()

app = FastAPI(title="Tic-Tac-Toe", description="Tic-tac-toe against a minimax AI")

AI_THINK_DELAY: Tuple[float, float] = (0.3, 0.8)
SESSION_TTL_SECONDS = 60 * 60  # 1 hour


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=500, content={"detail": exc.message, "type": exc.type}
    )


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    mode: GameMode = "human-vs-ai"
    ai_plays_as: Literal["X", "O"] = Field(default="O", alias="aiPlaysAs")
    strategy: Literal["quick", "minimax"] = "minimax"
    depth: Optional[int] = Field(
        default=None,
        ge=1,
        le=9,
        description="Minimax look-ahead in plies; omitted means full search",
    )


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    index: int = Field(ge=0, le=8)


class ResetRequest(BaseModel):
    reason: str = "Reset requested"


def _cleanup_sessions() -> None:
    """Drop sessions idle for longer than ``SESSION_TTL_SECONDS``."""

    now = time.time()
    with SESSIONS_LOCK:
        expired = [
            game_id
            for game_id, session in SESSIONS.items()
            if not session.ai_pending
            and now - session.touched_at >= SESSION_TTL_SECONDS
        ]
        for game_id in expired:
            SESSIONS.pop(game_id, None)
    if expired:
        logger.info("Expired {} idle game(s)", len(expired))


def _create_session(request: NewGameRequest) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    _cleanup_sessions()
    ai: Optional[MinimaxAI] = None
    if request.mode == "human-vs-ai":
        ai = MinimaxAI(
            player=request.ai_plays_as,
            difficulty=Difficulty.parse(request.strategy, request.depth),
        )
    session_id = uuid.uuid4().hex
    session = GameSession(
        game_id=session_id,
        game=TicTacToeGame(scores=SCOREBOARD),
        ai=ai,
        audit=AUDIT_LOG,
        mode=request.mode,
    )
    with SESSIONS_LOCK:
        SESSIONS[session_id] = session
    session.audit.log_event(
        "START",
        before=None,
        after=session.game.snapshot(),
        reason="Game created",
        metadata={"gameId": session_id, "mode": request.mode},
    )
    logger.info("Created game {} (mode={}, ai={})", session_id, request.mode, ai)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        session = SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc
    session.touched_at = time.time()
    return session


def _ai_to_move(session: GameSession) -> bool:
    game = session.game
    return (
        session.ai is not None
        and not game.finished
        and game.current_player == session.ai.player
    )


def _record_move(
    session: GameSession,
    index: int,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """Apply ``index`` for the side to move and log it; raises ``ValueError``."""

    game = session.game
    player = game.current_player
    before = game.snapshot()
    game.play_move(index)
    after = game.snapshot()

    row, col = to_row_col(index)
    session.move_log.append(
        {"player": player, "index": index, "row": row, "col": col}
    )
    metadata: Dict[str, object] = {
        "gameId": session.game_id,
        "index": index,
        "outcome": {"winner": game.winner, "isDraw": game.drawn},
    }
    if extra:
        metadata.update(extra)
    session.audit.log_event(
        "MOVE",
        before=before,
        after=after,
        reason=f"Player {player} moved at index {index}",
        metadata=metadata,
    )


def _play_ai_move(session: GameSession) -> None:
    ai = session.ai
    if ai is None or not _ai_to_move(session):
        return
    index = ai.choose(session.game)
    if index is None:
        return
    _record_move(
        session,
        index,
        {
            "ai": True,
            "strategy": ai.difficulty.strategy.value,
            "depth": ai.difficulty.effective_depth,
        },
    )


def _run_ai_turn(game_id: str) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))

    with session.lock:
        try:
            safe_guard(
                lambda: _play_ai_move(session),
                "Unexpected error when the AI was moving",
                session.audit,
                {"gameId": game_id},
            )
        except AppError as exc:
            # Already logged and audited by safe_guard.
            logger.warning("AI turn for game {} abandoned: {}", game_id, exc.message)
        finally:
            session.ai_pending = False


def _schedule_ai(
    game_id: str, session: GameSession, background_tasks: Optional[BackgroundTasks]
) -> None:
    with session.lock:
        should_schedule_ai = _ai_to_move(session) and not session.ai_pending
        if should_schedule_ai:
            session.ai_pending = True
    if should_schedule_ai and background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id)


def _status_message(game: TicTacToeGame) -> str:
    if game.winner:
        return f"Player {game.winner} wins!"
    if game.drawn:
        return "Draw! No more moves."
    return f"Player {game.current_player}'s turn"


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        ai = session.ai
        state: Dict[str, object] = {
            "id": game_id,
            "board": game.snapshot()["board"],
            "currentPlayer": game.current_player,
            "winner": game.winner,
            "drawn": game.drawn,
            "status": _status_message(game),
            "scores": game.scores.as_dict(),
            "mode": session.mode,
            "aiPlaysAs": ai.player if ai else None,
            "difficulty": (
                {
                    "strategy": ai.difficulty.strategy.value,
                    "depth": ai.difficulty.effective_depth,
                }
                if ai
                else None
            ),
            "availableMoves": game.available_moves(),
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(session: GameSession, index: int) -> None:
    with session.lock:
        game = session.game
        if game.finished:
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.ai_pending:
            raise HTTPException(status_code=400, detail="AI is completing its move")

        if _ai_to_move(session):
            raise HTTPException(status_code=400, detail="It is the AI's turn")

        try:
            _record_move(session, index)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc


def _reset_session(session: GameSession, reason: str) -> None:
    with session.lock:
        if session.ai_pending:
            raise HTTPException(
                status_code=400, detail="Cannot restart while the AI is thinking"
            )
        before = session.game.snapshot()
        safe_guard(
            session.game.reset,
            "Unexpected error when restarting the game",
            session.audit,
            {"gameId": session.game_id},
        )
        session.move_log.clear()
        session.audit.log_event(
            "RESET",
            before=before,
            after=session.game.snapshot(),
            reason=reason,
            metadata={"gameId": session.game_id},
        )


@app.post("/api/game")
def create_game(
    request: NewGameRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    game_id, session = _create_session(request)
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
    _apply_player_move(session, request.index)
    _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/reset")
def reset_game(
    game_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[ResetRequest] = None,
) -> Dict[str, object]:
    session = _get_session(game_id)
    reason = request.reason if request else "Reset requested"
    _reset_session(session, reason)
    logger.info("Reset game {}: {}", game_id, reason)
    _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}/audit")
def get_game_audit_log(game_id: str) -> List[Dict[str, object]]:
    session = _get_session(game_id)
    return session.audit.for_game(game_id)


@app.get("/api/audit")
def get_audit_log() -> List[Dict[str, object]]:
    return AUDIT_LOG.entries()


@app.get("/api/scores")
def get_scores() -> Dict[str, int]:
    return SCOREBOARD.as_dict()


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\" data-theme=\"light\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>Tic Tac Toe</title>
    <style>
      :root {
        --bg: #f3f7fb;
        --surface: #ffffff;
        --text: #102a43;
        --primary: #2563eb;
        --secondary: #f59e0b;
        --cell: #e8f0fe;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      [data-theme=\"dark\"] {
        --bg: #0f172a;
        --surface: #1e293b;
        --text: #e2e8f0;
        --primary: #60a5fa;
        --secondary: #fbbf24;
        --cell: #334155;
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem;
        background: var(--bg);
        color: var(--text);
        transition: background 0.3s ease;
      }
      main {
        background: var(--surface);
        border-radius: 16px;
        box-shadow: 0 16px 32px rgba(15, 23, 42, 0.15);
        padding: 2rem;
        width: min(480px, 100%);
      }
      header {
        display: flex;
        justify-content: space-between;
        align-items: center;
      }
      h1 {
        margin: 0;
      }
      .ocean-btn {
        padding: 0.45rem 0.85rem;
        border-radius: 10px;
        border: 1px solid var(--primary);
        background: transparent;
        color: var(--text);
        font-weight: 600;
        cursor: pointer;
      }
      .status-banner {
        margin: 1.25rem 0;
        text-align: center;
        font-weight: 600;
        font-size: 1.2rem;
      }
      .scoreboard {
        display: flex;
        justify-content: space-around;
        margin-bottom: 1rem;
      }
      .controls {
        display: flex;
        flex-wrap: wrap;
        gap: 0.5rem;
        justify-content: center;
        margin-bottom: 1rem;
      }
      .board {
        display: grid;
        grid-template-columns: repeat(3, 1fr);
        gap: 0.5rem;
      }
      .cell {
        aspect-ratio: 1;
        font-size: 2.5rem;
        font-weight: 700;
        border: none;
        border-radius: 12px;
        background: var(--cell);
        color: var(--text);
        cursor: pointer;
      }
      .cell:focus {
        outline: 3px solid var(--secondary);
      }
      .thinking {
        text-align: center;
        color: var(--secondary);
        font-weight: 600;
        min-height: 1.5rem;
      }
      footer {
        margin-top: 1rem;
        font-size: 0.85rem;
        text-align: center;
        opacity: 0.8;
      }
    </style>
  </head>
  <body>
    <main>
      <header>
        <h1>Tic Tac Toe</h1>
        <button id=\"themeToggle\" class=\"ocean-btn\" aria-label=\"Switch to dark mode\">Dark</button>
      </header>
      <section id=\"status\" class=\"status-banner\" aria-live=\"polite\" aria-atomic=\"true\"></section>
      <div class=\"scoreboard\" role=\"group\" aria-label=\"Scoreboard\">
        <div>Player X: <span id=\"scoreX\">0</span></div>
        <div>Player O: <span id=\"scoreO\">0</span></div>
        <div>Ties: <span id=\"scoreTies\">0</span></div>
      </div>
      <div class=\"controls\" role=\"group\" aria-label=\"Game controls\">
        <select id=\"mode\" class=\"ocean-btn\" aria-label=\"Game mode\">
          <option value=\"human-vs-ai\">Human vs AI</option>
          <option value=\"human-vs-human\">Human vs Human</option>
        </select>
        <select id=\"aiPlaysAs\" class=\"ocean-btn\" aria-label=\"AI plays as\">
          <option value=\"O\">AI as O</option>
          <option value=\"X\">AI as X</option>
        </select>
        <select id=\"strategy\" class=\"ocean-btn\" aria-label=\"AI strategy\">
          <option value=\"minimax\">Minimax</option>
          <option value=\"quick\">Quick</option>
        </select>
        <input id=\"depth\" class=\"ocean-btn\" type=\"number\" min=\"1\" max=\"9\" value=\"9\" aria-label=\"Minimax depth\" />
        <button id=\"newGame\" class=\"ocean-btn\">New game</button>
        <button id=\"restart\" class=\"ocean-btn\" aria-label=\"Restart game\">Restart</button>
      </div>
      <div id=\"thinking\" class=\"thinking\"></div>
      <div id=\"board\" class=\"board\" role=\"grid\" aria-label=\"Tic Tac Toe board\"></div>
      <footer>Keyboard: Arrow keys to move, Enter/Space to place.</footer>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const statusEl = document.getElementById('status');
      const thinkingEl = document.getElementById('thinking');
      const themeToggle = document.getElementById('themeToggle');
      const restartButton = document.getElementById('restart');
      let state = null;
      let focusIndex = 0;
      let pollTimer = null;

      function cellLabel(index, value) {
        const row = Math.floor(index / 3) + 1;
        const col = (index % 3) + 1;
        return `Row ${row}, Column ${col}: ${value || 'empty'}`;
      }

      function render() {
        if (!state) return;
        statusEl.textContent = state.status;
        document.getElementById('scoreX').textContent = state.scores.X;
        document.getElementById('scoreO').textContent = state.scores.O;
        document.getElementById('scoreTies').textContent = state.scores.ties;
        thinkingEl.textContent = state.aiPending ? 'AI is thinking…' : '';
        restartButton.disabled = state.aiPending;
        const over = Boolean(state.winner) || state.drawn;
        boardEl.setAttribute('aria-label', over ? 'Tic Tac Toe board, game over' : 'Tic Tac Toe board');
        boardEl.setAttribute('aria-readonly', over ? 'true' : 'false');
        boardEl.innerHTML = '';
        state.board.forEach((value, index) => {
          const cell = document.createElement('button');
          cell.className = 'cell';
          cell.setAttribute('role', 'gridcell');
          cell.setAttribute('aria-label', cellLabel(index, value));
          cell.tabIndex = index === focusIndex ? 0 : -1;
          cell.textContent = value;
          cell.addEventListener('click', () => play(index));
          cell.addEventListener('keydown', onKey);
          boardEl.appendChild(cell);
        });
      }

      function focusCell(index) {
        focusIndex = index;
        const cells = boardEl.querySelectorAll('.cell');
        cells.forEach((c, i) => (c.tabIndex = i === index ? 0 : -1));
        cells[index].focus();
      }

      function onKey(event) {
        const row = Math.floor(focusIndex / 3);
        const col = focusIndex % 3;
        const moves = {
          ArrowUp: [Math.max(0, row - 1), col],
          ArrowDown: [Math.min(2, row + 1), col],
          ArrowLeft: [row, Math.max(0, col - 1)],
          ArrowRight: [row, Math.min(2, col + 1)],
        };
        if (event.key in moves) {
          event.preventDefault();
          const [r, c] = moves[event.key];
          focusCell(r * 3 + c);
        } else if (event.key === 'Enter' || event.key === ' ') {
          event.preventDefault();
          play(focusIndex);
        }
      }

      async function request(url, body) {
        const response = await fetch(url, {
          method: body === undefined ? 'GET' : 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: body === undefined ? undefined : JSON.stringify(body),
        });
        const payload = await response.json();
        if (!response.ok) {
          throw new Error(typeof payload.detail === 'string' ? payload.detail : 'Request failed');
        }
        return payload;
      }

      function schedulePoll() {
        clearTimeout(pollTimer);
        if (state && state.aiPending) {
          pollTimer = setTimeout(async () => {
            state = await request(`/api/game/${state.id}`);
            render();
            schedulePoll();
          }, 250);
        }
      }

      async function update(promise) {
        try {
          state = await promise;
          render();
          schedulePoll();
        } catch (err) {
          statusEl.textContent = err.message;
        }
      }

      function play(index) {
        if (!state) return;
        focusIndex = index;
        update(request(`/api/game/${state.id}/move`, { index }));
      }

      function newGame() {
        const depth = Number(document.getElementById('depth').value);
        update(
          request('/api/game', {
            mode: document.getElementById('mode').value,
            aiPlaysAs: document.getElementById('aiPlaysAs').value,
            strategy: document.getElementById('strategy').value,
            depth: Number.isFinite(depth) && depth >= 1 && depth <= 9 ? depth : null,
          })
        );
      }

      themeToggle.addEventListener('click', () => {
        const root = document.documentElement;
        const next = root.getAttribute('data-theme') === 'light' ? 'dark' : 'light';
        root.setAttribute('data-theme', next);
        themeToggle.textContent = next === 'light' ? 'Dark' : 'Light';
        themeToggle.setAttribute('aria-label', `Switch to ${next === 'light' ? 'dark' : 'light'} mode`);
      });
      restartButton.addEventListener('click', () => {
        if (state) update(request(`/api/game/${state.id}/reset`, { reason: 'User requested restart' }));
      });
      document.getElementById('newGame').addEventListener('click', newGame);

      newGame();
    </script>
  </body>
</html>
"""
