"""Move selection for the Tic-Tac-Toe AI: a fixed-priority heuristic and minimax."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Sequence
import math

from loguru import logger

from .game import (
    CENTER,
    CORNERS,
    EDGES,
    EMPTY,
    PLAYERS,
    Cell,
    Player,
    TicTacToeGame,
    available_moves,
    compute_winner,
    is_full,
    is_mark,
    other_player,
)

WinnerClassifier = Callable[[Sequence[Cell]], Optional[Player]]

MIN_DEPTH = 1
MAX_DEPTH = 9
DEFAULT_DEPTH = MAX_DEPTH
WIN_SCORE = 10


class Strategy(str, Enum):
    QUICK = "quick"
    MINIMAX = "minimax"


@dataclass(frozen=True)
class Difficulty:
    """Strategy plus an optional look-ahead limit (ignored by ``quick``)."""

    strategy: Strategy = Strategy.MINIMAX
    depth: Optional[int] = None

    def __post_init__(self) -> None:
        # Unknown labels are rejected here rather than falling back to minimax.
        object.__setattr__(self, "strategy", Strategy(self.strategy))

    @classmethod
    def parse(cls, strategy: str, depth: Optional[int] = None) -> "Difficulty":
        try:
            return cls(strategy=Strategy(strategy), depth=depth)
        except ValueError as exc:
            choices = ", ".join(s.value for s in Strategy)
            raise ValueError(
                f"Unsupported strategy {strategy!r}. Choose one of {choices}."
            ) from exc

    @property
    def effective_depth(self) -> int:
        return clamp_depth(self.depth)


class SearchResult(NamedTuple):
    score: float
    move: Optional[int]


def clamp_depth(depth: Optional[int]) -> int:
    if depth is None:
        return DEFAULT_DEPTH
    return max(MIN_DEPTH, min(MAX_DEPTH, int(depth)))


# ---- public API ----


def choose_move(
    board: Sequence[Cell],
    ai_player: Player,
    difficulty: Difficulty,
    classifier: WinnerClassifier = compute_winner,
) -> Optional[int]:
    """Pick the AI's next cell, or ``None`` when no move can be made.

    Malformed boards and unknown sides yield ``None``; the caller's board is
    never modified.
    """

    if isinstance(board, (str, bytes)) or not isinstance(board, Sequence):
        return None
    if len(board) != 9 or ai_player not in PLAYERS:
        return None

    # Difficulty only admits Strategy members.
    if difficulty.strategy is Strategy.QUICK:
        move = quick_move(board)
    else:
        move = minimax_move(board, ai_player, difficulty.depth, classifier)

    logger.debug(
        "AI {} chose {} (strategy={}, depth={})",
        ai_player,
        move,
        difficulty.strategy.value,
        difficulty.effective_depth,
    )
    return move


def quick_move(board: Sequence[Cell]) -> Optional[int]:
    """Center, then corners, then edges; blind to the opponent's threats."""
    if not is_mark(board[CENTER]):
        return CENTER
    for i in CORNERS:
        if not is_mark(board[i]):
            return i
    for i in EDGES:
        if not is_mark(board[i]):
            return i
    return None


def minimax_move(
    board: Sequence[Cell],
    ai_player: Player,
    depth: Optional[int] = None,
    classifier: WinnerClassifier = compute_winner,
) -> Optional[int]:
    return minimax_search(board, ai_player, depth, classifier).move


def minimax_search(
    board: Sequence[Cell],
    ai_player: Player,
    depth: Optional[int] = None,
    classifier: WinnerClassifier = compute_winner,
) -> SearchResult:
    """Full or depth-limited minimax from ``ai_player``'s point of view.

    Wins score ``10 + depth_left`` and losses ``-10 - depth_left`` so quicker
    wins and slower losses are preferred. Positions past the depth limit are
    scored as draws. Ties keep the lowest index.
    """

    # One scratch copy for the whole search; placements are undone on unwind.
    scratch: List[str] = [c if is_mark(c) else EMPTY for c in board]
    return _Search(ai_player, classifier).run(scratch, ai_player, clamp_depth(depth))


# ---- core search ----


@dataclass
class _Search:
    ai_player: Player
    classifier: WinnerClassifier
    opponent: Player = field(init=False)

    def __post_init__(self) -> None:
        self.opponent = other_player(self.ai_player)

    def terminal_score(self, board: List[str], depth_left: int) -> Optional[int]:
        winner = self.classifier(board)
        if winner == self.ai_player:
            return WIN_SCORE + depth_left
        if winner == self.opponent:
            return -WIN_SCORE - depth_left
        if is_full(board):
            return 0
        return None

    def run(self, board: List[str], player: Player, depth_left: int) -> SearchResult:
        score = self.terminal_score(board, depth_left)
        if score is not None:
            return SearchResult(score, None)
        if depth_left == 0:
            return SearchResult(0, None)

        maximizing = player == self.ai_player
        best = SearchResult(-math.inf if maximizing else math.inf, None)
        for move in available_moves(board):
            board[move] = player
            child = self.run(board, other_player(player), depth_left - 1)
            board[move] = EMPTY

            if maximizing:
                if child.score > best.score:
                    best = SearchResult(child.score, move)
            elif child.score < best.score:
                best = SearchResult(child.score, move)
        return best


@dataclass
class MinimaxAI:
    """AI player bound to one side and a difficulty setting.

      - MinimaxAI(player="O", difficulty=Difficulty(Strategy.QUICK))
      - choose(game) -> cell index, or None when the board is full
    """

    player: Player = "O"
    difficulty: Difficulty = field(default_factory=Difficulty)
    classifier: WinnerClassifier = field(default=compute_winner, repr=False)

    def choose(self, game: TicTacToeGame) -> Optional[int]:
        if game.current_player != self.player:
            raise ValueError("It is not this AI player's turn")
        if game.finished:
            return None
        return choose_move(game.cells, self.player, self.difficulty, self.classifier)
