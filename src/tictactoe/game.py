"""Core rules and game state for classic 3x3 Tic-Tac-Toe."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

Player = str  # "X" or "O"
Cell = Optional[str]  # "X", "O", or empty (" ", "" or None)

EMPTY = " "
PLAYERS: Tuple[Player, Player] = ("X", "O")

CENTER = 4
CORNERS: Tuple[int, ...] = (0, 2, 6, 8)
EDGES: Tuple[int, ...] = (1, 3, 5, 7)

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def is_mark(cell: Cell) -> bool:
    return cell in PLAYERS


def compute_winner(board: Sequence[Cell]) -> Optional[Player]:
    """Return the side owning a complete line, or ``None``.

    A board without a winner may still be full; draw detection is left to
    the caller (see :func:`is_full`).
    """

    for a, b, c in WINNING_LINES:
        v = board[a]
        if is_mark(v) and v == board[b] == board[c]:
            return v
    return None


def is_full(board: Sequence[Cell]) -> bool:
    return all(is_mark(c) for c in board)


def available_moves(board: Sequence[Cell]) -> List[int]:
    """Indices of empty cells in ascending order."""
    return [i for i, c in enumerate(board) if not is_mark(c)]


def other_player(player: Player) -> Player:
    if player == "X":
        return "O"
    if player == "O":
        return "X"
    raise ValueError(f"Unknown player {player!r}")


def to_row_col(index: int) -> Tuple[int, int]:
    """1-based (row, column) for a cell index, as shown to humans."""
    return index // 3 + 1, index % 3 + 1


@dataclass
class Scoreboard:
    """Running totals; one board may be shared by many games."""

    x: int = 0
    o: int = 0
    ties: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def record(self, winner: Optional[Player]) -> None:
        with self._lock:
            if winner == "X":
                self.x += 1
            elif winner == "O":
                self.o += 1
            else:
                self.ties += 1

    def clear(self) -> None:
        with self._lock:
            self.x = self.o = self.ties = 0

    def as_dict(self) -> Dict[str, int]:
        with self._lock:
            return {"X": self.x, "O": self.o, "ties": self.ties}


@dataclass
class TicTacToeGame:
    cells: List[str] = field(default_factory=lambda: [EMPTY] * 9)
    current_player: Player = "X"
    winner: Optional[Player] = None
    drawn: bool = False
    scores: Scoreboard = field(default_factory=Scoreboard)

    @property
    def finished(self) -> bool:
        return self.winner is not None or self.drawn

    def available_moves(self) -> List[int]:
        if self.finished:
            return []
        return available_moves(self.cells)

    def play_move(self, index: int) -> None:
        """Place the current player's mark, update the outcome and pass the turn."""
        if self.finished:
            raise ValueError("Game already finished")
        if not 0 <= index < 9:
            raise ValueError(f"Cell index {index} is out of range")
        if is_mark(self.cells[index]):
            raise ValueError("Cell already occupied")

        self.cells[index] = self.current_player
        self._update_state()
        if not self.finished:
            self.current_player = other_player(self.current_player)

    def reset(self) -> None:
        """Clear the board; scores survive."""
        self.cells = [EMPTY] * 9
        self.current_player = "X"
        self.winner = None
        self.drawn = False

    def snapshot(self) -> Dict[str, object]:
        return {
            "board": [c if is_mark(c) else "" for c in self.cells],
            "currentPlayer": self.current_player,
            "scores": self.scores.as_dict(),
        }

    def clone(self) -> "TicTacToeGame":
        return TicTacToeGame(
            cells=self.cells.copy(),
            current_player=self.current_player,
            winner=self.winner,
            drawn=self.drawn,
            scores=Scoreboard(self.scores.x, self.scores.o, self.scores.ties),
        )

    # ---- helpers ----

    def _update_state(self) -> None:
        winner = compute_winner(self.cells)
        if winner:
            self.winner = winner
            self.drawn = False
            self.scores.record(winner)
            return
        if is_full(self.cells):
            self.winner = None
            self.drawn = True
            self.scores.record(None)
