"""Tic-Tac-Toe package exposing game rules, AI move selection, and the web application."""

from .ai import Difficulty, MinimaxAI, Strategy, choose_move
from .game import TicTacToeGame, compute_winner
from .ui import app

__all__ = [
    "Difficulty",
    "MinimaxAI",
    "Strategy",
    "TicTacToeGame",
    "app",
    "choose_move",
    "compute_winner",
]
