"""Unit tests for Tic-Tac-Toe game rules."""

import pytest

from tictactoe.game import (
    EMPTY,
    Scoreboard,
    TicTacToeGame,
    available_moves,
    compute_winner,
    is_full,
    other_player,
    to_row_col,
)

_ = EMPTY
DRAW_BOARD = ["X", "O", "X", "X", "O", "O", "O", "X", "X"]


@pytest.mark.parametrize(
    "line", [(0, 1, 2), (3, 4, 5), (6, 7, 8), (0, 3, 6), (1, 4, 7), (2, 5, 8), (0, 4, 8), (2, 4, 6)]
)
def test_every_line_wins(line):
    board = [_] * 9
    for i in line:
        board[i] = "O"
    assert compute_winner(board) == "O"


def test_no_winner_on_empty_or_drawn_board():
    assert compute_winner([_] * 9) is None
    assert compute_winner(DRAW_BOARD) is None
    assert is_full(DRAW_BOARD)


def test_empty_cells_may_be_none_or_blank():
    board = [None, "", " ", "X", "X", "X", None, None, None]
    assert compute_winner(board) == "X"
    assert not is_full(board)
    assert available_moves(board) == [0, 1, 2, 6, 7, 8]


def test_other_player():
    assert other_player("X") == "O"
    assert other_player("O") == "X"
    with pytest.raises(ValueError):
        other_player("Z")


def test_row_col_is_one_based():
    assert to_row_col(0) == (1, 1)
    assert to_row_col(5) == (2, 3)
    assert to_row_col(8) == (3, 3)


def test_moves_alternate_players():
    game = TicTacToeGame()
    game.play_move(4)
    assert game.cells[4] == "X"
    assert game.current_player == "O"
    game.play_move(0)
    assert game.cells[0] == "O"
    assert game.current_player == "X"
    assert game.available_moves() == [1, 2, 3, 5, 6, 7, 8]


def test_win_is_recorded_once_and_keeps_turn():
    game = TicTacToeGame()
    for index in (0, 1, 3, 4, 6):
        game.play_move(index)
    assert game.winner == "X"
    assert game.current_player == "X"
    assert game.scores.as_dict() == {"X": 1, "O": 0, "ties": 0}
    assert game.available_moves() == []
    with pytest.raises(ValueError):
        game.play_move(8)
    assert game.scores.as_dict() == {"X": 1, "O": 0, "ties": 0}


def test_draw_counts_a_tie():
    game = TicTacToeGame()
    for index in (0, 1, 2, 5, 3, 6, 4, 8, 7):
        game.play_move(index)
    assert game.drawn
    assert game.winner is None
    assert game.scores.ties == 1


def test_illegal_moves_rejected():
    game = TicTacToeGame()
    game.play_move(0)
    with pytest.raises(ValueError):
        game.play_move(0)
    with pytest.raises(ValueError):
        game.play_move(9)
    with pytest.raises(ValueError):
        game.play_move(-1)


def test_reset_keeps_scores():
    game = TicTacToeGame()
    for index in (0, 1, 3, 4, 6):
        game.play_move(index)
    game.reset()
    assert game.cells == [_] * 9
    assert game.current_player == "X"
    assert not game.finished
    assert game.scores.x == 1


def test_snapshot_and_clone_are_independent():
    game = TicTacToeGame()
    game.play_move(2)
    snap = game.snapshot()
    assert snap["board"] == ["", "", "X", "", "", "", "", "", ""]
    assert snap["currentPlayer"] == "O"

    copy = game.clone()
    copy.play_move(4)
    assert game.cells[4] == _
    assert game.current_player == "O"


def test_games_can_share_a_scoreboard():
    shared = Scoreboard()
    first = TicTacToeGame(scores=shared)
    for index in (0, 1, 3, 4, 6):
        first.play_move(index)

    second = TicTacToeGame(scores=shared)
    assert second.scores.as_dict() == {"X": 1, "O": 0, "ties": 0}
    for index in (0, 1, 2, 5, 3, 6, 4, 8, 7):
        second.play_move(index)
    assert shared.as_dict() == {"X": 1, "O": 0, "ties": 1}

    shared.clear()
    assert first.scores.as_dict() == {"X": 0, "O": 0, "ties": 0}
