"""Tests for the PerfectXO minimax search."""

import pytest

from perfectxo.ai import MinimaxAI, SearchPreconditionError, best_move
from perfectxo.game import DRAW, GameState, evaluate_cells, opponent


def _board(text):
    return [None if ch == "." else ch for ch in text]


def _value(cells, turn, me):
    """Plain exhaustive minimax, independent of the module under test."""
    result = evaluate_cells(cells)
    if result.winner is not None:
        return 1 if result.winner == me else -1
    if result.status == DRAW:
        return 0
    scores = []
    for i, c in enumerate(cells):
        if c is None:
            cells[i] = turn
            scores.append(_value(cells, opponent(turn), me))
            cells[i] = None
    return max(scores) if turn == me else min(scores)


def test_empty_board_takes_center():
    assert best_move(GameState(), "X") == 4


def test_takes_immediate_win_over_block():
    game = GameState(cells=_board("XOXXO...O"), current_player="X")
    assert game.outcome().in_progress
    assert best_move(game, "X") == 6


def test_takes_immediate_win_in_row():
    game = GameState(cells=_board("OO.XX...."), current_player="X")
    assert best_move(game, "X") == 5


def test_blocks_opponent_threat():
    # X threatens the top row at 2; O has nothing of its own
    game = GameState(cells=_board("XX..O...."), current_player="O")
    assert best_move(game, "O") == 2


def test_avoids_fork_after_opposite_corners():
    game = GameState(cells=_board("X...O...X"), current_player="O")
    move = best_move(game, "O")
    assert move not in (2, 6)

    cells = list(game.cells)
    cells[move] = "O"
    # X to move cannot force a win once O has replied
    assert _value(cells, "X", "X") == 0

    for corner in (2, 6):
        cells = list(game.cells)
        cells[corner] = "O"
        assert _value(cells, "X", "X") == 1


def test_ties_go_to_lowest_index():
    game = GameState(cells=_board("X...O...X"), current_player="O")
    # Every edge draws; 1 is the first of them
    assert best_move(game, "O") == 1


def test_matches_plain_minimax_choice():
    game = GameState(cells=_board("X........"), current_player="O")
    expected = None
    best = -2
    for index in game.empty_indices():
        cells = list(game.cells)
        cells[index] = "O"
        score = _value(cells, "X", "O")
        if score > best:
            best, expected = score, index
    assert best_move(game, "O") == expected == 4


def test_does_not_mutate_state():
    game = GameState(cells=_board("X...O...."), current_player="X")
    before = (list(game.cells), game.current_player)
    best_move(game, "X")
    assert (game.cells, game.current_player) == before


def test_optimal_play_is_a_draw():
    game = GameState()
    while game.outcome().in_progress:
        side = game.current_player
        game.apply_move(best_move(game, side), side)
    assert game.outcome().status == DRAW


@pytest.mark.parametrize("text", ["XXXOO....", "XOXXOOOXX"])
def test_finished_board_is_a_precondition_error(text):
    game = GameState(cells=_board(text), current_player="O")
    with pytest.raises(SearchPreconditionError):
        best_move(game, "O")


def test_ai_player_checks_turn():
    game = GameState()
    with pytest.raises(ValueError):
        MinimaxAI(player="O").choose(game)
    assert MinimaxAI(player="X").choose(game) == 4
