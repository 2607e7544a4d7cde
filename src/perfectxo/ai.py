"""Full-depth minimax for PerfectXO.

The search always runs to terminal positions, so scores are exact:
+1 for a win of the searching side, -1 for a loss, 0 for a draw. Node values
are memoized per (cells, side on move, perspective); because they are exact,
the cache never changes which move is chosen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Tuple

from .game import DRAW, GameState, Player, evaluate_cells, opponent

logger = logging.getLogger(__name__)

CENTER = 4

Board = Tuple[object, ...]


class SearchPreconditionError(RuntimeError):
    """Raised when a move is requested for a finished or full board."""


# ---- core search ----


def best_move(state: GameState, side_to_move: Player) -> int:
    """Return the cell giving ``side_to_move`` the best guaranteed result.

    Ties between equally good cells go to the lowest index. ``state`` is not
    modified.
    """
    if state.is_over() or not state.empty_indices():
        raise SearchPreconditionError(
            "best_move needs a game in progress with at least one empty cell"
        )

    # Center is an optimal opening; skip the full-tree search
    if state.is_empty():
        return CENTER

    cells: Board = tuple(state.cells)

    # Root only: an immediate win beats a lower-index forced win despite the tie rule
    for i in state.empty_indices():
        child = cells[:i] + (side_to_move,) + cells[i + 1 :]
        if evaluate_cells(child).winner == side_to_move:
            logger.debug("best_move for %s: %d (immediate win)", side_to_move, i)
            return i

    scored = _score_moves(cells, side_to_move, side_to_move)
    index, score = scored[0]
    for move, value in scored:
        if value > score:
            index, score = move, value
    logger.debug("best_move for %s: %d (score %+d)", side_to_move, index, score)
    return index


def _score_moves(cells: Board, turn: Player, me: Player) -> List[Tuple[int, int]]:
    """(index, score) for every empty cell, ascending by index."""
    scored: List[Tuple[int, int]] = []
    for i, c in enumerate(cells):
        if c is not None:
            continue
        child = cells[:i] + (turn,) + cells[i + 1 :]
        scored.append((i, _minimax(child, opponent(turn), me)))
    return scored


@lru_cache(maxsize=None)
def _minimax(cells: Board, turn: Player, me: Player) -> int:
    result = evaluate_cells(cells)
    if result.winner == me:
        return 1
    if result.winner is not None:
        return -1
    if result.status == DRAW:
        return 0

    scores = [score for _, score in _score_moves(cells, turn, me)]
    if turn == me:
        return max(scores)
    return min(scores)


# ---- player wrapper ----


@dataclass
class MinimaxAI:
    """Computer opponent that always plays a perfect move.

      - MinimaxAI(player="O")
      - choose(game) -> cell index
    """

    player: Player

    def choose(self, game: GameState) -> int:
        if game.current_player != self.player:
            raise ValueError("It is not this AI player's turn")
        return best_move(game, self.player)
