"""PerfectXO package exposing game rules, the minimax opponent, and the web API."""

from .ai import MinimaxAI, SearchPreconditionError, best_move
from .game import GameState, InvalidMove, Outcome
from .ui import app

__all__ = [
    "GameState",
    "InvalidMove",
    "MinimaxAI",
    "Outcome",
    "SearchPreconditionError",
    "app",
    "best_move",
]
