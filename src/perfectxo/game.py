"""Core rules for PerfectXO: the 3x3 grid, turn order and outcome detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

Player = str  # "X" or "O"
Cell = Optional[Player]  # None for an empty cell

MARKS: Tuple[Player, Player] = ("X", "O")

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

IN_PROGRESS = "in_progress"
WIN = "win"
DRAW = "draw"


def opponent(player: Player) -> Player:
    return "O" if player == "X" else "X"


# ---------- Errors ----------


class InvalidMove(ValueError):
    """Base class for rejected moves; the state is left untouched."""


class OutOfRange(InvalidMove):
    def __init__(self, index: object) -> None:
        super().__init__(f"Cell index {index!r} is outside 0..8")
        self.index = index


class CellOccupied(InvalidMove):
    def __init__(self, index: int) -> None:
        super().__init__(f"Cell {index} already occupied")
        self.index = index


class GameAlreadyOver(InvalidMove):
    def __init__(self) -> None:
        super().__init__("Game already finished")


class OutOfTurn(InvalidMove):
    def __init__(self, mark: Player, expected: Player) -> None:
        super().__init__(f"It is {expected}'s turn, not {mark}'s")
        self.mark = mark
        self.expected = expected


# ---------- Outcome ----------


@dataclass(frozen=True)
class Outcome:
    """Result of scanning a grid: in progress, a win for one mark, or a draw."""

    status: str
    winner: Optional[Player] = None
    line: Optional[Tuple[int, int, int]] = None

    @property
    def in_progress(self) -> bool:
        return self.status == IN_PROGRESS

    @property
    def is_draw(self) -> bool:
        return self.status == DRAW


def evaluate_cells(cells: Sequence[Cell]) -> Outcome:
    """Classify any 9-cell sequence; shared by GameState and the search."""
    for a, b, c in WINNING_LINES:
        v = cells[a]
        if v is not None and v == cells[b] == cells[c]:
            return Outcome(WIN, winner=v, line=(a, b, c))
    if all(cell is not None for cell in cells):
        return Outcome(DRAW)
    return Outcome(IN_PROGRESS)


# ---------- Game ----------


@dataclass
class GameState:
    # Row-major: index = row * 3 + col
    cells: List[Cell] = field(default_factory=lambda: [None] * 9)
    current_player: Player = "X"

    def __post_init__(self) -> None:
        if len(self.cells) != 9:
            raise ValueError("A board has exactly 9 cells")
        for cell in self.cells:
            if cell is not None and cell not in MARKS:
                raise ValueError(f"Unknown mark {cell!r}")
        if self.current_player not in MARKS:
            raise ValueError(f"Unknown player {self.current_player!r}")
        self.cells = list(self.cells)

    # ---- API used by UI & AI ----

    def apply_move(self, index: int, mark: Player) -> None:
        """Place ``mark`` at ``index`` and pass the turn to the other side.

        Raises one of the :class:`InvalidMove` subclasses without touching
        the board when the move is not legal.
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise OutOfRange(index)
        if not 0 <= index <= 8:
            raise OutOfRange(index)
        if self.cells[index] is not None:
            raise CellOccupied(index)
        if not self.outcome().in_progress:
            raise GameAlreadyOver()
        if mark != self.current_player:
            raise OutOfTurn(mark, self.current_player)

        self.cells[index] = mark
        self.current_player = opponent(mark)

    def outcome(self) -> Outcome:
        return evaluate_cells(self.cells)

    def empty_indices(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c is None]

    def reset(self) -> None:
        self.cells = [None] * 9
        self.current_player = "X"

    # ---- helpers ----

    def is_over(self) -> bool:
        return not self.outcome().in_progress

    def is_empty(self) -> bool:
        return all(c is None for c in self.cells)

    def winning_line(self) -> Optional[Tuple[int, int, int]]:
        return self.outcome().line

    def clone(self) -> "GameState":
        return GameState(cells=self.cells.copy(), current_player=self.current_player)
