"""FastAPI session layer driving PerfectXO games for a browser front end."""

from __future__ import annotations

import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import threading

from fastapi import BackgroundTasks, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ai import MinimaxAI
from .game import MARKS, GameState, InvalidMove, Player, opponent

logger = logging.getLogger(__name__)

MODES: Tuple[str, ...] = ("pvc", "pvp")
AI_THINK_DELAY: Tuple[float, float] = (0.25, 0.35)


@dataclass
class ScoreTally:
    """Completed games per result for one session."""

    x: int = 0
    o: int = 0
    draws: int = 0

    def record(self, winner: Optional[Player]) -> None:
        if winner == "X":
            self.x += 1
        elif winner == "O":
            self.o += 1
        else:
            self.draws += 1

    def as_dict(self) -> Dict[str, int]:
        return {"X": self.x, "O": self.o, "draws": self.draws}


@dataclass
class GameSession:
    """Container for an active game, its settings and the running tally."""

    game: GameState
    mode: str = "pvc"
    human_mark: Player = "X"
    scores: ScoreTally = field(default_factory=ScoreTally)
    move_log: List[Dict[str, int | str]] = field(default_factory=list)
    ai_pending: bool = False
    # Bumped on every move and restart so late AI results can be discarded
    generation: int = 0
    tallied: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def ai(self) -> Optional[MinimaxAI]:
        if self.mode != "pvc":
            return None
        return MinimaxAI(player=opponent(self.human_mark))


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="PerfectXO", description="Tic-tac-toe against a perfect opponent")


def _check_mode(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in MODES:
        raise ValueError(f"Unsupported mode {value!r}. Choose one of {', '.join(MODES)}.")
    return value


def _check_mark(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in MARKS:
        raise ValueError(f"Unsupported mark {value!r}. Choose X or O.")
    return value


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    mode: str = Field(default="pvc", description="pvc: versus computer, pvp: two humans")
    human_mark: str = Field(default="X", alias="humanMark")

    @field_validator("mode")
    @classmethod
    def ensure_supported_mode(cls, value: str) -> str:
        return _check_mode(value)

    @field_validator("human_mark")
    @classmethod
    def ensure_supported_mark(cls, value: str) -> str:
        return _check_mark(value)


class RestartRequest(BaseModel):
    """Optional new settings applied when the board is cleared."""

    model_config = ConfigDict(populate_by_name=True)

    mode: Optional[str] = None
    human_mark: Optional[str] = Field(default=None, alias="humanMark")

    @field_validator("mode")
    @classmethod
    def ensure_supported_mode(cls, value: Optional[str]) -> Optional[str]:
        return _check_mode(value)

    @field_validator("human_mark")
    @classmethod
    def ensure_supported_mark(cls, value: Optional[str]) -> Optional[str]:
        return _check_mark(value)


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    index: int = Field(ge=0, le=8)


def _create_session(mode: str, human_mark: Player) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    session = GameSession(game=GameState(), mode=mode, human_mark=human_mark)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("created game %s (mode=%s, human=%s)", session_id, mode, human_mark)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _ai_due(session: GameSession) -> bool:
    ai = session.ai
    game = session.game
    return ai is not None and not game.is_over() and game.current_player == ai.player


def _play(session: GameSession, game_id: str, index: int) -> None:
    """Apply a move for the side to move; caller holds the lock."""
    player = session.game.current_player
    session.game.apply_move(index, player)
    session.generation += 1
    session.move_log.append({"player": player, "index": index})

    outcome = session.game.outcome()
    if not outcome.in_progress and not session.tallied:
        session.scores.record(outcome.winner)
        session.tallied = True
        logger.info("game %s finished: %s", game_id, outcome.winner or "draw")


def _run_ai_turn(game_id: str, generation: int) -> None:
    session = SESSIONS.get(game_id)
    if not session:
        return

    with session.lock:
        if session.generation != generation:
            return
        ai = session.ai
        if ai is None or not _ai_due(session):
            session.ai_pending = False
            return
        snapshot = session.game.clone()

    time.sleep(max(0.0, random.uniform(*AI_THINK_DELAY)))
    index = ai.choose(snapshot)

    with session.lock:
        if session.generation != generation:
            logger.debug("game %s changed while the AI was thinking; dropping move", game_id)
            return
        try:
            _play(session, game_id, index)
        finally:
            session.ai_pending = False


def _schedule_ai(
    game_id: str, session: GameSession, background_tasks: Optional[BackgroundTasks]
) -> None:
    """Queue the computer's turn when it is due; caller holds the lock."""
    if not _ai_due(session):
        return
    session.ai_pending = True
    if background_tasks is not None:
        background_tasks.add_task(_run_ai_turn, game_id, session.generation)


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    with session.lock:
        game = session.game
        outcome = game.outcome()
        ai = session.ai

        state: Dict[str, object] = {
            "id": game_id,
            "cells": [c or "" for c in game.cells],
            "currentPlayer": game.current_player,
            "status": outcome.status,
            "winner": outcome.winner,
            "winningLine": list(outcome.line) if outcome.line else None,
            "emptyIndices": game.empty_indices(),
            "mode": session.mode,
            "humanMark": session.human_mark,
            "computerMark": ai.player if ai else None,
            "scores": session.scores.as_dict(),
            "moveLog": list(session.move_log),
            "aiPending": session.ai_pending,
        }
        if session.move_log:
            state["lastMove"] = session.move_log[-1]
        return state


def _apply_player_move(
    game_id: str,
    session: GameSession,
    index: int,
    background_tasks: Optional[BackgroundTasks] = None,
) -> None:
    with session.lock:
        if session.game.is_over():
            raise HTTPException(status_code=400, detail="Game already finished")

        if session.ai_pending:
            raise HTTPException(status_code=400, detail="Computer is completing its move")

        ai = session.ai
        if ai is not None and session.game.current_player == ai.player:
            raise HTTPException(status_code=400, detail="It is the computer's turn")

        try:
            _play(session, game_id, index)
        except InvalidMove as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        _schedule_ai(game_id, session, background_tasks)


@app.post("/api/game")
def create_game(
    request: NewGameRequest, background_tasks: BackgroundTasks
) -> Dict[str, object]:
    game_id, session = _create_session(request.mode, request.human_mark)
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
    _apply_player_move(game_id, session, request.index, background_tasks)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/restart")
def restart_game(
    game_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[RestartRequest] = None,
) -> Dict[str, object]:
    session = _get_session(game_id)
    with session.lock:
        if request is not None:
            if request.mode is not None:
                session.mode = request.mode
            if request.human_mark is not None:
                session.human_mark = request.human_mark
        session.game.reset()
        session.generation += 1
        session.move_log = []
        session.ai_pending = False
        session.tallied = False
        logger.info(
            "restarted game %s (mode=%s, human=%s)", game_id, session.mode, session.human_mark
        )
        _schedule_ai(game_id, session, background_tasks)
    return _serialize_session(game_id, session)
