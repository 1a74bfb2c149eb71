from typing import List, Optional

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from app.core.deps import get_storage
from app.core.security import require_admin_pin
from app.db.models import GameSession
from app.schemas.catalog import GameSessionIn, GameSessionOut, LeaderboardItem, LeaderboardResponse
from app.services.storage import QuizStorage

router = APIRouter(prefix="/api", tags=["scores"])


def game_session_out(gs: GameSession) -> GameSessionOut:
    return GameSessionOut(
        id=gs.id,
        playerName=gs.player_name,
        score=gs.score,
        questionsAnswered=gs.questions_answered,
        correctAnswers=gs.correct_answers,
        category=gs.category,
        timeSpentSeconds=gs.time_spent_seconds,
    )


@router.post("/game-sessions", response_model=GameSessionOut, status_code=HTTP_201_CREATED)
def create_game_session(body: GameSessionIn, storage: QuizStorage = Depends(get_storage)):
    return game_session_out(storage.create_game_session(body))


@router.get("/game-sessions", response_model=List[GameSessionOut])
def list_game_sessions(
    storage: QuizStorage = Depends(get_storage),
    _: str = Depends(require_admin_pin),
):
    return [game_session_out(gs) for gs in storage.list_game_sessions()]


@router.get("/leaderboard", response_model=LeaderboardResponse)
def leaderboard(
    category: Optional[int] = None,
    limit: int = 20,
    storage: QuizStorage = Depends(get_storage),
):
    limit = max(1, min(100, limit))

    rows = storage.leaderboard(limit=limit, category=category)
    items = [
        LeaderboardItem(
            rank=i + 1,
            playerName=r.player_name,
            score=r.score,
            questionsAnswered=r.questions_answered,
            correctAnswers=r.correct_answers,
            timeSpentSeconds=r.time_spent_seconds,
            category=r.category,
        )
        for i, r in enumerate(rows)
    ]
    return LeaderboardResponse(items=items, category=category or None, limit=limit)
