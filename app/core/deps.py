from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.database import get_db
from app.services.quiz_engine import QuizEngine
from app.services.storage import QuizStorage


def get_settings_dep():
    return get_settings()


def get_storage(db: Session = Depends(get_db)) -> QuizStorage:
    """
    Fournit le store du catalogue / des scores en dépendance (DI).
    """
    return QuizStorage(db)


def get_quiz_engine(request: Request) -> QuizEngine:
    # un moteur par application (créé dans create_app)
    return request.app.state.quiz_engine
