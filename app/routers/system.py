from fastapi import APIRouter, Depends

from app.core.config import Settings
from app.core.deps import get_quiz_engine, get_settings_dep
from app.services.quiz_engine import QuizEngine

router = APIRouter(tags=["system"])

@router.get("/health")
def health(engine: QuizEngine = Depends(get_quiz_engine), s: Settings = Depends(get_settings_dep)):
    return {"status": "ok", "version": s.APP_VERSION, "activeSessions": engine.active_count}

@router.get("/version")
def version(s: Settings = Depends(get_settings_dep)):
    return {"name": s.APP_NAME, "version": s.APP_VERSION, "env": s.APP_ENV}
