from fastapi import APIRouter, Depends, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from app.core.deps import get_quiz_engine, get_storage
from app.models.quiz import (
    StartQuizRequest,
    SessionView,
    AnswerRequest,
    AnswerResponse,
    NavigateRequest,
    ResultResponse,
)
from app.services.quiz_engine import QuizEngine
from app.services.storage import QuizStorage

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


@router.post("/sessions", response_model=SessionView, status_code=HTTP_201_CREATED)
def start_quiz(
    body: StartQuizRequest,
    engine: QuizEngine = Depends(get_quiz_engine),
    storage: QuizStorage = Depends(get_storage),
):
    # instantané lu une seule fois : les modifs admin ne touchent pas une partie en cours
    questions = storage.load_question_bank()
    settings = storage.load_quiz_settings()
    return engine.start(body, questions, settings)


@router.get("/sessions/{session_id}", response_model=SessionView)
def get_quiz(session_id: str, engine: QuizEngine = Depends(get_quiz_engine)):
    return engine.view(session_id)


@router.post("/sessions/{session_id}/answer", response_model=AnswerResponse)
def answer_quiz(session_id: str, body: AnswerRequest, engine: QuizEngine = Depends(get_quiz_engine)):
    return engine.answer(session_id, body)


@router.post("/sessions/{session_id}/navigate", response_model=SessionView)
def navigate_quiz(session_id: str, body: NavigateRequest, engine: QuizEngine = Depends(get_quiz_engine)):
    return engine.navigate(session_id, body)


@router.post("/sessions/{session_id}/review", response_model=SessionView)
def open_review(session_id: str, engine: QuizEngine = Depends(get_quiz_engine)):
    return engine.open_review(session_id)


@router.post("/sessions/{session_id}/submit", response_model=ResultResponse)
def submit_quiz(session_id: str, engine: QuizEngine = Depends(get_quiz_engine)):
    return engine.submit(session_id)


@router.get("/sessions/{session_id}/result", response_model=ResultResponse)
def result_quiz(session_id: str, engine: QuizEngine = Depends(get_quiz_engine)):
    return engine.result(session_id)


@router.delete("/sessions/{session_id}", status_code=HTTP_204_NO_CONTENT)
def abandon_quiz(session_id: str, engine: QuizEngine = Depends(get_quiz_engine)):
    engine.abandon(session_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
