from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT, HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND

from app.core.deps import get_storage
from app.core.security import require_admin_pin
from app.db.models import Category, Question, GameSettings
from app.schemas.catalog import (
    CategoryIn,
    CategoryUpdateIn,
    CategoryOut,
    QuestionIn,
    QuestionUpdateIn,
    QuestionOut,
    SettingsOut,
    SettingsUpdateIn,
)
from app.services.storage import QuizStorage

router = APIRouter(prefix="/api", tags=["catalog"])


def question_out(q: Question) -> QuestionOut:
    return QuestionOut(
        id=q.id,
        question=q.question,
        questionImage=q.question_image,
        options=q.options,
        optionImages=q.option_images,
        correctAnswer=q.correct_answer,
        points=q.points,
        categories=q.categories,
    )


def category_out(c: Category) -> CategoryOut:
    return CategoryOut(id=c.id, name=c.name, description=c.description)


def settings_out(s: GameSettings) -> SettingsOut:
    return SettingsOut(
        quizDurationSeconds=s.quiz_duration_seconds,
        lives=s.lives,
        livesEnabled=s.lives_enabled,
        reviewModeEnabled=s.review_mode_enabled,
        pointsPerCorrectAnswer=s.points_per_correct_answer,
        timeBonus=s.time_bonus,
    )


# =========================================================
# QUESTIONS
# =========================================================
@router.get("/questions", response_model=List[QuestionOut])
def list_questions(storage: QuizStorage = Depends(get_storage)):
    return [question_out(q) for q in storage.list_questions()]


@router.get("/questions/{question_id}", response_model=QuestionOut)
def get_question(question_id: int, storage: QuizStorage = Depends(get_storage)):
    q = storage.get_question(question_id)
    if not q:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Question not found")
    return question_out(q)


@router.post("/questions", response_model=QuestionOut, status_code=HTTP_201_CREATED)
def create_question(
    body: QuestionIn,
    storage: QuizStorage = Depends(get_storage),
    _: str = Depends(require_admin_pin),
):
    return question_out(storage.create_question(body))


@router.put("/questions/{question_id}", response_model=QuestionOut)
def update_question(
    question_id: int,
    body: QuestionUpdateIn,
    storage: QuizStorage = Depends(get_storage),
    _: str = Depends(require_admin_pin),
):
    try:
        q = storage.update_question(question_id, body)
    except ValueError as e:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=str(e))
    if not q:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Question not found")
    return question_out(q)


@router.delete("/questions/{question_id}", status_code=HTTP_204_NO_CONTENT)
def delete_question(
    question_id: int,
    storage: QuizStorage = Depends(get_storage),
    _: str = Depends(require_admin_pin),
):
    if not storage.delete_question(question_id):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Question not found")
    return Response(status_code=HTTP_204_NO_CONTENT)


# =========================================================
# CATEGORIES
# =========================================================
@router.get("/categories", response_model=List[CategoryOut])
def list_categories(storage: QuizStorage = Depends(get_storage)):
    return [category_out(c) for c in storage.list_categories()]


@router.post("/categories", response_model=CategoryOut, status_code=HTTP_201_CREATED)
def create_category(
    body: CategoryIn,
    storage: QuizStorage = Depends(get_storage),
    _: str = Depends(require_admin_pin),
):
    return category_out(storage.create_category(body))


@router.put("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    body: CategoryUpdateIn,
    storage: QuizStorage = Depends(get_storage),
    _: str = Depends(require_admin_pin),
):
    c = storage.update_category(category_id, body)
    if not c:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Category not found")
    return category_out(c)


@router.delete("/categories/{category_id}", status_code=HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    storage: QuizStorage = Depends(get_storage),
    _: str = Depends(require_admin_pin),
):
    if not storage.delete_category(category_id):
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Category not found")
    return Response(status_code=HTTP_204_NO_CONTENT)


# =========================================================
# SETTINGS
# =========================================================
@router.get("/settings", response_model=SettingsOut)
def get_game_settings(storage: QuizStorage = Depends(get_storage)):
    return settings_out(storage.get_settings())


@router.put("/settings", response_model=SettingsOut)
def update_game_settings(
    body: SettingsUpdateIn,
    storage: QuizStorage = Depends(get_storage),
    _: str = Depends(require_admin_pin),
):
    return settings_out(storage.update_settings(body))
