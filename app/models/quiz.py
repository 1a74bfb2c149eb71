from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from app.services.quiz_session import EndReason, SessionState


class PublicQuestion(BaseModel):
    id: int
    question: str = Field(..., description="Énoncé de la question")
    questionImage: Optional[str] = None
    options: List[str] = Field(..., min_length=2, description="Liste des propositions")
    optionImages: Optional[List[Optional[str]]] = None
    points: int
    # On ne renvoie pas correctAnswer côté client tant que la partie n'est pas finie


class StartQuizRequest(BaseModel):
    playerName: str = Field(
        ...,
        min_length=1,
        max_length=64,
        pattern=r"^[a-zA-Z]+$",
        description="Lettres uniquement (pas d'espace, chiffre ni symbole)",
    )
    category: int = Field(default=1, ge=1, description="ID de la catégorie (niveau scolaire)")


class SessionView(BaseModel):
    sessionId: str
    state: SessionState
    mode: str
    playerName: str
    category: int
    total: int
    index: int
    question: Optional[PublicQuestion] = None
    remainingSeconds: int
    durationSeconds: int
    remainingLives: Optional[int] = None
    score: int
    questionsAnswered: int
    correctAnswers: int
    answered: Dict[int, bool]
    visited: Dict[int, bool]
    awaitingNext: bool = False
    # mode révision : réponses modifiables jusqu'à la soumission
    userAnswers: Optional[Dict[int, int]] = None


class AnswerRequest(BaseModel):
    choiceIndex: int = Field(..., ge=0)


class AnswerResponse(BaseModel):
    questionIndex: int
    choiceIndex: int
    isCorrect: Optional[bool] = None
    pointsAwarded: int = 0
    session: SessionView


class NavigateRequest(BaseModel):
    index: int = Field(..., ge=0)


class ReviewItem(BaseModel):
    question: PublicQuestion
    correctAnswer: int
    chosenIndex: Optional[int] = None
    isCorrect: bool


class ResultResponse(BaseModel):
    sessionId: str
    playerName: str
    category: int
    score: int
    questionsAnswered: int
    correctAnswers: int
    timeSpentSeconds: int
    endReason: EndReason
    review: Optional[List[ReviewItem]] = None
