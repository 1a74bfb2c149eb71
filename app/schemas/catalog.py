from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


# -------------------
# Categories
# -------------------
class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str = Field(default="", max_length=255)

class CategoryUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=255)

class CategoryOut(BaseModel):
    id: int
    name: str
    description: str


# -------------------
# Questions
# -------------------
class QuestionIn(BaseModel):
    question: str = Field(min_length=1, description="Énoncé de la question")
    questionImage: Optional[str] = None
    options: List[str] = Field(min_length=2, max_length=4)
    optionImages: Optional[List[Optional[str]]] = None
    correctAnswer: int = Field(ge=0, le=3)
    points: int = Field(default=50, ge=1)
    categories: List[int] = Field(default_factory=lambda: [1], min_length=1)

    @model_validator(mode="after")
    def _check_correct_answer(self):
        if self.correctAnswer >= len(self.options):
            raise ValueError("correctAnswer doit désigner une des options.")
        if self.optionImages is not None and len(self.optionImages) > len(self.options):
            raise ValueError("optionImages ne peut pas dépasser le nombre d'options.")
        return self

class QuestionUpdateIn(BaseModel):
    question: Optional[str] = Field(default=None, min_length=1)
    questionImage: Optional[str] = None
    options: Optional[List[str]] = Field(default=None, min_length=2, max_length=4)
    optionImages: Optional[List[Optional[str]]] = None
    correctAnswer: Optional[int] = Field(default=None, ge=0, le=3)
    points: Optional[int] = Field(default=None, ge=1)
    categories: Optional[List[int]] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _check_not_null(self):
        # absent = inchangé ; null explicite interdit sur les colonnes obligatoires
        for name in ("question", "options", "correctAnswer", "points", "categories"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} ne peut pas être null.")
        if self.options is not None and self.optionImages is not None and len(self.optionImages) > len(self.options):
            raise ValueError("optionImages ne peut pas dépasser le nombre d'options.")
        return self

class QuestionOut(BaseModel):
    id: int
    question: str
    questionImage: Optional[str] = None
    options: List[str]
    optionImages: Optional[List[Optional[str]]] = None
    correctAnswer: int
    points: int
    categories: List[int]


# -------------------
# Settings
# -------------------
class SettingsOut(BaseModel):
    quizDurationSeconds: int
    lives: int
    livesEnabled: bool
    reviewModeEnabled: bool
    pointsPerCorrectAnswer: int
    timeBonus: int

class SettingsUpdateIn(BaseModel):
    # bornes du formulaire admin : 1 à 30 minutes, 1 à 10 vies
    quizDurationSeconds: Optional[int] = Field(default=None, ge=60, le=1800)
    lives: Optional[int] = Field(default=None, ge=1, le=10)
    livesEnabled: Optional[bool] = None
    reviewModeEnabled: Optional[bool] = None
    pointsPerCorrectAnswer: Optional[int] = Field(default=None, ge=1)
    timeBonus: Optional[int] = Field(default=None, ge=0)


# -------------------
# Scores
# -------------------
class GameSessionIn(BaseModel):
    playerName: str = Field(min_length=1, max_length=64)
    score: int = Field(default=0, ge=0)
    questionsAnswered: int = Field(default=0, ge=0)
    correctAnswers: int = Field(default=0, ge=0)
    category: Optional[int] = None
    timeSpentSeconds: Optional[int] = Field(default=None, ge=0)

class GameSessionOut(GameSessionIn):
    id: int

class LeaderboardItem(BaseModel):
    rank: int
    playerName: str
    score: int
    questionsAnswered: int
    correctAnswers: int
    timeSpentSeconds: Optional[int] = None
    category: int

class LeaderboardResponse(BaseModel):
    items: List[LeaderboardItem]
    category: Optional[int] = None
    limit: int


# -------------------
# Admin
# -------------------
class PinIn(BaseModel):
    pin: str = Field(min_length=1, max_length=32)
