from typing import List, Optional

from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from app.db.models import Category, Question, GameSettings, GameSession, LeaderboardEntry
from app.schemas.catalog import (
    CategoryIn,
    CategoryUpdateIn,
    QuestionIn,
    QuestionUpdateIn,
    SettingsUpdateIn,
    GameSessionIn,
)
from app.services.quiz_session import QuizQuestion, QuizSettings

DEFAULT_CATEGORIES = [
    ("Category 1", "Grades 3-4"),
    ("Category 2", "Grades 5-6"),
    ("Category 3", "Grades 7-8"),
    ("Category 4", "Grades 9-10"),
    ("Category 5", "Grades 11-12"),
]

DEFAULT_QUESTIONS = [
    ("Which of these is NOT a programming language?", ["Jabbascript", "Python", "Java", "C++"], 0),
    (
        "What does HTML stand for?",
        [
            "Hyper Text Markup Language",
            "High Technology Modern Language",
            "Hyperlink and Text Markup Language",
            "Home Tool Markup Language",
        ],
        0,
    ),
    ("Which company created JavaScript?", ["Microsoft", "Netscape", "Apple", "Google"], 1),
    ("Which symbol is used for single-line comments in JavaScript?", ["//", "/* */", "#", "<!---->"], 0),
    (
        "What is the correct way to write a JavaScript array?",
        [
            "var colors = ['red', 'green', 'blue']",
            "var colors = (1:'red', 2:'green', 3:'blue')",
            "var colors = 'red', 'green', 'blue'",
            "var colors = 1 = ('red'), 2 = ('green'), 3 = ('blue')",
        ],
        0,
    ),
]

SETTINGS_ID = 1

# nom API (camelCase) -> colonne
_QUESTION_FIELDS = {
    "question": "question",
    "questionImage": "question_image",
    "options": "options",
    "optionImages": "option_images",
    "correctAnswer": "correct_answer",
    "points": "points",
    "categories": "categories",
}

_SETTINGS_FIELDS = {
    "quizDurationSeconds": "quiz_duration_seconds",
    "lives": "lives",
    "livesEnabled": "lives_enabled",
    "reviewModeEnabled": "review_mode_enabled",
    "pointsPerCorrectAnswer": "points_per_correct_answer",
    "timeBonus": "time_bonus",
}


class QuizStorage:
    """
    Accès au catalogue (questions, catégories, réglages) et aux scores.
    (V1 SQLAlchemy : le backend est interchangeable via DATABASE_URL)
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------- seed ----------

    def seed_defaults(self) -> None:
        """
        Remplit un store vide avec les catégories / questions / réglages par défaut.
        """
        if self.db.execute(select(Category.id).limit(1)).first() is None:
            for name, description in DEFAULT_CATEGORIES:
                self.db.add(Category(name=name, description=description))
        if self.db.execute(select(Question.id).limit(1)).first() is None:
            for text, options, correct in DEFAULT_QUESTIONS:
                self.db.add(Question(question=text, options=options, correct_answer=correct, points=50, categories=[1]))
        if self.db.get(GameSettings, SETTINGS_ID) is None:
            self.db.add(GameSettings(id=SETTINGS_ID))
        self.db.commit()

    # ---------- questions ----------

    def list_questions(self) -> List[Question]:
        return list(self.db.execute(select(Question).order_by(Question.id)).scalars())

    def get_question(self, question_id: int) -> Optional[Question]:
        return self.db.get(Question, question_id)

    def create_question(self, data: QuestionIn) -> Question:
        q = Question(**{col: getattr(data, key) for key, col in _QUESTION_FIELDS.items()})
        if "points" not in data.model_fields_set:
            q.points = self.get_settings().points_per_correct_answer
        self.db.add(q)
        self.db.commit()
        self.db.refresh(q)
        return q

    def update_question(self, question_id: int, data: QuestionUpdateIn) -> Optional[Question]:
        q = self.get_question(question_id)
        if q is None:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(q, _QUESTION_FIELDS[key], value)
        if q.correct_answer >= len(q.options):
            self.db.rollback()
            raise ValueError("correctAnswer doit désigner une des options.")
        if q.option_images and len(q.option_images) > len(q.options):
            self.db.rollback()
            raise ValueError("optionImages ne peut pas dépasser le nombre d'options.")
        self.db.commit()
        self.db.refresh(q)
        return q

    def delete_question(self, question_id: int) -> bool:
        q = self.get_question(question_id)
        if q is None:
            return False
        self.db.delete(q)
        self.db.commit()
        return True

    # ---------- categories ----------

    def list_categories(self) -> List[Category]:
        return list(self.db.execute(select(Category).order_by(Category.id)).scalars())

    def create_category(self, data: CategoryIn) -> Category:
        c = Category(name=data.name, description=data.description)
        self.db.add(c)
        self.db.commit()
        self.db.refresh(c)
        return c

    def update_category(self, category_id: int, data: CategoryUpdateIn) -> Optional[Category]:
        c = self.db.get(Category, category_id)
        if c is None:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(c, key, value)
        self.db.commit()
        self.db.refresh(c)
        return c

    def delete_category(self, category_id: int) -> bool:
        c = self.db.get(Category, category_id)
        if c is None:
            return False
        self.db.delete(c)
        self.db.commit()
        return True

    # ---------- settings ----------

    def get_settings(self) -> GameSettings:
        s = self.db.get(GameSettings, SETTINGS_ID)
        if s is None:
            s = GameSettings(id=SETTINGS_ID)
            self.db.add(s)
            self.db.commit()
            self.db.refresh(s)
        return s

    def update_settings(self, data: SettingsUpdateIn) -> GameSettings:
        s = self.get_settings()
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(s, _SETTINGS_FIELDS[key], value)
        self.db.commit()
        self.db.refresh(s)
        return s

    # ---------- scores ----------

    def create_game_session(self, data: GameSessionIn) -> GameSession:
        gs = GameSession(
            player_name=data.playerName,
            score=data.score,
            questions_answered=data.questionsAnswered,
            correct_answers=data.correctAnswers,
            category=data.category,
            time_spent_seconds=data.timeSpentSeconds,
        )
        self.db.add(gs)
        self.db.commit()
        self.db.refresh(gs)
        return gs

    def list_game_sessions(self) -> List[GameSession]:
        return list(self.db.execute(select(GameSession).order_by(GameSession.id)).scalars())

    def leaderboard(self, limit: int = 20, category: Optional[int] = None) -> List[LeaderboardEntry]:
        stmt = select(LeaderboardEntry)
        # 0 = toutes catégories
        if category:
            stmt = stmt.where(LeaderboardEntry.category == category)
        stmt = stmt.order_by(desc(LeaderboardEntry.score), LeaderboardEntry.id.asc()).limit(limit)
        return list(self.db.execute(stmt).scalars())

    # ---------- snapshot pour le moteur ----------

    def load_question_bank(self) -> List[QuizQuestion]:
        return [to_quiz_question(q) for q in self.list_questions()]

    def load_quiz_settings(self) -> QuizSettings:
        return to_quiz_settings(self.get_settings())


def to_quiz_question(q: Question) -> QuizQuestion:
    return QuizQuestion(
        id=q.id,
        text=q.question,
        options=tuple(q.options),
        correct_answer=q.correct_answer,
        points=q.points,
        categories=tuple(q.categories or [1]),
        image=q.question_image,
        option_images=tuple(q.option_images) if q.option_images else None,
    )


def to_quiz_settings(s: GameSettings) -> QuizSettings:
    return QuizSettings(
        duration_seconds=s.quiz_duration_seconds,
        lives_enabled=s.lives_enabled,
        lives=s.lives,
        points_per_correct_answer=s.points_per_correct_answer,
        time_bonus=s.time_bonus,
        review_mode_enabled=s.review_mode_enabled,
    )
