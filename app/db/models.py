from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    String,
    DateTime,
    Integer,
    Boolean,
    Text,
    JSON,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base


# ============================================================
# CATALOGUE (questions / catégories / réglages)
# ============================================================

class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str] = mapped_column(String(255), default="", nullable=False)


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    question_image: Mapped[str | None] = mapped_column(String(500), nullable=True)

    options: Mapped[list] = mapped_column(JSON, nullable=False)  # ["A", "B", ...]
    option_images: Mapped[list | None] = mapped_column(JSON, nullable=True)

    correct_answer: Mapped[int] = mapped_column(Integer, nullable=False)  # index 0-based
    points: Mapped[int] = mapped_column(Integer, default=50, nullable=False)

    # multi-catégories : [1, 3]
    categories: Mapped[list] = mapped_column(JSON, default=lambda: [1], nullable=False)


class GameSettings(Base):
    __tablename__ = "settings"

    # une seule ligne (id=1)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    quiz_duration_seconds: Mapped[int] = mapped_column(Integer, default=300, nullable=False)
    lives: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    lives_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    review_mode_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    points_per_correct_answer: Mapped[int] = mapped_column(Integer, default=50, nullable=False)

    # legacy : conservé pour l'admin, jamais appliqué au score
    time_bonus: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


# ============================================================
# SCORES
# ============================================================

class GameSession(Base):
    __tablename__ = "game_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_name: Mapped[str] = mapped_column(String(64), nullable=False)

    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    questions_answered: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    category: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    time_spent_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)


class LeaderboardEntry(Base):
    __tablename__ = "leaderboards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_name: Mapped[str] = mapped_column(String(64), nullable=False)

    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    questions_answered: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    time_spent_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    category: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
