from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional

import requests
from sqlalchemy.orm import Session

from app.db.models import GameSession, LeaderboardEntry
from app.services.quiz_session import FinalTally

logger = logging.getLogger(__name__)


def leaderboard_payload(tally: FinalTally) -> dict:
    return {
        "player_name": tally.player_name,
        "score": tally.score,
        "questions_answered": tally.questions_answered,
        "correct_answers": tally.correct_answers,
        "time_spent_seconds": tally.time_spent_seconds or None,
        "category": tally.category,
    }


class ScoreReporter:
    """
    Persiste le score final : une ligne `game_sessions` (store local) + une entrée leaderboard.
    Best-effort : `accept()` rend la main tout de suite, un échec est loggé et n'altère rien.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        webhook_url: Optional[str] = None,
        timeout: float = 5.0,
    ) -> None:
        self._session_factory = session_factory
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="score-reporter")
        self._futures: List[Future] = []

    def accept(self, tally: FinalTally) -> None:
        self._futures = [f for f in self._futures if not f.done()]
        try:
            self._futures.append(self._executor.submit(self.persist, tally))
        except RuntimeError as e:
            # executor déjà arrêté (fin du lifespan)
            logger.warning("Score not reported for %s: %s", tally.player_name, e)

    def persist(self, tally: FinalTally) -> None:
        try:
            self._save_local(tally)
        except Exception as e:
            logger.warning("Failed to save game session locally: %s", e)
        try:
            self._save_leaderboard(tally)
        except Exception as e:
            logger.warning("Failed to save score to leaderboard: %s", e)

    def drain(self, timeout: Optional[float] = None) -> None:
        """
        Attend la fin des écritures en cours (arrêt de l'app, tests).
        """
        wait(self._futures, timeout=timeout)
        self._futures = [f for f in self._futures if not f.done()]

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    # ---------- internals ----------

    def _save_local(self, tally: FinalTally) -> None:
        db = self._session_factory()
        try:
            db.add(
                GameSession(
                    player_name=tally.player_name,
                    score=tally.score,
                    questions_answered=tally.questions_answered,
                    correct_answers=tally.correct_answers,
                    category=tally.category,
                    time_spent_seconds=tally.time_spent_seconds,
                )
            )
            db.commit()
        finally:
            db.close()

    def _save_leaderboard(self, tally: FinalTally) -> None:
        payload = leaderboard_payload(tally)
        db = self._session_factory()
        try:
            db.add(LeaderboardEntry(**payload))
            db.commit()
        finally:
            db.close()

        if self.webhook_url:
            r = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
            r.raise_for_status()
