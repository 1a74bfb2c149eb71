"""
Machine à états d'une session de quiz (une partie, des règles acceptées jusqu'au score final).

Le temps est virtuel : la session possède sa propre horloge (`SessionClock`) qui n'avance
que lorsqu'on l'appelle via `advance_time()`. Le tic d'une seconde et les délais d'affichage
(feedback / accusé de réception) sont des échéances de la même file, traitées dans l'ordre.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


# ---------- erreurs ----------

class QuizError(Exception):
    """Base des erreurs du moteur de quiz."""


class NoQuestionsAvailable(QuizError):
    def __init__(self) -> None:
        super().__init__("No questions available. Please add some questions in the admin panel.")


class ActionRejected(QuizError):
    """Action joueur refusée : aucun état n'a été modifié."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class IncompleteSubmission(ActionRejected):
    def __init__(self, missing: List[int]) -> None:
        super().__init__(f"{len(missing)} question(s) sans réponse.")
        self.missing = missing


# ---------- données ----------

@dataclass(frozen=True)
class QuizQuestion:
    id: int
    text: str
    options: Sequence[str]
    correct_answer: int
    points: int = 50
    categories: Sequence[int] = (1,)
    image: Optional[str] = None
    option_images: Optional[Sequence[Optional[str]]] = None


@dataclass(frozen=True)
class QuizSettings:
    duration_seconds: int = 300
    lives_enabled: bool = True
    lives: int = 5
    points_per_correct_answer: int = 50
    time_bonus: int = 0  # legacy, jamais appliqué
    review_mode_enabled: bool = False

    def __post_init__(self) -> None:
        if self.duration_seconds <= 0:
            raise ValueError("duration_seconds doit être positif")
        if self.lives_enabled and self.lives <= 0:
            raise ValueError("lives doit être positif quand les vies sont activées")


class SessionState(str, Enum):
    loading = "loading"
    running = "running"
    review_screen = "review_screen"
    submitted = "submitted"
    ended = "ended"


class EndReason(str, Enum):
    time_up = "time_up"
    all_answered = "all_answered"
    out_of_lives = "out_of_lives"
    submitted = "submitted"
    abandoned = "abandoned"


@dataclass
class ReviewPayload:
    questions: List[QuizQuestion]
    user_answers: Dict[int, int]


@dataclass
class FinalTally:
    score: int
    questions_answered: int
    correct_answers: int
    time_spent_seconds: int
    category: int
    player_name: str
    end_reason: EndReason
    review_payload: Optional[ReviewPayload] = None


@dataclass
class AnswerOutcome:
    question_index: int
    choice_index: int
    # None en mode révision (pas de feedback)
    is_correct: Optional[bool] = None
    points_awarded: int = 0


# ---------- horloge ----------

@dataclass(order=True)
class _Scheduled:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class SessionClock:
    """
    File d'échéances ordonnée par (échéance, ordre d'inscription).
    """

    def __init__(self) -> None:
        self.now: float = 0.0
        self._queue: List[_Scheduled] = []
        self._seq = itertools.count()

    def schedule(self, delay: float, callback: Callable[[], None]) -> _Scheduled:
        item = _Scheduled(due=self.now + delay, seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, item)
        return item

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("le temps ne recule pas")
        target = self.now + seconds
        while self._queue and self._queue[0].due <= target:
            item = heapq.heappop(self._queue)
            self.now = max(self.now, item.due)
            if not item.cancelled:
                item.callback()
        self.now = target

    def cancel_all(self) -> None:
        for item in self._queue:
            item.cancelled = True
        self._queue.clear()

    @property
    def pending(self) -> int:
        return sum(1 for item in self._queue if not item.cancelled)


# ---------- sélection ----------

def select_questions(
    bank: Sequence[QuizQuestion],
    category_id: int,
    rng: Optional[random.Random] = None,
) -> List[QuizQuestion]:
    """
    Filtre la banque par catégorie puis mélange une fois pour toute la session.
    Catégorie vide -> repli sur la banque entière ; banque vide -> NoQuestionsAvailable.
    """
    if not bank:
        raise NoQuestionsAvailable()

    filtered = [q for q in bank if category_id in q.categories]
    if not filtered:
        logger.info("Catégorie %s sans question : repli sur la banque complète (%d)", category_id, len(bank))
        filtered = list(bank)

    rng = rng or random.Random()
    return rng.sample(filtered, len(filtered))


def find_next_unanswered(
    total: int,
    current: int,
    is_answered: Callable[[int], bool],
) -> Optional[int]:
    """
    Cherche dans [current+1, total) puis [0, current). None = plus rien à répondre.
    """
    for i in range(current + 1, total):
        if not is_answered(i):
            return i
    for i in range(0, current):
        if not is_answered(i):
            return i
    return None


# ---------- modes ----------

class QuizMode:
    """Stratégie propre à un mode : réponse, avancement, navigation, soumission, fin du temps."""

    name = "base"
    review = False

    def is_answered(self, session: "QuizSession", index: int) -> bool:
        raise NotImplementedError

    def answer(self, session: "QuizSession", choice_index: int) -> AnswerOutcome:
        raise NotImplementedError

    def advance(self, session: "QuizSession") -> None:
        raise NotImplementedError

    def check_navigation(self, session: "QuizSession", index: int) -> None:
        pass

    def submit(self, session: "QuizSession") -> FinalTally:
        raise ActionRejected("La soumission n'existe qu'en mode révision.")

    def on_time_up(self, session: "QuizSession") -> None:
        raise NotImplementedError


class ImmediateFeedbackMode(QuizMode):
    name = "immediate"

    def is_answered(self, session, index):
        return session.answered.get(index, False)

    def answer(self, session, choice_index):
        idx = session.current_index
        if self.is_answered(session, idx):
            raise ActionRejected("Question déjà répondue.")

        question = session.order[idx]
        session.user_answers[idx] = choice_index
        session.answered[idx] = True

        is_correct = choice_index == question.correct_answer
        points = 0
        if is_correct:
            # score plat : les points de la question, sans bonus de temps
            points = question.points
            session.score += points
            session.correct_answers += 1
        elif session.settings.lives_enabled:
            session.remaining_lives -= 1
        session.questions_answered += 1

        session.defer(session.feedback_delay, self.advance)
        return AnswerOutcome(idx, choice_index, is_correct=is_correct, points_awarded=points)

    def advance(self, session):
        if session.settings.lives_enabled and session.remaining_lives <= 0:
            session.end(EndReason.out_of_lives)
            return
        nxt = find_next_unanswered(len(session.order), session.current_index, lambda i: self.is_answered(session, i))
        if nxt is None:
            session.end(EndReason.all_answered)
            return
        session.move_to(nxt)

    def check_navigation(self, session, index):
        if self.is_answered(session, index):
            raise ActionRejected("Question déjà répondue.")

    def on_time_up(self, session):
        session.end(EndReason.time_up)


class ReviewMode(QuizMode):
    name = "review"
    review = True

    def is_answered(self, session, index):
        return index in session.user_answers

    def answer(self, session, choice_index):
        idx = session.current_index
        # réécriture autorisée : pas de feedback, pas de score, pas de vie perdue
        session.user_answers[idx] = choice_index
        session.answered[idx] = True
        session.defer(session.review_ack_delay, self.advance)
        return AnswerOutcome(idx, choice_index)

    def advance(self, session):
        if len(session.user_answers) >= len(session.order):
            session.set_state(SessionState.review_screen)
            return
        nxt = find_next_unanswered(len(session.order), session.current_index, lambda i: self.is_answered(session, i))
        if nxt is None:
            session.set_state(SessionState.review_screen)
            return
        session.move_to(nxt)

    def submit(self, session):
        if session.state != SessionState.review_screen:
            raise ActionRejected("Ouvre l'écran de révision avant de soumettre.")
        missing = [i for i in range(len(session.order)) if i not in session.user_answers]
        if missing:
            raise IncompleteSubmission(missing)
        self._score_answers(session)
        session.end(EndReason.submitted)
        return session.tally

    def on_time_up(self, session):
        # les questions sans réponse comptent comme fausses
        self._score_answers(session)
        session.end(EndReason.time_up)

    @staticmethod
    def _score_answers(session):
        score = correct = 0
        for idx, choice in session.user_answers.items():
            question = session.order[idx]
            if choice == question.correct_answer:
                score += question.points
                correct += 1
        session.score = score
        session.correct_answers = correct
        session.questions_answered = len(session.user_answers)


def mode_for(settings: QuizSettings) -> QuizMode:
    return ReviewMode() if settings.review_mode_enabled else ImmediateFeedbackMode()


# ---------- session ----------

class QuizSession:
    """
    Une partie. Créée à l'acceptation des règles, détruite dès qu'une condition de fin est atteinte.
    """

    def __init__(
        self,
        session_id: str,
        player_name: str,
        category_id: int,
        questions: Sequence[QuizQuestion],
        settings: QuizSettings,
        mode: Optional[QuizMode] = None,
        rng: Optional[random.Random] = None,
        feedback_delay: float = 1.5,
        review_ack_delay: float = 0.5,
    ) -> None:
        self.id = session_id
        self.player_name = player_name
        self.category_id = category_id
        self.settings = settings
        self.mode = mode or mode_for(settings)
        self.feedback_delay = feedback_delay
        self.review_ack_delay = review_ack_delay

        self.order: List[QuizQuestion] = select_questions(questions, category_id, rng)
        self.state = SessionState.loading
        self.end_reason: Optional[EndReason] = None
        self.tally: Optional[FinalTally] = None

        self.current_index = 0
        self.remaining_seconds = settings.duration_seconds
        self.remaining_lives: Optional[int] = settings.lives if settings.lives_enabled else None

        self.answered: Dict[int, bool] = {}
        self.user_answers: Dict[int, int] = {}
        self.visited: Dict[int, bool] = {}

        self.score = 0
        self.questions_answered = 0
        self.correct_answers = 0

        self.clock = SessionClock()
        self._pending: Optional[_Scheduled] = None

    # ---------- cycle de vie ----------

    def start(self) -> None:
        if self.state != SessionState.loading:
            raise ActionRejected("Session déjà démarrée.")
        self.state = SessionState.running
        self.visited[0] = True
        self.clock.schedule(1.0, self._tick)
        logger.info(
            "Session %s démarrée : %d questions, mode=%s, durée=%ss",
            self.id, len(self.order), self.mode.name, self.settings.duration_seconds,
        )

    def advance_time(self, seconds: float) -> None:
        self.clock.advance(seconds)

    def _tick(self) -> None:
        if not self.is_clock_running:
            return
        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds == 0:
            self.mode.on_time_up(self)
            return
        self.clock.schedule(1.0, self._tick)

    def defer(self, delay: float, continuation: Callable[["QuizSession"], None]) -> None:
        def _run() -> None:
            self._pending = None
            if self.is_clock_running:
                continuation(self)

        self._pending = self.clock.schedule(delay, _run)

    def set_state(self, state: SessionState) -> None:
        logger.debug("Session %s : %s -> %s", self.id, self.state.value, state.value)
        self.state = state

    def move_to(self, index: int) -> None:
        self.current_index = index
        self.visited[index] = True

    def end(self, reason: EndReason) -> None:
        if self.is_finished:
            return
        self.end_reason = reason
        self.state = SessionState.submitted if reason == EndReason.submitted else SessionState.ended
        self.clock.cancel_all()
        self._pending = None

        payload = None
        if self.mode.review and reason != EndReason.abandoned:
            payload = ReviewPayload(questions=list(self.order), user_answers=dict(self.user_answers))
        self.tally = FinalTally(
            score=self.score,
            questions_answered=self.questions_answered,
            correct_answers=self.correct_answers,
            time_spent_seconds=self.elapsed_seconds,
            category=self.category_id,
            player_name=self.player_name,
            end_reason=reason,
            review_payload=payload,
        )
        logger.info(
            "Session %s terminée (%s) : score=%d, %d/%d correctes",
            self.id, reason.value, self.score, self.correct_answers, self.questions_answered,
        )

    def abandon(self) -> None:
        self.end(EndReason.abandoned)

    # ---------- actions joueur ----------

    def answer(self, choice_index: int) -> AnswerOutcome:
        self._ensure_accepting()
        if self.state != SessionState.running:
            raise ActionRejected("Aucune question en cours.")
        question = self.order[self.current_index]
        if not 0 <= choice_index < len(question.options):
            raise ActionRejected("choiceIndex invalide.")
        return self.mode.answer(self, choice_index)

    def navigate(self, index: int) -> None:
        self._ensure_accepting()
        if not 0 <= index < len(self.order):
            raise ActionRejected("Question hors limites.")
        # depuis l'écran de révision il n'y a pas de question courante
        if self.state == SessionState.running and index == self.current_index:
            raise ActionRejected("C'est déjà la question courante.")
        self.mode.check_navigation(self, index)
        self.move_to(index)
        self.set_state(SessionState.running)

    def open_review(self) -> None:
        self._ensure_accepting()
        if not self.mode.review:
            raise ActionRejected("Le mode révision n'est pas activé.")
        self.set_state(SessionState.review_screen)

    def submit(self) -> FinalTally:
        if self.is_finished:
            # deuxième soumission : aucun effet
            return self.tally
        if self._pending is not None:
            raise ActionRejected("Réponse en cours de prise en compte.")
        return self.mode.submit(self)

    def _ensure_accepting(self) -> None:
        if not self.is_clock_running:
            raise ActionRejected("Le quiz n'est pas en cours.")
        if self._pending is not None:
            raise ActionRejected("Réponse en cours de prise en compte.")

    # ---------- lecture ----------

    @property
    def is_clock_running(self) -> bool:
        return self.state in (SessionState.running, SessionState.review_screen)

    @property
    def is_finished(self) -> bool:
        return self.state in (SessionState.submitted, SessionState.ended)

    @property
    def awaiting_advance(self) -> bool:
        return self._pending is not None

    @property
    def elapsed_seconds(self) -> int:
        return self.settings.duration_seconds - self.remaining_seconds

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if self.state != SessionState.running:
            return None
        return self.order[self.current_index]
