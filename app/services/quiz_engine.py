import time
import uuid
import random
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)

from app.models.quiz import (
    PublicQuestion,
    StartQuizRequest,
    SessionView,
    AnswerRequest,
    AnswerResponse,
    NavigateRequest,
    ReviewItem,
    ResultResponse,
)
from app.services.quiz_session import (
    ActionRejected,
    FinalTally,
    IncompleteSubmission,
    NoQuestionsAvailable,
    QuizQuestion,
    QuizSession,
    QuizSettings,
)
from app.services.score_reporter import ScoreReporter

logger = logging.getLogger(__name__)


@dataclass
class _Active:
    session: QuizSession
    started_at: float  # horloge murale (monotonic)


@dataclass
class _Finished:
    view: SessionView
    result: ResultResponse
    finished_at: float


class QuizEngine:
    """
    Registre en mémoire des sessions de quiz (V1).
    Chaque action resynchronise d'abord l'horloge virtuelle de la session sur l'horloge murale :
    si le temps est écoulé, la session est close avant que l'action ne soit examinée.
    """

    def __init__(
        self,
        reporter: Optional[ScoreReporter] = None,
        time_source: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
        ttl_seconds: int = 60 * 60,
        feedback_delay: float = 1.5,
        review_ack_delay: float = 0.5,
    ) -> None:
        self._reporter = reporter
        self._time = time_source
        self._rng = rng or random.Random()
        self._ttl_seconds = ttl_seconds
        self._feedback_delay = feedback_delay
        self._review_ack_delay = review_ack_delay

        self._active: Dict[str, _Active] = {}
        self._finished: Dict[str, _Finished] = {}
        self._lock = threading.RLock()

    # ---------- public API ----------

    def start(
        self,
        req: StartQuizRequest,
        questions: Sequence[QuizQuestion],
        settings: QuizSettings,
    ) -> SessionView:
        """
        Crée une session à partir d'un instantané (banque + réglages) lu une seule fois.
        """
        sess_id = f"quiz_{uuid.uuid4().hex[:12]}"
        try:
            session = QuizSession(
                session_id=sess_id,
                player_name=req.playerName,
                category_id=req.category,
                questions=questions,
                settings=settings,
                rng=self._rng,
                feedback_delay=self._feedback_delay,
                review_ack_delay=self._review_ack_delay,
            )
        except NoQuestionsAvailable as e:
            raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=str(e))

        session.start()
        with self._lock:
            self._active[sess_id] = _Active(session=session, started_at=self._time())
        return self._to_view(session)

    def view(self, session_id: str) -> SessionView:
        with self._lock:
            entry = self._sync(session_id)
            if entry is None:
                return self._get_finished(session_id).view
            return self._to_view(entry.session)

    def answer(self, session_id: str, body: AnswerRequest) -> AnswerResponse:
        with self._lock:
            session = self._get_running(session_id)
            try:
                outcome = session.answer(body.choiceIndex)
            except ActionRejected as e:
                raise self._rejected(session, e)
            view = self._to_view(session)
            return AnswerResponse(
                questionIndex=outcome.question_index,
                choiceIndex=outcome.choice_index,
                isCorrect=outcome.is_correct,
                pointsAwarded=outcome.points_awarded,
                session=view,
            )

    def navigate(self, session_id: str, body: NavigateRequest) -> SessionView:
        with self._lock:
            session = self._get_running(session_id)
            try:
                session.navigate(body.index)
            except ActionRejected as e:
                raise self._rejected(session, e)
            return self._to_view(session)

    def open_review(self, session_id: str) -> SessionView:
        with self._lock:
            session = self._get_running(session_id)
            try:
                session.open_review()
            except ActionRejected as e:
                raise self._rejected(session, e)
            return self._to_view(session)

    def submit(self, session_id: str) -> ResultResponse:
        with self._lock:
            entry = self._sync(session_id)
            if entry is None:
                # déjà soumise (ou terminée) : aucun effet
                return self._get_finished(session_id).result
            session = entry.session
            try:
                session.submit()
            except IncompleteSubmission as e:
                logger.debug("Session %s : soumission incomplète (%s)", session_id, e.missing)
                raise HTTPException(
                    status_code=422,
                    detail={"message": e.reason, "missing": e.missing},
                )
            except ActionRejected as e:
                raise self._rejected(session, e)
            self._settle(entry)
            return self._get_finished(session_id).result

    def result(self, session_id: str) -> ResultResponse:
        with self._lock:
            entry = self._sync(session_id)
            if entry is not None:
                raise HTTPException(status_code=HTTP_409_CONFLICT, detail="La session est encore en cours.")
            return self._get_finished(session_id).result

    def abandon(self, session_id: str) -> None:
        """
        Retour au menu principal : la session est détruite sans rapport de score.
        """
        with self._lock:
            entry = self._active.pop(session_id, None)
            if entry is None:
                if self._finished.pop(session_id, None) is None:
                    raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Session introuvable.")
                return
            entry.session.abandon()
            logger.info("Session %s abandonnée", session_id)

    def sweep(self) -> int:
        """
        Fait avancer toutes les sessions, rapporte celles qui se terminent, purge les résultats expirés.
        Retourne le nombre de sessions closes pendant ce passage.
        """
        closed = 0
        with self._lock:
            for session_id in list(self._active):
                if self._sync(session_id) is None:
                    closed += 1
            now = self._time()
            for session_id, done in list(self._finished.items()):
                if now - done.finished_at > self._ttl_seconds:
                    del self._finished[session_id]
        return closed

    @property
    def active_count(self) -> int:
        return len(self._active)

    # ---------- internals ----------

    def _sync(self, session_id: str) -> Optional[_Active]:
        """
        Avance l'horloge de la session jusqu'à maintenant. None si la session est (ou vient d'être) close.
        """
        entry = self._active.get(session_id)
        if entry is None:
            if session_id not in self._finished:
                raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Session introuvable.")
            return None

        session = entry.session
        elapsed = self._time() - entry.started_at
        # advance(0) exécute aussi les échéances arrivées exactement maintenant
        session.advance_time(max(0.0, elapsed - session.clock.now))
        if session.is_finished:
            self._settle(entry)
            return None
        return entry

    def _get_running(self, session_id: str) -> QuizSession:
        entry = self._sync(session_id)
        if entry is None:
            raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Le quiz n'est pas en cours.")
        return entry.session

    def _get_finished(self, session_id: str) -> _Finished:
        done = self._finished.get(session_id)
        if done is None:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Session introuvable.")
        return done

    def _settle(self, entry: _Active) -> None:
        """
        Fin de session : instantané final, rapport du score, destruction de l'état.
        """
        session = entry.session
        tally = session.tally
        self._finished[session.id] = _Finished(
            view=self._to_view(session),
            result=self._to_result(session.id, tally),
            finished_at=self._time(),
        )
        self._active.pop(session.id, None)
        if self._reporter is not None:
            self._reporter.accept(tally)

    def _rejected(self, session: QuizSession, e: ActionRejected) -> HTTPException:
        logger.debug("Session %s : action refusée (%s)", session.id, e.reason)
        return HTTPException(status_code=HTTP_409_CONFLICT, detail=e.reason)

    def _to_public_question(self, q: QuizQuestion) -> PublicQuestion:
        return PublicQuestion(
            id=q.id,
            question=q.text,
            questionImage=q.image,
            options=list(q.options),
            optionImages=list(q.option_images) if q.option_images else None,
            points=q.points,
        )

    def _to_view(self, session: QuizSession) -> SessionView:
        current = session.current_question
        return SessionView(
            sessionId=session.id,
            state=session.state,
            mode=session.mode.name,
            playerName=session.player_name,
            category=session.category_id,
            total=len(session.order),
            index=session.current_index,
            question=self._to_public_question(current) if current else None,
            remainingSeconds=session.remaining_seconds,
            durationSeconds=session.settings.duration_seconds,
            remainingLives=session.remaining_lives,
            score=session.score,
            questionsAnswered=session.questions_answered,
            correctAnswers=session.correct_answers,
            answered=dict(session.answered),
            visited=dict(session.visited),
            awaitingNext=session.awaiting_advance,
            userAnswers=dict(session.user_answers) if session.mode.review else None,
        )

    def _to_result(self, session_id: str, tally: FinalTally) -> ResultResponse:
        review: Optional[List[ReviewItem]] = None
        if tally.review_payload is not None:
            review = []
            for idx, q in enumerate(tally.review_payload.questions):
                chosen = tally.review_payload.user_answers.get(idx)
                review.append(
                    ReviewItem(
                        question=self._to_public_question(q),
                        correctAnswer=q.correct_answer,
                        chosenIndex=chosen,
                        isCorrect=chosen == q.correct_answer,
                    )
                )
        return ResultResponse(
            sessionId=session_id,
            playerName=tally.player_name,
            category=tally.category,
            score=tally.score,
            questionsAnswered=tally.questions_answered,
            correctAnswers=tally.correct_answers,
            timeSpentSeconds=tally.time_spent_seconds,
            endReason=tally.end_reason,
            review=review,
        )
