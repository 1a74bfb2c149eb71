import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.db.database import get_session_factory, init_db
from app.routers import system, quiz, catalog, scores, admin
from app.services.quiz_engine import QuizEngine
from app.services.score_reporter import ScoreReporter
from app.services.storage import QuizStorage

logger = logging.getLogger(__name__)


async def run_session_sweeper(engine: QuizEngine, interval: float) -> None:
    """
    Horloge de fond : clôt les parties dont le temps est écoulé même si le joueur ne revient pas.
    """
    try:
        while True:
            await asyncio.sleep(interval)
            try:
                closed = engine.sweep()
                if closed:
                    logger.debug("Sweep : %d session(s) close(s)", closed)
            except Exception as e:
                logger.error("Sweep des sessions en échec : %s", e)
    except asyncio.CancelledError:
        logger.debug("Sweeper arrêté")
        raise


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    reporter = ScoreReporter(
        session_factory=get_session_factory(),
        webhook_url=settings.LEADERBOARD_WEBHOOK_URL,
        timeout=settings.LEADERBOARD_TIMEOUT_SECONDS,
    )
    engine = QuizEngine(
        reporter=reporter,
        ttl_seconds=settings.SESSION_TTL_SECONDS,
        feedback_delay=settings.FEEDBACK_DELAY_SECONDS,
        review_ack_delay=settings.REVIEW_ACK_DELAY_SECONDS,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db()
        db = get_session_factory()()
        try:
            QuizStorage(db).seed_defaults()
        finally:
            db.close()

        sweeper = asyncio.create_task(run_session_sweeper(engine, settings.SWEEP_INTERVAL_SECONDS))
        try:
            yield
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
            reporter.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="API backend du quiz (sessions de jeu, questions, catégories, réglages, leaderboard)",
        lifespan=lifespan,
    )
    app.state.quiz_engine = engine
    app.state.score_reporter = reporter

    # Middleware CORS
    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],  # fallback si mal configuré
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(system.router)
    app.include_router(quiz.router)
    app.include_router(catalog.router)
    app.include_router(scores.router)
    app.include_router(admin.router)

    # Redirect root → docs
    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    return app


app = create_app()
