import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.db.database import reset_caches
from app.main import create_app


@pytest.fixture
def test_client(tmp_path, monkeypatch):
    """
    Crée un TestClient avec une base SQLite temporaire (isolée),
    et force quelques variables d'env pour les tests.
    """
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("APP_NAME", "PIXEL QUIZ API (tests)")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'quiz.db'}")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost")
    monkeypatch.setenv("ADMIN_PIN", "1234")
    monkeypatch.setenv("FEEDBACK_DELAY_SECONDS", "0")
    monkeypatch.setenv("REVIEW_ACK_DELAY_SECONDS", "0")
    # le sweeper ne doit pas interférer pendant les tests
    monkeypatch.setenv("SWEEP_INTERVAL_SECONDS", "3600")

    # IMPORTANT: vider les caches (settings + engine SQL) pour prendre en compte les env
    get_settings.cache_clear()
    reset_caches()

    app = create_app()
    with TestClient(app) as client:
        yield client

    get_settings.cache_clear()
    reset_caches()
