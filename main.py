# uvicorn main:app --reload
from app.main import app  # noqa: F401
