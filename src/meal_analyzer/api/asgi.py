"""ASGI entrypoint, e.g. ``uvicorn meal_analyzer.api.asgi:app``."""

from meal_analyzer.api.app import create_app
from meal_analyzer.config import Settings
from meal_analyzer.containers import build_container

settings = Settings()
app = create_app(build_container(settings))
