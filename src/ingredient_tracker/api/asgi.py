"""ASGI entrypoint for the ingredient tracker API."""

from ingredient_tracker.api.app import create_app
from ingredient_tracker.containers import build_container

app = create_app(build_container())
