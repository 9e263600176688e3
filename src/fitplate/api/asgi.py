"""ASGI entrypoint for the fitplate API."""

from fitplate.api.app import create_app
from fitplate.containers import build_container

app = create_app(build_container())
