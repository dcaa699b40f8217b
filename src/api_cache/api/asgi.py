"""ASGI entrypoint for the API cache admin service."""

from api_cache.api.app import create_app
from api_cache.containers import build_container

app = create_app(build_container())
