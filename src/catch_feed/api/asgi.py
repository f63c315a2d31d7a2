"""ASGI entrypoint for the catch feed API."""

from catch_feed.api.app import create_app
from catch_feed.containers import build_container

app = create_app(build_container())
