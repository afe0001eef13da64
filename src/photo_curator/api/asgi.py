"""ASGI entrypoint for the photo curator API."""

from photo_curator.api.app import create_app
from photo_curator.containers import build_container

app = create_app(build_container())
