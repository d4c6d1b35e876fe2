"""ASGI entrypoint, served as ``art_teaching_tracker.api.asgi:app``."""

from art_teaching_tracker.api.app import create_app
from art_teaching_tracker.config import Settings
from art_teaching_tracker.containers import build_container

app = create_app(build_container(Settings()))
