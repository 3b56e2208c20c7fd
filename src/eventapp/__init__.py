"""Event API package: users, events and event attendance."""

from .api import app, create_app

__all__ = ["app", "create_app"]
