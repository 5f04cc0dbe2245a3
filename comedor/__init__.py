"""Comedor Grupo Avika: weekly menu publication and meal confirmations."""

from .app_factory import create_app

__all__ = ["create_app"]
