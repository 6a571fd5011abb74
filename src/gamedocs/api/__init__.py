"""FastAPI application exposing document validation and storage endpoints."""

from ..settings import GamedocsSettings
from .app import create_app

__all__ = ["create_app", "GamedocsSettings"]
