"""HTTP adapter exposing the embedding triggers and match endpoints."""

from .app import create_app

__all__ = ["create_app"]
