"""FastAPI service exposing the Streamhub resolution pipeline."""
from .app import create_app

__all__ = ["create_app"]
