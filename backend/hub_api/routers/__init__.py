"""Router exports for the Streamhub API."""
from . import content, health, providers, proxy

__all__ = ["content", "health", "providers", "proxy"]
