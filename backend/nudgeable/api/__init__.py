"""API package."""
from .routes import get_current_user, get_lifecycle, router

__all__ = ["get_current_user", "get_lifecycle", "router"]
