"""Database package."""
from .database import (
    build_engine,
    engine,
    init_db,
)

__all__ = [
    "build_engine",
    "engine",
    "init_db",
]
