"""Database setup and session management."""
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from nudgeable.config import settings


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    In-memory SQLite shares a single connection so every ``Session`` sees
    the same database.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo, pool_pre_ping=True)


# postgresql+psycopg:// uses the psycopg 3 driver
engine = build_engine(settings.sqlalchemy_url)


def init_db(target: Engine | None = None):
    """Initialize the database tables."""
    # Table classes must be registered on the metadata before create_all
    from nudgeable.models import session as _tables  # noqa: F401

    SQLModel.metadata.create_all(target or engine)
    print("✅ Database tables created")

