from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from patient_registry.config import settings


def build_engine(url: str) -> Engine:
    """Engine for `url`; in-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True, pool_size=5)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    pass


def init_db(bind: Engine = engine) -> None:
    """Create any missing tables."""
    # model classes must be registered on Base.metadata first
    import patient_registry.models.patient  # noqa: F401

    Base.metadata.create_all(bind=bind)


def get_db():
    """FastAPI dependency that yields a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
