"""
Database engine + session factory.

Defaults to SQLite for local dev, Postgres in production. Schema is managed
by Alembic; init_db() exists only for local scripts and throwaway SQLite files.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from campaign_metrics.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Heroku/Railway inject postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(bind=engine)


def get_session():
    """Return a new DB session."""
    return SessionLocal()


def import_models():
    """Import every model module so Base.metadata knows about all tables."""
    import importlib
    for name in ('user', 'upload', 'metric_record', 'insight'):
        importlib.import_module(f'campaign_metrics.models.{name}')


def init_db():
    """Create all tables directly (local dev only — production uses Alembic)."""
    import_models()
    Base.metadata.create_all(engine)
