"""
Database engine + session factory.

Defaults to SQLite for local dev, Postgres in production. The CRUD layer owns
the schema; init_db() only exists for local development and the seed script.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from adstats.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


# Hosted Postgres often hands out postgres:// but SQLAlchemy 2.x requires postgresql://
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
    for name in ('ad_account', 'sellpage', 'campaign', 'adset', 'ad',
                 'ad_stats_raw', 'ad_stats_daily', 'sellpage_stats_daily'):
        importlib.import_module(f'adstats.models.{name}')


def init_db():
    """Create all tables (local development only)."""
    import_models()
    Base.metadata.create_all(engine)
