from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from quizdrill.core.config import get_settings
from quizdrill.core.errors import ConfigurationError


def make_engine(url: str) -> Engine:
    if not url or not url.strip():
        raise ConfigurationError("DATABASE_URL is not set")
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@lru_cache()
def get_engine() -> Engine:
    return make_engine(get_settings().DATABASE_URL)
