from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from cashbook.core.config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 10, "pool_recycle": 3600}


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db() -> None:
    """Create all tables known to the models package."""
    import cashbook.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
