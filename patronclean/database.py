from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from patronclean.config import settings

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables. Models must be imported before this runs."""
    import patronclean.models.action_log  # noqa: F401

    Base.metadata.create_all(bind=engine)
