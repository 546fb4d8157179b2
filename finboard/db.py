from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from finboard.core.settings import settings
from finboard.models import Base

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# pool_pre_ping/pool_recycle guard against dropped/stale connections causing OperationalError
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=300,
    connect_args=_connect_args,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create tables and the shared default categories (local dev; production uses Alembic)."""
    from finboard.seed import seed_default_categories

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_default_categories(db)
    finally:
        db.close()
