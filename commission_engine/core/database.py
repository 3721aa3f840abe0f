from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from commission_engine.core.config import settings


connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create tables for every registered model"""
    import commission_engine.models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind=engine)
