"""Engine and session factory for the ledger's SQLite store."""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Use DATABASE_PATH env var for Docker, default to local path for development
DATABASE_PATH = os.environ.get("DATABASE_PATH", "./db.sqlite3")
SQLALCHEMY_DATABASE_URL = f"sqlite:///{DATABASE_PATH}"

# Upper bound (seconds) a store call may wait on a locked database
STORE_TIMEOUT_SECONDS = float(os.environ.get("STORE_TIMEOUT_SECONDS", "5"))


def make_engine(url: str = SQLALCHEMY_DATABASE_URL, **kwargs):
    """SQLite engine shared across request threads, bounded by STORE_TIMEOUT_SECONDS."""
    return create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": STORE_TIMEOUT_SECONDS},
        **kwargs
    )


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
