import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

# PUBLIC_INTERFACE
def get_database_url():
    """
    Connection string of the notes database, from DATABASE_URL.

    A local .env file is honoured; there is no built-in default, so a missing
    value fails at import time instead of silently creating a stray database.
    """
    load_dotenv()
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise ValueError("DATABASE_URL must be set to the notes database URL (e.g. sqlite:///notes.db).")
    return db_url

# PUBLIC_INTERFACE
def make_engine(db_url: str):
    """Creates an engine, allowing SQLite connections to cross request threads."""
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, future=True, echo=False, connect_args=connect_args)

DATABASE_URL = get_database_url()

engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
