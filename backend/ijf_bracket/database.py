import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from ijf_bracket.services.bracket_repository import BracketRepository
from ijf_bracket.store import DocumentStore, InMemoryDocumentStore, SqlDocumentStore

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ijf_bracket.db")
STORE_BACKEND = os.getenv("STORE_BACKEND", "sql").lower()

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}
_echo = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")

if _is_sqlite and STORE_BACKEND == "sql":
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=_echo,
    connect_args=_connect_args,
)

_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """Process-wide document store (FastAPI dependency)."""
    global _store
    if _store is None:
        if STORE_BACKEND == "memory":
            _store = InMemoryDocumentStore()
        else:
            _store = SqlDocumentStore(engine)
    return _store


def init_db() -> None:
    """Initialize database - create all tables"""
    # Import models so they are registered with SQLModel metadata
    from ijf_bracket.models.document import Document  # noqa: F401

    if STORE_BACKEND == "sql":
        SQLModel.metadata.create_all(engine)


def get_repository(store: DocumentStore = Depends(get_store)) -> BracketRepository:
    return BracketRepository(store)
