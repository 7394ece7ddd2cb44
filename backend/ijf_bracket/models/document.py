from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(SQLModel, table=True):
    """One key-value document of the SQL-backed store. `revision` drives compare-and-swap."""

    path: str = Field(primary_key=True)
    data: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    revision: int = Field(default=1)
    updated_at: datetime = Field(default_factory=_utcnow)
