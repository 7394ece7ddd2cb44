"""
SQL-backed document store: one `Document` row per path, JSON payload.

Every write to an existing row is a conditional UPDATE/DELETE on the revision
read in the same session, so two merges into one document (slot A and slot B
of the same match) never overwrite each other. A write that loses the race
re-reads the row and tries again. Create-if-absent relies on the primary key.
"""
import copy
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ijf_bracket.errors import LockConflictError
from ijf_bracket.models.document import Document
from ijf_bracket.store.base import DocumentData, DocumentStore

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 50

Merge = Callable[[Optional[DocumentData]], DocumentData]


class SqlDocumentStore(DocumentStore):
    def __init__(self, engine: Engine) -> None:
        super().__init__()
        self.engine = engine

    def get(self, path: str) -> Optional[DocumentData]:
        with Session(self.engine) as session:
            row = session.get(Document, path)
            return copy.deepcopy(row.data) if row is not None else None

    def set(self, path: str, document: DocumentData) -> None:
        self._write(path, lambda current: copy.deepcopy(document))

    def update(self, path: str, fields: DocumentData) -> None:
        def merge(current: Optional[DocumentData]) -> DocumentData:
            merged = dict(current or {})
            merged.update(copy.deepcopy(fields))
            return merged

        self._write(path, merge)

    def delete(self, path: str) -> None:
        with Session(self.engine) as session:
            result = session.execute(sa_delete(Document).where(Document.path == path))
            session.commit()
        if result.rowcount:
            self._notify(path)

    def compare_and_swap(
        self,
        path: str,
        expected: Optional[DocumentData],
        new: Optional[DocumentData],
    ) -> bool:
        with Session(self.engine) as session:
            row = session.get(Document, path)
            current = row.data if row is not None else None
            if current != expected:
                return False

            if row is None:
                if new is None:
                    return True
                committed = self._insert(session, path, new)
            elif new is None:
                committed = self._execute_guarded(
                    session,
                    sa_delete(Document).where(Document.path == path, Document.revision == row.revision),
                )
            else:
                committed = self._replace(session, path, row.revision, new)

        if committed:
            self._notify(path)
        return committed

    # -- helpers ----------------------------------------------------------------

    def _write(self, path: str, merge: Merge) -> None:
        """Apply `merge` to the current document, retrying when another writer got there first."""
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            with Session(self.engine) as session:
                row = session.get(Document, path)
                if row is None:
                    committed = self._insert(session, path, merge(None))
                else:
                    committed = self._replace(session, path, row.revision, merge(row.data))
            if committed:
                self._notify(path)
                return
            logger.debug("Concurrent write on %s, retrying (attempt %d)", path, attempt)

        raise LockConflictError(
            f"Document {path} kept changing during {MAX_WRITE_ATTEMPTS} write attempts",
            rule="WRITE_CONTENTION",
        )

    def _insert(self, session: Session, path: str, document: DocumentData) -> bool:
        session.add(Document(path=path, data=copy.deepcopy(document)))
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            return False
        return True

    def _replace(self, session: Session, path: str, revision: int, document: DocumentData) -> bool:
        stmt = (
            sa_update(Document)
            .where(Document.path == path, Document.revision == revision)
            .values(
                data=copy.deepcopy(document),
                revision=revision + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        return self._execute_guarded(session, stmt)

    @staticmethod
    def _execute_guarded(session: Session, stmt) -> bool:
        result = session.execute(stmt)
        if result.rowcount != 1:
            session.rollback()
            return False
        session.commit()
        return True
