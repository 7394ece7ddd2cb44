import copy
import threading
from typing import Dict, Optional

from ijf_bracket.store.base import DocumentData, DocumentStore


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store for tests and single-process use."""

    def __init__(self) -> None:
        super().__init__()
        self._documents: Dict[str, DocumentData] = {}
        self._lock = threading.RLock()

    def get(self, path: str) -> Optional[DocumentData]:
        with self._lock:
            document = self._documents.get(path)
            return copy.deepcopy(document) if document is not None else None

    def set(self, path: str, document: DocumentData) -> None:
        with self._lock:
            self._documents[path] = copy.deepcopy(document)
        self._notify(path)

    def update(self, path: str, fields: DocumentData) -> None:
        with self._lock:
            merged = dict(self._documents.get(path) or {})
            merged.update(copy.deepcopy(fields))
            self._documents[path] = merged
        self._notify(path)

    def delete(self, path: str) -> None:
        with self._lock:
            existed = self._documents.pop(path, None) is not None
        if existed:
            self._notify(path)

    def compare_and_swap(
        self,
        path: str,
        expected: Optional[DocumentData],
        new: Optional[DocumentData],
    ) -> bool:
        with self._lock:
            if self._documents.get(path) != expected:
                return False
            if new is None:
                self._documents.pop(path, None)
            else:
                self._documents[path] = copy.deepcopy(new)
        self._notify(path)
        return True
