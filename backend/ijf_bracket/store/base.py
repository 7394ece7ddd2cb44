"""
Key-value document store consumed by the bracket engine.

Guarantees are deliberately weak: last write wins, per-key compare-and-swap,
no multi-document transactions. Subscribers are notified in-process after a
write commits.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DocumentData = Dict[str, Any]
Subscriber = Callable[[Optional[DocumentData]], None]


class DocumentStore(ABC):
    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._subscribers_lock = threading.Lock()

    @abstractmethod
    def get(self, path: str) -> Optional[DocumentData]:
        """Return a copy of the document at `path`, or None."""

    @abstractmethod
    def set(self, path: str, document: DocumentData) -> None:
        """Full overwrite."""

    @abstractmethod
    def update(self, path: str, fields: DocumentData) -> None:
        """Shallow merge of top-level fields; creates the document when absent."""

    @abstractmethod
    def delete(self, path: str) -> None:
        ...

    @abstractmethod
    def compare_and_swap(
        self,
        path: str,
        expected: Optional[DocumentData],
        new: Optional[DocumentData],
    ) -> bool:
        """
        Replace the document only if it currently equals `expected`.

        expected=None means the document must be absent (create-if-absent).
        new=None deletes the document. Returns whether the swap committed.
        """

    def subscribe(self, path: str, callback: Subscriber) -> Callable[[], None]:
        """
        Call `callback` with the current document now and after every change.

        Returns an unsubscribe function.
        """
        with self._subscribers_lock:
            self._subscribers.setdefault(path, []).append(callback)

        self._deliver(path, callback, self.get(path))

        def unsubscribe() -> None:
            with self._subscribers_lock:
                callbacks = self._subscribers.get(path, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(path, None)

        return unsubscribe

    def _notify(self, path: str) -> None:
        with self._subscribers_lock:
            callbacks = list(self._subscribers.get(path, []))
        if not callbacks:
            return
        current = self.get(path)
        for callback in callbacks:
            self._deliver(path, callback, current)

    @staticmethod
    def _deliver(path: str, callback: Subscriber, document: Optional[DocumentData]) -> None:
        # A broken subscriber must not fail the write that triggered it
        try:
            callback(document)
        except Exception:
            logger.exception("Subscriber for %s raised", path)
