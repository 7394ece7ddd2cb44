from ijf_bracket.store.base import DocumentData, DocumentStore
from ijf_bracket.store.memory import InMemoryDocumentStore
from ijf_bracket.store.sql import SqlDocumentStore

__all__ = ["DocumentData", "DocumentStore", "InMemoryDocumentStore", "SqlDocumentStore"]
