"""Storage service module."""

from .document_store import Collections, DocumentStore, InMemoryDocumentStore

__all__ = [
    "Collections",
    "DocumentStore",
    "InMemoryDocumentStore",
]
