from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

TASKS_COLLECTION = "tasks"
USERS_COLLECTION = "users"

Document = Dict[str, Any]


# PUBLIC_INTERFACE
class RemoteClient(ABC):
    """
    Capability set of the durable remote document store.

    Documents are JSON-compatible dicts carrying their own "id". Any method
    may raise on a backend/transport failure; the repositories wrap those
    errors, the client does not.
    """

    @abstractmethod
    def insert(self, collection: str, document: Document) -> str:
        """Store a new document and return its id."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return one document by id, or None."""

    @abstractmethod
    def query(
        self,
        collection: str,
        where: Optional[Tuple[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """
        Return documents matching an optional equality filter.

        Ordering ties, and the whole result when order_by is None, follow
        insertion order.
        """

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Document) -> bool:
        """Merge fields into a document. Return False if it does not exist."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Return False if it did not exist."""

    @abstractmethod
    def batch_delete(self, collection: str, doc_ids: Iterable[str]) -> int:
        """Delete several documents atomically; return how many were removed."""
