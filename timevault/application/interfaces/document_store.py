from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal

Document = dict[str, Any]

Operator = Literal["==", ">=", "<="]


@dataclass(frozen=True)
class Predicate:
    """A single equality or inclusive range condition on a document field."""

    field: str
    op: Operator
    value: Any

    def matches(self, document: Document) -> bool:
        actual = document.get(self.field)
        if self.op == "==":
            return actual == self.value
        if actual is None:
            return False
        if self.op == ">=":
            return actual >= self.value
        return actual <= self.value


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class UniqueIndex:
    """
    At most one document in ``collection`` may hold a given ``field`` value
    among the documents the index covers.

    A document is covered when ``field`` is set and, for every
    ``(name, values)`` pair in ``where``, its ``name`` field is one of
    ``values``.
    """

    name: str
    collection: str
    field: str
    where: tuple[tuple[str, tuple[Any, ...]], ...] = ()

    def covers(self, document: Document) -> bool:
        if not document.get(self.field):
            return False
        return all(document.get(name) in values for name, values in self.where)


class DocumentStore(ABC):
    """
    Port for a schema-flexible, collection-oriented store.

    Documents are plain JSON-compatible dicts. The store assigns ``id`` on
    create and always returns documents with their ``id`` key populated.
    Writes are atomic per document. A write that would break a unique index
    raises DuplicateDocumentError and changes nothing.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document | None:
        ...

    @abstractmethod
    async def create(self, collection: str, data: Document, doc_id: str | None = None) -> str:
        """Insert a document and return its id."""
        ...

    @abstractmethod
    async def update(self, collection: str, doc_id: str, changes: Document) -> bool:
        """Merge changes into an existing document. Returns False if it does not exist."""
        ...

    @abstractmethod
    async def update_if(
        self,
        collection: str,
        doc_id: str,
        expected: Document,
        changes: Document,
    ) -> bool:
        """
        Compare-and-set: merge changes only if every key in ``expected``
        currently holds the expected value. Returns True when the write happened.
        """
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        predicates: list[Predicate] | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Document]:
        ...

    async def ping(self) -> None:
        """Raise if the store cannot be reached."""
        return None
