from abc import ABC, abstractmethod


class DocumentStore(ABC):
    """Flat-map document store keyed by result id."""

    @abstractmethod
    async def get(self, doc_id: str) -> dict | None:
        ...

    @abstractmethod
    async def set(self, doc_id: str, document: dict) -> None:
        ...

    @abstractmethod
    async def update(self, doc_id: str, fields: dict) -> None:
        """Merge fields into an existing document."""
        ...
