import copy

from cropscan.adapters.documents.base import DocumentStore
from cropscan.orchestrator.errors import PermanentError


class MemoryDocumentStore(DocumentStore):
    def __init__(self, status_store):
        self.status = status_store
        self.docs: dict[str, dict] = {}

    async def get(self, doc_id: str) -> dict | None:
        doc = self.docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, doc_id: str, document: dict) -> None:
        self.docs[doc_id] = copy.deepcopy(document)
        self.status.log(f"memory_documents: set {doc_id}")

    async def update(self, doc_id: str, fields: dict) -> None:
        if doc_id not in self.docs:
            raise PermanentError(f"document {doc_id} not found")
        self.docs[doc_id].update(copy.deepcopy(fields))
        self.status.log(f"memory_documents: update {doc_id} {sorted(fields)}")
