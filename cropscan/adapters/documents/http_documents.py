"""
HTTP adapter for the cloud document store (Firestore-style REST proxy).

  GET   /<collection>/<id>   -> 200 {...} | 404
  PUT   /<collection>/<id>   body = full document
  PATCH /<collection>/<id>   body = partial fields
"""
import httpx

from cropscan.adapters.documents.base import DocumentStore
from cropscan.orchestrator.errors import TimeoutFailure, TransientError, classify_status


class HttpDocumentStore(DocumentStore):
    def __init__(self, status_store, base_url: str = "http://127.0.0.1:9100/documents",
                 collection: str = "identifications", token: str | None = None,
                 timeout: float = 15.0, client: httpx.AsyncClient | None = None):
        self.status = status_store
        self.base_url = base_url.rstrip("/")
        self.collection = collection
        self.token = token
        self.timeout = timeout
        self._client = client

    async def _request(self, method: str, doc_id: str, payload: dict | None = None) -> httpx.Response:
        url = f"{self.base_url}/{self.collection}/{doc_id}"
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            if self._client is not None:
                return await self._client.request(method, url, json=payload, headers=headers, timeout=self.timeout)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise TimeoutFailure(f"documents {method} timeout: {e}") from e
        except httpx.TransportError as e:
            raise TransientError(f"documents {method} network error: {e}") from e

    async def get(self, doc_id: str) -> dict | None:
        resp = await self._request("GET", doc_id)
        if resp.status_code == 404:
            return None
        if not resp.is_success:
            raise classify_status(resp.status_code, resp.text[:200])
        return resp.json()

    async def set(self, doc_id: str, document: dict) -> None:
        resp = await self._request("PUT", doc_id, document)
        if not resp.is_success:
            raise classify_status(resp.status_code, resp.text[:200])
        self.status.log(f"http_documents: PUT {self.collection}/{doc_id}")

    async def update(self, doc_id: str, fields: dict) -> None:
        resp = await self._request("PATCH", doc_id, fields)
        if not resp.is_success:
            raise classify_status(resp.status_code, resp.text[:200])
        self.status.log(f"http_documents: PATCH {self.collection}/{doc_id}")
