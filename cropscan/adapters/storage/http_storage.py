"""
HTTP adapter for the object store holding uploaded crop photos.

Default contract (S3/GCS-style signed PUT proxy; adjust if the backend differs):
  Request:  PUT /<destination>   body = JPEG bytes, Content-Type: image/jpeg
  Response: {"url": "https://..."}   (optional; otherwise <public_base>/<destination>)

Status mapping: 401/403 permission and 413 quota are permanent, 408/429/5xx
and connection problems are transient.
"""
import httpx

from cropscan.adapters.storage.base import ImageStore
from cropscan.orchestrator.errors import (
    PermanentError, TimeoutFailure, TransientError, classify_status,
)


class HttpImageStore(ImageStore):
    def __init__(self, status_store, base_url: str = "http://127.0.0.1:9100/storage",
                 public_base: str | None = None, token: str | None = None,
                 timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.status = status_store
        self.base_url = base_url.rstrip("/")
        self.public_base = (public_base or self.base_url).rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client

    def _headers(self) -> dict:
        headers = {"Content-Type": "image/jpeg"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def upload(self, local_path: str, destination: str) -> str:
        with open(local_path, "rb") as f:
            data = f.read()
        url = f"{self.base_url}/{destination}"
        self.status.log(f"http_storage: PUT {destination} ({len(data)} bytes)")
        try:
            if self._client is not None:
                resp = await self._client.put(url, content=data, headers=self._headers(), timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.put(url, content=data, headers=self._headers())
        except httpx.TimeoutException as e:
            raise TimeoutFailure(f"upload timeout: {e}") from e
        except httpx.TransportError as e:
            raise TransientError(f"upload network error: {e}") from e

        if resp.status_code in (401, 403):
            raise PermanentError(f"storage permission denied (HTTP {resp.status_code})")
        if resp.status_code == 413:
            raise PermanentError("storage quota exceeded or image too large")
        if not resp.is_success:
            raise classify_status(resp.status_code, resp.text[:200])

        public_url = f"{self.public_base}/{destination}"
        if resp.headers.get("content-type", "").startswith("application/json"):
            public_url = resp.json().get("url") or public_url
        self.status.log(f"http_storage: {destination} done")
        return public_url
