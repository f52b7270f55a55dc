"""
Connectivity check run before a pipeline starts uploading.
PROBE_URL env var (default: Google's generate_204 endpoint) selects the target.
"""
import httpx

DEFAULT_PROBE_URL = "https://www.google.com/generate_204"


class NetworkMonitor:
    async def is_available(self) -> bool:
        raise NotImplementedError


class HttpProbe(NetworkMonitor):
    def __init__(self, status_store, url: str = DEFAULT_PROBE_URL, timeout: float = 5.0,
                 client: httpx.AsyncClient | None = None):
        self.status = status_store
        self.url = url
        self.timeout = timeout
        self._client = client

    async def is_available(self) -> bool:
        try:
            if self._client is not None:
                resp = await self._client.head(self.url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.head(self.url)
        except httpx.HTTPError as e:
            self.status.log(f"network_probe: offline ({type(e).__name__})")
            return False
        return resp.status_code < 500


class AlwaysOnline(NetworkMonitor):
    async def is_available(self) -> bool:
        return True
