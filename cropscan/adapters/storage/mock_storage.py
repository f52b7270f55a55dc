from cropscan.adapters.storage.base import ImageStore


class MockImageStore(ImageStore):
    """Keeps uploads in memory; URLs use the mock:// scheme."""

    def __init__(self, status_store):
        self.status = status_store
        self.uploads: dict[str, bytes] = {}

    async def upload(self, local_path: str, destination: str) -> str:
        with open(local_path, "rb") as f:
            self.uploads[destination] = f.read()
        self.status.log(f"mock_storage: stored {destination} ({len(self.uploads[destination])} bytes)")
        return f"mock://{destination}"
