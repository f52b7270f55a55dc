class ImageStore:
    async def upload(self, local_path: str, destination: str) -> str:
        """Upload the file at local_path under destination; return its durable URL."""
        raise NotImplementedError


def destination_for(user_id: str, crop_id: str, timestamp_ms: int) -> str:
    return f"users/{user_id}/crops/{crop_id}/images/{timestamp_ms}.jpg"
