import asyncio
import os

import cv2
import numpy as np

from cropscan.adapters.documents.memory_documents import MemoryDocumentStore
from cropscan.adapters.inference.base import InferenceAdapter
from cropscan.adapters.storage.base import ImageStore
from cropscan.orchestrator.errors import TransientError

EARLY_BLIGHT = (
    "Early Blight\n"
    "Severity: 2\n"
    "Description: dark spots...\n"
    "Actions: 1. Remove affected leaves 2. Apply fungicide\n"
    "Scientific name: Alternaria solani\n"
    "Type: fungal"
)


def jpeg_bytes(width: int = 1920, height: int = 1080) -> bytes:
    rng = np.random.default_rng(7)
    img = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    ok, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, 90])
    assert ok
    return bytes(buf)


class Sleeps:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


class RecordingStore(ImageStore):
    """Fails the first `failures` uploads with `error`, then succeeds."""

    def __init__(self, failures: int = 0, error: Exception | None = None, hang: bool = False):
        self.failures = failures
        self.error = error or TransientError("storage unavailable")
        self.hang = hang
        self.calls = 0
        self.paths: list[str] = []
        self.existed: list[bool] = []

    async def upload(self, local_path: str, destination: str) -> str:
        self.calls += 1
        self.paths.append(local_path)
        self.existed.append(os.path.exists(local_path))
        if self.hang:
            await asyncio.Event().wait()
        if self.calls <= self.failures:
            raise self.error
        return f"https://img.example/{destination}"


class ScriptedInference(InferenceAdapter):
    """Returns / raises the scripted items in order; repeats the last one."""

    name = "scripted"

    def __init__(self, *script):
        self.script = list(script) or [EARLY_BLIGHT]
        self.calls = 0
        self.prompts: list[str] = []

    async def generate(self, prompt: str, consent: bool) -> str:
        self.check_request(prompt, consent)
        self.prompts.append(prompt)
        item = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if isinstance(item, BaseException):
            raise item
        return item


class BrokenDocuments(MemoryDocumentStore):
    def __init__(self, status_store, error: Exception | None = None):
        super().__init__(status_store)
        self.error = error or TransientError("document store down")
        self.calls = 0

    async def get(self, doc_id):
        self.calls += 1
        raise self.error

    async def set(self, doc_id, document):
        self.calls += 1
        raise self.error

    async def update(self, doc_id, fields):
        self.calls += 1
        raise self.error
