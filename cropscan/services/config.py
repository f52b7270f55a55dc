import os
from dataclasses import dataclass


def _env(name: str, default: str) -> str:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    # Adapters
    inference_adapter: str = "gemini"       # gemini | claude | mock
    storage_adapter: str = "mock"           # http | mock
    document_adapter: str = "memory"        # http | memory
    network_probe: bool = False

    # Endpoints
    storage_base_url: str = "http://127.0.0.1:9100/storage"
    storage_public_base: str = ""
    documents_base_url: str = "http://127.0.0.1:9100/documents"
    backend_token: str = ""
    probe_url: str = "https://www.google.com/generate_204"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"

    # Limits
    ai_max_attempts: int = 3
    ai_requests_per_minute: int = 10
    max_identifications_per_month: int = 5

    # Timeouts (seconds)
    upload_timeout_s: float = 30.0
    lookup_timeout_s: float = 15.0
    ai_timeout_s: float = 60.0

    # Image budget
    max_image_dimension: int = 1024
    jpeg_quality: int = 85

    export_dir: str = "exports"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            inference_adapter=_env("INFERENCE_ADAPTER", "gemini").lower(),
            storage_adapter=_env("STORAGE_ADAPTER", "mock").lower(),
            document_adapter=_env("DOCUMENT_ADAPTER", "memory").lower(),
            network_probe=_env("NETWORK_PROBE", "0") in ("1", "true", "yes"),
            storage_base_url=_env("STORAGE_BASE_URL", cls.storage_base_url),
            storage_public_base=_env("STORAGE_PUBLIC_BASE", ""),
            documents_base_url=_env("DOCUMENTS_BASE_URL", cls.documents_base_url),
            backend_token=_env("BACKEND_TOKEN", ""),
            probe_url=_env("PROBE_URL", cls.probe_url),
            gemini_base_url=_env("GEMINI_BASE_URL", cls.gemini_base_url),
            ai_max_attempts=int(_env("AI_MAX_ATTEMPTS", "3")),
            ai_requests_per_minute=int(_env("AI_REQUESTS_PER_MINUTE", "10")),
            max_identifications_per_month=int(_env("MAX_IDENTIFICATIONS_PER_MONTH", "5")),
            upload_timeout_s=float(_env("UPLOAD_TIMEOUT_S", "30")),
            lookup_timeout_s=float(_env("LOOKUP_TIMEOUT_S", "15")),
            ai_timeout_s=float(_env("AI_TIMEOUT_S", "60")),
            max_image_dimension=int(_env("MAX_IMAGE_DIMENSION", "1024")),
            jpeg_quality=int(_env("JPEG_QUALITY", "85")),
            export_dir=_env("EXPORT_DIR", "exports"),
        )
