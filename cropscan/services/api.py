import base64
import binascii
import os
from fastapi import FastAPI, HTTPException
from dotenv import load_dotenv
from cropscan.services.models import (
    QualityRequest, QualityResponse,
    IdentifyRequest, IdentifyResponse, ResultOut, ActionOut, FeedbackOut,
    FeedbackRequest, StatusResponse, ExportResponse,
)
from cropscan.services.config import Settings
from cropscan.services.status_store import StatusStore
from cropscan.orchestrator import errors, records
from cropscan.orchestrator.contracts import Crop, IdentificationRequest, IdentificationResult, PipelineConfig
from cropscan.orchestrator.rate_limit import RateLimiter
from cropscan.orchestrator.state_machine import Orchestrator
from cropscan.orchestrator.usage import UsageTracker
from cropscan.adapters.inference.mock_inference import MockInference
from cropscan.adapters.storage.mock_storage import MockImageStore
from cropscan.adapters.storage.http_storage import HttpImageStore
from cropscan.adapters.documents.memory_documents import MemoryDocumentStore
from cropscan.adapters.documents.http_documents import HttpDocumentStore
from cropscan.adapters.network.probe import HttpProbe

load_dotenv(dotenv_path=".env", override=False)

app = FastAPI(title="cropscan identification service")

settings = Settings.from_env()
status = StatusStore()

# Inference adapter: INFERENCE_ADAPTER = gemini | claude | mock (default: gemini)
if settings.inference_adapter == "gemini":
    from cropscan.adapters.inference.gemini_inference import GeminiInference
    inference = GeminiInference(status, base_url=settings.gemini_base_url, timeout=settings.ai_timeout_s)
    if not inference.ready:
        status.log("inference: GeminiInference not ready, falling back to mock")
        inference = MockInference(status)

elif settings.inference_adapter == "claude":
    from cropscan.adapters.inference.claude_inference import ClaudeInference
    inference = ClaudeInference(status, timeout=settings.ai_timeout_s)
    if not inference.ready:
        status.log("inference: ClaudeInference not ready, falling back to mock")
        inference = MockInference(status)

else:
    inference = MockInference(status)

status.log(f"inference adapter: {type(inference).__name__}")

if settings.storage_adapter == "http":
    image_store = HttpImageStore(
        status,
        base_url=settings.storage_base_url,
        public_base=settings.storage_public_base or None,
        token=settings.backend_token or None,
        timeout=settings.upload_timeout_s,
    )
    status.log(f"storage adapter: http -> {settings.storage_base_url}")
else:
    image_store = MockImageStore(status)
    status.log("storage adapter: mock")

if settings.document_adapter == "http":
    documents = HttpDocumentStore(
        status,
        base_url=settings.documents_base_url,
        token=settings.backend_token or None,
        timeout=settings.lookup_timeout_s,
    )
    status.log(f"document adapter: http -> {settings.documents_base_url}")
else:
    documents = MemoryDocumentStore(status)
    status.log("document adapter: memory")

network = HttpProbe(status, url=settings.probe_url) if settings.network_probe else None

orch = Orchestrator(
    inference=inference,
    image_store=image_store,
    documents=documents,
    status_store=status,
    rate_limiter=RateLimiter(max_per_minute=settings.ai_requests_per_minute),
    network=network,
    usage=UsageTracker(max_per_period=settings.max_identifications_per_month),
    config=PipelineConfig(
        ai_attempts=settings.ai_max_attempts,
        ai_timeout_s=settings.ai_timeout_s,
        upload_timeout_s=settings.upload_timeout_s,
        lookup_timeout_s=settings.lookup_timeout_s,
        max_image_dimension=settings.max_image_dimension,
        jpeg_quality=settings.jpeg_quality,
    ),
)


def _decode_image(b64: str | None) -> bytes | None:
    if not b64:
        return None
    # Accept data URLs straight from a browser canvas
    if b64.startswith("data:") and "," in b64:
        b64 = b64.split(",", 1)[1]
    try:
        return base64.b64decode(b64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="base64 decode failed")


def _result_out(r: IdentificationResult) -> ResultOut:
    fb = None
    if r.feedback is not None:
        fb = FeedbackOut(rating=r.feedback.rating, comment=r.feedback.comment, is_accurate=r.feedback.is_accurate)
    return ResultOut(
        id=r.id,
        crop_id=r.crop_id,
        crop_name=r.crop_name,
        image_url=r.image_url,
        problem_name=r.problem_name,
        description=r.description,
        severity=r.severity,
        confidence=r.confidence,
        actions=[
            ActionOut(id=a.id, title=a.title, description=a.description, priority=a.priority,
                      category=a.category.value, status=a.status.value, urgency=a.urgency)
            for a in r.actions
        ],
        scientific_name=r.scientific_name,
        problem_type=r.problem_type,
        timestamp=r.timestamp.isoformat(),
        user_id=r.user_id,
        summary=r.short_summary(),
        high_confidence=r.is_high_confidence(),
        feedback=fb,
    )


async def _lookup(result_id: str) -> IdentificationResult:
    try:
        result = await orch.get_result(result_id)
    except errors.PipelineError as e:
        status.log(f"RESULT lookup error: {e}")
        raise HTTPException(status_code=503, detail="result store unavailable")
    if result is None:
        raise HTTPException(status_code=404, detail="result not found")
    return result


@app.get("/health")
async def health():
    """Check connectivity to all subsystems."""
    checks = {
        "api": True,
        "inference_adapter": type(inference).__name__,
        "inference_ready": bool(getattr(inference, "ready", True)),
        "storage_adapter": type(image_store).__name__,
        "document_adapter": type(documents).__name__,
    }
    if network is not None:
        checks["network"] = await network.is_available()
    else:
        checks["network"] = True
    checks["all_ok"] = checks["api"] and checks["network"]
    return checks


@app.get("/status", response_model=StatusResponse)
def get_status():
    return StatusResponse(
        busy=status.busy,
        active_runs=status.active_runs,
        last_state=status.last_state,
        last_error=status.last_error,
        last_result_id=status.last_result_id,
        logs=status.logs,
    )


@app.post("/quality", response_model=QualityResponse)
async def check_quality(req: QualityRequest):
    image_bytes = _decode_image(req.image)
    if image_bytes is None:
        raise HTTPException(status_code=400, detail="image is required")
    q = await orch.analyze_quality_async(image_bytes)
    status.log(f"QUALITY: acceptable={q.is_acceptable} focus={q.focus_score:.2f} brightness={q.brightness:.2f}")
    return QualityResponse(
        is_acceptable=q.is_acceptable,
        is_resolution_ok=q.is_resolution_ok,
        is_focused=q.is_focused,
        is_bright_enough=q.is_bright_enough,
        focus_score=q.focus_score,
        brightness=q.brightness,
        error_message=q.error_message,
    )


@app.post("/identify", response_model=IdentifyResponse)
async def identify(req: IdentifyRequest):
    crop = Crop(id=req.crop_id, name=req.crop_name) if req.crop_id and req.crop_name else None
    ir = IdentificationRequest(crop=crop, user_id=req.user_id, image_bytes=_decode_image(req.image))
    try:
        outcome = await orch.run(ir)
    except errors.InvalidInputError as e:
        status.log(f"IDENTIFY rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return IdentifyResponse(
        ok=outcome.ok,
        duration_ms=outcome.duration_ms,
        error_code=outcome.error_code,
        result=_result_out(outcome.result),
    )


@app.get("/results/{result_id}", response_model=ResultOut)
async def get_result(result_id: str):
    return _result_out(await _lookup(result_id))


@app.post("/results/{result_id}/feedback")
async def submit_feedback(result_id: str, req: FeedbackRequest):
    await orch.submit_feedback(result_id, req.rating, req.comment, req.is_accurate)
    return {"ok": True}


@app.post("/results/{result_id}/export", response_model=ExportResponse)
async def export_result(result_id: str):
    result = await _lookup(result_id)
    path = records.export_json(result, settings.export_dir)
    status.log(f"EXPORT: {result_id} -> {path}")
    return ExportResponse(ok=True, path=os.fspath(path))
