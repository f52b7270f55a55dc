"""
Identification pipeline.

  IDLE -> UPLOADING -> INVOKING -> PARSING -> PERSISTING -> DONE
             |            |           |
             +------------+-----------+--> ERROR

Missing crop / missing image raise InvalidInputError before anything starts.
Every other failure ends in ERROR and still returns a renderable fallback
IdentificationResult. Persistence failures are logged and swallowed.
"""
import asyncio
import time
from collections import OrderedDict

from cropscan.analysis import imaging, quality, response_parser
from cropscan.adapters.storage.base import destination_for
from cropscan.orchestrator import errors, prompts, records, retry
from cropscan.orchestrator.contracts import (
    EMPTY_IMAGE, Feedback, IdentificationRequest, IdentificationResult,
    ImageQualityResult, PipelineConfig, RunOutcome,
)
from cropscan.orchestrator.fallback import fallback_result

# Error codes passed through to the caller as-is; everything else from the AI stage is IDENTIFICATION_FAILED
_AI_CODES = {errors.ERR_BLOCKED, errors.ERR_RATE_LIMITED, errors.ERR_TIMEOUT}


class ResultCache:
    """Most recently used results, oldest evicted once capacity is reached."""

    def __init__(self, capacity: int):
        self.capacity = max(1, capacity)
        self._items: OrderedDict[str, IdentificationResult] = OrderedDict()

    def get(self, result_id: str) -> IdentificationResult | None:
        result = self._items.get(result_id)
        if result is not None:
            self._items.move_to_end(result_id)
        return result

    def put(self, result: IdentificationResult):
        self._items[result.id] = result
        self._items.move_to_end(result.id)
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

    def __contains__(self, result_id: str) -> bool:
        return result_id in self._items

    def __len__(self) -> int:
        return len(self._items)


class Orchestrator:
    def __init__(self, inference, image_store, documents, status_store, rate_limiter,
                 network=None, usage=None, config: PipelineConfig | None = None,
                 sleep=asyncio.sleep):
        self.inference = inference
        self.images = image_store
        self.documents = documents
        self.status = status_store
        self.rate_limiter = rate_limiter
        self.network = network
        self.usage = usage
        self.config = config or PipelineConfig()
        self._sleep = sleep
        self._cache = ResultCache(self.config.result_cache_size)

    # ── Quality gate ────────────────────────────────────────────────────────

    def analyze_quality(self, image) -> ImageQualityResult:
        """Encoded bytes or a decoded (h, w, 3) RGB array. Advisory only."""
        if isinstance(image, (bytes, bytearray)):
            return quality.analyze_bytes(bytes(image))
        shape = getattr(image, "shape", None)
        if not shape or len(shape) < 2:
            return quality.failed("Failed to analyze image quality: unsupported image type")
        return quality.analyze(image, shape[1], shape[0])

    async def analyze_quality_async(self, image) -> ImageQualityResult:
        # pixel math is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(self.analyze_quality, image)

    # ── Identification ──────────────────────────────────────────────────────

    async def identify(self, req: IdentificationRequest) -> IdentificationResult:
        outcome = await self.run(req)
        return outcome.result

    async def run(self, req: IdentificationRequest) -> RunOutcome:
        self._validate(req)
        crop = req.crop
        t0 = time.time()
        state = "IDLE"
        reserved = False
        self.status.run_started()
        try:
            self.status.log(f"identify: start crop={crop.name} user={req.user_id}")

            if self.network is not None and not await self.network.is_available():
                return self._fail(req, t0, state, errors.ERR_OFFLINE, None)
            if self.usage is not None:
                if not self.usage.try_reserve(req.user_id):
                    return self._fail(req, t0, state, errors.ERR_USAGE_LIMIT, None)
                reserved = True

            # 1) compress + upload
            state = self._enter("UPLOADING")
            res = await self._upload(req)
            if not res.ok:
                return self._fail(req, t0, state, errors.ERR_UPLOAD, res.error)
            image_url = res.value

            # 2) ask the model
            state = self._enter("INVOKING")
            res = await self._invoke(crop.name, image_url)
            if not res.ok:
                code = getattr(res.error, "code", None)
                return self._fail(req, t0, state, code if code in _AI_CODES else errors.ERR_IDENTIFY, res.error)

            # 3) parse (cannot fail)
            state = self._enter("PARSING")
            result = response_parser.parse(res.value, crop, image_url, req.user_id)
            self.status.log(
                f"identify: parsed problem={result.problem_name!r} severity={result.severity} "
                f"conf={result.confidence:.1f} actions={len(result.actions)}"
            )

            # 4) best-effort persistence
            state = self._enter("PERSISTING")
            await self._persist(result)

            state = self._enter("DONE")
            reserved = False  # slot is spent
            dt = int((time.time() - t0) * 1000)
            self.status.last_result_id = result.id
            self.status.last_error = None
            self.status.log(f"identify: done dt={dt}ms id={result.id}")
            return RunOutcome(ok=True, state=state, duration_ms=dt, result=result)

        except asyncio.CancelledError:
            self.status.log(f"identify: cancelled during {state}")
            raise
        except Exception as e:
            return self._fail(req, t0, state, errors.ERR_UNKNOWN, e)
        finally:
            # only completed identifications count against the quota
            if reserved:
                self.usage.release(req.user_id)
            self.status.run_finished()

    def _validate(self, req: IdentificationRequest):
        if req.crop is None or not req.crop.id or not req.crop.name:
            raise errors.InvalidInputError("crop is required")
        if req.image_path:
            return
        if req.image_bytes is None or req.image_bytes == EMPTY_IMAGE:
            raise errors.InvalidInputError("image is required")

    def _enter(self, state: str) -> str:
        self.status.last_state = state
        self.status.log(f"identify: -> {state}")
        return state

    def _fail(self, req, t0, state, code: str, err) -> RunOutcome:
        dt = int((time.time() - t0) * 1000)
        detail = f" {type(err).__name__}: {err}" if err is not None else ""
        self.status.last_state = "ERROR"
        self.status.last_error = code
        self.status.log(f"identify: error in {state} code={code}{detail}")
        result = fallback_result(req.crop, req.user_id, code)
        return RunOutcome(ok=False, state="ERROR", duration_ms=dt, result=result, error_code=code)

    async def _upload(self, req: IdentificationRequest) -> retry.Result:
        cfg = self.config
        try:
            raw = req.image_bytes
            if raw is None or raw == EMPTY_IMAGE:
                raw = await asyncio.to_thread(imaging.read_image, req.image_path)
            data = await asyncio.to_thread(
                imaging.compress, raw, cfg.max_image_dimension, cfg.jpeg_quality, cfg.max_upload_bytes,
            )
        except (OSError, ValueError) as e:
            return retry.Result(ok=False, error=errors.InvalidInputError(f"image could not be processed: {e}"))

        dest = destination_for(req.user_id, req.crop.id, int(time.time() * 1000))
        self.status.log(f"identify: compressed to {len(data)} bytes -> {dest}")
        with imaging.temp_jpeg(data) as path:
            return await retry.execute(
                lambda: self.images.upload(path, dest),
                max_attempts=cfg.upload_attempts,
                initial_delay=cfg.upload_delay_s,
                max_delay=cfg.upload_delay_s * cfg.upload_attempts,
                linear=True,
                timeout=cfg.upload_timeout_s,
                label="upload",
                status=self.status,
                sleep=self._sleep,
            )

    async def _invoke(self, crop_name: str, image_url: str) -> retry.Result:
        cfg = self.config
        prompt = prompts.build_identification_prompt(crop_name, image_url)

        async def call():
            if not self.rate_limiter.try_acquire():
                raise errors.RateLimitedError("Rate limit exceeded; please try again later.")
            # reaching this stage in-app implies the user accepted AI processing
            return await self.inference.generate(prompt, consent=True)

        return await retry.execute(
            call,
            max_attempts=cfg.ai_attempts,
            initial_delay=cfg.ai_initial_delay_s,
            max_delay=cfg.ai_max_delay_s,
            timeout=cfg.ai_timeout_s,
            label=f"{getattr(self.inference, 'name', 'ai')}.generate",
            status=self.status,
            sleep=self._sleep,
        )

    async def _persist(self, result: IdentificationResult):
        self._cache.put(result)
        try:
            await asyncio.wait_for(
                self.documents.set(result.id, records.to_document(result)),
                self.config.lookup_timeout_s,
            )
        except Exception as e:
            self.status.log(f"identify: persist failed (ignored) {type(e).__name__}: {e}")

    # ── Lookup & feedback ───────────────────────────────────────────────────

    async def get_result(self, result_id: str) -> IdentificationResult | None:
        """Cached result, else the document store. Raises the last PipelineError when the store stays unreachable."""
        cached = self._cache.get(result_id)
        if cached is not None:
            return cached

        cfg = self.config
        res = await retry.execute(
            lambda: self.documents.get(result_id),
            max_attempts=cfg.lookup_attempts,
            initial_delay=cfg.lookup_initial_delay_s,
            max_delay=cfg.lookup_max_delay_s,
            timeout=cfg.lookup_timeout_s,
            label="documents.get",
            status=self.status,
            sleep=self._sleep,
        )
        if not res.ok:
            raise res.error
        if res.value is None:
            return None
        result = records.from_document(res.value)
        self._cache.put(result)
        return result

    async def submit_feedback(self, result_id: str, rating: int, comment: str, is_accurate: bool) -> None:
        if not 1 <= rating <= 5:
            raise errors.InvalidInputError("Rating must be between 1 and 5")

        feedback = Feedback(rating=rating, comment=comment, is_accurate=is_accurate)
        cached = self._cache.get(result_id)
        if cached is not None:
            self._cache.put(cached.with_feedback(feedback))

        res = await retry.execute(
            lambda: self.documents.update(result_id, {"feedback": records.feedback_to_dict(feedback)}),
            max_attempts=self.config.feedback_attempts,
            initial_delay=self.config.lookup_initial_delay_s,
            max_delay=self.config.lookup_max_delay_s,
            timeout=self.config.lookup_timeout_s,
            label="feedback",
            status=self.status,
            sleep=self._sleep,
        )
        if res.ok:
            self.status.log(f"feedback: saved for {result_id} rating={rating}")
        else:
            self.status.log(f"feedback: abandoned for {result_id} after {res.attempts} attempts")
