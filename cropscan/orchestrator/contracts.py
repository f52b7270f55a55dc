import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Literal

PipelineState = Literal["IDLE", "UPLOADING", "INVOKING", "PARSING", "PERSISTING", "DONE", "ERROR"]

# Sentinel the capture screen hands over when nothing was taken
EMPTY_IMAGE = b""

HIGH_CONFIDENCE = 80.0
_SEVERITY_TEXT = {1: "Low", 2: "Medium", 3: "High"}


class ActionCategory(str, Enum):
    PEST_CONTROL = "PEST_CONTROL"
    PRUNING = "PRUNING"
    MONITORING = "MONITORING"


class ActionStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ImageQualityResult:
    is_acceptable: bool
    is_resolution_ok: bool
    is_focused: bool
    is_bright_enough: bool
    focus_score: float         # 0..1, pixel-intensity dispersion
    brightness: float          # 0..1, mean luminance
    error_message: Optional[str] = None


@dataclass(frozen=True)
class Crop:
    id: str
    name: str


@dataclass
class IdentificationRequest:
    crop: Optional[Crop]
    user_id: str = "anonymous"
    image_bytes: Optional[bytes] = None
    # Local file path, used instead of image_bytes when the photo is already on disk
    image_path: Optional[str] = None


@dataclass(frozen=True)
class Action:
    title: str
    description: str
    priority: int = 1
    category: ActionCategory = ActionCategory.MONITORING
    status: ActionStatus = ActionStatus.PENDING
    urgency: Literal["low", "medium", "high"] = "medium"
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class Feedback:
    rating: int                # 1..5
    comment: str
    is_accurate: bool
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class IdentificationResult:
    crop_id: str
    crop_name: str
    image_url: str
    problem_name: str
    description: str
    severity: int              # 1 = low, 2 = medium, 3 = high
    confidence: float          # 0..100, heuristic
    actions: list[Action]
    user_id: str
    scientific_name: Optional[str] = None
    problem_type: Optional[str] = None
    feedback: Optional[Feedback] = None
    timestamp: datetime = field(default_factory=_now)
    id: str = field(default_factory=_new_id)

    def is_high_confidence(self) -> bool:
        return self.confidence >= HIGH_CONFIDENCE

    def is_severe(self) -> bool:
        return self.severity == 3

    def short_summary(self) -> str:
        level = _SEVERITY_TEXT.get(self.severity, "Unknown").lower()
        return f"{self.problem_name} ({level} severity)"

    def condensed(self) -> "IdentificationResult":
        """Trimmed copy for notifications and list rows."""
        desc = self.description[:100] + ("..." if len(self.description) > 100 else "")
        return replace(self, description=desc, actions=self.actions[:3], scientific_name=None)

    def with_feedback(self, feedback: Feedback) -> "IdentificationResult":
        return replace(self, feedback=feedback)


@dataclass
class RunOutcome:
    ok: bool
    state: PipelineState
    duration_ms: int
    result: IdentificationResult
    error_code: Optional[str] = None


@dataclass
class PipelineConfig:
    upload_attempts: int = 3
    upload_delay_s: float = 1.0
    upload_timeout_s: float = 30.0
    ai_attempts: int = 3
    ai_initial_delay_s: float = 1.0
    ai_max_delay_s: float = 10.0
    ai_timeout_s: float = 60.0
    lookup_attempts: int = 3
    lookup_initial_delay_s: float = 1.0
    lookup_max_delay_s: float = 8.0
    lookup_timeout_s: float = 15.0
    feedback_attempts: int = 3
    max_image_dimension: int = 1024
    jpeg_quality: int = 85
    max_upload_bytes: int = 5 * 1024 * 1024
    result_cache_size: int = 256
