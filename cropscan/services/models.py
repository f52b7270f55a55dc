from pydantic import BaseModel, Field
from typing import Optional


class QualityRequest(BaseModel):
    image: str  # base64 JPEG/PNG


class QualityResponse(BaseModel):
    is_acceptable: bool
    is_resolution_ok: bool
    is_focused: bool
    is_bright_enough: bool
    focus_score: float
    brightness: float
    error_message: Optional[str] = None


class IdentifyRequest(BaseModel):
    crop_id: Optional[str] = None
    crop_name: Optional[str] = None
    user_id: str = "anonymous"
    image: Optional[str] = None  # base64 JPEG/PNG


class ActionOut(BaseModel):
    id: str
    title: str
    description: str
    priority: int
    category: str
    status: str
    urgency: str


class FeedbackOut(BaseModel):
    rating: int
    comment: str
    is_accurate: bool


class ResultOut(BaseModel):
    id: str
    crop_id: str
    crop_name: str
    image_url: str
    problem_name: str
    description: str
    severity: int = Field(ge=1, le=3)
    confidence: float = Field(ge=0, le=100)
    actions: list[ActionOut]
    scientific_name: Optional[str] = None
    problem_type: Optional[str] = None
    timestamp: str
    user_id: str
    summary: str
    high_confidence: bool
    feedback: Optional[FeedbackOut] = None


class IdentifyResponse(BaseModel):
    ok: bool
    duration_ms: int
    error_code: Optional[str] = None
    result: ResultOut


class FeedbackRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = ""
    is_accurate: bool = True


class StatusResponse(BaseModel):
    busy: bool
    active_runs: int
    last_state: Optional[str] = None
    last_error: Optional[str] = None
    last_result_id: Optional[str] = None
    logs: list[str]


class ExportResponse(BaseModel):
    ok: bool
    path: str
