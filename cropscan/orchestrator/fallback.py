from cropscan.orchestrator.contracts import (
    Action, ActionCategory, Crop, IdentificationResult,
)
from cropscan.orchestrator import errors

FAILED_PROBLEM_NAME = "Identification Failed"
FAILED_PROBLEM_TYPE = "error"

# User-facing explanations per error code; anything unlisted gets the generic one
_MESSAGES = {
    errors.ERR_OFFLINE: "No internet connection available for identification.",
    errors.ERR_USAGE_LIMIT: "Monthly identification limit reached. Please try again later.",
    errors.ERR_UPLOAD: "The photo could not be uploaded. Please check your connection and try again.",
    errors.ERR_BLOCKED: "The request was blocked by the AI safety filter. Please retake the photo showing only the affected plant.",
    errors.ERR_RATE_LIMITED: "Too many identification requests right now. Please wait a minute and try again.",
    errors.ERR_TIMEOUT: "The identification service took too long to respond. Please try again.",
}
_GENERIC = "We could not identify the problem from this photo. Please try again."


def fallback_actions() -> list[Action]:
    return [
        Action(
            id="action_retry",
            title="Retry",
            description="Retake a clearer photo of the affected leaves in good daylight and submit again.",
            priority=1,
            category=ActionCategory.MONITORING,
        ),
        Action(
            id="action_inspect",
            title="Inspect",
            description="Inspect the plant manually for spots, insects or wilting and consult a local agriculture officer.",
            priority=2,
            category=ActionCategory.MONITORING,
        ),
    ]


def fallback_result(crop: Crop, user_id: str, error_code: str | None = None) -> IdentificationResult:
    return IdentificationResult(
        crop_id=crop.id,
        crop_name=crop.name,
        image_url="",
        problem_name=FAILED_PROBLEM_NAME,
        description=_MESSAGES.get(error_code, _GENERIC),
        severity=1,
        confidence=0.0,
        actions=fallback_actions(),
        user_id=user_id,
        problem_type=FAILED_PROBLEM_TYPE,
    )
