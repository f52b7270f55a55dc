"""
Free-text AI reply -> IdentificationResult.

The model is asked for a loose layout:

    Early Blight
    Severity: 2
    Description: dark concentric spots on older leaves...
    Actions:
    1. Remove affected leaves
    2. Apply copper fungicide
    Scientific name: Alternaria solani
    Type: fungal

but nothing guarantees it, so every field is extracted independently with a
fixed default and parse() never raises.

Defaults:
  problem_name    "Unknown issue"
  severity        2 (clamped into 1..3)
  description     "No description available"
  actions         []
  scientific_name None
  problem_type    None
  confidence      65 + bonuses, clamped into 0..100
"""
import re

from cropscan.orchestrator.contracts import (
    Action, ActionCategory, Crop, IdentificationResult,
)

DEFAULT_PROBLEM_NAME = "Unknown issue"
DEFAULT_SEVERITY = 2
DEFAULT_DESCRIPTION = "No description available"

BASE_CONFIDENCE = 65.0
SCIENTIFIC_NAME_BONUS = 15.0
LONG_RESPONSE_BONUS = 10.0
LONG_RESPONSE_CHARS = 200
LENGTH_BONUS_CAP = 10.0

_FLAGS = re.IGNORECASE | re.DOTALL

# Leading markdown decoration and "Problem:" style labels on the first line
_NAME_LABEL = re.compile(r"^[#*_\s]*(?:(?:problem|disease|pest)(?:\s+name)?|name|diagnosis)\s*\**\s*[:\-]\s*", re.I)

_SEVERITY = re.compile(r"severity[^\d\n]*(\d)", re.I)

# Section labels; a section starts at a line start or at an inline "Label:"
_SECTION = r"recommend\w*(?:\s+(?:actions?|treatments?|steps))?|actions?|treatments?"
_TRAILER = r"scientific\s+name|(?:problem\s+)?type"


def _until(labels: str) -> str:
    return rf"(?=\n[#*_\s]*(?:{labels})\b|[#*_]*\b(?:{labels})\s*\**\s*:|\Z)"


_DESCRIPTION = re.compile(
    r"\bdescription\b\s*\**\s*[:\-]?\s*(.*?)" + _until(f"{_SECTION}|{_TRAILER}"),
    _FLAGS,
)

_ACTIONS = re.compile(
    rf"(?:(?:^|\n)[#*_\s]*(?:{_SECTION})\b[^\n:]*:?|[#*_]*\b(?:{_SECTION})\s*\**\s*:)(.*?)"
    + _until(_TRAILER),
    _FLAGS,
)

# Numbered markers ("1." / "2)") and leading bullets; unmarked lines continue the previous item
_ITEM_SPLIT = re.compile(r"(?:^|\s)\d{1,2}[.)]\s+|^\s*[-*•]\s+", re.MULTILINE)

_SCIENTIFIC_NAME = re.compile(r"scientific\s+name\s*\**\s*[:\-]\s*\**\s*([^\n]+)", re.I)
_PROBLEM_TYPE = re.compile(r"(?:^|\n|[.;]\s*)[#*_\s]*(?:problem\s+)?type\s*\**\s*[:\-]\s*\**\s*([^\n]+)", re.I)
_HAS_SCIENTIFIC_LABEL = re.compile(r"scientific\s+name", re.I)

# Next inline "Label:" on the same line, e.g. "Early Blight. Severity: 2"
_INLINE_LABEL = re.compile(
    rf"\s*[.;,]?\s*[#*_]*\b(?:severity|description|{_SECTION}|{_TRAILER})\s*\**\s*:", re.I,
)

# First match wins; order matters ("apply ... then remove" is pest control)
_CATEGORY_KEYWORDS = [
    (ActionCategory.PEST_CONTROL, re.compile(r"\b(?:spray|apply|fungicide|pesticide|chemical)", re.I)),
    (ActionCategory.PRUNING, re.compile(r"\b(?:remove|prune|cut|dispose)", re.I)),
    (ActionCategory.MONITORING, re.compile(r"\b(?:monitor|observe|watch)", re.I)),
]

_URGENT = re.compile(r"\b(?:immediately|urgent|critical)", re.I)
_OPTIONAL = re.compile(r"\b(?:consider|may|option)", re.I)

_TITLE_MAX = 40


def _clean(s: str) -> str:
    return s.strip().strip("*_#").strip()


def _before_label(s: str) -> str:
    m = _INLINE_LABEL.search(s)
    return s[:m.start()] if m else s


def extract_problem_name(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            name = _clean(_before_label(_NAME_LABEL.sub("", line.strip())))
            return name or DEFAULT_PROBLEM_NAME
    return DEFAULT_PROBLEM_NAME


def extract_severity(text: str) -> int:
    m = _SEVERITY.search(text)
    if not m:
        return DEFAULT_SEVERITY
    return max(1, min(3, int(m.group(1))))


def extract_description(text: str) -> str:
    m = _DESCRIPTION.search(text)
    if not m:
        return DEFAULT_DESCRIPTION
    return _clean(m.group(1)) or DEFAULT_DESCRIPTION


def classify_action(text: str) -> ActionCategory:
    # watering / fertilising has no bucket of its own and lands in MONITORING
    for category, pattern in _CATEGORY_KEYWORDS:
        if pattern.search(text):
            return category
    return ActionCategory.MONITORING


def action_urgency(text: str) -> str:
    if _URGENT.search(text):
        return "high"
    if _OPTIONAL.search(text):
        return "low"
    return "medium"


def _title_for(fragment: str) -> str:
    head, sep, _ = fragment.partition(":")
    if sep and 0 < len(head) <= _TITLE_MAX:
        return _clean(head)
    if len(fragment) <= _TITLE_MAX:
        return fragment
    cut = fragment[:_TITLE_MAX].rsplit(" ", 1)[0]
    return cut.rstrip(",;.") + "..."


def split_action_items(body: str) -> list[str]:
    items = []
    for frag in _ITEM_SPLIT.split(body):
        frag = " ".join(frag.split()).strip("*_•-").strip().rstrip(".;")
        if frag and any(c.isalnum() for c in frag):
            items.append(frag)
    return items


def extract_actions(text: str) -> list[Action]:
    m = _ACTIONS.search(text)
    if not m:
        return []
    actions = []
    for priority, frag in enumerate(split_action_items(m.group(1)), start=1):
        actions.append(Action(
            id=f"action_{priority}",
            title=_title_for(frag),
            description=frag,
            priority=priority,
            category=classify_action(frag),
            urgency=action_urgency(frag),
        ))
    return actions


def extract_scientific_name(text: str) -> str | None:
    m = _SCIENTIFIC_NAME.search(text)
    if not m:
        return None
    return _clean(_before_label(m.group(1))).rstrip(".") or None


def extract_problem_type(text: str) -> str | None:
    m = _PROBLEM_TYPE.search(text)
    if not m:
        return None
    value = _clean(_before_label(m.group(1))).rstrip(".").lower()
    return value or None


def estimate_confidence(text: str) -> float:
    score = BASE_CONFIDENCE
    if _HAS_SCIENTIFIC_LABEL.search(text):
        score += SCIENTIFIC_NAME_BONUS
    if len(text) > LONG_RESPONSE_CHARS:
        score += LONG_RESPONSE_BONUS
    score += min(len(text) / 100.0, LENGTH_BONUS_CAP)
    return max(0.0, min(100.0, score))


def parse(raw_text, crop: Crop, image_url: str, user_id: str) -> IdentificationResult:
    text = raw_text if isinstance(raw_text, str) else ""
    return IdentificationResult(
        crop_id=crop.id,
        crop_name=crop.name,
        image_url=image_url or "",
        problem_name=extract_problem_name(text),
        description=extract_description(text),
        severity=extract_severity(text),
        confidence=estimate_confidence(text),
        actions=extract_actions(text),
        user_id=user_id,
        scientific_name=extract_scientific_name(text),
        problem_type=extract_problem_type(text),
    )
