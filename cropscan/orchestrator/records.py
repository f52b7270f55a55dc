"""
IdentificationResult <-> flat document conversion for the cloud document
store, plus a JSON export used for offline sharing.

Keys are camelCase to match what the mobile client already reads.
"""
import json
from datetime import datetime, timezone
from pathlib import Path

from cropscan.orchestrator.contracts import (
    Action, ActionCategory, ActionStatus, Feedback, IdentificationResult,
)


def _ts(dt: datetime) -> str:
    return dt.isoformat()


def _parse_ts(value) -> datetime:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return datetime.now(timezone.utc)


def action_to_dict(a: Action) -> dict:
    return {
        "id": a.id,
        "title": a.title,
        "description": a.description,
        "priority": a.priority,
        "category": a.category.value,
        "status": a.status.value,
        "urgency": a.urgency,
    }


def action_from_dict(d: dict) -> Action:
    return Action(
        id=str(d.get("id", "")),
        title=d.get("title", ""),
        description=d.get("description", ""),
        priority=int(d.get("priority", 1)),
        category=ActionCategory(d.get("category", ActionCategory.MONITORING.value)),
        status=ActionStatus(d.get("status", ActionStatus.PENDING.value)),
        urgency=d.get("urgency", "medium"),
    )


def feedback_to_dict(f: Feedback) -> dict:
    return {
        "rating": f.rating,
        "comment": f.comment,
        "isAccurate": f.is_accurate,
        "timestamp": _ts(f.timestamp),
    }


def to_document(r: IdentificationResult) -> dict:
    doc = {
        "id": r.id,
        "cropId": r.crop_id,
        "cropName": r.crop_name,
        "imageUrl": r.image_url,
        "problemName": r.problem_name,
        "description": r.description,
        "severity": r.severity,
        "confidence": r.confidence,
        "actions": [action_to_dict(a) for a in r.actions],
        "scientificName": r.scientific_name,
        "problemType": r.problem_type,
        "timestamp": _ts(r.timestamp),
        "userId": r.user_id,
    }
    if r.feedback is not None:
        doc["feedback"] = feedback_to_dict(r.feedback)
    return doc


def from_document(doc: dict) -> IdentificationResult:
    fb = doc.get("feedback")
    feedback = None
    if fb:
        feedback = Feedback(
            rating=int(fb.get("rating", 0)),
            comment=fb.get("comment", ""),
            is_accurate=bool(fb.get("isAccurate", False)),
            timestamp=_parse_ts(fb.get("timestamp")),
        )
    return IdentificationResult(
        id=doc["id"],
        crop_id=doc.get("cropId", ""),
        crop_name=doc.get("cropName", ""),
        image_url=doc.get("imageUrl", ""),
        problem_name=doc.get("problemName", ""),
        description=doc.get("description", ""),
        severity=int(doc.get("severity", 2)),
        confidence=float(doc.get("confidence", 0.0)),
        actions=[action_from_dict(a) for a in doc.get("actions") or []],
        user_id=doc.get("userId", ""),
        scientific_name=doc.get("scientificName"),
        problem_type=doc.get("problemType"),
        feedback=feedback,
        timestamp=_parse_ts(doc.get("timestamp")),
    )


def export_json(result: IdentificationResult, out_dir: str | Path) -> Path:
    """Write identification_<crop>_<YYYYmmdd_HHMMSS>.json into out_dir and return its path."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    stamp = result.timestamp.strftime("%Y%m%d_%H%M%S")
    path = out / f"identification_{result.crop_id}_{stamp}.json"
    path.write_text(json.dumps(to_document(result), indent=2, ensure_ascii=False), encoding="utf-8")
    return path
