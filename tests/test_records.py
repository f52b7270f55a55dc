import json
from datetime import datetime, timezone

from cropscan.orchestrator import errors, records
from cropscan.orchestrator.contracts import (
    Action, ActionCategory, Crop, Feedback, IdentificationResult,
)
from cropscan.orchestrator.fallback import fallback_result
from cropscan.orchestrator.usage import UsageTracker

WHEN = datetime(2024, 3, 5, 14, 30, 15, tzinfo=timezone.utc)


def sample(**kw):
    base = dict(
        crop_id="tomato",
        crop_name="Tomato",
        image_url="https://img.example/a.jpg",
        problem_name="Early Blight",
        description="Dark concentric spots on older leaves.",
        severity=2,
        confidence=82.5,
        actions=[
            Action(id="action_1", title="Remove leaves", description="Remove affected leaves",
                   priority=1, category=ActionCategory.PRUNING),
            Action(id="action_2", title="Apply fungicide", description="Apply fungicide immediately",
                   priority=2, category=ActionCategory.PEST_CONTROL, urgency="high"),
        ],
        user_id="u1",
        scientific_name="Alternaria solani",
        problem_type="fungal",
        timestamp=WHEN,
        id="res-1",
    )
    base.update(kw)
    return IdentificationResult(**base)


def test_document_uses_camel_case_keys():
    doc = records.to_document(sample())
    assert doc["cropId"] == "tomato"
    assert doc["problemName"] == "Early Blight"
    assert doc["scientificName"] == "Alternaria solani"
    assert doc["timestamp"] == "2024-03-05T14:30:15+00:00"
    assert doc["actions"][1] == {
        "id": "action_2", "title": "Apply fungicide", "description": "Apply fungicide immediately",
        "priority": 2, "category": "PEST_CONTROL", "status": "PENDING", "urgency": "high",
    }
    assert "feedback" not in doc


def test_document_round_trip_keeps_feedback():
    fb = Feedback(rating=5, comment="correct", is_accurate=True, timestamp=WHEN)
    original = sample().with_feedback(fb)
    assert records.from_document(records.to_document(original)) == original


def test_from_document_tolerates_sparse_and_millisecond_documents():
    r = records.from_document({"id": "x", "timestamp": 1709649015000})
    assert r.timestamp == WHEN
    assert r.severity == 2
    assert r.actions == []
    assert r.feedback is None


def test_export_json_writes_named_file(tmp_path):
    path = records.export_json(sample(), tmp_path / "exports")
    assert path.name == "identification_tomato_20240305_143015.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["id"] == "res-1"
    assert data["actions"][0]["category"] == "PRUNING"


def test_result_helpers():
    r = sample()
    assert r.is_high_confidence()
    assert not sample(confidence=79.9).is_high_confidence()
    assert not r.is_severe()
    assert sample(severity=3).is_severe()
    assert r.short_summary() == "Early Blight (medium severity)"


def test_condensed_trims_description_and_actions():
    many = [Action(id=f"action_{i}", title=f"Step {i}", description="d", priority=i) for i in range(1, 6)]
    r = sample(description="x" * 150, actions=many)
    c = r.condensed()
    assert c.description == "x" * 100 + "..."
    assert len(c.actions) == 3
    assert c.scientific_name is None
    assert c.id == r.id
    assert sample().condensed().description == sample().description


def test_fallback_messages_follow_error_code():
    crop = Crop(id="rice", name="Rice")
    offline = fallback_result(crop, "u1", errors.ERR_OFFLINE)
    generic = fallback_result(crop, "u1", "SOMETHING_NEW")
    assert "internet" in offline.description
    assert generic.description.startswith("We could not identify")
    assert offline.crop_id == "rice" and offline.user_id == "u1"
    assert [a.id for a in offline.actions] == ["action_retry", "action_inspect"]
    assert offline.image_url == ""


def test_usage_tracker_rolls_over_after_period():
    now = [1000.0]
    usage = UsageTracker(max_per_period=2, period_s=100.0, clock=lambda: now[0])
    assert usage.try_reserve("u1")
    assert usage.try_reserve("u1")
    assert not usage.try_reserve("u1")
    assert usage.remaining("u1") == 0
    now[0] += 100.0
    assert usage.remaining("u1") == 2
    assert usage.try_reserve("u1")


def test_usage_release_hands_the_slot_back():
    usage = UsageTracker(max_per_period=1)
    assert usage.try_reserve("u1")
    usage.release("u1")
    assert usage.remaining("u1") == 1
    assert usage.try_reserve("u1")


def test_usage_forgets_users_with_no_recent_entries():
    now = [0.0]
    usage = UsageTracker(max_per_period=3, period_s=10.0, clock=lambda: now[0])
    usage.try_reserve("a")
    usage.try_reserve("b")
    usage.release("b")
    assert "b" not in usage._used
    now[0] = 50.0
    assert usage.remaining("a") == 3
    assert "a" not in usage._used
