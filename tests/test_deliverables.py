import os

import pytest

from soulsketch.errors import DeliverablesError, PdfRenderError
from soulsketch.schemas import normalize_quiz
from soulsketch.services import rolling_log
from soulsketch.services.deliverables import STEPS, build_deliverables


def _audit(svc):
    return rolling_log.read_entries(svc.log_path)


def test_full_run_in_fallback_mode(settings, quiz_answers):
    svc = build_deliverables(settings)
    out = svc.generate_and_deliver("order-1", normalize_quiz(quiz_answers), "premium", ["aura"])
    assert out["delivery_method"] == "logged" and out["image_method"] == "placeholder"
    assert len(out["profile_text"]) >= 100
    for name in out["files"].values():
        assert os.path.getsize(os.path.join(settings.UPLOAD_DIR, name)) > 0
    assert out["files"]["pdf"].startswith("order-1_")

    entry = _audit(svc)[-1]
    assert entry["success"] is True and entry["order_id"] == "order-1"
    assert [s["step"] for s in entry["steps"]] == list(STEPS)
    assert all(s["status"] == "completed" and s["timestamp"] for s in entry["steps"])


def test_validation_failure_stops_before_generation(settings):
    svc = build_deliverables(settings)
    with pytest.raises(DeliverablesError) as exc:
        svc.generate_and_deliver("order-2", normalize_quiz({"user": {"email": "not-an-email"}}), "basic", [])
    assert exc.value.step == "validation"
    assert str(exc.value).startswith("Report generation failed:")
    entry = _audit(svc)[-1]
    assert entry["success"] is False and entry["failed_step"] == "validation"
    assert not os.path.isdir(settings.UPLOAD_DIR) or os.listdir(settings.UPLOAD_DIR) == []


def test_unrecognised_attraction_is_rejected(settings):
    svc = build_deliverables(settings)
    quiz = normalize_quiz({"user": {"attractedTo": "dragons"}}, email="a@b.com")
    with pytest.raises(DeliverablesError) as exc:
        svc.generate_and_deliver("order-3", quiz, "basic", [])
    assert exc.value.step == "validation"


def test_pdf_failure_is_wrapped_with_step(settings, monkeypatch):
    svc = build_deliverables(settings)
    def broken(*args, **kwargs):
        raise PdfRenderError("disk full")
    monkeypatch.setattr(svc.pdf, "render", broken)
    with pytest.raises(DeliverablesError) as exc:
        svc.generate_and_deliver("order-4", normalize_quiz({}, email="a@b.com"), "basic", [])
    assert exc.value.step == "pdf_generation" and "disk full" in str(exc.value)
    entry = _audit(svc)[-1]
    assert entry["error"] == "disk full"
    assert [s["step"] for s in entry["steps"]][-1] == "pdf_generation"


def test_delivery_log_is_capped(settings):
    svc = build_deliverables(settings.model_copy(update={"DELIVERY_LOG_LIMIT": 2}))
    for i in range(3):
        with pytest.raises(DeliverablesError):
            svc.generate_and_deliver(f"bad-{i}", normalize_quiz({}), "basic", [])
    assert [e["order_id"] for e in _audit(svc)] == ["bad-1", "bad-2"]


def test_stats_and_health(settings):
    svc = build_deliverables(settings)
    assert svc.delivery_stats()["total_deliveries"] == 0
    svc.generate_and_deliver("ok-1", normalize_quiz({}, email="a@b.com"), "basic", [])
    with pytest.raises(DeliverablesError):
        svc.generate_and_deliver("bad-1", normalize_quiz({}), "basic", [])
    stats = svc.delivery_stats()
    assert stats["total_deliveries"] == 2 and stats["successful_deliveries"] == 1
    assert stats["success_rate"] == 50.0

    health = svc.health_check()
    assert health["status"] == "degraded"
    assert health["services"]["openai"]["method"] == "fallback"
    assert health["services"]["email"]["method"] == "logged"
    assert health["services"]["filesystem"]["available"] is True
