import inspect
import json
import os

from soulsketch.config import settings
from soulsketch.services import rolling_log


def _new_order(client, **body):
    r = client.post("/api/orders", json={"email": "a@b.com", "tier": "basic", **body})
    assert r.status_code==200
    return r.json()


def test_end_to_end_basic_order(client):
    order = _new_order(client)
    assert order["price_cents"]==1999 and order["currency"]=="usd"
    assert order["client_secret"]=="demo_secret"

    r = client.post(f"/api/orders/{order['id']}/intake", data={"quiz": "{}"})
    assert r.status_code==200 and r.json()=={"ok": True}

    r = client.post(f"/api/orders/{order['id']}/generate")
    assert r.status_code==200
    js = r.json()
    assert js["imagePath"].startswith("/uploads/") and js["pdfPath"].endswith(".pdf")
    assert js["sharePath"].endswith("_story.png")
    assert len(js["profileText"]) >= 100

    row = client.get(f"/api/orders/{order['id']}").json()
    assert row["status"]=="delivered"
    assert row["result_image_path"] and row["result_pdf_path"]
    assert js["pdfPath"]==f"/uploads/{row['result_pdf_path']}"

    assert client.get(js["imagePath"]).status_code==200
    r = client.get(f"/api/orders/{order['id']}/report")
    assert r.status_code==200 and r.content[:5]==b"%PDF-"
    r = client.get(f"/api/images/{row['result_image_path']}")
    assert r.status_code==200 and r.headers["content-type"]=="image/png"


def test_generate_twice_writes_new_artifacts(client):
    order = _new_order(client, tier="plus", addons=["aura", "aura", "unknown"])
    client.post(f"/api/orders/{order['id']}/intake", data={"quiz": json.dumps({"user": {"attractedTo": "men"}})})
    first = client.post(f"/api/orders/{order['id']}/generate").json()
    row1 = client.get(f"/api/orders/{order['id']}").json()
    second = client.post(f"/api/orders/{order['id']}/generate").json()
    row2 = client.get(f"/api/orders/{order['id']}").json()
    assert first["imagePath"]!=second["imagePath"] and first["pdfPath"]!=second["pdfPath"]
    assert row1["result_pdf_path"]!=row2["result_pdf_path"]
    assert row2["addons"]==["aura"] and row2["price_cents"]==2999
    assert row1["updated_at"] <= row2["updated_at"]
    assert row2["created_at"] <= row2["updated_at"]


def test_unknown_order_is_404_and_not_audited(client):
    assert client.post("/api/orders/does-not-exist/generate").status_code==404
    assert client.post("/api/orders/does-not-exist/intake", data={"quiz": "{}"}).status_code==404
    assert client.get("/api/orders/does-not-exist").status_code==404
    entries = rolling_log.read_entries(os.path.join(settings.LOG_DIR, "deliverables.json"))
    assert not [e for e in entries if e.get("order_id")=="does-not-exist"]


def test_create_order_validation(client):
    assert client.post("/api/orders", json={"email": "   "}).status_code==400
    assert client.post("/api/orders", json={"tier": "plus"}).status_code==400
    order = _new_order(client, tier="platinum")
    assert order["price_cents"]==1999
    demo = _new_order(client, tier="demo")
    assert demo["price_cents"]==0 and demo["client_secret"] is None


def test_intake_rejects_non_object_quiz(client):
    order = _new_order(client)
    assert client.post(f"/api/orders/{order['id']}/intake", data={"quiz": "[1, 2]"}).status_code==400
    assert client.post(f"/api/orders/{order['id']}/intake", data={"quiz": "not json"}).status_code==400


def test_intake_stores_photo(client):
    order = _new_order(client)
    files = {"photo": ("me.png", b"\x89PNG fake bytes", "image/png")}
    r = client.post(f"/api/orders/{order['id']}/intake", data={"quiz": "{}"}, files=files)
    assert r.status_code==200
    row = client.get(f"/api/orders/{order['id']}").json()
    assert row["photo_path"].startswith(f"photo_{order['id']}_")
    assert os.path.exists(os.path.join(settings.UPLOAD_DIR, row["photo_path"]))
    bad = {"photo": ("me.txt", b"hello", "text/plain")}
    assert client.post(f"/api/orders/{order['id']}/intake", files=bad).status_code==400


def test_generate_validation_failure_is_400(client):
    order = _new_order(client)
    client.post(f"/api/orders/{order['id']}/intake", data={"quiz": json.dumps({"user": {"attractedTo": "dragons"}})})
    r = client.post(f"/api/orders/{order['id']}/generate")
    assert r.status_code==400
    assert client.get(f"/api/orders/{order['id']}").json()["status"]=="created"


def test_report_missing_before_generate(client):
    order = _new_order(client)
    assert client.get(f"/api/orders/{order['id']}/report").status_code==404


def test_images_cannot_escape_uploads(client):
    assert client.get("/api/images/nothing-here.png").status_code==404
    assert client.get("/api/images/..%2Fconftest.py").status_code==404


def test_payment_intent_and_health(client):
    r = client.post("/api/payment-intent", json={"amount": 2999})
    assert r.status_code==200 and r.json()["id"].startswith("pi_demo_")
    assert client.post("/api/payment-intent", json={"amount": 0}).status_code==422
    assert client.get("/api/health").json()=={"status": "ok", "payments": "simulated", "email": "logged"}
    assert client.get("/healthz").json()=={"status": "ok"}


def test_admin_routes(client):
    _new_order(client)
    assert client.get("/admin/health").json()["status"]=="degraded"
    assert "total_deliveries" in client.get("/admin/deliveries/stats").json()
    r = client.post("/admin/cleanup", params={"days": 30})
    assert r.status_code==200 and r.json()=={"cleaned": 0}


def test_photo_only_intake_keeps_stored_quiz(client):
    order = _new_order(client)
    quiz = {"user": {"name": "Sam", "attractedTo": "women"}, "birth": {"date": "1990-07-04"}}
    client.post(f"/api/orders/{order['id']}/intake", data={"quiz": json.dumps(quiz)})
    files = {"photo": ("me.jpg", b"\xff\xd8 fake jpeg", "image/jpeg")}
    r = client.post(f"/api/orders/{order['id']}/intake", files=files)
    assert r.status_code==200
    row = client.get(f"/api/orders/{order['id']}").json()
    assert row["quiz_answers"]==quiz
    assert row["photo_path"].endswith(".jpg")


def test_intake_runs_in_threadpool():
    from soulsketch.routers.orders import intake
    assert not inspect.iscoroutinefunction(intake)
