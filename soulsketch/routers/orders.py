import json
import logging
import os
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from soulsketch.config import settings
from soulsketch.deps import OrderStore, get_deliverables, get_gateway, get_mailer, get_store
from soulsketch.errors import DeliverablesError, OrderNotFound
from soulsketch.schemas import normalize_addons, normalize_quiz
from soulsketch.services.payments import normalize_tier, price_for_tier

logger = logging.getLogger(__name__)

router = APIRouter()

PHOTO_TYPES = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp", "image/heic": ".heic"}


class CreateOrder(BaseModel):
    email: Optional[str] = None
    tier: Optional[str] = None
    addons: List[str] = Field(default_factory=list)


def _load(store: OrderStore, order_id: str):
    try:
        return store.get(order_id)
    except OrderNotFound:
        raise HTTPException(status_code=404, detail="order not found")


def _upload_path(name: Optional[str]) -> Optional[str]:
    return os.path.join(settings.UPLOAD_DIR, name) if name else None


@router.post("/orders")
def create_order(req: CreateOrder, store: OrderStore = Depends(get_store),
                 gateway=Depends(get_gateway), mailer=Depends(get_mailer)):
    email = (req.email or "").strip()
    if not email:
        raise HTTPException(status_code=400, detail="email required")
    tier = normalize_tier(req.tier)
    addons = normalize_addons(req.addons)
    price = price_for_tier(tier)

    payment = {"id": None, "client_secret": None}
    if price > 0:
        try:
            payment = gateway.create_transaction(price, "usd", {"email": email, "tier": tier, "addons": ",".join(addons)})
        except Exception as e:
            logger.error("Payment provider error for %s: %s", email, e)
            raise HTTPException(status_code=502, detail="payment provider unavailable")

    order = store.create(email=email, tier=tier, addons=addons, price_cents=price, currency="usd",
                         payment_ref=payment.get("id"))
    mailer.send_order_confirmation(email, order.id, tier)
    logger.info("Order %s created (%s, %d cents)", order.id, tier, price)
    return {"id": order.id, "price_cents": order.price_cents, "currency": order.currency,
            "client_secret": payment.get("client_secret")}


@router.post("/orders/{order_id}/intake")
def intake(order_id: str, photo: Optional[UploadFile] = File(None), quiz: Optional[str] = Form(None),
           store: OrderStore = Depends(get_store)):
    _load(store, order_id)
    answers = None  # no quiz field keeps the stored answers
    if quiz:
        try:
            answers = json.loads(quiz)
        except ValueError:
            raise HTTPException(status_code=400, detail="quiz must be a JSON object")
        if not isinstance(answers, dict):
            raise HTTPException(status_code=400, detail="quiz must be a JSON object")

    photo_name = None
    if photo is not None and photo.filename:
        ext = PHOTO_TYPES.get(photo.content_type or "")
        if ext is None:
            raise HTTPException(status_code=400, detail="photo must be a JPEG, PNG, WEBP or HEIC image")
        data = photo.file.read()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail="photo too large")
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        photo_name = f"photo_{order_id}_{int(time.time() * 1000)}{ext}"
        with open(_upload_path(photo_name), "wb") as f:
            f.write(data)

    store.save_intake(order_id, answers, photo_path=photo_name)
    return {"ok": True}


@router.post("/orders/{order_id}/generate")
def generate(order_id: str, store: OrderStore = Depends(get_store), deliverables=Depends(get_deliverables)):
    order = _load(store, order_id)
    quiz = normalize_quiz(order.quiz_answers, email=order.email)
    try:
        result = deliverables.generate_and_deliver(order.id, quiz, order.tier, order.addons or [])
    except DeliverablesError as e:
        if e.step == "validation":
            raise HTTPException(status_code=400, detail=str(e))
        raise HTTPException(status_code=500, detail="Report generation failed. Please try again.")

    files = result["files"]
    store.record_results(order.id, image_path=files["image"], share_path=files["share"], pdf_path=files["pdf"])
    return {"imagePath": f"/uploads/{files['image']}", "sharePath": f"/uploads/{files['share']}",
            "pdfPath": f"/uploads/{files['pdf']}", "profileText": result["profile_text"]}


@router.get("/orders/{order_id}")
def get_order(order_id: str, store: OrderStore = Depends(get_store)):
    return _load(store, order_id)


@router.get("/orders/{order_id}/report")
def download_report(order_id: str, store: OrderStore = Depends(get_store)):
    order = _load(store, order_id)
    path = _upload_path(order.result_pdf_path)
    if not path or not os.path.isfile(path):
        raise HTTPException(status_code=404, detail="report not generated yet")
    return FileResponse(path, media_type="application/pdf", filename="soulmate-sketch-report.pdf")


@router.get("/images/{filename}")
def get_image(filename: str):
    root = os.path.realpath(settings.UPLOAD_DIR)
    path = os.path.realpath(os.path.join(root, filename))
    if os.path.dirname(path) != root or not os.path.isfile(path):
        raise HTTPException(status_code=404, detail="image not found")
    return FileResponse(path, media_type="image/png")
