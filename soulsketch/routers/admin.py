from typing import Optional

from fastapi import APIRouter, Depends, Query

from soulsketch.config import settings
from soulsketch.deps import get_deliverables
from soulsketch.services import housekeeping

router = APIRouter()


@router.get("/health")
def health(deliverables=Depends(get_deliverables)):
    return deliverables.health_check()


@router.get("/deliveries/stats")
def delivery_stats(deliverables=Depends(get_deliverables)):
    return deliverables.delivery_stats()


@router.post("/cleanup")
def cleanup(days: Optional[int] = Query(None, ge=0)):
    days = settings.FILE_RETENTION_DAYS if days is None else days
    return {"cleaned": housekeeping.cleanup_old_files(settings.UPLOAD_DIR, days)}
