from sqlmodel import SQLModel, Field, Column, JSON
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
import secrets
import uuid

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they were written as UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)

class Order(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    email: str
    tier: str = "basic"  # basic | plus | premium | deluxe | demo
    addons: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    status: str = "created"  # created -> delivered
    price_cents: int
    currency: str = "usd"
    payment_ref: Optional[str] = None
    photo_path: Optional[str] = None
    quiz_answers: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    result_image_path: Optional[str] = None
    result_share_path: Optional[str] = None
    result_pdf_path: Optional[str] = None
    share_token: str = Field(default_factory=lambda: secrets.token_urlsafe(16), index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
