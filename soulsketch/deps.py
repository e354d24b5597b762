import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import Request
from sqlalchemy import event
from sqlmodel import SQLModel, Session, create_engine

from soulsketch.config import Settings
from soulsketch.errors import OrderNotFound
from soulsketch.models import Order, as_utc, utcnow

logger = logging.getLogger(__name__)

STATUS_ORDER = ("created", "delivered")


class OrderStore:
    """Single-table order persistence on an embedded SQLite database.

    Constructed once at startup and closed at shutdown; every method opens its
    own short session so rows returned to callers are plain detached objects.
    """

    def __init__(self, db_url: str):
        if db_url.startswith("sqlite:///"):
            path = db_url[len("sqlite:///"):]
            if path and path != ":memory:":
                os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        is_sqlite = db_url.startswith("sqlite")
        connect_args = {"check_same_thread": False} if is_sqlite else {}
        self.engine = create_engine(db_url, echo=False, connect_args=connect_args)
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_wal)

    def open(self):
        SQLModel.metadata.create_all(self.engine)
        logger.info("Order store ready at %s", self.engine.url)

    def close(self):
        self.engine.dispose()

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def create(self, email: str, tier: str, addons: List[str], price_cents: int,
               currency: str = "usd", payment_ref: Optional[str] = None) -> Order:
        order = Order(email=email, tier=tier, addons=list(addons), price_cents=price_cents,
                      currency=currency, payment_ref=payment_ref)
        order.updated_at = order.created_at
        with self._session() as session:
            session.add(order); session.commit(); session.refresh(order)
        return order

    def get(self, order_id: str) -> Order:
        with self._session() as session:
            order = session.get(Order, order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def save_intake(self, order_id: str, quiz_answers: Optional[Dict[str, Any]], photo_path: Optional[str] = None) -> Order:
        """Store intake data. `None` answers keep whatever quiz is already saved."""
        with self._session() as session:
            order = session.get(Order, order_id)
            if order is None:
                raise OrderNotFound(order_id)
            if quiz_answers is not None:
                order.quiz_answers = dict(quiz_answers)
            if photo_path:
                order.photo_path = photo_path
            _touch(order)
            session.add(order); session.commit(); session.refresh(order)
        return order

    def record_results(self, order_id: str, image_path: str, share_path: str, pdf_path: str) -> Order:
        with self._session() as session:
            order = session.get(Order, order_id)
            if order is None:
                raise OrderNotFound(order_id)
            order.result_image_path = image_path
            order.result_share_path = share_path
            order.result_pdf_path = pdf_path
            _advance(order, "delivered")
            _touch(order)
            session.add(order); session.commit(); session.refresh(order)
        return order


def _enable_wal(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def _touch(order: Order):
    now, current = utcnow(), as_utc(order.updated_at)
    order.updated_at = now if now > current else current


def _advance(order: Order, status: str):
    # status only ever moves forward
    if STATUS_ORDER.index(status) > STATUS_ORDER.index(order.status if order.status in STATUS_ORDER else "created"):
        order.status = status


def build_store(settings: Settings) -> OrderStore:
    store = OrderStore(settings.DB_URL)
    store.open()
    return store


def get_store(request: Request) -> OrderStore:
    return request.app.state.store


def get_deliverables(request: Request):
    return request.app.state.deliverables


def get_gateway(request: Request):
    return request.app.state.gateway


def get_mailer(request: Request):
    return request.app.state.mailer
