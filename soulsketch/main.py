import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from soulsketch.config import settings
from soulsketch.deps import build_store
from soulsketch.routers import admin, orders, payments
from soulsketch.services.deliverables import build_deliverables
from soulsketch.services.mailer import build_mailer
from soulsketch.services.payments import build_gateway

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
os.makedirs(settings.LOG_DIR, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.store = build_store(settings)
    app.state.gateway = build_gateway(settings)
    app.state.mailer = build_mailer(settings)
    app.state.deliverables = build_deliverables(settings, mailer=app.state.mailer)
    logger.info("SoulSketch ready (uploads=%s, logs=%s)", settings.UPLOAD_DIR, settings.LOG_DIR)
    yield
    app.state.store.close()


app = FastAPI(title="SoulSketch", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/healthz")
def healthz():
    return {"status": "ok"}

app.include_router(orders.router, prefix="/api", tags=["orders"])
app.include_router(payments.router, prefix="/api", tags=["payments"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])

app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")
