import logging
import os
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from soulsketch.config import Settings
from soulsketch.errors import DeliverablesError, QuizValidationError
from soulsketch.schemas import ATTRACTION_PREFERENCES, QuizAnswers
from soulsketch.services import rolling_log
from soulsketch.services.mailer import EmailService, build_mailer
from soulsketch.services.portrait import PortraitGenerator, build_portrait_generator
from soulsketch.services.profile_writer import build_profile_writer
from soulsketch.services.report_pdf import PdfAssembler, build_report_data

logger = logging.getLogger(__name__)

STEPS = ("validation", "text_generation", "image_generation", "pdf_generation", "email_delivery", "done")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_quiz(quiz: QuizAnswers, email: Optional[str]) -> str:
    to = (email or quiz.user.email or "").strip()
    if not to or "@" not in to:
        raise QuizValidationError("a valid delivery email is required")
    if quiz.user.attracted_to not in ATTRACTION_PREFERENCES:
        raise QuizValidationError(f"unrecognised attraction preference: {quiz.user.attracted_to}")
    return to


class DeliverablesService:
    """Runs the whole order pipeline: text, portrait, PDF, email.

    Every step is appended to an audit record that is persisted to
    deliverables.json whether the run succeeds or fails.
    """

    def __init__(self, settings: Settings, writer, portrait: PortraitGenerator, pdf: PdfAssembler, mailer: EmailService):
        self.settings = settings
        self.writer = writer
        self.portrait = portrait
        self.pdf = pdf
        self.mailer = mailer
        self.upload_dir = settings.UPLOAD_DIR
        self.log_path = os.path.join(settings.LOG_DIR, "deliverables.json")

    def generate_and_deliver(self, order_id: str, quiz: QuizAnswers, tier: str, addons: List[str],
                             email: Optional[str] = None) -> Dict[str, Any]:
        started = time.monotonic()
        audit: Dict[str, Any] = {"order_id": order_id, "tier": tier, "addons": list(addons),
                                 "started_at": _now(), "steps": [], "success": False}
        step = "validation"
        try:
            to = validate_quiz(quiz, email)
            self._record(audit, step)

            step = "text_generation"
            profile_text = self.writer.write(quiz, tier, addons)
            self._record(audit, step, method=self.writer.method, chars=len(profile_text))

            step = "image_generation"
            image = self.portrait.generate(quiz, quiz.style, addons)
            self._record(audit, step, method=image.method, success=image.success)

            step = "pdf_generation"
            report = build_report_data(quiz, profile_text, tier, addons)
            pdf_name = f"{order_id}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}_report.pdf"
            pdf_path = self.pdf.render(report, image.file_path, os.path.join(self.upload_dir, pdf_name))
            self._record(audit, step, file=pdf_name)

            step = "email_delivery"
            sent = self.mailer.send_report(to, pdf_path, image.file_path, report.as_dict())
            self._record(audit, step, method=sent.get("method"))

            step = "done"
            for path in (image.file_path, image.share_path, pdf_path):
                if not os.path.exists(path):
                    raise FileNotFoundError(f"artifact missing after generation: {os.path.basename(path)}")
            files = {"image": os.path.basename(image.file_path), "share": os.path.basename(image.share_path),
                     "pdf": pdf_name}
            audit.update(success=True, files=files, delivery_method=sent.get("method"), image_method=image.method)
            self._record(audit, step)
        except Exception as e:
            logger.error("Deliverables for order %s failed at %s: %s", order_id, step, e, exc_info=True)
            audit["steps"].append({"step": step, "status": "failed", "timestamp": _now(), "error": str(e)})
            audit.update(success=False, error=str(e), failed_step=step)
            raise DeliverablesError(step, str(e)) from e
        finally:
            audit["completed_at"] = _now()
            audit["processing_ms"] = int((time.monotonic() - started) * 1000)
            self._persist(audit)

        logger.info("Deliverables for order %s done in %d ms", order_id, audit["processing_ms"])
        return {"order_id": order_id, "delivery_method": sent.get("method"), "image_method": image.method,
                "profile_text": profile_text, "files": files}

    def _record(self, audit: Dict[str, Any], step: str, **extra):
        audit["steps"].append({"step": step, "status": "completed", "timestamp": _now(), **extra})
        logger.info("order %s: %s completed", audit["order_id"], step)

    def _persist(self, audit: Dict[str, Any]):
        try:
            rolling_log.append_entry(self.log_path, audit, self.settings.DELIVERY_LOG_LIMIT)
        except OSError as e:
            logger.warning("Could not write delivery log: %s", e)

    def delivery_stats(self) -> Dict[str, Any]:
        entries = rolling_log.read_entries(self.log_path)
        successful = [e for e in entries if e.get("success")]
        times = [e["processing_ms"] for e in entries if isinstance(e.get("processing_ms"), (int, float))]
        avg = sum(times) / len(times) if times else 0
        return {
            "total_deliveries": len(entries),
            "successful_deliveries": len(successful),
            "success_rate": round(len(successful) / len(entries) * 100, 1) if entries else 0,
            "avg_processing_time_ms": round(avg),
        }

    def health_check(self) -> Dict[str, Any]:
        openai_ok = bool(self.settings.OPENAI_API_KEY)
        try:
            os.makedirs(self.upload_dir, exist_ok=True)
            fs_ok = os.access(self.upload_dir, os.W_OK)
        except OSError:
            fs_ok = False
        services = {
            "openai": {"available": openai_ok, "method": "ai-generated" if openai_ok else "fallback"},
            "email": {"available": self.settings.smtp_configured, "method": self.mailer.method},
            "filesystem": {"available": fs_ok, "uploads_dir": os.path.abspath(self.upload_dir)},
        }
        status = "healthy" if all(s["available"] for s in services.values()) else "degraded"
        return {"status": status, "timestamp": _now(), "services": services}


def build_deliverables(settings: Settings, mailer: Optional[EmailService] = None) -> DeliverablesService:
    return DeliverablesService(
        settings,
        writer=build_profile_writer(settings),
        portrait=build_portrait_generator(settings),
        pdf=PdfAssembler(),
        mailer=mailer or build_mailer(settings),
    )
