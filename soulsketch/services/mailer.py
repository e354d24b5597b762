"""
Email delivery for finished reports and order confirmations.

Sends over SMTP when SMTP_HOST, SMTP_USER and SMTP_PASS are all set. Without
them every message is appended to a rolling JSON log instead, so local runs
and tests behave like a delivered email.
"""
import logging
import mimetypes
import os
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any, Dict, List, Optional

from jinja2 import Environment

from soulsketch.config import Settings
from soulsketch.errors import EmailDeliveryError
from soulsketch.services import rolling_log
from soulsketch.services.payments import tier_level

logger = logging.getLogger(__name__)

TIER_NAMES = {"basic": "Essential", "plus": "Plus", "premium": "Premium", "deluxe": "Deluxe", "demo": "Preview"}

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

REPORT_TEMPLATE = _env.from_string("""\
<!DOCTYPE html>
<html>
<body style="font-family: Georgia, serif; background: #fdf6f9; color: #2d2240; padding: 24px;">
  <div style="max-width: 600px; margin: 0 auto; background: #ffffff; border-radius: 12px; padding: 32px;">
    <h1 style="color: #e91e63; text-align: center;">SoulmateSketch</h1>
    <h2 style="text-align: center;">Your {{ tier_name }} Soulmate Report is Ready</h2>
    <p>Dear {{ name or "Seeker" }},</p>
    <p>Your personalized soulmate sketch and reading are attached to this email. Inside you will find:</p>
    <ul>
      <li>Your personalized AI-generated soulmate portrait</li>
      <li>Comprehensive personality and energy analysis</li>
      <li>Connection style and love language insights</li>
      <li>How and where you're most likely to meet</li>
      <li>Astrological and numerological compatibility notes</li>
{% if is_plus %}
      <li>Enhanced location and timing insights</li>
{% endif %}
{% if is_premium %}
      <li>Complete spiritual and relationship strategy guide</li>
{% endif %}
{% if addons %}
      <li>Special spiritual insights ({{ addons | join(", ") }})</li>
{% endif %}
    </ul>
    <p>Take your time with it. Come back to it when something in your life shifts.</p>
    <p style="font-size: 12px; color: #666666;">This report is created for entertainment and inspiration purposes.</p>
  </div>
</body>
</html>
""")

CONFIRMATION_TEMPLATE = _env.from_string("""\
<!DOCTYPE html>
<html>
<body style="font-family: Georgia, serif; background: #fdf6f9; color: #2d2240; padding: 24px;">
  <div style="max-width: 600px; margin: 0 auto; background: #ffffff; border-radius: 12px; padding: 32px;">
    <h1 style="color: #e91e63; text-align: center;">SoulmateSketch</h1>
    <h2 style="text-align: center;">Thank you for your order</h2>
    <p><strong>Order ID:</strong> {{ order_id }}</p>
    <p><strong>Service:</strong> {{ tier_name }} Soulmate Sketch</p>
    <p><strong>Estimated Delivery:</strong> 5-10 minutes</p>
    <p>What happens next:</p>
    <ul>
      <li>Our AI creates your personalized soulmate portrait</li>
      <li>We generate your comprehensive personality analysis</li>
      <li>Everything is delivered to your inbox as a PDF report</li>
    </ul>
  </div>
</body>
</html>
""")

ADDON_LABELS = {"aura": "aura", "twin_flame": "twin flame", "past_life": "past life"}


def tier_name(tier: Optional[str]) -> str:
    return TIER_NAMES.get((tier or "").lower(), "Custom")


def _describe(path: Optional[str]) -> Dict[str, Any]:
    exists = bool(path) and os.path.exists(path)
    return {"filename": os.path.basename(path) if path else None,
            "exists": exists, "size": os.path.getsize(path) if exists else 0}


class EmailService:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.log_path = os.path.join(settings.LOG_DIR, "email-deliveries.json")

    @property
    def method(self) -> str:
        return "smtp" if self.settings.smtp_configured else "logged"

    def send_report(self, to: str, pdf_path: str, image_path: Optional[str], report_meta: Dict[str, Any]) -> Dict[str, Any]:
        if not pdf_path or not os.path.exists(pdf_path):
            raise EmailDeliveryError(f"PDF report not found: {pdf_path}")
        tier = report_meta.get("tier")
        addons = report_meta.get("addons") or []
        name = tier_name(tier)
        subject = f"Your {name} Soulmate Sketch Report is Ready!"

        if not self.settings.smtp_configured:
            self._log_delivery("report", to, subject, [pdf_path, image_path], report_meta)
            logger.info("Report email to %s logged (SMTP not configured)", to)
            return {"success": True, "method": "logged"}

        html = REPORT_TEMPLATE.render(
            tier_name=name, name=report_meta.get("user_name"),
            is_plus=tier_level(tier) >= 1, is_premium=tier_level(tier) >= 2,
            addons=[ADDON_LABELS.get(a, a) for a in addons],
        )
        attachments = [p for p in (pdf_path, image_path) if p and os.path.exists(p)]
        self._send_smtp(to, subject, html, attachments)
        logger.info("Report email sent to %s via SMTP", to)
        return {"success": True, "method": "smtp"}

    def send_order_confirmation(self, to: str, order_id: str, tier: str) -> Dict[str, Any]:
        name = tier_name(tier)
        subject = f"Your {name} Soulmate Sketch Order Confirmed"
        try:
            if not self.settings.smtp_configured:
                self._log_delivery("order_confirmation", to, subject, [], {"order_id": order_id, "tier": tier})
                return {"success": True, "method": "logged"}
            html = CONFIRMATION_TEMPLATE.render(order_id=order_id, tier_name=name)
            self._send_smtp(to, subject, html, [])
            return {"success": True, "method": "smtp"}
        except Exception as e:
            logger.warning("Order confirmation for %s not sent: %s", order_id, e)
            return {"success": False, "error": str(e)}

    def _send_smtp(self, to: str, subject: str, html: str, attachments: List[str]):
        s = self.settings
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = s.SMTP_FROM_EMAIL
        msg["To"] = to
        msg.set_content("Your SoulmateSketch email is best viewed in an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        for path in attachments:
            ctype, _ = mimetypes.guess_type(path)
            maintype, subtype = (ctype or "application/octet-stream").split("/", 1)
            with open(path, "rb") as f:
                msg.add_attachment(f.read(), maintype=maintype, subtype=subtype, filename=os.path.basename(path))
        try:
            if s.SMTP_SECURE:
                with smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT, timeout=30) as smtp:
                    smtp.login(s.SMTP_USER, s.SMTP_PASS)
                    smtp.send_message(msg)
            else:
                with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=30) as smtp:
                    smtp.starttls()
                    smtp.login(s.SMTP_USER, s.SMTP_PASS)
                    smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"SMTP delivery to {to} failed: {e}") from e

    def _log_delivery(self, kind: str, to: str, subject: str, paths: List[Optional[str]], report_data: Dict[str, Any]):
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "to": to,
            "subject": subject,
            "kind": kind,
            "attachments": [_describe(p) for p in paths if p],
            "report_data": report_data,
        }
        rolling_log.append_entry(self.log_path, entry, self.settings.EMAIL_LOG_LIMIT)


def build_mailer(settings: Settings) -> EmailService:
    if settings.smtp_configured:
        logger.info("Email: SMTP (%s:%s)", settings.SMTP_HOST, settings.SMTP_PORT)
    else:
        logger.warning("Email: SMTP not configured, deliveries are logged to %s", settings.LOG_DIR)
    return EmailService(settings)
