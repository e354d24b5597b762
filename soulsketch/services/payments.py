import logging
import time
from typing import Any, Dict, Optional

from soulsketch.config import Settings

logger = logging.getLogger(__name__)

TIER_PRICES = {
    "basic": 1999,    # $19.99 sketch + reading
    "plus": 2999,     # $29.99 adds location insights
    "premium": 4999,  # $49.99 full spiritual assessment
    "deluxe": 4999,
    "demo": 0,
}

# how much of the report each tier unlocks: 0 core, 1 plus page, 2 plus and premium pages
TIER_LEVELS = {"basic": 0, "demo": 0, "plus": 1, "premium": 2, "deluxe": 2}


def normalize_tier(tier: Optional[str]) -> str:
    t = (tier or "").strip().lower()
    return t if t in TIER_PRICES else "basic"


def price_for_tier(tier: Optional[str]) -> int:
    return TIER_PRICES.get((tier or "").strip().lower(), TIER_PRICES["basic"])


def tier_level(tier: Optional[str]) -> int:
    return TIER_LEVELS.get((tier or "").strip().lower(), 0)


def _ms() -> int:
    return int(time.time() * 1000)


class SimulatedGateway:
    """Always-succeeding stand-in used when no provider key is configured."""

    name = "simulated"

    def create_transaction(self, amount: int, currency: str = "usd", metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {"id": f"pi_demo_{_ms()}", "client_secret": "demo_secret", "amount": amount,
                "currency": currency, "status": "succeeded", "metadata": metadata or {}}

    def refund_transaction(self, transaction_id: str) -> Dict[str, Any]:
        return {"id": f"re_demo_{_ms()}", "payment_intent": transaction_id, "status": "succeeded"}


class StripeGateway:
    name = "stripe"

    def __init__(self, secret_key: str):
        import stripe
        stripe.api_key = secret_key
        self._stripe = stripe

    def create_transaction(self, amount: int, currency: str = "usd", metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        metadata = {k: str(v) for k, v in (metadata or {}).items()}
        params: Dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "automatic_payment_methods": {"enabled": True},
            "metadata": metadata,
            "description": f"Soulmate Sketch {metadata.get('tier', 'package')} - AI-generated portrait and personalized reading",
        }
        email = (metadata.get("email") or "").strip()
        if email:
            params["receipt_email"] = email
        intent = self._stripe.PaymentIntent.create(**params)
        return {"id": intent.id, "client_secret": intent.client_secret, "amount": intent.amount,
                "currency": intent.currency, "status": intent.status, "metadata": metadata}

    def refund_transaction(self, transaction_id: str) -> Dict[str, Any]:
        refund = self._stripe.Refund.create(payment_intent=transaction_id)
        return {"id": refund.id, "payment_intent": transaction_id, "status": refund.status}


def build_gateway(settings: Settings):
    if settings.STRIPE_SECRET_KEY:
        logger.info("Payments: Stripe")
        return StripeGateway(settings.STRIPE_SECRET_KEY)
    logger.warning("Payments: STRIPE_SECRET_KEY not set, using simulated transactions")
    return SimulatedGateway()
