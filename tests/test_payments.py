from types import SimpleNamespace

import pytest
import stripe

from soulsketch.services import payments
from soulsketch.services.payments import SimulatedGateway, StripeGateway, build_gateway, price_for_tier, tier_level


@pytest.mark.parametrize("tier,cents", [("basic", 1999), ("plus", 2999), ("premium", 4999), ("deluxe", 4999), ("demo", 0)])
def test_known_tier_prices(tier, cents):
    assert price_for_tier(tier) == cents


def test_unknown_tier_costs_basic():
    assert price_for_tier("platinum") == 1999
    assert price_for_tier(None) == 1999
    assert payments.normalize_tier("  PLUS ") == "plus"
    assert payments.normalize_tier("platinum") == "basic"


def test_tier_levels():
    assert tier_level("basic") == 0 and tier_level("demo") == 0
    assert tier_level("plus") == 1
    assert tier_level("premium") == 2 and tier_level("deluxe") == 2


def test_simulated_gateway_always_succeeds():
    gw = SimulatedGateway()
    tx = gw.create_transaction(1999, "usd", {"email": "a@b.com"})
    assert tx["id"].startswith("pi_demo_")
    assert tx["status"] == "succeeded"
    refund = gw.refund_transaction(tx["id"])
    assert refund["id"].startswith("re_demo_") and refund["payment_intent"] == tx["id"]


def test_stripe_gateway_builds_payment_intent(monkeypatch):
    seen = {}
    def fake_create(**params):
        seen.update(params)
        return SimpleNamespace(id="pi_123", client_secret="pi_123_secret", amount=params["amount"],
                               currency=params["currency"], status="requires_payment_method")
    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    gw = StripeGateway("sk_test_dummy")
    tx = gw.create_transaction(2999, "usd", {"email": "a@b.com", "tier": "plus"})
    assert tx["id"] == "pi_123" and tx["client_secret"] == "pi_123_secret"
    assert seen["receipt_email"] == "a@b.com"
    assert seen["automatic_payment_methods"] == {"enabled": True}
    assert "plus" in seen["description"]


def test_gateway_chosen_by_key(settings):
    assert build_gateway(settings).name == "simulated"
    assert build_gateway(settings.model_copy(update={"STRIPE_SECRET_KEY": "sk_test_x"})).name == "stripe"
