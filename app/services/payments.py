"""Checkout session bridge.

The bridge only produces a redirect URL. It never changes a user's premium
status; that is a separate mutation exposed on the users routes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

import stripe
from app.config import Settings
from app.core.exceptions import PaymentProviderError, PaymentUnavailableError
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutRequest:
  """What the caller wants to pay for. `amount` is in whole currency units."""

  amount: Decimal
  display_name: str
  success_url_template: str
  cancel_url: str
  customer_email: str | None = None


class CheckoutBridge(Protocol):
  async def create_session(self, request: CheckoutRequest) -> str:
    """Return the provider-hosted URL the client should be redirected to."""


def to_minor_units(amount: Decimal) -> int:
  """Convert a whole-unit amount (e.g. 15.5) to the provider's smallest unit (1550)."""
  return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeCheckoutBridge:
  """Stripe Checkout in one-off payment mode with an inline price."""

  def __init__(self, *, secret_key: str, currency: str) -> None:
    self._secret_key = secret_key
    self._currency = currency

  async def create_session(self, request: CheckoutRequest) -> str:
    params = {
      "mode": "payment",
      "payment_method_types": ["card"],
      "line_items": [{"price_data": {"currency": self._currency, "product_data": {"name": request.display_name}, "unit_amount": to_minor_units(request.amount)}, "quantity": 1}],
      "success_url": request.success_url_template,
      "cancel_url": request.cancel_url,
    }
    if request.customer_email:
      params["customer_email"] = request.customer_email

    try:
      # The SDK is synchronous; keep it off the event loop.
      session = await run_in_threadpool(stripe.checkout.Session.create, api_key=self._secret_key, **params)
    except stripe.StripeError as exc:
      logger.error("Stripe checkout session failed error_type=%s error=%s", type(exc).__name__, exc)
      raise PaymentProviderError(str(exc)) from exc

    if not session.url:
      raise PaymentProviderError("Checkout session was created without a redirect URL.")
    logger.info("Checkout session created session_id=%s", session.id)
    return session.url


class NullCheckoutBridge:
  """Used when no provider key is configured."""

  async def create_session(self, request: CheckoutRequest) -> str:
    raise PaymentUnavailableError("Checkout provider is not configured.")


def build_checkout_bridge(settings: Settings) -> CheckoutBridge:
  """Construct the checkout bridge based on environment configuration."""
  if not settings.stripe_secret_key:
    return NullCheckoutBridge()
  return StripeCheckoutBridge(secret_key=settings.stripe_secret_key, currency=settings.checkout_currency)
