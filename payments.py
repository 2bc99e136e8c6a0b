"""
Payment intent creation against the Stripe REST API.
"""
import logging
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Optional

import requests

from config import Settings
from errors import InvalidArgument, UpstreamFailure

logger = logging.getLogger(__name__)


def to_minor_units(price) -> int:
    """Convert a price in major units to an integer amount in minor units (19.99 -> 1999)."""
    try:
        # str() first so 19.99 is not read as 19.989999...
        amount = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise InvalidArgument("price must be a number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidArgument("price must be greater than zero")
    minor = int((amount * 100).to_integral_value(rounding=ROUND_DOWN))
    if minor < 1:
        raise InvalidArgument("price is below the smallest chargeable amount")
    return minor


class PaymentBridge:
    def __init__(self, settings: Settings):
        self.secret_key = settings.stripe_secret_key
        self.api_base = settings.stripe_api_base.rstrip("/")
        self.currency = settings.payment_currency
        self.timeout: Optional[float] = settings.payment_timeout_seconds

    def create_payment_intent(self, price) -> str:
        amount = to_minor_units(price)
        if not self.secret_key:
            raise UpstreamFailure("Payment processor is not configured")
        payload = {
            "amount": amount,
            "currency": self.currency,
            "payment_method_types[]": "card",
        }
        try:
            resp = requests.post(
                f"{self.api_base}/payment_intents",
                data=payload,
                auth=(self.secret_key, ""),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Payment processor unreachable: %s", e)
            raise UpstreamFailure("Payment processor unreachable")

        if resp.status_code != 200:
            try:
                message = resp.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = f"Payment processor returned {resp.status_code}"
            logger.error("Payment intent for %d %s rejected: %s", amount, self.currency, message)
            raise UpstreamFailure(message)

        try:
            data = resp.json()
            client_secret = data["client_secret"]
        except (ValueError, KeyError, TypeError):
            logger.error("Payment processor returned an unreadable intent for %d %s", amount, self.currency)
            raise UpstreamFailure("Payment processor returned an unexpected response")
        logger.info("Created payment intent %s for %d %s", data.get("id"), amount, self.currency)
        return client_secret
