import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests
import stripe

from shared.core.config import settings
from shared.core.exceptions import UpstreamFailureError, WebhookSignatureError

logger = logging.getLogger(__name__)


@dataclass
class ChargeIntent:
    id: str
    client_secret: Optional[str]


class PaymentGateway:
    """Narrow interface the escrow tracker talks to."""

    def create_charge_intent(self, amount: int, currency: str,
                             metadata: Dict[str, str]) -> ChargeIntent:
        raise NotImplementedError

    def construct_event(self, payload: bytes, signature_header: Optional[str]) -> dict:
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    """Stripe SDK client over a pooled requests session."""

    def __init__(self, secret_key: Optional[str] = None,
                 webhook_secret: Optional[str] = None,
                 timeout: Optional[int] = None):
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.tolerance = settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS
        self.client = None
        if self.secret_key:
            http_client = stripe.RequestsClient(
                session=requests.Session(),
                timeout=timeout or settings.STRIPE_TIMEOUT_SECONDS,
            )
            self.client = stripe.StripeClient(self.secret_key, http_client=http_client)

    def create_charge_intent(self, amount, currency, metadata):
        if self.client is None:
            raise UpstreamFailureError("Payment processor is not configured")

        try:
            intent = self.client.payment_intents.create(params={
                "amount": amount,
                "currency": currency.lower(),
                "automatic_payment_methods": {"enabled": True},
                "metadata": {key: str(value) for key, value in metadata.items()},
            })
        except stripe.StripeError as e:
            logger.error("Stripe rejected payment intent: %s", e.user_message or e)
            raise UpstreamFailureError(e.user_message or "Payment processor error")

        return ChargeIntent(id=intent.id, client_secret=intent.client_secret)

    def construct_event(self, payload, signature_header):
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret not configured")
        if not signature_header:
            raise WebhookSignatureError("Missing signature header")

        try:
            stripe.Webhook.construct_event(
                payload, signature_header, self.webhook_secret, tolerance=self.tolerance)
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature rejected: %s", e)
            raise WebhookSignatureError("Invalid webhook signature")
        except ValueError:
            raise WebhookSignatureError("Webhook payload is not valid JSON")

        # crud handlers work on plain dicts
        return json.loads(payload)


_gateway: Optional[PaymentGateway] = None


# Dependency
def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = StripeGateway()
    return _gateway
