from typing import Any, Dict, Optional
import asyncio
import json
import logging

import stripe

from app.core.errors import InvalidSignature, MarketplaceError, PaymentSessionError, ValidationError
from app.models.payment import CheckoutSession

logger = logging.getLogger(__name__)

class StripePaymentProcessor:
    """
    Thin wrapper around the Stripe SDK, built once at startup and injected into
    the checkout and webhook handlers. Credentials are passed per call so no
    module-level Stripe state is touched.
    """

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        timeout: float = 10.0,
        tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ):
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._timeout = timeout
        self._tolerance = tolerance

    async def create_checkout_session(
        self,
        *,
        amount: int,
        currency: str,
        product_name: str,
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> CheckoutSession:
        if not self._api_key:
            raise PaymentSessionError("Stripe is not configured. Please set STRIPE_API_KEY.")

        params = dict(
            mode="payment",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": product_name},
                    "unit_amount": amount,
                },
                "quantity": 1,
            }],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
        )

        try:
            session = await asyncio.wait_for(
                asyncio.to_thread(stripe.checkout.Session.create, api_key=self._api_key, **params),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Stripe checkout session creation timed out after {self._timeout}s")
            raise PaymentSessionError("Payment provider did not respond in time") from e
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session creation failed: {str(e)}")
            raise PaymentSessionError(getattr(e, "user_message", None) or "Checkout failed") from e

        return CheckoutSession(id=session.id, url=getattr(session, "url", None))

    def parse_notification(self, raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify a webhook signature and return the event as a plain dict."""
        if not signature:
            raise InvalidSignature("No signature")
        if not self._webhook_secret:
            logger.error("Webhook received but STRIPE_WEBHOOK_SECRET is not set")
            raise MarketplaceError("Webhook secret is not configured")

        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidSignature("Webhook Error: payload is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                payload, signature, self._webhook_secret, tolerance=self._tolerance
            )
        except stripe.SignatureVerificationError as e:
            raise InvalidSignature(f"Webhook Error: {str(e)}") from e

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise ValidationError("Webhook Error: malformed event payload") from e

        if not isinstance(event, dict) or not isinstance(event.get("type"), str):
            raise ValidationError("Webhook Error: malformed event payload")
        return event
