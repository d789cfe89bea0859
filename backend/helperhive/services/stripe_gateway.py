# backend/helperhive/services/stripe_gateway.py
"""
Thin wrapper over the Stripe SDK.

Without a configured secret key the gateway runs in mock mode and returns
deterministic ``mock_*`` objects so local development and tests work
offline.
"""

from dataclasses import dataclass
import json
import logging
from typing import Any, Dict, Optional

import stripe

from ..core.config import Settings, settings as default_settings
from ..core.exceptions import PaymentGatewayException, ValidationException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayPaymentIntent:
    id: str
    status: str
    amount: int
    client_secret: Optional[str] = None


@dataclass(frozen=True)
class GatewayRefund:
    id: str
    status: str
    amount: int


class StripeGateway:
    """Payment gateway calls used by PaymentService."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.stripe_configured = False
        if self.config.stripe_secret_key:
            stripe.api_key = self.config.stripe_secret_key.get_secret_value()
            stripe.max_network_retries = 0
            self.stripe_configured = True
            logger.info("Stripe gateway configured")
        else:
            logger.warning("Stripe secret key not configured - gateway will operate in mock mode")

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
        description: str,
        idempotency_key: Optional[str] = None,
    ) -> GatewayPaymentIntent:
        if not self.stripe_configured:
            booking_id = metadata.get("booking_id", "unknown")
            return GatewayPaymentIntent(
                id=f"mock_pi_{booking_id}",
                status="requires_payment_method",
                amount=amount_cents,
                client_secret=f"mock_pi_{booking_id}_secret",
            )
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                metadata=metadata,
                description=description,
                automatic_payment_methods={"enabled": True},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating payment intent: {str(e)}")
            raise PaymentGatewayException(f"Failed to create payment intent: {str(e)}")
        return GatewayPaymentIntent(
            id=intent.id,
            status=intent.status,
            amount=int(intent.amount),
            client_secret=getattr(intent, "client_secret", None),
        )

    def retrieve_payment_intent(self, payment_intent_id: str) -> GatewayPaymentIntent:
        if not self.stripe_configured:
            return GatewayPaymentIntent(id=payment_intent_id, status="succeeded", amount=0)
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe error retrieving payment intent {payment_intent_id}: {str(e)}")
            raise PaymentGatewayException(f"Failed to retrieve payment: {str(e)}")
        return GatewayPaymentIntent(id=intent.id, status=intent.status, amount=int(intent.amount))

    def create_refund(
        self,
        *,
        payment_intent_id: str,
        amount_cents: int,
        reason: str,
        metadata: Dict[str, str],
    ) -> GatewayRefund:
        if not self.stripe_configured:
            return GatewayRefund(
                id=f"mock_re_{payment_intent_id}", status="succeeded", amount=amount_cents
            )
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_intent_id,
                amount=amount_cents,
                reason=reason,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error refunding {payment_intent_id}: {str(e)}")
            raise PaymentGatewayException(f"Failed to process refund: {str(e)}")
        return GatewayRefund(id=refund.id, status=refund.status, amount=int(refund.amount))

    def construct_webhook_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify the Stripe signature when a webhook secret is configured."""
        secret = (
            self.config.stripe_webhook_secret.get_secret_value()
            if self.config.stripe_webhook_secret
            else None
        )
        if not secret:
            logger.warning("Stripe webhook secret not configured - accepting unsigned payload")
            try:
                return json.loads(payload)
            except ValueError:
                raise ValidationException("Invalid webhook payload", code="INVALID_WEBHOOK")
        if not signature:
            raise ValidationException("Missing Stripe signature", code="INVALID_WEBHOOK")
        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid webhook signature: {str(e)}")
            raise ValidationException("Invalid webhook signature", code="INVALID_WEBHOOK")
        except ValueError as e:
            raise ValidationException(f"Invalid webhook payload: {str(e)}", code="INVALID_WEBHOOK")
        return json.loads(payload)
