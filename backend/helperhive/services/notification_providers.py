# backend/helperhive/services/notification_providers.py
"""
Email and SMS senders used by the background notification tasks.

Resend delivers email when ``RESEND_API_KEY`` is set and Twilio delivers SMS
when its credentials are set. Without credentials the console senders log
the message instead, which keeps development and tests offline.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import resend
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from ..core.config import Settings, settings as default_settings
from ..core.constants import BRAND_NAME
from ..events import outbox_events

logger = logging.getLogger(__name__)


class NotificationProviderTemporaryError(RuntimeError):
    """Transient provider failure; the caller may retry later."""


class ConsoleEmailSender:
    def send(self, to_email: str, subject: str, text: str) -> Dict[str, Any]:
        logger.info("[console email] to=%s subject=%s\n%s", to_email, subject, text)
        return {"id": "console", "to": to_email}


class ResendEmailSender:
    def __init__(self, api_key: str, from_address: str):
        resend.api_key = api_key
        self.from_address = from_address

    def send(self, to_email: str, subject: str, text: str) -> Dict[str, Any]:
        try:
            response = resend.Emails.send(
                {
                    "from": self.from_address,
                    "to": [to_email],
                    "subject": subject,
                    "text": text,
                }
            )
        except Exception as e:
            logger.error(f"Resend error sending to {to_email}: {str(e)}")
            raise NotificationProviderTemporaryError(str(e)) from e
        logger.info("Email sent to %s", to_email)
        return dict(response)


class ConsoleSmsSender:
    def send(self, to_number: str, body: str) -> Dict[str, Any]:
        logger.info("[console sms] to=%s body=%s", to_number, body)
        return {"sid": "console", "to": to_number}


class TwilioSmsSender:
    def __init__(self, account_sid: str, auth_token: str, from_number: str):
        self.client = Client(account_sid, auth_token)
        self.from_number = from_number

    def send(self, to_number: str, body: str) -> Dict[str, Any]:
        try:
            message = self.client.messages.create(to=to_number, from_=self.from_number, body=body)
        except TwilioRestException as e:
            logger.error(f"Twilio error sending to {to_number}: {str(e)}")
            raise NotificationProviderTemporaryError(str(e)) from e
        logger.info("SMS sent to %s, SID: %s", to_number, message.sid)
        return {"sid": message.sid, "status": getattr(message, "status", None), "to": to_number}


def build_email_sender(config: Optional[Settings] = None) -> Any:
    config = config or default_settings
    if config.resend_api_key:
        return ResendEmailSender(config.resend_api_key.get_secret_value(), config.email_from_address)
    return ConsoleEmailSender()


def build_sms_sender(config: Optional[Settings] = None) -> Any:
    config = config or default_settings
    token = config.twilio_auth_token.get_secret_value() if config.twilio_auth_token else ""
    if config.twilio_account_sid and token and config.twilio_phone_number:
        return TwilioSmsSender(config.twilio_account_sid, token, config.twilio_phone_number)
    logger.info("SMS service disabled - Twilio credentials not configured")
    return ConsoleSmsSender()


_SUBJECTS = {
    outbox_events.BOOKING_CREATED: "New booking request {booking_number}",
    outbox_events.BOOKING_CONFIRMED: "Your booking {booking_number} is confirmed",
    outbox_events.BOOKING_CANCELLED: "Booking {booking_number} was cancelled",
    outbox_events.BOOKING_COMPLETED: "Booking {booking_number} is complete",
    outbox_events.PAYMENT_CONFIRMED: "Payment received for {booking_number}",
    outbox_events.PAYMENT_REFUNDED: "Refund processed for {booking_number}",
}


def render_booking_email(event_type: str, payload: Dict[str, Any]) -> tuple[str, str]:
    """Subject and plain-text body for a booking outbox event."""
    subject = _SUBJECTS.get(event_type, "Update on booking {booking_number}").format(**payload)
    body = (
        f"{subject}\n\n"
        f"Service: {payload.get('service_name')}\n"
        f"Date: {payload.get('scheduled_date')} at {payload.get('start_time')}\n"
        f"Status: {payload.get('status')}\n"
        f"Total: R{payload.get('total')}\n\n"
        f"- The {BRAND_NAME} team"
    )
    return f"{BRAND_NAME}: {subject}", body


def verification_sms_body(code: str) -> str:
    ttl = default_settings.verification_code_ttl_minutes
    return f"Your {BRAND_NAME} verification code is {code}. It expires in {ttl} minutes."


def verification_email(first_name: str, token: str) -> tuple[str, str]:
    link = f"{default_settings.frontend_url}/verify-email?token={token}"
    body = (
        f"Hi {first_name},\n\n"
        f"Welcome to {BRAND_NAME}. Please confirm your email address:\n{link}\n"
    )
    return f"Verify your {BRAND_NAME} email", body
