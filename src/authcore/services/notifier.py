"""OTP notifiers — deliver a freshly issued code to its identifier.

Delivery mechanics (SMTP, WhatsApp, SMS) belong to external services; the
core only needs "notify identifier".  The default notifier logs; the
webhook notifier hands the code to an HTTP endpoint that does the sending.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from authcore.models.otp import OtpPurpose

logger = logging.getLogger(__name__)


def mask_identifier(identifier: str) -> str:
    """Mask an email or phone number for logs: ``j***n@example.com``, ``+62******789``."""
    if "@" in identifier:
        local, _, domain = identifier.partition("@")
        if len(local) <= 2:
            masked_local = local[:1] + "***"
        else:
            masked_local = local[0] + "***" + local[-1]
        return f"{masked_local}@{domain}"
    if len(identifier) <= 6:
        return "*" * len(identifier)
    return identifier[:3] + "*" * (len(identifier) - 6) + identifier[-3:]


class Notifier(ABC):
    """Abstract interface every OTP delivery channel must implement."""

    @abstractmethod
    async def send_otp(self, identifier: str, code: str, purpose: OtpPurpose) -> None:
        """Deliver *code* to *identifier*; raise on delivery failure."""


class LogNotifier(Notifier):
    """Development notifier: writes the code to the debug log only."""

    async def send_otp(self, identifier: str, code: str, purpose: OtpPurpose) -> None:
        logger.info("OTP issued for %s (%s)", mask_identifier(identifier), purpose.value)
        logger.debug("OTP code for %s: %s", mask_identifier(identifier), code)


class WebhookNotifier(Notifier):
    """POSTs ``{identifier, code, purpose, channel}`` to a delivery service."""

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self._url = url
        self._timeout = timeout

    async def send_otp(self, identifier: str, code: str, purpose: OtpPurpose) -> None:
        payload = {
            "identifier": identifier,
            "code": code,
            "purpose": purpose.value,
            "channel": "email" if "@" in identifier else "whatsapp",
        }
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(self._url, json=payload)
        resp.raise_for_status()
        logger.info("OTP dispatched to %s", mask_identifier(identifier))
