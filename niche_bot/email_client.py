"""
Email sending via the Resend HTTP API.

Sends the newsletter one subscriber at a time, pacing requests to stay
under the provider's rate limit (2 requests/second).
"""

import logging
import time
from typing import Callable, Iterable

import requests

from .config import Config, ConfigError
from .models import DeliveryReport


logger = logging.getLogger(__name__)


RESEND_API_URL = "https://api.resend.com/emails"

# 600ms between sends keeps us at ~1.6 emails/sec
DEFAULT_SEND_DELAY = 0.6


class EmailError(Exception):
    """Raised when email sending fails."""
    pass


class ResendClient:
    """
    Sends single HTML emails through Resend.

    The API key is checked on the first send, not at construction.
    """

    def __init__(self, config: Config, timeout: int = 30):
        self._config = config
        self.from_email = config.email_from
        self.timeout = timeout

    def send(self, to: str, subject: str, html_body: str) -> None:
        """
        Send one HTML email.

        Args:
            to: Recipient address.
            subject: Email subject line.
            html_body: HTML content for the email body.

        Raises:
            ConfigError: If RESEND_API_KEY is not set.
            EmailError: If sending fails.
        """
        api_key = self._config.require("resend_api_key")

        payload = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "html": html_body,
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = requests.post(RESEND_API_URL, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise EmailError(f"Failed to reach Resend: {e}") from e

        if response.status_code >= 400:
            raise EmailError(f"Resend rejected email ({response.status_code}): {response.text[:200]}")


def send_newsletter_batch(
    client,
    emails: Iterable[str],
    subject: str,
    html_body: str,
    delay_seconds: float = DEFAULT_SEND_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> DeliveryReport:
    """
    Send the newsletter to every address, one by one.

    A failed send is counted and logged; delivery continues with the
    next address.

    Args:
        client: Email client exposing send(to, subject, html_body).
        emails: Recipient addresses.
        subject: Email subject line.
        html_body: Rendered newsletter.
        delay_seconds: Pause between consecutive sends.
        sleep: Sleep function (injectable for tests).

    Returns:
        DeliveryReport with sent and failed counts.
    """
    emails = list(emails)
    report = DeliveryReport()
    total = len(emails)

    logger.info(f"Sending to {total} subscribers (1 by 1, {delay_seconds * 1000:.0f}ms delay)...")

    for i, email in enumerate(emails, 1):
        try:
            client.send(email, subject, html_body)
            report.sent += 1
            logger.info(f"[{i}/{total}] Sent to {email}")
        except ConfigError:
            raise
        except Exception as e:
            report.failed += 1
            logger.error(f"[{i}/{total}] Failed to send to {email}: {e}")

        if i < total and delay_seconds > 0:
            sleep(delay_seconds)

    logger.info(f"Delivery done: {report.sent} sent | {report.failed} failed")
    return report
