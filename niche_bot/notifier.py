"""
Operational notifications via the Telegram Bot API.

Best effort only: a notification that cannot be delivered is logged
and dropped, never raised to the pipeline.
"""

import logging
from typing import Optional

import requests

from .config import Config
from .models import AnalysisResult, DeliveryReport


logger = logging.getLogger(__name__)


TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"

# Telegram rejects messages longer than 4096 characters
TELEGRAM_MAX_LENGTH = 4000

SKIP_MESSAGE = "⚠️ Newsletter skipped: No daily picks available (all in cooldown)"


class TelegramNotifier:
    """Posts plain-text messages to a Telegram chat."""

    def __init__(self, config: Config, timeout: int = 20):
        self.bot_token = config.telegram_bot_token
        self.chat_id = config.telegram_chat_id
        self.timeout = timeout

    def notify(self, message: str) -> bool:
        """
        Send a message to the operations chat.

        Returns:
            True if Telegram accepted the message, False otherwise.
        """
        if not (self.bot_token and self.chat_id):
            logger.warning("TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID not set, skipping notification")
            return False

        url = TELEGRAM_API_URL.format(token=self.bot_token)
        payload = {
            "chat_id": self.chat_id,
            "text": message[:TELEGRAM_MAX_LENGTH],
            "disable_web_page_preview": True,
        }

        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            # Never include the URL: it carries the bot token
            logger.warning(f"Telegram notification failed: {type(e).__name__}")
            return False
        except Exception as e:
            logger.warning(f"Unexpected error sending Telegram notification: {e}")
            return False

        return True


def safe_notify(notifier, message: str) -> None:
    """Call notifier.notify() and swallow anything it raises."""
    try:
        notifier.notify(message)
    except Exception as e:
        logger.warning(f"Notifier raised, ignoring: {e}")


def format_success_message(
    analysis: AnalysisResult,
    niche_app_ids: list[list[str]],
    report: DeliveryReport,
) -> str:
    """Build the Telegram summary for a completed run."""
    niche_lines = []
    for niche, app_ids in zip(analysis.niches, niche_app_ids):
        niche_lines.append(f"• {niche.name} ({len(app_ids)} apps)")
    total_cooldowns = sum(len(ids) for ids in niche_app_ids)
    footer = "⚠️ Check logs for failed emails" if report.failed > 0 else "✅ All sent!"

    return "\n".join([
        "📰 Newsletter Sent!",
        "",
        f"📌 {analysis.title}",
        "",
        "🎯 Niches:",
        *niche_lines,
        "",
        "📊 Stats:",
        f"• Subscribers: {report.attempted}",
        f"• Sent: {report.sent}",
        f"• Failed: {report.failed}",
        f"• Apps in cooldown: {total_cooldowns} new",
        "",
        footer,
    ])


def format_failure_message(error: Optional[BaseException]) -> str:
    """Build the Telegram alert for a failed run."""
    return f"❌ Newsletter generation FAILED!\n\nError: {error}"
