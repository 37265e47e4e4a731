"""Notification system for threshold alerts.

Provides an abstract notification interface with pluggable backends.
Supports Telegram and Slack notifications, or both simultaneously.

Delivery is best-effort: a backend reports failure by returning False and
never raises for network or API errors.
"""

import asyncio
import json
import urllib.request
from abc import ABC, abstractmethod
from typing import Any, override

from grainwatch.lib.alerts import Alert
from grainwatch.lib.config import AlertType, NotificationBackend, get_settings
from grainwatch.lib.exceptions import NotificationError
from grainwatch.lib.retry import with_retry
from grainwatch.logging import get_logger

logger = get_logger("lib.notifications")

ALERT_EMOJIS: dict[AlertType, str] = {
    AlertType.TEMP_HIGH: "\N{FIRE}",
    AlertType.TEMP_LOW: "\N{SNOWFLAKE}",
    AlertType.HUMIDITY_HIGH: "\N{DROPLET}",
    AlertType.HUMIDITY_LOW: "\N{CACTUS}",
    AlertType.MOTION: "\N{PEDESTRIAN}",
}


def get_alert_label(alert_type: AlertType | str) -> str:
    """Get human-readable label for an alert type, e.g. 'TEMP HIGH'."""
    return str(alert_type).replace("_", " ").upper()


def format_alert_message(alert: Alert) -> str:
    """Format an alert as a Markdown chat message."""
    emoji = ALERT_EMOJIS.get(alert.type, "\N{WARNING SIGN}")
    time_str = alert.created_at.strftime("%Y-%m-%d %H:%M:%S")
    return (
        f"*{emoji} ALERT*\n\n"
        f"Type: {get_alert_label(alert.type)}\n"
        f"Message: {alert.message}\n"
        f"Value: {alert.value}\n"
        f"Threshold: {alert.threshold}\n"
        f"Device: {alert.device_id}\n"
        f"Time: {time_str}"
    )


def _post_json(url: str, payload: dict[str, Any], timeout: float) -> None:
    """POST a JSON payload.

    Raises:
        OSError: On network failures and HTTP error statuses.
        NotificationError: If the endpoint answers with a non-2xx status.
    """
    req = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        if not 200 <= resp.status < 300:
            raise NotificationError(f"Endpoint returned status {resp.status}")


class AbstractNotifier(ABC):
    """Abstract base class for notification backends."""

    @abstractmethod
    async def send(self, alert: Alert) -> bool:
        """Send a notification for the given alert. Returns True if sent."""


class TelegramNotifier(AbstractNotifier):
    """Telegram Bot API notification backend.

    Sends the alert to every configured chat id.
    """

    def _build_payload(self, chat_id: str, alert: Alert) -> dict[str, Any]:
        """Build a sendMessage request body."""
        return {
            "chat_id": chat_id,
            "text": format_alert_message(alert),
            "parse_mode": "Markdown",
        }

    @override
    async def send(self, alert: Alert) -> bool:
        """Send the alert to all subscribed chats."""
        cfg = get_settings().notifications
        telegram = cfg.telegram
        if not telegram.chat_ids:
            logger.warning("No Telegram recipients configured")
            return False

        url = (
            f"{telegram.api_url}/bot"
            f"{telegram.bot_token.get_secret_value()}/sendMessage"
        )
        payloads = [
            self._build_payload(chat_id, alert) for chat_id in telegram.chat_ids
        ]

        def do_send() -> None:
            for payload in payloads:
                _post_json(url, payload, cfg.timeout_sec)
            logger.info(
                "Sent Telegram alert for %s to %d recipient(s)",
                alert.device_id,
                len(payloads),
            )

        return await with_retry(
            do_send,
            name="Telegram",
            logger=logger,
            max_retries=cfg.max_retries,
            initial_backoff_sec=cfg.initial_backoff_sec,
            run_in_thread=True,
        )


class SlackNotifier(AbstractNotifier):
    """Slack webhook notification backend."""

    def _build_payload(self, alert: Alert) -> dict[str, Any]:
        """Build a Slack message payload."""
        label = get_alert_label(alert.type)
        time_str = alert.created_at.strftime("%Y-%m-%d %H:%M:%S")
        return {
            "text": alert.message,
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": f"{label} Alert"},
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Device:*\n{alert.device_id}"},
                        {"type": "mrkdwn", "text": f"*Value:*\n{alert.value}"},
                        {
                            "type": "mrkdwn",
                            "text": f"*Threshold:*\n{alert.threshold}",
                        },
                    ],
                },
                {
                    "type": "context",
                    "elements": [
                        {"type": "mrkdwn", "text": f":clock1: {time_str}"}
                    ],
                },
            ],
        }

    @override
    async def send(self, alert: Alert) -> bool:
        """Send Slack notification."""
        cfg = get_settings().notifications
        payload = self._build_payload(alert)

        def do_send() -> None:
            _post_json(cfg.slack.webhook_url, payload, cfg.timeout_sec)
            logger.info("Sent Slack alert for %s", alert.device_id)

        return await with_retry(
            do_send,
            name="Slack",
            logger=logger,
            max_retries=cfg.max_retries,
            initial_backoff_sec=cfg.initial_backoff_sec,
            run_in_thread=True,
        )


class CompositeNotifier(AbstractNotifier):
    """Sends notifications to multiple backends."""

    def __init__(self, notifiers: list[AbstractNotifier]):
        self._notifiers = notifiers

    @override
    async def send(self, alert: Alert) -> bool:
        """Send to all backends concurrently. True if any succeeded."""
        results = await asyncio.gather(
            *(notifier.send(alert) for notifier in self._notifiers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error("Notification backend failed: %s", result)
        return any(result is True for result in results)


class NoOpNotifier(AbstractNotifier):
    """No-op notifier that logs but doesn't send notifications."""

    @override
    async def send(self, alert: Alert) -> bool:
        """Log the alert but don't send a notification."""
        logger.info(
            "Notifications disabled, skipping %s alert for %s",
            get_alert_label(alert.type),
            alert.device_id,
        )
        return False


_BACKEND_MAP: dict[NotificationBackend, type[AbstractNotifier]] = {
    NotificationBackend.TELEGRAM: TelegramNotifier,
    NotificationBackend.SLACK: SlackNotifier,
}


def get_notifier() -> AbstractNotifier:
    """Factory function to get the configured notifier."""
    cfg = get_settings().notifications
    if not cfg.enabled:
        return NoOpNotifier()

    notifiers: list[AbstractNotifier] = []
    for backend_str in cfg.backends:
        try:
            backend = NotificationBackend(backend_str)
            notifiers.append(_BACKEND_MAP[backend]())
        except (ValueError, KeyError):
            logger.warning("Unknown notification backend: %s", backend_str)

    if not notifiers:
        return NoOpNotifier()
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)
