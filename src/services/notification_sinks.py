"""Notification sinks that deliver alerts and digests to outward channels."""

from __future__ import annotations

from typing import TYPE_CHECKING

import requests
import structlog

if TYPE_CHECKING:
    from src.models.alert import Alert, AlertDigest

logger = structlog.get_logger(__name__)


class LoggingNotificationSink:
    """Writes each alert as a structured log line."""

    def __init__(self, channel: str = "standard") -> None:
        self.channel = channel

    def notify(self, alert: Alert) -> None:
        logger.info(
            "alert_notification",
            channel=self.channel,
            alert_id=alert.id,
            severity=str(alert.severity),
            escalation_level=alert.escalation_level,
            title=alert.title,
        )

    def notify_digest(self, digest: AlertDigest) -> None:
        logger.info(
            "alert_digest_notification",
            channel=self.channel,
            schedule_id=digest.schedule_id,
            frequency=str(digest.frequency),
            alert_count=len(digest.alert_ids),
        )


class WebhookNotificationSink:
    """POSTs alerts and digests as JSON to a webhook URL.

    Errors propagate to the dispatcher, which logs them. Nothing is retried.
    """

    def __init__(self, url: str, timeout: float = 5.0, session: requests.Session | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def notify(self, alert: Alert) -> None:
        response = self.session.post(
            self.url,
            data=alert.model_dump_json(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.debug("webhook_notified", alert_id=alert.id, status_code=response.status_code)

    def notify_digest(self, digest: AlertDigest) -> None:
        response = self.session.post(
            self.url,
            data=digest.model_dump_json(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.debug(
            "webhook_digest_notified",
            schedule_id=digest.schedule_id,
            status_code=response.status_code,
        )
