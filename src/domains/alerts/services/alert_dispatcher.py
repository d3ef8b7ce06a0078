"""Alert creation, fan-out to notification sinks, escalation and digests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.core.errors import InvalidStateError
from src.domains.alerts.core.digest import (
    build_digest_content,
    digest_period_start,
    is_digest_due,
    next_send_time,
    select_digest_alerts,
    severity_counts,
)
from src.domains.alerts.core.escalation import (
    initial_escalation_level,
    is_stale,
    needs_escalation_sink,
    severity_for_impact,
    should_alert,
)
from src.models.alert import (
    MAX_ESCALATION_LEVEL,
    Alert,
    AlertDigest,
    AlertSeverity,
    AlertStatus,
    AlertType,
    DigestFrequency,
    DigestSchedule,
)
from src.models.review import Sentiment
from src.utils.ids import new_id

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from src.domains.alerts.repositories.alert_repository import AlertRepository
    from src.models.change import Change
    from src.models.review import Review
    from src.services.protocols import NotificationSink
    from src.utils.clock import Clock

logger = structlog.get_logger(__name__)


class AlertDispatcher:
    """Raises alerts for high-impact changes and very negative reviews.

    Every alert goes to the standard sinks; error and critical alerts also go
    to the escalation sinks. A failing sink is logged and never undoes the
    alert. Digests go to the standard sinks only.
    """

    def __init__(
        self,
        alert_repo: AlertRepository,
        clock: Clock,
        organization_id: str,
        sinks: Sequence[NotificationSink] = (),
        escalation_sinks: Sequence[NotificationSink] = (),
    ) -> None:
        self.alert_repo = alert_repo
        self.clock = clock
        self.organization_id = organization_id
        self.sinks = list(sinks)
        self.escalation_sinks = list(escalation_sinks)

    def dispatch_for_change(self, change: Change, entity_name: str | None = None) -> Alert | None:
        """Create and deliver an alert when the change is high or critical impact.

        Returns the alert, or None when the change does not warrant one.
        """
        if not should_alert(change.impact):
            return None

        existing = self.alert_repo.find_by_source_change(change.id)
        if existing is not None:
            return existing

        severity = severity_for_impact(change.impact)
        subject = entity_name or change.entity_id
        alert = Alert(
            id=new_id("alt"),
            organization_id=self.organization_id,
            alert_type=AlertType.COMPETITOR_ACTIVITY,
            severity=severity,
            title=f"Competitor activity: {subject}",
            message=change.title,
            entity_id=change.entity_id,
            source_change_id=change.id,
            created_at=self.clock.now(),
            escalation_level=initial_escalation_level(severity),
        )
        return self._raise(alert)

    def dispatch_for_review(self, review: Review) -> Alert | None:
        """Raise a warning for a very negative review of the organization."""
        if review.sentiment != Sentiment.VERY_NEGATIVE:
            return None

        existing = self.alert_repo.find_by_source_review(review.id)
        if existing is not None:
            return existing

        excerpt = review.content[:120]
        alert = Alert(
            id=new_id("alt"),
            organization_id=self.organization_id,
            alert_type=AlertType.NEGATIVE_REVIEW,
            severity=AlertSeverity.WARNING,
            title=f"{review.rating}-star review on {review.platform}",
            message=f"{review.author}: {excerpt}",
            source_review_id=review.id,
            created_at=self.clock.now(),
            escalation_level=initial_escalation_level(AlertSeverity.WARNING),
        )
        return self._raise(alert)

    def acknowledge_alert(self, alert_id: str, acknowledged_by: str) -> Alert:
        """Mark an alert as seen. Raises NotFoundError / InvalidStateError."""
        alert = self.alert_repo.get(alert_id)
        if alert.status != AlertStatus.NEW:
            raise InvalidStateError("alert", alert_id, alert.status, "acknowledge")

        alert.status = AlertStatus.ACKNOWLEDGED
        alert.acknowledged_by = acknowledged_by
        alert.acknowledged_at = self.clock.now()
        logger.info("alert_acknowledged", alert_id=alert_id, acknowledged_by=acknowledged_by)
        return alert

    def resolve_alert(self, alert_id: str, resolved_by: str, resolution: str | None = None) -> Alert:
        """Close an alert. Raises NotFoundError / InvalidStateError."""
        alert = self.alert_repo.get(alert_id)
        if alert.status == AlertStatus.RESOLVED:
            raise InvalidStateError("alert", alert_id, alert.status, "resolve")

        alert.status = AlertStatus.RESOLVED
        alert.resolved_by = resolved_by
        alert.resolved_at = self.clock.now()
        alert.resolution = resolution
        logger.info("alert_resolved", alert_id=alert_id, resolved_by=resolved_by)
        return alert

    def escalate_stale_alerts(self) -> list[Alert]:
        """Bump and re-notify alerts left unacknowledged past their severity threshold."""
        now = self.clock.now()
        escalated = []
        for alert in self.alert_repo.list_active():
            if not is_stale(alert, now):
                continue
            alert.escalation_level = min(alert.escalation_level + 1, MAX_ESCALATION_LEVEL)
            alert.last_escalated_at = now
            logger.warning(
                "alert_escalated",
                alert_id=alert.id,
                severity=str(alert.severity),
                escalation_level=alert.escalation_level,
            )
            self._notify(self.escalation_sinks, alert)
            escalated.append(alert)
        return escalated

    def get_active_alerts(self) -> list[Alert]:
        return self.alert_repo.list_active()

    def get_alerts_by_severity(self, severity: AlertSeverity | str) -> list[Alert]:
        """Alerts of one severity in any status, newest first."""
        wanted = AlertSeverity(severity)
        return [alert for alert in self.alert_repo.list_all() if alert.severity == wanted]

    def create_digest_schedule(
        self,
        frequency: DigestFrequency | str,
        alert_types: Iterable[AlertType | str] = (),
        severities: Iterable[AlertSeverity | str] = (),
        entity_ids: Iterable[str] = (),
    ) -> DigestSchedule:
        """Schedule a recurring digest. The first one is due one period from now."""
        now = self.clock.now()
        frequency = DigestFrequency(frequency)
        schedule = DigestSchedule(
            id=new_id("dig"),
            organization_id=self.organization_id,
            frequency=frequency,
            alert_types={AlertType(value) for value in alert_types},
            severities={AlertSeverity(value) for value in severities},
            entity_ids=set(entity_ids),
            created_at=now,
            next_send_at=next_send_time(frequency, now),
        )
        self.alert_repo.add_digest_schedule(schedule)
        logger.info(
            "digest_schedule_created",
            schedule_id=schedule.id,
            frequency=str(frequency),
            next_send_at=schedule.next_send_at.isoformat(),
        )
        return schedule

    def deactivate_digest_schedule(self, schedule_id: str) -> DigestSchedule:
        schedule = self.alert_repo.get_digest_schedule(schedule_id)
        schedule.is_active = False
        logger.info("digest_schedule_deactivated", schedule_id=schedule_id)
        return schedule

    def send_due_digests(self) -> list[AlertDigest]:
        """Send every due digest to the standard sinks and move its schedule forward.

        A due schedule with no matching alerts sends nothing but still advances.
        """
        now = self.clock.now()
        sent = []
        for schedule in self.alert_repo.list_digest_schedules():
            if not is_digest_due(schedule, now):
                continue

            period_start = digest_period_start(schedule, now)
            alerts = select_digest_alerts(self.alert_repo.list_all(), schedule, period_start, now)
            schedule.last_sent_at = now
            schedule.next_send_at = next_send_time(schedule.frequency, now)
            if not alerts:
                logger.info("digest_skipped", schedule_id=schedule.id, reason="no matching alerts")
                continue

            digest = AlertDigest(
                schedule_id=schedule.id,
                organization_id=schedule.organization_id,
                frequency=schedule.frequency,
                period_start=period_start,
                period_end=now,
                alert_ids=[alert.id for alert in alerts],
                severity_counts=severity_counts(alerts),
                content=build_digest_content(alerts, schedule.frequency, period_start, now),
            )
            logger.info("digest_sent", schedule_id=schedule.id, alert_count=len(alerts))
            for sink in self.sinks:
                try:
                    sink.notify_digest(digest)
                except Exception as exc:
                    logger.error(
                        "notification_failed",
                        schedule_id=schedule.id,
                        sink=type(sink).__name__,
                        error=str(exc),
                    )
            sent.append(digest)
        return sent

    def _raise(self, alert: Alert) -> Alert:
        self.alert_repo.add(alert)
        logger.info(
            "alert_created",
            alert_id=alert.id,
            alert_type=str(alert.alert_type),
            severity=str(alert.severity),
            escalation_level=alert.escalation_level,
        )
        self._notify(self.sinks, alert)
        if needs_escalation_sink(alert.severity):
            self._notify(self.escalation_sinks, alert)
        return alert

    def _notify(self, sinks: Sequence[NotificationSink], alert: Alert) -> None:
        for sink in sinks:
            try:
                sink.notify(alert)
            except Exception as exc:
                logger.error(
                    "notification_failed",
                    alert_id=alert.id,
                    sink=type(sink).__name__,
                    error=str(exc),
                )
