"""
Alert lifecycle management: dedup, auto-resolution and forwarding.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException, ValidationException
from app.db.base import utcnow
from app.models.alerts import (
    NOTIFIABLE_SEVERITIES,
    SEVERITY_RANK,
    AlertSeverity,
    AlertStatus,
    ProactiveAlert,
)
from app.schemas.alerts import AlertCandidate, AlertDetail, Notification, SweepResult
from app.services.alert_rules import AlertRule, AlertRuleEvaluator, AlertThresholds
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

AUTO_RESOLUTION_NOTE = "Auto-resolved: condition no longer applies"
MANUAL_RESOLUTION_NOTE = "Resolved manually"


class AlertService:
    """Run alert sweeps and the operator actions on proactive alerts."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationService,
        thresholds: Optional[AlertThresholds] = None,
        rules: Optional[Sequence[AlertRule]] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.evaluator = AlertRuleEvaluator(db, thresholds, rules)

    async def run_alert_sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Evaluate every rule, create missing alerts and resolve cleared ones.

        Each rule commits on its own; a failing rule is rolled back, recorded
        in ``failed_rules`` and the sweep moves on. Repeating a sweep with no
        data change creates nothing.
        """
        now = now or utcnow()
        result = SweepResult()
        logger.info("Starting alert sweep")

        for rule in self.evaluator.rules:
            try:
                evaluation = await self.evaluator.evaluate(rule, now)
                created = []
                for candidate in evaluation.candidates:
                    alert = await self._create_if_absent(candidate)
                    if alert is not None:
                        created.append(self._detail(alert))
                resolved = await self._auto_resolve(rule, evaluation.reference_ids, now)
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                logger.error(f"Alert rule {rule.alert_type.value} failed: {e}")
                result.failed_rules.append(rule.alert_type.value)
                continue

            result.details["created"].extend(created)
            result.details["resolved"].extend(resolved)

        result.alerts_created = len(result.details["created"])
        result.alerts_resolved = len(result.details["resolved"])

        for detail in result.details["created"]:
            if detail.severity not in NOTIFIABLE_SEVERITIES:
                continue
            try:
                await self.notifier.send(self._notification(detail))
                logger.info(f"Notification sent for: {detail.type.value}")
            except Exception as e:
                result.notifications_failed += 1
                logger.error(f"Failed to notify for {detail.type.value} ({detail.entity}): {e}")

        logger.info(
            f"Alert sweep complete. Created: {result.alerts_created}, "
            f"Resolved: {result.alerts_resolved}, Failed rules: {len(result.failed_rules)}"
        )
        return result

    async def _create_if_absent(self, candidate: AlertCandidate) -> Optional[ProactiveAlert]:
        existing = await self.db.execute(
            select(ProactiveAlert.id)
            .where(
                ProactiveAlert.alert_type == candidate.alert_type,
                ProactiveAlert.entity_id == candidate.entity_id,
                ProactiveAlert.status == AlertStatus.ACTIVE,
            )
            .limit(1)
        )
        if existing.scalar_one_or_none() is not None:
            return None

        alert = ProactiveAlert(status=AlertStatus.ACTIVE, **candidate.model_dump())
        self.db.add(alert)
        await self.db.flush()
        logger.info(f"Created {alert.severity.value} alert {alert.alert_type.value} for {alert.entity_reference}")
        return alert

    async def _auto_resolve(self, rule: AlertRule, reference_ids, now: datetime) -> List[AlertDetail]:
        result = await self.db.execute(
            select(ProactiveAlert).where(
                ProactiveAlert.alert_type == rule.alert_type,
                ProactiveAlert.entity_type == rule.entity_type,
                ProactiveAlert.status == AlertStatus.ACTIVE,
            )
        )
        resolved = []
        for alert in result.scalars().all():
            if not rule.should_resolve(alert.entity_id, reference_ids):
                continue
            alert.status = AlertStatus.RESOLVED
            alert.resolved_at = now
            alert.resolution_notes = AUTO_RESOLUTION_NOTE
            resolved.append(AlertDetail(id=alert.id, type=alert.alert_type, entity=alert.entity_reference))
            logger.info(f"Resolved alert {alert.alert_type.value} for {alert.entity_reference}")
        await self.db.flush()
        return resolved

    @staticmethod
    def _detail(alert: ProactiveAlert) -> AlertDetail:
        return AlertDetail(
            id=alert.id,
            type=alert.alert_type,
            entity=alert.entity_reference,
            title=alert.title,
            message=alert.message,
            severity=alert.severity,
            suggested_action=alert.suggested_action,
        )

    @staticmethod
    def _notification(detail: AlertDetail) -> Notification:
        message = detail.message or ""
        if detail.suggested_action:
            message += f"\n\n{detail.suggested_action}"
        return Notification(
            type="alert",
            alert_id=detail.id,
            title=detail.title or detail.type.value,
            message=message,
            priority="high" if detail.severity == AlertSeverity.CRITICAL else "normal",
        )

    async def list_alerts(
        self,
        status: Optional[AlertStatus] = AlertStatus.ACTIVE,
        limit: int = 100,
    ) -> List[ProactiveAlert]:
        """Alerts ordered most severe first, then newest."""
        severity_order = case(
            *[(ProactiveAlert.severity == severity, rank) for severity, rank in SEVERITY_RANK.items()],
            else_=len(SEVERITY_RANK),
        )
        query = select(ProactiveAlert)
        if status is not None:
            query = query.where(ProactiveAlert.status == status)
        query = query.order_by(severity_order, ProactiveAlert.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def acknowledge_alert(self, alert_id: UUID, user: str) -> ProactiveAlert:
        alert = await self._get_alert(alert_id)
        alert.acknowledged_at = utcnow()
        alert.acknowledged_by = user
        await self.db.commit()
        await self.db.refresh(alert)
        logger.info(f"Alert {alert_id} acknowledged by {user}")
        return alert

    async def resolve_alert(self, alert_id: UUID, notes: Optional[str] = None) -> ProactiveAlert:
        alert = await self._get_alert(alert_id)
        if alert.status == AlertStatus.RESOLVED:
            raise ValidationException(f"Alert {alert_id} is already resolved")
        alert.status = AlertStatus.RESOLVED
        alert.resolved_at = utcnow()
        alert.resolution_notes = notes or MANUAL_RESOLUTION_NOTE
        await self.db.commit()
        await self.db.refresh(alert)
        logger.info(f"Alert {alert_id} resolved manually")
        return alert

    async def _get_alert(self, alert_id: UUID) -> ProactiveAlert:
        alert = await self.db.get(ProactiveAlert, alert_id)
        if alert is None:
            raise NotFoundException(f"Alert {alert_id} not found")
        return alert
