"""
Proactive alert rules as data.

Each rule is a descriptor holding the query for triggering rows, a builder
that turns one row into an AlertCandidate, and the direction in which its
active alerts are auto-resolved. The evaluator runs every descriptor the
same way over the current dataset; nothing is incremental.
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, List, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.core.config import settings
from app.db.base import as_utc
from app.models.alerts import AlertSeverity, AlertType
from app.models.logistics import (
    PaymentSchedule,
    PaymentStatus,
    Shipment,
    ShipmentCosts,
    ShipmentStatus,
    Supplier,
)
from app.schemas.alerts import AlertCandidate

logger = logging.getLogger(__name__)


class ResolutionMode(str, enum.Enum):
    """How a rule's active alerts are auto-resolved after evaluation."""

    # Resolve alerts whose entity is no longer in the triggering set
    WHEN_CLEARED = "when_cleared"
    # Resolve alerts whose entity appears in the rule's "fixed" set
    WHEN_FIXED = "when_fixed"


@dataclass(frozen=True)
class AlertThresholds:
    """Numeric cut-offs used by the default rules."""

    high_balance_warning: float = 50000
    high_balance_urgent: float = 100000
    telex_warning_days: int = 3
    telex_urgent_days: int = 7
    payment_due_days: int = 2
    low_margin_warning: float = 10
    low_margin_urgent: float = 5
    stale_days: int = 7

    @classmethod
    def from_settings(cls) -> "AlertThresholds":
        return cls(
            high_balance_warning=settings.HIGH_BALANCE_WARNING_THRESHOLD,
            high_balance_urgent=settings.HIGH_BALANCE_URGENT_THRESHOLD,
            telex_warning_days=settings.TELEX_WARNING_DAYS,
            telex_urgent_days=settings.TELEX_URGENT_DAYS,
            payment_due_days=settings.PAYMENT_DUE_WARNING_DAYS,
            low_margin_warning=settings.LOW_MARGIN_WARNING_THRESHOLD,
            low_margin_urgent=settings.LOW_MARGIN_URGENT_THRESHOLD,
            stale_days=settings.STALE_SHIPMENT_DAYS,
        )


QueryBuilder = Callable[[AlertThresholds, datetime], Select]
CandidateBuilder = Callable[[Any, AlertThresholds, datetime], AlertCandidate]


@dataclass(frozen=True)
class AlertRule:
    """One row of the rule table."""

    alert_type: AlertType
    entity_type: str
    resolution: ResolutionMode
    query: QueryBuilder
    build: CandidateBuilder
    # Entity ids whose condition is fixed; WHEN_FIXED rules only
    fixed_query: Optional[QueryBuilder] = None

    def should_resolve(self, entity_id: UUID, reference_ids: Set[UUID]) -> bool:
        if self.resolution is ResolutionMode.WHEN_FIXED:
            return entity_id in reference_ids
        return entity_id not in reference_ids


@dataclass
class RuleEvaluation:
    """Candidates produced by one rule plus the ids its resolution uses."""

    rule: AlertRule
    candidates: List[AlertCandidate] = field(default_factory=list)
    reference_ids: Set[UUID] = field(default_factory=set)


def _days_since(moment: datetime, now: datetime) -> int:
    return (now - moment) // timedelta(days=1)


def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _amount(value: Any) -> str:
    return f"{Decimal(value or 0):,.2f}"


# High supplier balance

def _high_balance_query(t: AlertThresholds, now: datetime) -> Select:
    return select(Supplier).where(Supplier.current_balance > t.high_balance_warning)


def _high_balance_candidate(supplier, t: AlertThresholds, now: datetime) -> AlertCandidate:
    balance = supplier.current_balance or 0
    severity = AlertSeverity.URGENT if balance >= t.high_balance_urgent else AlertSeverity.WARNING
    return AlertCandidate(
        alert_type=AlertType.HIGH_SUPPLIER_BALANCE,
        severity=severity,
        title=f"High Balance: {supplier.name}",
        message=(
            f"{supplier.name} balance is {supplier.currency} {_amount(balance)}. "
            "Consider scheduling payment."
        ),
        entity_type="supplier",
        entity_id=supplier.id,
        entity_reference=supplier.name,
        action_required=True,
        suggested_action="Schedule payment or review outstanding invoices",
    )


# Overdue telex release

TELEX_PENDING_STATUSES = (ShipmentStatus.ARRIVED, ShipmentStatus.CLEARING, ShipmentStatus.IN_TRANSIT)


def _overdue_telex_query(t: AlertThresholds, now: datetime) -> Select:
    latest_eta = (now - timedelta(days=t.telex_warning_days)).date()
    return select(Shipment).where(
        Shipment.telex_released.is_(False),
        Shipment.status.in_(TELEX_PENDING_STATUSES),
        Shipment.eta.is_not(None),
        Shipment.eta <= latest_eta,
    )


def _overdue_telex_candidate(shipment, t: AlertThresholds, now: datetime) -> AlertCandidate:
    days = _days_since(_start_of_day(shipment.eta), now)
    severity = AlertSeverity.URGENT if days >= t.telex_urgent_days else AlertSeverity.WARNING
    return AlertCandidate(
        alert_type=AlertType.OVERDUE_TELEX,
        severity=severity,
        title=f"Telex Overdue: LOT {shipment.lot_number}",
        message=f"LOT {shipment.lot_number} arrived {days} days ago but telex not released. Contact bank.",
        entity_type="shipment",
        entity_id=shipment.id,
        entity_reference=shipment.lot_number,
        action_required=True,
        suggested_action="Contact bank about telex release",
    )


def _telex_released_query(t: AlertThresholds, now: datetime) -> Select:
    return select(Shipment.id).where(Shipment.telex_released.is_(True))


# Payment due soon

def _payment_due_query(t: AlertThresholds, now: datetime) -> Select:
    horizon = (now + timedelta(days=t.payment_due_days)).date()
    return (
        select(PaymentSchedule, Supplier.name.label("supplier_name"))
        .outerjoin(Supplier, Supplier.id == PaymentSchedule.supplier_id)
        .where(
            PaymentSchedule.status == PaymentStatus.PENDING,
            PaymentSchedule.payment_date <= horizon,
        )
    )


def _payment_due_candidate(row, t: AlertThresholds, now: datetime) -> AlertCandidate:
    payment, supplier_name = row
    supplier_name = supplier_name or "Unknown"
    overdue = _start_of_day(payment.payment_date) < now
    due = payment.payment_date.isoformat()
    return AlertCandidate(
        alert_type=AlertType.PAYMENT_DUE_SOON,
        severity=AlertSeverity.URGENT if overdue else AlertSeverity.WARNING,
        title=f"Payment OVERDUE: {supplier_name}" if overdue else f"Payment Due: {supplier_name}",
        message=f"Payment of {payment.currency} {_amount(payment.amount_foreign)} to {supplier_name} due {due}.",
        entity_type="payment",
        entity_id=payment.id,
        entity_reference=f"{supplier_name} - {due}",
        action_required=True,
        suggested_action="Process payment immediately" if overdue else "Prepare payment",
    )


# Low margin shipment

def _low_margin_query(t: AlertThresholds, now: datetime) -> Select:
    return (
        select(Shipment, ShipmentCosts.profit_margin)
        .join(ShipmentCosts, ShipmentCosts.shipment_id == Shipment.id)
        .where(
            ShipmentCosts.profit_margin.is_not(None),
            ShipmentCosts.profit_margin < t.low_margin_warning,
            ShipmentCosts.client_invoice_zar > 0,
        )
    )


def _low_margin_candidate(row, t: AlertThresholds, now: datetime) -> AlertCandidate:
    shipment, margin = row
    severity = AlertSeverity.WARNING if margin < t.low_margin_urgent else AlertSeverity.INFO
    return AlertCandidate(
        alert_type=AlertType.LOW_MARGIN_SHIPMENT,
        severity=severity,
        title=f"Low Margin: LOT {shipment.lot_number}",
        message=(
            f"LOT {shipment.lot_number} has {float(margin):.1f}% margin. "
            "Review pricing for future orders."
        ),
        entity_type="shipment",
        entity_id=shipment.id,
        entity_reference=shipment.lot_number,
        action_required=False,
        suggested_action="Review pricing for future orders from this supplier",
    )


# Stale shipment

CLOSED_STATUSES = (ShipmentStatus.COMPLETED, ShipmentStatus.CANCELLED)


def _stale_query(t: AlertThresholds, now: datetime) -> Select:
    cutoff = now - timedelta(days=t.stale_days)
    return select(Shipment).where(
        Shipment.status.not_in(CLOSED_STATUSES),
        Shipment.updated_at <= cutoff,
    )


def _stale_candidate(shipment, t: AlertThresholds, now: datetime) -> AlertCandidate:
    days = _days_since(as_utc(shipment.updated_at), now)
    return AlertCandidate(
        alert_type=AlertType.STALE_SHIPMENT,
        severity=AlertSeverity.INFO,
        title=f"Stale: LOT {shipment.lot_number}",
        message=(
            f'LOT {shipment.lot_number} stuck in "{shipment.status}" for {days} days. '
            "Update status or check with agent."
        ),
        entity_type="shipment",
        entity_id=shipment.id,
        entity_reference=shipment.lot_number,
        action_required=False,
        suggested_action="Check status and update",
    )


# Missing client invoice

def _missing_invoice_query(t: AlertThresholds, now: datetime) -> Select:
    return (
        select(Shipment)
        .outerjoin(ShipmentCosts, ShipmentCosts.shipment_id == Shipment.id)
        .where(
            Shipment.status == ShipmentStatus.DELIVERED,
            or_(ShipmentCosts.client_invoice_zar.is_(None), ShipmentCosts.client_invoice_zar == 0),
        )
    )


def _missing_invoice_candidate(shipment, t: AlertThresholds, now: datetime) -> AlertCandidate:
    return AlertCandidate(
        alert_type=AlertType.MISSING_CLIENT_INVOICE,
        severity=AlertSeverity.WARNING,
        title=f"No Invoice: LOT {shipment.lot_number}",
        message=f"LOT {shipment.lot_number} delivered but no client invoice recorded. Generate invoice.",
        entity_type="shipment",
        entity_id=shipment.id,
        entity_reference=shipment.lot_number,
        action_required=True,
        suggested_action="Generate and record client invoice",
    )


def _invoiced_query(t: AlertThresholds, now: datetime) -> Select:
    return select(ShipmentCosts.shipment_id).where(ShipmentCosts.client_invoice_zar > 0)


def build_default_rules() -> List[AlertRule]:
    """The six business rules, in evaluation order."""
    return [
        AlertRule(
            AlertType.HIGH_SUPPLIER_BALANCE, "supplier", ResolutionMode.WHEN_CLEARED,
            _high_balance_query, _high_balance_candidate,
        ),
        AlertRule(
            AlertType.OVERDUE_TELEX, "shipment", ResolutionMode.WHEN_FIXED,
            _overdue_telex_query, _overdue_telex_candidate, fixed_query=_telex_released_query,
        ),
        AlertRule(
            AlertType.PAYMENT_DUE_SOON, "payment", ResolutionMode.WHEN_CLEARED,
            _payment_due_query, _payment_due_candidate,
        ),
        AlertRule(
            AlertType.LOW_MARGIN_SHIPMENT, "shipment", ResolutionMode.WHEN_CLEARED,
            _low_margin_query, _low_margin_candidate,
        ),
        AlertRule(
            AlertType.STALE_SHIPMENT, "shipment", ResolutionMode.WHEN_CLEARED,
            _stale_query, _stale_candidate,
        ),
        AlertRule(
            AlertType.MISSING_CLIENT_INVOICE, "shipment", ResolutionMode.WHEN_FIXED,
            _missing_invoice_query, _missing_invoice_candidate, fixed_query=_invoiced_query,
        ),
    ]


class AlertRuleEvaluator:
    """Run rule descriptors against the store. Read-only."""

    def __init__(
        self,
        db: AsyncSession,
        thresholds: Optional[AlertThresholds] = None,
        rules: Optional[Sequence[AlertRule]] = None,
    ):
        self.db = db
        self.thresholds = thresholds or AlertThresholds.from_settings()
        self.rules = list(rules) if rules is not None else build_default_rules()

    async def evaluate(self, rule: AlertRule, now: datetime) -> RuleEvaluation:
        evaluation = RuleEvaluation(rule=rule)

        result = await self.db.execute(rule.query(self.thresholds, now))
        # Plain entity selects come back as one-element rows
        multi_column = len(result.keys()) > 1
        seen = set()
        for row in result.all():
            candidate = rule.build(row if multi_column else row[0], self.thresholds, now)
            # Joined queries can repeat an entity; keep the first row per key
            if candidate.key in seen:
                continue
            seen.add(candidate.key)
            evaluation.candidates.append(candidate)

        if rule.resolution is ResolutionMode.WHEN_FIXED:
            fixed = await self.db.execute(rule.fixed_query(self.thresholds, now))
            evaluation.reference_ids = set(fixed.scalars().all())
        else:
            evaluation.reference_ids = {c.entity_id for c in evaluation.candidates}

        logger.debug(
            f"Rule {rule.alert_type.value}: {len(evaluation.candidates)} candidates, "
            f"{len(evaluation.reference_ids)} reference ids"
        )
        return evaluation
