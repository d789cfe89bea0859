"""Refund policy evaluation for cancellations and customer refund requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from ..core.config import Settings, settings as default_settings
from ..core.enums import RefundPath, RefundStatus
from .pricing_service import quantize
from .timezone_service import TimezoneService


@dataclass(frozen=True)
class RefundTier:
    """One row of the policy table; percentages per path."""

    name: str
    min_hours_exclusive: Optional[float]
    percentages: Dict[RefundPath, int]


@dataclass(frozen=True)
class RefundPolicyResult:
    hours_until_service: float
    tier: str
    percentage: int
    amount: Decimal
    refund_status: RefundStatus
    policy_basis: str

    def to_payload(self) -> dict[str, object]:
        return {
            "hours_until_service": round(self.hours_until_service, 2),
            "tier": self.tier,
            "percentage": self.percentage,
            "amount": str(self.amount),
            "refund_status": self.refund_status.value,
            "policy_basis": self.policy_basis,
        }


class RefundPolicy:
    """
    Single configurable refund table shared by both refund paths.

    Tiers, checked top-down (hours = scheduled start minus now):
        hours > full threshold      -> "early"
        hours > partial threshold   -> "late"
        otherwise                   -> "last_minute" (0%)
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def tiers(self) -> tuple[RefundTier, ...]:
        c = self.config
        return (
            RefundTier(
                name="early",
                min_hours_exclusive=c.refund_full_threshold_hours,
                percentages={
                    RefundPath.CANCEL: c.cancel_full_refund_percent,
                    RefundPath.REFUND_REQUEST: c.request_full_refund_percent,
                },
            ),
            RefundTier(
                name="late",
                min_hours_exclusive=c.refund_partial_threshold_hours,
                percentages={
                    RefundPath.CANCEL: c.cancel_partial_refund_percent,
                    RefundPath.REFUND_REQUEST: c.request_partial_refund_percent,
                },
            ),
            RefundTier(
                name="last_minute",
                min_hours_exclusive=None,
                percentages={RefundPath.CANCEL: 0, RefundPath.REFUND_REQUEST: 0},
            ),
        )

    @staticmethod
    def hours_until(scheduled_start: datetime, now: datetime) -> float:
        delta = TimezoneService.ensure_utc(scheduled_start) - TimezoneService.ensure_utc(now)
        return delta.total_seconds() / 3600

    def evaluate(
        self,
        total: Decimal,
        scheduled_start: datetime,
        now: datetime,
        path: RefundPath,
    ) -> RefundPolicyResult:
        hours = self.hours_until(scheduled_start, now)
        tier = next(
            t for t in self.tiers() if t.min_hours_exclusive is None or hours > t.min_hours_exclusive
        )
        percentage = tier.percentages[path]
        amount = quantize(Decimal(str(total)) * Decimal(percentage) / Decimal(100))

        if percentage >= 100:
            status = RefundStatus.FULL
        elif percentage > 0:
            status = RefundStatus.PARTIAL
        else:
            status = RefundStatus.NONE

        if tier.min_hours_exclusive is None:
            basis = f"<= {self.config.refund_partial_threshold_hours:g}h before service: no refund"
        else:
            basis = f"> {tier.min_hours_exclusive:g}h before service: {percentage}% refund ({path.value})"

        return RefundPolicyResult(
            hours_until_service=hours,
            tier=tier.name,
            percentage=percentage,
            amount=amount,
            refund_status=status,
            policy_basis=basis,
        )
