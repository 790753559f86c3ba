"""
Escalation Policy  (Policy Table)
=================================

Ladder
------
warning (3) -> 3-day suspension (5) -> 7-day suspension (7) -> ban (6+)

Dispute counts are cumulative within a period, so the table is walked
in **strictly descending severity** and the first matching rung wins.
Each rung carries a guard on the rung that must already be on record in
the period, and a rung that is already on record never fires again.
That keeps a growing count from re-issuing a step it has passed.

Nothing escalates while a suspension or ban of the period is still in
flight (not yet lifted).  The warning is independent of the ladder and
fires once per period.

Complexity: O(R) per decision, R = rungs in the table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .enums import ActionType

DEFAULT_WARNING_THRESHOLD = 3


@dataclass(frozen=True)
class EscalationStep:
    rung: str
    action_type: ActionType
    min_disputes: int
    requires: Optional[str] = None
    days: Optional[int] = None

    def matches(self, dispute_count: int, prior_rungs: set[str]) -> bool:
        if dispute_count < self.min_disputes:
            return False
        if self.rung in prior_rungs:
            return False
        return self.requires is None or self.requires in prior_rungs


ESCALATION_POLICY: tuple[EscalationStep, ...] = (
    EscalationStep(
        "ban", ActionType.BAN, min_disputes=6, requires="suspension_7d"
    ),
    EscalationStep(
        "suspension_7d",
        ActionType.SUSPENSION,
        min_disputes=7,
        requires="suspension_3d",
        days=7,
    ),
    EscalationStep(
        "suspension_3d", ActionType.SUSPENSION, min_disputes=5, days=3
    ),
)


def rung_of(action_type: ActionType, suspension_days: Optional[int]) -> Optional[str]:
    """Map a recorded action back to its rung on the ladder."""
    if action_type == ActionType.BAN:
        return "ban"
    if action_type == ActionType.SUSPENSION and suspension_days:
        return f"suspension_{suspension_days}d"
    return None


@dataclass(frozen=True)
class EscalationDecision:
    warn: bool = False
    step: Optional[EscalationStep] = None


def decide(
    dispute_count: int,
    *,
    already_warned: bool,
    prior_rungs: Iterable[str] = (),
    has_in_flight: bool = False,
    policy: tuple[EscalationStep, ...] = ESCALATION_POLICY,
    warning_threshold: int = DEFAULT_WARNING_THRESHOLD,
) -> EscalationDecision:
    """Decide what a driver with *dispute_count* disputes in period earns."""
    warn = dispute_count >= warning_threshold and not already_warned
    if has_in_flight:
        return EscalationDecision(warn=warn)

    prior = set(prior_rungs)
    for step in policy:
        if step.matches(dispute_count, prior):
            return EscalationDecision(warn=warn, step=step)
    return EscalationDecision(warn=warn)
