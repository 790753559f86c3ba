"""
Domain entities with business logic.

Patterns used
-------------
- **Value Object** ``Period``: the rolling evaluation window disputes
  accumulate in.
- **State Pattern** on disciplinary actions: the lifecycle state is
  derived from the action's timestamps and every change is checked
  against ``ACTION_TRANSITIONS``
  (SCHEDULED -> PAUSED -> APPLIED -> LIFTED).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import ACTION_TRANSITIONS, ActionState
from .exceptions import InvalidStateTransition


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Period:
    start: datetime
    end: datetime

    def is_live(self, now: datetime) -> bool:
        return self.end > now

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


# ── Action lifecycle ──────────────────────────────────────────────────


def action_state(
    actual_start: Optional[datetime],
    actual_end: Optional[datetime],
    is_paused: bool,
) -> ActionState:
    """Derive the lifecycle state from an action's timestamps."""
    if actual_end is not None:
        return ActionState.LIFTED
    if actual_start is not None:
        return ActionState.APPLIED
    if is_paused:
        return ActionState.PAUSED
    return ActionState.SCHEDULED


def check_transition(current: ActionState, new: ActionState) -> None:
    """Raise if moving from *current* to *new* is not allowed."""
    if new not in ACTION_TRANSITIONS.get(current, set()):
        raise InvalidStateTransition(current.value, new.value)
