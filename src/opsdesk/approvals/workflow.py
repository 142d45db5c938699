"""Approval state machines shared by overtime, cash advances and liquidations.

The two-level flow is an explicit ``(state, level, action) -> next state``
table. Anything not in the table is refused with a message that says why.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import ApprovalAction, ApprovalLevel, ApprovalState, DecisionStatus
from ..core.exceptions import InvariantError, ValidationError

LEVEL1_REQUIRED = "Level 1 approval required before level 2 approval"
LEVEL1_COMPLETED = "Level 1 review is already completed"
LEVEL2_COMPLETED = "Level 2 review is already completed"
ALREADY_PROCESSED = "Request is already processed."

TWO_LEVEL_TRANSITIONS: dict[tuple[ApprovalState, ApprovalLevel, ApprovalAction], ApprovalState] = {
    (ApprovalState.PENDING, ApprovalLevel.LEVEL1, ApprovalAction.APPROVE): ApprovalState.LEVEL1_APPROVED,
    (ApprovalState.PENDING, ApprovalLevel.LEVEL1, ApprovalAction.REJECT): ApprovalState.REJECTED,
    (ApprovalState.LEVEL1_APPROVED, ApprovalLevel.LEVEL2, ApprovalAction.APPROVE): ApprovalState.APPROVED,
    (ApprovalState.LEVEL1_APPROVED, ApprovalLevel.LEVEL2, ApprovalAction.REJECT): ApprovalState.REJECTED,
}


@dataclass(frozen=True)
class Transition:
    level: ApprovalLevel
    action: ApprovalAction
    source: ApprovalState
    target: ApprovalState

    @property
    def decision(self) -> DecisionStatus:
        return DecisionStatus.APPROVED if self.action == ApprovalAction.APPROVE else DecisionStatus.REJECTED

    @property
    def is_final(self) -> bool:
        return self.target in (ApprovalState.APPROVED, ApprovalState.REJECTED)


def parse_level(value) -> ApprovalLevel:
    """Accept ``level1|level2`` or the bare numbers ``1|2``."""
    v = str(value or "").strip().lower()
    v = {"1": "level1", "2": "level2"}.get(v, v)
    try:
        return ApprovalLevel(v)
    except ValueError:
        raise ValidationError("Invalid approval level. Must be 'level1' or 'level2'")


def parse_action(value) -> ApprovalAction:
    """Accept ``approve|reject`` as well as the ``approved|rejected`` status spelling."""
    v = str(value or "").strip().lower()
    v = {"approved": "approve", "rejected": "reject"}.get(v, v)
    try:
        return ApprovalAction(v)
    except ValueError:
        raise ValidationError("Invalid action. Must be 'approve' or 'reject'")


def derive_state(
    level1_status: Optional[str],
    level2_status: Optional[str],
    final_status: Optional[str] = None,
) -> ApprovalState:
    """Collapse per-level status columns into one workflow state."""
    l1 = (level1_status or DecisionStatus.PENDING.value).lower()
    l2 = (level2_status or DecisionStatus.PENDING.value).lower()
    final = (final_status or "").lower()

    if l1 == DecisionStatus.REJECTED.value or l2 == DecisionStatus.REJECTED.value:
        return ApprovalState.REJECTED
    if final == DecisionStatus.REJECTED.value:
        return ApprovalState.REJECTED
    if l2 == DecisionStatus.APPROVED.value:
        return ApprovalState.APPROVED
    if l1 == DecisionStatus.APPROVED.value:
        return ApprovalState.LEVEL1_APPROVED
    return ApprovalState.PENDING


class TwoLevelWorkflow:
    def __init__(self, transitions=None):
        self._transitions = dict(transitions or TWO_LEVEL_TRANSITIONS)

    def transition(
        self,
        current: ApprovalState,
        level: ApprovalLevel,
        action: ApprovalAction,
        *,
        level1_rejected: bool = False,
    ) -> Transition:
        target = self._transitions.get((current, level, action))
        if target is not None:
            return Transition(level=level, action=action, source=current, target=target)

        if level == ApprovalLevel.LEVEL1:
            raise InvariantError(LEVEL1_COMPLETED)
        if current == ApprovalState.PENDING or level1_rejected:
            raise InvariantError(LEVEL1_REQUIRED)
        raise InvariantError(LEVEL2_COMPLETED)


class SingleLevelWorkflow:
    """``pending -> approved|rejected``; decided requests are terminal."""

    def transition(self, current: DecisionStatus, action: ApprovalAction) -> DecisionStatus:
        if current != DecisionStatus.PENDING:
            raise InvariantError(ALREADY_PROCESSED)
        return DecisionStatus.APPROVED if action == ApprovalAction.APPROVE else DecisionStatus.REJECTED


def ensure_swapped(ok: bool) -> None:
    """Raise when a compare-and-swap UPDATE matched no row."""
    if not ok:
        raise InvariantError(ALREADY_PROCESSED)
