import pytest

from opsdesk.approvals.workflow import (
    ALREADY_PROCESSED,
    LEVEL1_COMPLETED,
    LEVEL1_REQUIRED,
    LEVEL2_COMPLETED,
    SingleLevelWorkflow,
    TwoLevelWorkflow,
    derive_state,
    ensure_swapped,
    parse_action,
    parse_level,
)
from opsdesk.core.enums import ApprovalAction, ApprovalLevel, ApprovalState, DecisionStatus
from opsdesk.core.exceptions import InvariantError, ValidationError

L1, L2 = ApprovalLevel.LEVEL1, ApprovalLevel.LEVEL2
APPROVE, REJECT = ApprovalAction.APPROVE, ApprovalAction.REJECT


def test_level1_approve_then_level2_approve():
    wf = TwoLevelWorkflow()
    first = wf.transition(ApprovalState.PENDING, L1, APPROVE)
    assert first.target == ApprovalState.LEVEL1_APPROVED
    assert not first.is_final

    second = wf.transition(first.target, L2, APPROVE)
    assert second.target == ApprovalState.APPROVED
    assert second.is_final
    assert second.decision == DecisionStatus.APPROVED


def test_level1_reject_is_final():
    step = TwoLevelWorkflow().transition(ApprovalState.PENDING, L1, REJECT)
    assert step.target == ApprovalState.REJECTED
    assert step.is_final
    assert step.decision == DecisionStatus.REJECTED


def test_level2_before_level1_is_refused():
    with pytest.raises(InvariantError, match=LEVEL1_REQUIRED):
        TwoLevelWorkflow().transition(ApprovalState.PENDING, L2, APPROVE)


def test_level2_after_level1_rejection_is_refused():
    with pytest.raises(InvariantError, match=LEVEL1_REQUIRED):
        TwoLevelWorkflow().transition(ApprovalState.REJECTED, L2, APPROVE, level1_rejected=True)


def test_level1_twice_is_refused():
    with pytest.raises(InvariantError, match=LEVEL1_COMPLETED):
        TwoLevelWorkflow().transition(ApprovalState.LEVEL1_APPROVED, L1, REJECT)


@pytest.mark.parametrize("state", [ApprovalState.APPROVED, ApprovalState.REJECTED])
def test_decided_requests_are_terminal_at_level2(state):
    with pytest.raises(InvariantError, match=LEVEL2_COMPLETED):
        TwoLevelWorkflow().transition(state, L2, REJECT)


def test_single_level():
    wf = SingleLevelWorkflow()
    assert wf.transition(DecisionStatus.PENDING, APPROVE) == DecisionStatus.APPROVED
    assert wf.transition(DecisionStatus.PENDING, REJECT) == DecisionStatus.REJECTED
    with pytest.raises(InvariantError, match=ALREADY_PROCESSED):
        wf.transition(DecisionStatus.APPROVED, REJECT)


def test_derive_state():
    assert derive_state(None, None) == ApprovalState.PENDING
    assert derive_state("approved", "pending") == ApprovalState.LEVEL1_APPROVED
    assert derive_state("approved", "approved", "approved") == ApprovalState.APPROVED
    assert derive_state("rejected", "pending", "rejected") == ApprovalState.REJECTED
    assert derive_state("approved", "rejected") == ApprovalState.REJECTED


def test_parse_level_and_action_accept_aliases():
    assert parse_level("1") == L1
    assert parse_level(2) == L2
    assert parse_level(" Level1 ") == L1
    assert parse_action("approved") == APPROVE
    assert parse_action("Reject") == REJECT
    with pytest.raises(ValidationError):
        parse_level("level3")
    with pytest.raises(ValidationError):
        parse_action("maybe")


def test_ensure_swapped():
    ensure_swapped(True)
    with pytest.raises(InvariantError, match=ALREADY_PROCESSED):
        ensure_swapped(False)
