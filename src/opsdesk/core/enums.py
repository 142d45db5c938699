from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Profile role used for coarse access checks."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class DecisionStatus(str, Enum):
    """Status of a single review step (level 1, level 2, leave, final)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    # leave only: an approved leave taken back by an admin
    REVOKED = "revoked"


class ApprovalState(str, Enum):
    """Combined state of a two-level approval flow."""

    PENDING = "pending"
    LEVEL1_APPROVED = "level1_approved"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalLevel(str, Enum):
    LEVEL1 = "level1"
    LEVEL2 = "level2"


class ApprovalAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class Severity(str, Enum):
    SEV1 = "sev1"
    SEV2 = "sev2"
    SEV3 = "sev3"
    SEV4 = "sev4"


class SlaStatus(str, Enum):
    PASSED = "Passed"
    FAILED = "Failed"


class CashAdvanceType(str, Enum):
    PERSONAL = "personal"
    SUPPORT = "support"
    REIMBURSEMENT = "reimbursement"
