"""Access policy.

Every authorization decision goes through :class:`PolicyEngine`. An action
maps to a tuple of alternative :class:`Rule` objects (any one may grant) and
an optional tuple of :class:`RequesterGate` restrictions (all must hold).
Within a rule every populated condition must match.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional

from ..core.constants import MANAGING_DIRECTOR, OPERATIONS_MANAGER
from ..core.enums import ApprovalLevel, Role
from ..core.exceptions import AuthorizationError
from .context import RequestContext


class Action(str, Enum):
    ATTENDANCE_CLOCK = "attendance.clock"

    OVERTIME_FILE = "overtime.file"
    OVERTIME_REVIEW_LIST = "overtime.review_list"
    OVERTIME_APPROVE_LEVEL1 = "overtime.approve.level1"
    OVERTIME_APPROVE_LEVEL2 = "overtime.approve.level2"
    OVERTIME_WITHDRAW = "overtime.withdraw"

    LEAVE_FILE = "leave.file"
    LEAVE_REVIEW_LIST = "leave.review_list"
    LEAVE_DECIDE = "leave.decide"
    LEAVE_REVOKE = "leave.revoke"

    CASH_ADVANCE_FILE = "cash_advance.file"
    CASH_ADVANCE_APPROVE_LEVEL1 = "cash_advance.approve.level1"
    CASH_ADVANCE_APPROVE_LEVEL2 = "cash_advance.approve.level2"
    CASH_ADVANCE_DELETE = "cash_advance.delete"

    LIQUIDATION_FILE = "liquidation.file"
    LIQUIDATION_APPROVE_LEVEL1 = "liquidation.approve.level1"
    LIQUIDATION_APPROVE_LEVEL2 = "liquidation.approve.level2"
    LIQUIDATION_DELETE = "liquidation.delete"

    TICKET_CREATE = "ticket.create"
    TICKET_VIEW = "ticket.view"
    TICKET_VIEW_ALL = "ticket.view_all"
    TICKET_READ = "ticket.read"
    TICKET_UPDATE = "ticket.update"
    TICKET_REASSIGN = "ticket.reassign"
    TICKET_IMPORT = "ticket.import"
    TICKET_EXPORT = "ticket.export"

    INVENTORY_IMPORT = "inventory.import"


LEVEL_ACTIONS = {
    "overtime": {
        ApprovalLevel.LEVEL1: Action.OVERTIME_APPROVE_LEVEL1,
        ApprovalLevel.LEVEL2: Action.OVERTIME_APPROVE_LEVEL2,
    },
    "cash_advance": {
        ApprovalLevel.LEVEL1: Action.CASH_ADVANCE_APPROVE_LEVEL1,
        ApprovalLevel.LEVEL2: Action.CASH_ADVANCE_APPROVE_LEVEL2,
    },
    "liquidation": {
        ApprovalLevel.LEVEL1: Action.LIQUIDATION_APPROVE_LEVEL1,
        ApprovalLevel.LEVEL2: Action.LIQUIDATION_APPROVE_LEVEL2,
    },
}


@dataclass(frozen=True)
class Resource:
    """What the principal acts on, reduced to the attributes rules look at."""

    owner_id: Optional[int] = None
    assignee_id: Optional[int] = None
    requester_position: Optional[str] = None


@dataclass(frozen=True)
class Rule:
    roles: frozenset[Role] = frozenset()
    positions: frozenset[str] = frozenset()
    excluded_positions: frozenset[str] = frozenset()
    permissions: frozenset[str] = frozenset()
    owner: bool = False
    assignee: bool = False

    def matches(self, principal: RequestContext, resource: Resource) -> bool:
        if self.roles and principal.role not in self.roles:
            return False
        if self.positions and _norm(principal.position) not in {_norm(p) for p in self.positions}:
            return False
        if _norm(principal.position) in {_norm(p) for p in self.excluded_positions}:
            return False
        if self.permissions and not (self.permissions & principal.permissions):
            return False
        if self.owner and (resource.owner_id is None or resource.owner_id != principal.user_id):
            return False
        if self.assignee and (resource.assignee_id is None or resource.assignee_id != principal.user_id):
            return False
        return True


AUTHENTICATED = Rule()


@dataclass(frozen=True)
class RequesterGate:
    """Extra restriction when the requester holds one of ``requester_positions``.

    The acting principal's position must then contain one of
    ``approver_keywords`` (case-insensitive substring match).
    """

    requester_positions: frozenset[str]
    approver_keywords: tuple[str, ...]
    message: str

    def applies_to(self, resource: Resource) -> bool:
        return _norm(resource.requester_position) in {_norm(p) for p in self.requester_positions}

    def allows(self, principal: RequestContext) -> bool:
        position = _norm(principal.position)
        return any(k.lower() in position for k in self.approver_keywords)


@dataclass(frozen=True)
class Policy:
    rules: tuple[Rule, ...]
    denied_message: str
    gates: tuple[RequesterGate, ...] = ()


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class PolicyEngine:
    def __init__(self, table: Mapping[Action, Policy]):
        self._table = dict(table)

    def evaluate(self, principal: RequestContext, action: Action, resource: Optional[Resource] = None) -> Decision:
        resource = resource or Resource()
        policy = self._table.get(action)
        if policy is None:
            return Decision(False, f"Forbidden: no policy for {action.value}")

        if not any(rule.matches(principal, resource) for rule in policy.rules):
            return Decision(False, policy.denied_message)

        for gate in policy.gates:
            if gate.applies_to(resource) and not gate.allows(principal):
                return Decision(False, gate.message)

        return Decision(True)

    def require(self, principal: RequestContext, action: Action, resource: Optional[Resource] = None) -> None:
        decision = self.evaluate(principal, action, resource)
        if not decision.allowed:
            raise AuthorizationError(decision.reason)

    def allows(self, principal: RequestContext, action: Action, resource: Optional[Resource] = None) -> bool:
        return self.evaluate(principal, action, resource).allowed


def build_default_policy(
    *,
    overtime_level1_positions: Iterable[str],
    overtime_level2_positions: Iterable[str],
    leave_director_only_positions: Iterable[str] = (OPERATIONS_MANAGER, "HR", "Accounting"),
) -> PolicyEngine:
    admin = frozenset({Role.ADMIN})

    cash_advance_confidential = RequesterGate(
        requester_positions=frozenset({OPERATIONS_MANAGER}),
        approver_keywords=("hr", "accounting", "operations manager"),
        message=(
            "Forbidden: Operations Manager cash advances are confidential and can only be "
            "processed by HR or Accounting"
        ),
    )
    cash_advance_delete_confidential = RequesterGate(
        requester_positions=frozenset({OPERATIONS_MANAGER}),
        approver_keywords=("hr", "accounting", MANAGING_DIRECTOR),
        message=(
            "Forbidden: Operations Manager cash advances are confidential and can only be "
            "deleted by HR, Accounting, or Managing Director"
        ),
    )
    liquidation_confidential = RequesterGate(
        requester_positions=frozenset({"HR", "Accounting"}),
        approver_keywords=(MANAGING_DIRECTOR,),
        message="Forbidden: HR and Accounting liquidations can only be approved at Level 2 by Managing Director",
    )
    leave_director_only = RequesterGate(
        requester_positions=frozenset(leave_director_only_positions),
        approver_keywords=(MANAGING_DIRECTOR,),
        message=f"Forbidden: leave requests from this position can only be decided by {MANAGING_DIRECTOR}",
    )

    table = {
        Action.ATTENDANCE_CLOCK: Policy((AUTHENTICATED,), "Unauthorized"),
        Action.OVERTIME_FILE: Policy((AUTHENTICATED,), "Unauthorized"),
        Action.LEAVE_FILE: Policy((AUTHENTICATED,), "Unauthorized"),
        Action.CASH_ADVANCE_FILE: Policy((AUTHENTICATED,), "Unauthorized"),
        Action.LIQUIDATION_FILE: Policy((AUTHENTICATED,), "Unauthorized"),
        Action.OVERTIME_REVIEW_LIST: Policy(
            (Rule(roles=admin, permissions=frozenset({"view_overtime"})),),
            "Forbidden: You do not have permission to view overtime requests",
        ),
        Action.OVERTIME_WITHDRAW: Policy(
            (Rule(owner=True),),
            "Forbidden: You can only delete your own overtime requests",
        ),
        Action.LEAVE_REVIEW_LIST: Policy(
            (Rule(roles=admin), Rule(permissions=frozenset({"manage_leave_requests"}))),
            "Forbidden: admin role required",
        ),
        Action.OVERTIME_APPROVE_LEVEL1: Policy(
            (Rule(roles=admin, positions=frozenset(overtime_level1_positions)),),
            "Access denied. You do not have permission for level 1 approval.",
        ),
        Action.OVERTIME_APPROVE_LEVEL2: Policy(
            (Rule(roles=admin, positions=frozenset(overtime_level2_positions)),),
            "Access denied. You do not have permission for level 2 approval.",
        ),
        Action.LEAVE_DECIDE: Policy(
            (Rule(roles=admin), Rule(permissions=frozenset({"manage_leave_requests"}))),
            "Forbidden: You do not have permission to approve/reject leave requests",
            gates=(leave_director_only,),
        ),
        Action.LEAVE_REVOKE: Policy(
            (Rule(roles=admin, permissions=frozenset({"manage_leave_requests"})),),
            "Forbidden: You do not have permission to revoke leave requests",
            gates=(leave_director_only,),
        ),
        Action.CASH_ADVANCE_APPROVE_LEVEL1: Policy(
            (Rule(roles=admin, permissions=frozenset({"approve_cash_advance_level1"})),),
            "Forbidden: You do not have permission to Level 1 approve/reject cash advance requests",
            gates=(cash_advance_confidential,),
        ),
        Action.CASH_ADVANCE_APPROVE_LEVEL2: Policy(
            (Rule(roles=admin, permissions=frozenset({"approve_cash_advance_level2"})),),
            "Forbidden: You do not have permission to Level 2 approve/reject cash advance requests",
            gates=(cash_advance_confidential,),
        ),
        Action.CASH_ADVANCE_DELETE: Policy(
            (Rule(roles=admin, permissions=frozenset({"manage_cash_flow"})),),
            "Forbidden: You do not have permission to delete cash advance requests",
            gates=(cash_advance_delete_confidential,),
        ),
        Action.LIQUIDATION_APPROVE_LEVEL1: Policy(
            (Rule(permissions=frozenset({"approve_liquidations_level1"})),),
            "Forbidden: You do not have permission to approve/reject liquidations at Level 1",
        ),
        Action.LIQUIDATION_APPROVE_LEVEL2: Policy(
            (Rule(permissions=frozenset({"approve_liquidations_level2"})),),
            "Forbidden: You do not have permission to approve/reject liquidations at Level 2",
            gates=(liquidation_confidential,),
        ),
        Action.LIQUIDATION_DELETE: Policy(
            (Rule(roles=admin, permissions=frozenset({"manage_liquidation"})),),
            "Forbidden: You do not have permission to delete liquidations",
        ),
        Action.TICKET_CREATE: Policy(
            (Rule(excluded_positions=frozenset({"Field Engineer"})),),
            "Forbidden: Access denied for your position",
        ),
        Action.TICKET_VIEW: Policy(
            (Rule(excluded_positions=frozenset({"Asset", "Asset Lead", "Asset Associate"})),),
            "Forbidden: Access denied for your position",
        ),
        Action.TICKET_VIEW_ALL: Policy(
            (Rule(roles=admin), Rule(permissions=frozenset({"manage_tickets"}))),
            "Forbidden: admin role required",
        ),
        Action.TICKET_READ: Policy(
            (Rule(roles=admin), Rule(permissions=frozenset({"manage_tickets"})), Rule(assignee=True)),
            "Forbidden: You can only view tickets assigned to you",
        ),
        Action.TICKET_UPDATE: Policy(
            (Rule(roles=admin), Rule(assignee=True)),
            "Unauthorized: Only admins or the assigned employee can update this ticket",
        ),
        Action.TICKET_REASSIGN: Policy((Rule(roles=admin),), "Forbidden: admin role required"),
        Action.TICKET_IMPORT: Policy(
            (Rule(roles=admin), Rule(permissions=frozenset({"manage_tickets"}))),
            "Forbidden: You do not have permission to import tickets.",
        ),
        Action.TICKET_EXPORT: Policy(
            (Rule(roles=admin, permissions=frozenset({"view_ticket_overview"})),),
            "Forbidden: You do not have permission to export ticket data",
        ),
        Action.INVENTORY_IMPORT: Policy(
            (Rule(permissions=frozenset({"manage_store_inventory"})),),
            "Forbidden: You do not have permission to import store inventory.",
        ),
    }
    return PolicyEngine(table)
