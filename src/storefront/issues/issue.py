"""Issue aggregate: a post-fulfillment problem report tied to an order.

State Machine:
    REPORTED → INVESTIGATING → RESOLVED → CLOSED
    REPORTED → RESOLVED

An issue is tracked independently of its order's status.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, Text

from storefront.domain import storefront
from storefront.exceptions import InvalidTransitionError
from storefront.issues.events import (
    IssueClosed,
    IssueInvestigationStarted,
    IssueReported,
    IssueResolved,
)


class IssueType(Enum):
    DELIVERY = "delivery"
    DAMAGE = "damage"
    MISSING = "missing"
    QUALITY = "quality"
    OTHER = "other"


class IssueStatus(Enum):
    REPORTED = "reported"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"


class IssuePriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


_VALID_TRANSITIONS = {
    IssueStatus.REPORTED: {IssueStatus.INVESTIGATING, IssueStatus.RESOLVED},
    IssueStatus.INVESTIGATING: {IssueStatus.RESOLVED},
    IssueStatus.RESOLVED: {IssueStatus.CLOSED},
    IssueStatus.CLOSED: set(),  # Terminal
}


@storefront.aggregate
class Issue:
    order_id: Identifier(required=True)
    issue_type: String(choices=IssueType, default=IssueType.OTHER.value)
    description: Text(required=True)
    status: String(choices=IssueStatus, default=IssueStatus.REPORTED.value)
    priority: String(choices=IssuePriority, default=IssuePriority.MEDIUM.value)
    resolution: Text()
    next_steps: Text()
    customer_satisfied: Boolean()
    reported_at: DateTime()
    resolved_at: DateTime()
    closed_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def report(cls, order_id, issue_type, description, priority=IssuePriority.MEDIUM.value):
        if not description or not description.strip():
            raise ValidationError({"description": ["Issue description is required"]})

        now = datetime.now(UTC)
        issue = cls(
            order_id=order_id,
            issue_type=issue_type or IssueType.OTHER.value,
            description=description.strip(),
            status=IssueStatus.REPORTED.value,
            priority=priority or IssuePriority.MEDIUM.value,
            reported_at=now,
            updated_at=now,
        )
        issue.raise_(
            IssueReported(
                issue_id=str(issue.id),
                order_id=str(order_id),
                issue_type=issue.issue_type,
                priority=issue.priority,
                description=issue.description,
                reported_at=now,
            )
        )
        return issue

    def _assert_can_transition(self, target_status):
        current = IssueStatus(self.status)
        if target_status not in _VALID_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target_status.value)

    def start_investigation(self):
        self._assert_can_transition(IssueStatus.INVESTIGATING)

        now = datetime.now(UTC)
        self.status = IssueStatus.INVESTIGATING.value
        self.updated_at = now

        self.raise_(
            IssueInvestigationStarted(
                issue_id=str(self.id),
                order_id=str(self.order_id),
                started_at=now,
            )
        )

    def resolve(self, resolution, next_steps=None):
        """Resolve the issue. A non-empty resolution is required."""
        if not resolution or not resolution.strip():
            raise ValidationError({"resolution": ["Resolution is required to resolve an issue"]})
        self._assert_can_transition(IssueStatus.RESOLVED)

        now = datetime.now(UTC)
        self.status = IssueStatus.RESOLVED.value
        self.resolution = resolution.strip()
        self.next_steps = next_steps
        self.resolved_at = now
        self.updated_at = now

        self.raise_(
            IssueResolved(
                issue_id=str(self.id),
                order_id=str(self.order_id),
                resolution=self.resolution,
                next_steps=next_steps,
                resolved_at=now,
            )
        )

    def close(self, customer_satisfied=None):
        self._assert_can_transition(IssueStatus.CLOSED)

        now = datetime.now(UTC)
        self.status = IssueStatus.CLOSED.value
        self.customer_satisfied = customer_satisfied
        self.closed_at = now
        self.updated_at = now

        self.raise_(
            IssueClosed(
                issue_id=str(self.id),
                order_id=str(self.order_id),
                customer_satisfied=customer_satisfied,
                closed_at=now,
            )
        )


@storefront.repository(part_of=Issue)
class IssueRepository:
    def for_order(self, order_id: str) -> list[Issue]:
        issues = self._dao.query.filter(order_id=order_id).all().items
        return sorted(issues, key=lambda issue: issue.reported_at)
