"""Domain events for the Issue aggregate."""

from protean.fields import Boolean, DateTime, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Issue")
class IssueReported:
    """A customer reported a problem with an order."""

    __version__ = 1

    issue_id: Identifier(required=True)
    order_id: Identifier(required=True)
    issue_type: String(required=True)
    priority: String(required=True)
    description: Text(required=True)
    reported_at: DateTime(required=True)


@storefront.event(part_of="Issue")
class IssueInvestigationStarted:
    """Support started looking into the issue."""

    __version__ = 1

    issue_id: Identifier(required=True)
    order_id: Identifier(required=True)
    started_at: DateTime(required=True)


@storefront.event(part_of="Issue")
class IssueResolved:
    """The issue was resolved and the customer told what happens next."""

    __version__ = 1

    issue_id: Identifier(required=True)
    order_id: Identifier(required=True)
    resolution: Text(required=True)
    next_steps: Text()
    resolved_at: DateTime(required=True)


@storefront.event(part_of="Issue")
class IssueClosed:
    """The issue was closed with the customer's verdict."""

    __version__ = 1

    issue_id: Identifier(required=True)
    order_id: Identifier(required=True)
    customer_satisfied: Boolean()
    closed_at: DateTime(required=True)
