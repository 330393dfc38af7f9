"""IssueTracker: records post-fulfillment issues and walks them to resolution.

Each operation loads, mutates and saves the issue without suspending in
between, so two updates to one issue never interleave.
"""

import structlog
from protean.exceptions import ObjectNotFoundError

from storefront.domain import storefront
from storefront.exceptions import NotFoundError
from storefront.issues.issue import Issue, IssuePriority
from storefront.notifications.emitter import NotificationEmitter
from storefront.notifications.job import NotificationEventType
from storefront.ordering.store import OrderStore

logger = structlog.get_logger(__name__)


class IssueTracker:
    def __init__(self, orders: OrderStore, emitter: NotificationEmitter, domain=storefront):
        self._orders = orders
        self._emitter = emitter
        self._domain = domain

    def _repository(self):
        return self._domain.repository_for(Issue)

    def _load(self, issue_id: str) -> Issue:
        try:
            return self._repository().get(issue_id)
        except ObjectNotFoundError:
            raise NotFoundError("Issue", issue_id) from None

    async def report(
        self,
        order_id: str,
        issue_type: str,
        description: str,
        priority: str = IssuePriority.MEDIUM.value,
    ) -> Issue:
        await self._orders.get(order_id)

        with self._domain.domain_context():
            issue = Issue.report(order_id, issue_type, description, priority)
            self._repository().add(issue)

        logger.info(
            "Issue reported",
            issue_id=str(issue.id),
            order_id=order_id,
            issue_type=issue.issue_type,
            priority=issue.priority,
        )
        return issue

    async def start_investigation(self, issue_id: str) -> Issue:
        with self._domain.domain_context():
            issue = self._load(issue_id)
            issue.start_investigation()
            self._repository().add(issue)

        logger.info("Issue investigation started", issue_id=issue_id)
        return issue

    async def resolve(self, issue_id: str, resolution: str, next_steps: str | None = None) -> Issue:
        with self._domain.domain_context():
            issue = self._load(issue_id)
            issue.resolve(resolution, next_steps)
            self._repository().add(issue)

        logger.info("Issue resolved", issue_id=issue_id, order_id=str(issue.order_id))

        order = await self._orders.get(str(issue.order_id))
        await self._emitter.emit(
            str(order.id),
            str(order.user_id),
            NotificationEventType.ISSUE_RESOLUTION.value,
            {
                "issue_id": issue_id,
                "issue_type": issue.issue_type,
                "resolution": issue.resolution,
                "next_steps": issue.next_steps,
            },
        )
        return issue

    async def close(self, issue_id: str, customer_satisfied: bool | None = None) -> Issue:
        with self._domain.domain_context():
            issue = self._load(issue_id)
            issue.close(customer_satisfied)
            self._repository().add(issue)

        logger.info("Issue closed", issue_id=issue_id, customer_satisfied=customer_satisfied)
        return issue

    async def get(self, issue_id: str) -> Issue:
        with self._domain.domain_context():
            return self._load(issue_id)

    async def list_for_order(self, order_id: str) -> list[Issue]:
        with self._domain.domain_context():
            return self._repository().for_order(order_id)
