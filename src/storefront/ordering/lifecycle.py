"""OrderLifecycleManager: the entry point for every change to an order.

Validates each request against the order's state machine inside the
OrderStore's single-writer section, then raises a notification intent for
the state reached. Notification trouble is absorbed by the emitter, so a
committed status change is never reported as failed because of it.
"""

import asyncio

import structlog
from protean.exceptions import InvalidOperationError, ValidationError

from storefront.domain import storefront
from storefront.exceptions import InventoryConflict, NotFoundError
from storefront.issues.issue import Issue, IssuePriority, IssueType
from storefront.issues.tracker import IssueTracker
from storefront.notifications.emitter import NotificationEmitter
from storefront.notifications.job import NotificationEventType
from storefront.ordering.inventory import UNVERIFIED_INVENTORY_WARNING, InventoryGate
from storefront.ordering.order import DEFAULT_CARRIER, Order, OrderStatus, validate_items
from storefront.ordering.store import OrderStore
from storefront.ordering.workflow import WorkflowSimulator

logger = structlog.get_logger(__name__)

_STATUS_EVENT_TYPES = {
    OrderStatus.CONFIRMED: NotificationEventType.STATUS_UPDATES,
    OrderStatus.PROCESSING: NotificationEventType.STATUS_UPDATES,
    OrderStatus.SHIPPED: NotificationEventType.SHIPPING_UPDATES,
    OrderStatus.DELIVERED: NotificationEventType.DELIVERY_CONFIRMATION,
    OrderStatus.CANCELLED: NotificationEventType.STATUS_UPDATES,
    OrderStatus.REFUNDED: NotificationEventType.STATUS_UPDATES,
}

_NON_REVENUE_STATUSES = {OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value}


def _parse_status(status) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {status}"]}) from None


def _delivery_date(order: Order) -> str | None:
    return order.estimated_delivery.date().isoformat() if order.estimated_delivery else None


class OrderLifecycleManager:
    def __init__(
        self,
        store: OrderStore,
        emitter: NotificationEmitter,
        issues: IssueTracker,
        *,
        inventory: InventoryGate | None = None,
        currency: str = "INR",
        simulation_delays=None,
        domain=storefront,
    ):
        self._store = store
        self._emitter = emitter
        self._issues = issues
        self._inventory = inventory
        self._currency = currency
        self._domain = domain
        self._simulator = WorkflowSimulator(self, simulation_delays) if simulation_delays is not None else None

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    async def create_order(
        self,
        user_id: str,
        items: list[dict],
        shipping_address: dict,
        billing_address: dict,
        payment_method: str,
        *,
        notes: str | None = None,
        currency: str | None = None,
    ) -> Order:
        validate_items(items)
        caveats = await self._check_inventory(items)
        if caveats:
            notes = "\n".join(filter(None, [notes, *caveats]))

        with self._domain.domain_context():
            order = Order.place(
                user_id=user_id,
                items_data=items,
                shipping_address=shipping_address,
                billing_address=billing_address,
                payment_method=payment_method,
                currency=currency or self._currency,
                notes=notes,
            )
            context = {
                "total_amount": order.total_amount,
                "currency": order.currency,
                "item_count": len(order.items),
                "estimated_delivery": _delivery_date(order),
            }
        await self._store.add(order)

        logger.info(
            "Order created",
            order_id=str(order.id),
            user_id=user_id,
            total_amount=order.total_amount,
            currency=order.currency,
        )

        for caveat in caveats:
            self._emitter.center.show_warning("Order placed with a caveat", caveat)
        await self._emitter.emit(
            str(order.id), str(order.user_id), NotificationEventType.ORDER_CONFIRMATION.value, context
        )
        return order

    async def _check_inventory(self, items: list[dict]) -> list[str]:
        """Return caveats to record on the order; raise InventoryConflict if stock is short."""
        if self._inventory is None:
            return []
        try:
            result = await self._inventory.check_availability(items)
        except Exception as exc:
            # Any failure to reach the gate downgrades to a caveat on the order
            logger.warning(
                "Inventory check unavailable, proceeding without it",
                error=f"{type(exc).__name__}: {exc}",
                exc_info=True,
            )
            return [UNVERIFIED_INVENTORY_WARNING]

        if not result.available:
            logger.info("Order blocked by inventory check", errors=result.errors)
            raise InventoryConflict(result.errors)
        return list(result.warnings)

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    async def update_status(self, order_id: str, new_status: str, notes: str | None = None) -> Order:
        target = _parse_status(new_status)

        async with self._store.writing(order_id) as order:
            previous = order.status
            with self._domain.domain_context():
                order.transition_to(target, notes=notes)

        logger.info("Order status updated", order_id=order_id, from_status=previous, to_status=target.value)
        await self._notify_status(order, target, notes)
        return order

    async def cancel_order(self, order_id: str, reason: str) -> Order:
        async with self._store.writing(order_id) as order:
            with self._domain.domain_context():
                order.cancel(reason)

        logger.info("Order cancelled", order_id=order_id, reason=reason)
        await self._notify_status(order, OrderStatus.CANCELLED, reason)
        return order

    async def process_refund(self, order_id: str, amount: float | None = None) -> Order:
        async with self._store.writing(order_id) as order:
            with self._domain.domain_context():
                order.refund(amount)

        logger.info("Order refunded", order_id=order_id, refund_amount=order.refund_amount)
        await self._notify_status(
            order,
            OrderStatus.REFUNDED,
            f"{order.currency} {order.refund_amount:.2f} will be returned to your {order.payment_method}.",
        )
        return order

    async def mark_as_delivered(self, order_id: str, notes: str | None = None) -> Order:
        return await self.update_status(order_id, OrderStatus.DELIVERED.value, notes or "Package delivered successfully")

    async def add_tracking_info(
        self,
        order_id: str,
        tracking_number: str,
        carrier: str = DEFAULT_CARRIER,
        estimated_delivery=None,
    ) -> Order:
        async with self._store.writing(order_id) as order:
            with self._domain.domain_context():
                order.add_tracking(tracking_number, carrier, estimated_delivery)

        logger.info("Tracking added", order_id=order_id, tracking_number=order.tracking_number, carrier=order.carrier)
        await self._emitter.emit(
            order_id,
            str(order.user_id),
            NotificationEventType.SHIPPING_UPDATES.value,
            {
                "tracking_number": order.tracking_number,
                "carrier": order.carrier,
                "estimated_delivery": _delivery_date(order),
            },
        )
        return order

    async def _notify_status(self, order: Order, status: OrderStatus, notes: str | None) -> None:
        await self._emitter.emit(
            str(order.id),
            str(order.user_id),
            _STATUS_EVENT_TYPES[status].value,
            {
                "status": status.value,
                "notes": notes,
                "tracking_number": order.tracking_number,
                "carrier": order.carrier,
                "estimated_delivery": _delivery_date(order),
            },
        )

    # -------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------
    async def report_order_issue(
        self,
        order_id: str,
        description: str,
        resolution_message: str,
        next_steps: str | None = None,
        issue_type: str = IssueType.OTHER.value,
        priority: str = IssuePriority.MEDIUM.value,
    ) -> Issue:
        """Record an issue and send the customer provisional guidance right away."""
        center = self._emitter.center
        try:
            issue = await self._issues.report(order_id, issue_type, description, priority)
        except (ValidationError, NotFoundError) as exc:
            center.show_error("Issue report failed", f"We could not record your issue: {exc}")
            raise

        order = await self._store.get(order_id)
        await self._emitter.emit(
            order_id,
            str(order.user_id),
            NotificationEventType.ISSUE_RESOLUTION.value,
            {
                "issue_id": str(issue.id),
                "issue_type": issue.issue_type,
                "resolution": resolution_message,
                "next_steps": next_steps,
            },
        )
        center.show_success(
            "Issue reported",
            "We've received your report and will follow up shortly.",
        )
        return issue

    # -------------------------------------------------------------------
    # Demo workflow
    # -------------------------------------------------------------------
    async def simulate_workflow(self, order_id: str) -> asyncio.Task:
        """Start the background demo workflow for an order."""
        if self._simulator is None:
            raise InvalidOperationError({"workflow": ["Workflow simulation is disabled"]})
        await self._store.get(order_id)
        return self._simulator.start(order_id)

    async def shutdown(self) -> None:
        if self._simulator is not None:
            await self._simulator.stop()

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    async def get_order(self, order_id: str) -> Order:
        return await self._store.get(order_id)

    async def get_all_orders(self) -> list[Order]:
        return await self._store.list_orders()

    async def get_orders_by_status(self, status: str) -> list[Order]:
        return await self._store.list_orders(_parse_status(status).value)

    async def get_order_stats(self) -> dict:
        orders = await self._store.list_orders()
        by_status = {status.value: 0 for status in OrderStatus}
        for order in orders:
            by_status[order.status] += 1

        revenue = round(sum(o.total_amount for o in orders if o.status not in _NON_REVENUE_STATUSES), 2)
        return {
            "total": len(orders),
            "by_status": by_status,
            "total_revenue": revenue,
            "average_order_value": round(revenue / len(orders), 2) if orders else 0.0,
        }
