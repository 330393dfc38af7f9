"""Demo workflow: drives an order from pending to delivered on timers.

This is a demonstration and testing aid that the host may switch off. Before
each step the simulator re-reads the order and stops if it has been cancelled
or can no longer take the next step.
"""

import asyncio
from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError

from storefront.exceptions import NotFoundError
from storefront.ordering.order import DEFAULT_CARRIER, OrderStatus

logger = structlog.get_logger(__name__)

WORKFLOW_STEPS = (
    (OrderStatus.CONFIRMED, "Order confirmed and payment processed"),
    (OrderStatus.PROCESSING, "Order is being prepared"),
    (OrderStatus.SHIPPED, "Order has been shipped"),
    (OrderStatus.DELIVERED, "Package delivered successfully"),
)


class WorkflowSimulator:
    def __init__(self, lifecycle, delays=(1.0, 3.0, 5.0, 8.0)):
        if len(delays) != len(WORKFLOW_STEPS):
            raise ValueError(f"Expected {len(WORKFLOW_STEPS)} step delays, got {len(delays)}")
        self._lifecycle = lifecycle
        self.delays = tuple(delays)
        self._tasks: dict[str, asyncio.Task] = {}

    def start(self, order_id: str) -> asyncio.Task:
        """Run the workflow for ``order_id`` as a background task."""
        running = self._tasks.get(order_id)
        if running is not None and not running.done():
            return running

        task = asyncio.create_task(self.run(order_id), name=f"workflow-{order_id}")
        self._tasks[order_id] = task
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task) -> None:
        for order_id, running in list(self._tasks.items()):
            if running is task:
                del self._tasks[order_id]

    async def run(self, order_id: str):
        """Walk the order through every step. Returns the final order, or None if aborted."""
        order = None
        for (status, message), delay in zip(WORKFLOW_STEPS, self.delays, strict=True):
            await asyncio.sleep(delay)

            try:
                order = await self._lifecycle.get_order(order_id)
                if not order.can_transition_to(status):
                    logger.info(
                        "Workflow aborted, order no longer eligible",
                        order_id=order_id,
                        status=order.status,
                        next_step=status.value,
                    )
                    return None

                if status is OrderStatus.SHIPPED and not order.tracking_number:
                    await self._lifecycle.add_tracking_info(
                        order_id,
                        f"TRK{int(datetime.now(UTC).timestamp() * 1000)}",
                        DEFAULT_CARRIER,
                    )
                order = await self._lifecycle.update_status(order_id, status.value, notes=message)
            except (ValidationError, NotFoundError) as exc:
                logger.info("Workflow aborted", order_id=order_id, next_step=status.value, reason=str(exc))
                return None

        logger.info("Workflow completed", order_id=order_id)
        return order

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
