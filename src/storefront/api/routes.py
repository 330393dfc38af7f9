"""FastAPI routes for the Storefront: orders, issues and notifications."""

from fastapi import APIRouter, Depends, Request

from storefront.api.schemas import (
    ActionResponse,
    AddTrackingRequest,
    CancelOrderRequest,
    CloseIssueRequest,
    CreateOrderRequest,
    IssueResponse,
    NotificationResponse,
    OrderResponse,
    OrderStatsResponse,
    RefundOrderRequest,
    ReportIssueRequest,
    ResolveIssueRequest,
    UpdateStatusRequest,
)
from storefront.exceptions import NotFoundError
from storefront.services import Storefront


def get_storefront(request: Request) -> Storefront:
    return request.app.state.storefront


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(body: CreateOrderRequest, services: Storefront = Depends(get_storefront)) -> OrderResponse:
    order = await services.lifecycle.create_order(
        body.user_id,
        [item.model_dump() for item in body.items],
        body.shipping_address.model_dump(),
        body.billing_address.model_dump(),
        body.payment_method,
        notes=body.notes,
        currency=body.currency,
    )
    return OrderResponse.from_order(order)


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(status: str | None = None, services: Storefront = Depends(get_storefront)) -> list[OrderResponse]:
    if status:
        orders = await services.lifecycle.get_orders_by_status(status)
    else:
        orders = await services.lifecycle.get_all_orders()
    return [OrderResponse.from_order(order) for order in orders]


@order_router.get("/stats", response_model=OrderStatsResponse)
async def order_stats(services: Storefront = Depends(get_storefront)) -> OrderStatsResponse:
    return OrderStatsResponse(**await services.lifecycle.get_order_stats())


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, services: Storefront = Depends(get_storefront)) -> OrderResponse:
    return OrderResponse.from_order(await services.lifecycle.get_order(order_id))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_status(
    order_id: str, body: UpdateStatusRequest, services: Storefront = Depends(get_storefront)
) -> OrderResponse:
    order = await services.lifecycle.update_status(order_id, body.status, body.notes)
    return OrderResponse.from_order(order)


@order_router.put("/{order_id}/tracking", response_model=OrderResponse)
async def add_tracking(
    order_id: str, body: AddTrackingRequest, services: Storefront = Depends(get_storefront)
) -> OrderResponse:
    order = await services.lifecycle.add_tracking_info(
        order_id, body.tracking_number, body.carrier, body.estimated_delivery
    )
    return OrderResponse.from_order(order)


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str, body: CancelOrderRequest, services: Storefront = Depends(get_storefront)
) -> OrderResponse:
    return OrderResponse.from_order(await services.lifecycle.cancel_order(order_id, body.reason))


@order_router.put("/{order_id}/refund", response_model=OrderResponse)
async def refund_order(
    order_id: str, body: RefundOrderRequest, services: Storefront = Depends(get_storefront)
) -> OrderResponse:
    return OrderResponse.from_order(await services.lifecycle.process_refund(order_id, body.amount))


@order_router.post("/{order_id}/simulate", status_code=202)
async def simulate_workflow(order_id: str, services: Storefront = Depends(get_storefront)) -> dict:
    await services.lifecycle.get_order(order_id)
    await services.lifecycle.simulate_workflow(order_id)
    return {"order_id": order_id, "status": "accepted"}


@order_router.post("/{order_id}/issues", status_code=201, response_model=IssueResponse)
async def report_issue(
    order_id: str, body: ReportIssueRequest, services: Storefront = Depends(get_storefront)
) -> IssueResponse:
    issue = await services.lifecycle.report_order_issue(
        order_id,
        body.description,
        body.resolution_message,
        body.next_steps,
        issue_type=body.issue_type,
        priority=body.priority,
    )
    return IssueResponse.from_issue(issue)


@order_router.get("/{order_id}/issues", response_model=list[IssueResponse])
async def list_issues(order_id: str, services: Storefront = Depends(get_storefront)) -> list[IssueResponse]:
    await services.lifecycle.get_order(order_id)
    return [IssueResponse.from_issue(issue) for issue in await services.issues.list_for_order(order_id)]


# ---------------------------------------------------------------------------
# Issue Router
# ---------------------------------------------------------------------------
issue_router = APIRouter(prefix="/issues", tags=["issues"])


@issue_router.get("/{issue_id}", response_model=IssueResponse)
async def get_issue(issue_id: str, services: Storefront = Depends(get_storefront)) -> IssueResponse:
    return IssueResponse.from_issue(await services.issues.get(issue_id))


@issue_router.put("/{issue_id}/investigate", response_model=IssueResponse)
async def investigate_issue(issue_id: str, services: Storefront = Depends(get_storefront)) -> IssueResponse:
    return IssueResponse.from_issue(await services.issues.start_investigation(issue_id))


@issue_router.put("/{issue_id}/resolve", response_model=IssueResponse)
async def resolve_issue(
    issue_id: str, body: ResolveIssueRequest, services: Storefront = Depends(get_storefront)
) -> IssueResponse:
    issue = await services.issues.resolve(issue_id, body.resolution, body.next_steps)
    return IssueResponse.from_issue(issue)


@issue_router.put("/{issue_id}/close", response_model=IssueResponse)
async def close_issue(
    issue_id: str, body: CloseIssueRequest, services: Storefront = Depends(get_storefront)
) -> IssueResponse:
    return IssueResponse.from_issue(await services.issues.close(issue_id, body.customer_satisfied))


# ---------------------------------------------------------------------------
# Notification Router
# ---------------------------------------------------------------------------
notification_router = APIRouter(prefix="/notifications", tags=["notifications"])


@notification_router.get("/queue-stats")
async def queue_stats(services: Storefront = Depends(get_storefront)) -> dict:
    return services.queue.get_queue_stats()


@notification_router.get("/delivery-stats")
async def delivery_stats(services: Storefront = Depends(get_storefront)) -> dict:
    return services.queue.get_delivery_stats()


@notification_router.get("/center", response_model=list[NotificationResponse])
async def list_center_notifications(
    kind: str | None = None, services: Storefront = Depends(get_storefront)
) -> list[NotificationResponse]:
    items = services.center.get_by_type(kind) if kind else services.center.get_all()
    return [NotificationResponse.from_notification(item) for item in items]


@notification_router.delete("/center/{notification_id}", status_code=204)
async def dismiss_notification(notification_id: str, services: Storefront = Depends(get_storefront)):
    if not services.center.hide(notification_id):
        raise NotFoundError("Notification", notification_id)


@notification_router.post("/center/{notification_id}/action", response_model=ActionResponse)
async def execute_notification_action(
    notification_id: str, services: Storefront = Depends(get_storefront)
) -> ActionResponse:
    if services.center.get(notification_id) is None:
        raise NotFoundError("Notification", notification_id)
    return ActionResponse(success=services.center.execute_action(notification_id))
