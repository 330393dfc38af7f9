"""Pydantic request/response schemas for the Storefront API.

These are external contracts, kept separate from the domain aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from storefront.issues.issue import Issue
from storefront.notifications.center import Notification
from storefront.ordering.order import DEFAULT_CARRIER, Order


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str
    city: str
    state: str | None = None
    postal_code: str
    country: str


class OrderItemSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(ge=1)
    unit_price: float = Field(gt=0)
    image_url: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    user_id: str
    items: list[OrderItemSchema]
    shipping_address: AddressSchema
    billing_address: AddressSchema
    payment_method: str
    notes: str | None = None
    currency: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "items": [
                        {"product_id": "prod-1", "product_name": "Tea", "quantity": 2, "unit_price": 100.0},
                    ],
                    "shipping_address": {
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "postal_code": "560001",
                        "country": "IN",
                    },
                    "billing_address": {
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "postal_code": "560001",
                        "country": "IN",
                    },
                    "payment_method": "upi",
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: str
    notes: str | None = None


class AddTrackingRequest(BaseModel):
    tracking_number: str
    carrier: str = DEFAULT_CARRIER
    estimated_delivery: datetime | None = None


class CancelOrderRequest(BaseModel):
    reason: str


class RefundOrderRequest(BaseModel):
    amount: float | None = Field(default=None, gt=0)


# ---------------------------------------------------------------------------
# Issue Request Schemas
# ---------------------------------------------------------------------------
class ReportIssueRequest(BaseModel):
    description: str
    resolution_message: str
    next_steps: str | None = None
    issue_type: str = "other"
    priority: str = "medium"


class ResolveIssueRequest(BaseModel):
    resolution: str
    next_steps: str | None = None


class CloseIssueRequest(BaseModel):
    customer_satisfied: bool | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    image_url: str | None = None


class StatusChangeResponse(BaseModel):
    status: str
    changed_at: datetime
    note: str | None = None


class OrderResponse(BaseModel):
    id: str
    user_id: str
    status: str
    items: list[OrderItemResponse]
    history: list[StatusChangeResponse]
    shipping_address: AddressSchema
    billing_address: AddressSchema
    payment_method: str
    tracking_number: str | None = None
    carrier: str | None = None
    total_amount: float
    currency: str
    notes: str | None = None
    refund_amount: float | None = None
    estimated_delivery: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=str(order.id),
            user_id=str(order.user_id),
            status=order.status,
            items=[
                OrderItemResponse(
                    id=str(item.id),
                    product_id=str(item.product_id),
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    image_url=item.image_url,
                )
                for item in order.line_items()
            ],
            history=[
                StatusChangeResponse(status=change.status, changed_at=change.changed_at, note=change.note)
                for change in order.timeline()
            ],
            shipping_address=AddressSchema(**order.shipping_address.to_dict()),
            billing_address=AddressSchema(**order.billing_address.to_dict()),
            payment_method=order.payment_method,
            tracking_number=order.tracking_number,
            carrier=order.carrier,
            total_amount=order.total_amount,
            currency=order.currency,
            notes=order.notes,
            refund_amount=order.refund_amount,
            estimated_delivery=order.estimated_delivery,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    total_revenue: float
    average_order_value: float


class IssueResponse(BaseModel):
    id: str
    order_id: str
    issue_type: str
    description: str
    status: str
    priority: str
    resolution: str | None = None
    next_steps: str | None = None
    customer_satisfied: bool | None = None
    reported_at: datetime
    resolved_at: datetime | None = None

    @classmethod
    def from_issue(cls, issue: Issue) -> "IssueResponse":
        return cls(
            id=str(issue.id),
            order_id=str(issue.order_id),
            issue_type=issue.issue_type,
            description=issue.description,
            status=issue.status,
            priority=issue.priority,
            resolution=issue.resolution,
            next_steps=issue.next_steps,
            customer_satisfied=issue.customer_satisfied,
            reported_at=issue.reported_at,
            resolved_at=issue.resolved_at,
        )


class NotificationResponse(BaseModel):
    id: str
    kind: str
    title: str
    message: str
    timestamp: datetime
    persistent: bool
    action_label: str | None = None
    action: str | None = None

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            kind=notification.kind,
            title=notification.title,
            message=notification.message,
            timestamp=notification.timestamp,
            persistent=notification.persistent,
            action_label=notification.action_label,
            action=notification.action,
        )


class ActionResponse(BaseModel):
    success: bool
