"""Order aggregate: the purchase record and its status state machine.

State Machine (7 states):
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    CANCELLED (from PENDING, CONFIRMED, PROCESSING) → REFUNDED

DELIVERED and REFUNDED are terminal. Tracking details can only be attached
once the order is being processed.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.exceptions import InvalidTransitionError
from storefront.ordering.events import (
    OrderPlaced,
    OrderStatusChanged,
    RefundProcessed,
    TrackingInfoAdded,
)

DEFAULT_CARRIER = "Standard Shipping"
DELIVERY_WINDOW = timedelta(days=7)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

TRACKABLE_STATUSES = frozenset({OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED})


def allowed_transitions(status):
    """Statuses reachable in one step from ``status``."""
    return frozenset(_VALID_TRANSITIONS[OrderStatus(status)])


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class Address:
    """A shipping or billing address captured when the order was placed."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


_ADDRESS_FIELDS = ("street", "city", "state", "postal_code", "country")


def _address(data, field_name):
    if not isinstance(data, dict) or not data:
        raise ValidationError({field_name: ["Address is required"]})
    return Address(**{key: data[key] for key in _ADDRESS_FIELDS if data.get(key) is not None})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A line item: one product at a locked unit price."""

    line_number = Integer(required=True, min_value=1)
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    image_url = String(max_length=1024)

    @property
    def line_total(self):
        return self.unit_price * self.quantity


@storefront.entity(part_of="Order")
class StatusChange:
    """One entry in the order's status timeline."""

    status = String(choices=OrderStatus, required=True)
    changed_at = DateTime(required=True)
    note = Text()


def validate_items(items_data):
    if not isinstance(items_data, list | tuple):
        raise ValidationError({"items": ["Items must be a list of line items"]})
    if not items_data:
        raise ValidationError({"items": ["Order must contain at least one item"]})

    errors = []
    for index, item in enumerate(items_data, start=1):
        if not isinstance(item, dict):
            errors.append(f"Item {index}: must be a mapping of item fields")
            continue
        if not item.get("product_id"):
            errors.append(f"Item {index}: product_id is required")
        if not item.get("product_name"):
            errors.append(f"Item {index}: product_name is required")
        quantity = item.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            errors.append(f"Item {index}: quantity must be greater than 0")
        unit_price = item.get("unit_price")
        if not isinstance(unit_price, int | float) or isinstance(unit_price, bool) or unit_price <= 0:
            errors.append(f"Item {index}: unit_price must be greater than 0")

    if errors:
        raise ValidationError({"items": errors})


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    user_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    items = HasMany(OrderItem)
    history = HasMany(StatusChange)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    payment_method = String(required=True, max_length=50)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    total_amount = Float(default=0.0)
    currency = String(max_length=3, default="INR")
    notes = Text()
    cancellation_reason = String(max_length=500)
    refund_amount = Float()
    estimated_delivery = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        user_id,
        items_data,
        shipping_address,
        billing_address,
        payment_method,
        currency="INR",
        notes=None,
    ):
        """Create a new pending order.

        Args:
            user_id: The customer placing the order.
            items_data: List of dicts with product_id, product_name, quantity,
                        unit_price and optionally image_url.
            shipping_address: Dict with street, city, state, postal_code, country.
            billing_address: Dict with street, city, state, postal_code, country.
            payment_method: Free-form payment method label ("card", "upi", ...).
        """
        if not user_id:
            raise ValidationError({"user_id": ["User is required"]})
        if not payment_method:
            raise ValidationError({"payment_method": ["Payment method is required"]})
        validate_items(items_data)

        now = datetime.now(UTC)
        items = [
            OrderItem(
                line_number=line_number,
                product_id=item["product_id"],
                product_name=item["product_name"],
                quantity=item["quantity"],
                unit_price=float(item["unit_price"]),
                image_url=item.get("image_url"),
            )
            for line_number, item in enumerate(items_data, start=1)
        ]
        total_amount = round(sum(item.line_total for item in items), 2)

        order = cls(
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            items=items,
            history=[StatusChange(status=OrderStatus.PENDING.value, changed_at=now, note="Order placed")],
            shipping_address=_address(shipping_address, "shipping_address"),
            billing_address=_address(billing_address, "billing_address"),
            payment_method=payment_method,
            total_amount=total_amount,
            currency=currency,
            notes=notes,
            estimated_delivery=now + DELIVERY_WINDOW,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                item_count=len(items),
                total_amount=total_amount,
                currency=currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def can_transition_to(self, target_status):
        return OrderStatus(target_status) in allowed_transitions(self.status)

    def _assert_can_transition(self, target_status):
        """Validate that the current state allows transition to target."""
        if target_status not in allowed_transitions(self.status):
            raise InvalidTransitionError(self.status, target_status.value)

    def line_items(self):
        """Items in the order they were placed."""
        return sorted(self.items, key=lambda item: item.line_number)

    def timeline(self):
        return sorted(self.history, key=lambda change: change.changed_at)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition_to(self, target_status, notes=None):
        """Move the order one step along the lifecycle graph."""
        target = OrderStatus(target_status)
        self._assert_can_transition(target)

        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.add_history(StatusChange(status=target.value, changed_at=now, note=notes))

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                user_id=str(self.user_id),
                from_status=previous,
                to_status=target.value,
                notes=notes,
                changed_at=now,
            )
        )

    def cancel(self, reason):
        """Cancel the order before it ships."""
        if not reason:
            raise ValidationError({"reason": ["Cancellation reason is required"]})
        self.transition_to(OrderStatus.CANCELLED, notes=f"Order cancelled: {reason}")
        self.cancellation_reason = reason

    def refund(self, amount=None):
        """Refund a cancelled order, in full unless ``amount`` is given."""
        refund_amount = self.total_amount if amount is None else amount
        if refund_amount <= 0:
            raise ValidationError({"refund_amount": ["Refund amount must be positive"]})
        if refund_amount > self.total_amount:
            raise ValidationError({"refund_amount": [f"Refund amount cannot exceed order total {self.total_amount}"]})

        self.transition_to(
            OrderStatus.REFUNDED,
            notes=f"Refund processed: {self.currency} {refund_amount:.2f}",
        )
        self.refund_amount = refund_amount

        self.raise_(
            RefundProcessed(
                order_id=str(self.id),
                refund_amount=refund_amount,
                currency=self.currency,
                refunded_at=self.updated_at,
            )
        )

    def add_tracking(self, tracking_number, carrier=DEFAULT_CARRIER, estimated_delivery=None):
        """Attach carrier tracking details. Only allowed once processing has started."""
        current = OrderStatus(self.status)
        if current not in TRACKABLE_STATUSES:
            raise ValidationError(
                {
                    "status": [
                        f"Cannot add tracking information to an order in {current.value} state. "
                        f"Tracking is only allowed in: "
                        f"{', '.join(s.value for s in sorted(TRACKABLE_STATUSES, key=lambda s: s.value))}"
                    ]
                }
            )
        if not tracking_number or not tracking_number.strip():
            raise ValidationError({"tracking_number": ["Tracking number is required"]})

        now = datetime.now(UTC)
        self.tracking_number = tracking_number.strip()
        self.carrier = carrier or DEFAULT_CARRIER
        if estimated_delivery is not None:
            self.estimated_delivery = estimated_delivery
        self.updated_at = now

        self.raise_(
            TrackingInfoAdded(
                order_id=str(self.id),
                tracking_number=self.tracking_number,
                carrier=self.carrier,
                estimated_delivery=self.estimated_delivery,
                added_at=now,
            )
        )
