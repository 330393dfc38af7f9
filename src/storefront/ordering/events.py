"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A customer placed a new order; it starts out pending."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    item_count = Integer(required=True)
    total_amount = Float(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along one edge of the lifecycle graph."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    notes = Text()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class TrackingInfoAdded:
    """A carrier tracking number was attached to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    carrier = String(required=True)
    estimated_delivery = DateTime()
    added_at = DateTime(required=True)


@storefront.event(part_of="Order")
class RefundProcessed:
    """Money was returned to the customer for a cancelled order."""

    __version__ = 1

    order_id = Identifier(required=True)
    refund_amount = Float(required=True)
    currency = String(required=True)
    refunded_at = DateTime(required=True)
