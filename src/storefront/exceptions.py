"""Error taxonomy for the order lifecycle and delivery pipeline.

Every error is tagged with its category where it is raised. Callers branch on
the type (or ``category``/``retryable``) and never on message text.
"""

from enum import Enum

from protean.exceptions import ValidationError


class ErrorCategory(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    CHANNEL_UNAVAILABLE = "channel_unavailable"
    DELIVERY_FAILURE = "delivery_failure"
    INVENTORY_CONFLICT = "inventory_conflict"


class InvalidTransitionError(ValidationError):
    """A status change that is not an edge of the lifecycle graph."""

    category = ErrorCategory.INVALID_TRANSITION
    retryable = False

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__({"status": [f"Cannot transition from {current} to {target}"]})


class StorefrontError(Exception):
    category: ErrorCategory
    retryable = False


class NotFoundError(StorefrontError):
    category = ErrorCategory.NOT_FOUND

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} `{identifier}` does not exist")


class ChannelUnavailable(StorefrontError):
    """The channel has no credentials configured; retrying cannot help."""

    category = ErrorCategory.CHANNEL_UNAVAILABLE

    def __init__(self, channel: str, reason: str = "Channel is not configured"):
        self.channel = channel
        self.reason = reason
        super().__init__(f"{channel}: {reason}")


class DeliveryFailure(StorefrontError):
    """A transient adapter error. The queue retries it up to the attempt budget."""

    category = ErrorCategory.DELIVERY_FAILURE
    retryable = True

    def __init__(self, channel: str, reason: str):
        self.channel = channel
        self.reason = reason
        super().__init__(f"{channel}: {reason}")


class InventoryConflict(StorefrontError):
    category = ErrorCategory.INVENTORY_CONFLICT

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Inventory check failed: " + "; ".join(self.errors))


def error_category(exc: BaseException) -> ErrorCategory | None:
    """Category for a raised error, or None when it is not part of the taxonomy."""
    category = getattr(exc, "category", None)
    if category is not None:
        return category
    if isinstance(exc, ValidationError):
        return ErrorCategory.VALIDATION
    return None
