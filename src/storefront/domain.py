"""Storefront order lifecycle: orders, issues and multi-channel notification delivery.

Owns Order aggregates and their status state machine, post-fulfillment issues,
per-channel delivery jobs with retry/backoff, and the customer notification
preferences consulted when fanning out an order event.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
