"""Storefront HTTP API package."""

from storefront.api.factory import create_app, register_exception_handlers
from storefront.api.routes import issue_router, notification_router, order_router

__all__ = ["create_app", "register_exception_handlers", "order_router", "issue_router", "notification_router"]
