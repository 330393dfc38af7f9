"""Storefront FastAPI application.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import os

from storefront.api import create_app
from storefront.config import get_settings
from storefront.domain import storefront
from storefront.utils.logging import configure_logging

settings = get_settings()
os.environ.setdefault("PROTEAN_ENV", settings.environment)

configure_logging(settings)

# Initialized at module level so uvicorn workers share the domain.
storefront.init()

app = create_app()
