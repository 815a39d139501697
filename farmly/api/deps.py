# farmly/api/deps.py
from typing import Any, Dict

from fastapi import Request

from farmly.config import get_settings
from farmly.core.pagination import PageRequest, normalize
from farmly.database import db
from farmly.services.cart_store import CartRegistry, registry


def get_db():
    """
    Dependency that returns the file-backed DB object.
    Usage:
        db = Depends(get_db)
    """
    return db


def get_cart_registry() -> CartRegistry:
    return registry


def query_dict(request: Request) -> Dict[str, Any]:
    # last value wins for repeated keys (?page=1&page=2)
    return dict(request.query_params)


def get_page_request(request: Request) -> PageRequest:
    """Page/limit from the query string, bounded by the configured defaults."""
    settings = get_settings()
    return normalize(query_dict(request), settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
