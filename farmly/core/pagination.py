"""
Page-number pagination for the public listings.

`normalize` turns raw query parameters into a safe PageRequest and never raises:
anything it cannot read as a positive integer falls back to a default.
`build_response` wraps one fetched slice into the envelope clients receive:

    {"items": [...], "page": 2, "pageSize": 5, "total": 12, "totalPages": 3, "hasMore": true}
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 32
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class PageRequest:
    page: int
    page_size: int
    skip: int
    take: int

    def slice(self, rows: Sequence[T]) -> List[T]:
        return list(rows[self.skip : self.skip + self.take])


@dataclass(frozen=True)
class PageResponse(Generic[T]):
    items: List[T] = field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total: int = 0
    total_pages: int = 0
    has_more: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": list(self.items),
            "page": self.page,
            "pageSize": self.page_size,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
        }


def _parse_positive_int(value: Any, fallback: int) -> int:
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback
    try:
        parsed = float(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    if not math.isfinite(parsed) or parsed <= 0:
        return fallback
    parsed = int(math.floor(parsed))
    # "0.5" floors to 0, which is not a usable page or size
    return parsed if parsed >= 1 else fallback


def normalize(
    query: Optional[Mapping[str, Any]],
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> PageRequest:
    """
    Read `page` and `limit` (or `pageSize`) from an untrusted mapping.
    Missing or malformed values fall back to page 1 / default_page_size;
    the size is capped at max_page_size.
    """
    query = query or {}
    page = _parse_positive_int(query.get("page"), 1)

    requested = query.get("limit")
    if requested is None:
        requested = query.get("pageSize")
    if requested is None:
        requested = default_page_size

    page_size = min(_parse_positive_int(requested, default_page_size), max_page_size)
    return PageRequest(page=page, page_size=page_size, skip=(page - 1) * page_size, take=page_size)


def build_response(items: Sequence[T], page: int, page_size: int, total: int) -> PageResponse[T]:
    total_pages = math.ceil(total / page_size) if page_size > 0 else 0
    return PageResponse(
        items=list(items),
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
        has_more=page * page_size < total,
    )


def paginate(
    rows: Sequence[T],
    query: Optional[Mapping[str, Any]],
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> PageResponse[T]:
    """Normalize `query`, take the requested slice of `rows` and wrap it."""
    req = normalize(query, default_page_size, max_page_size)
    return build_response(req.slice(rows), req.page, req.page_size, len(rows))
