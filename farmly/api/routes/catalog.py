from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from farmly.api.deps import get_db, get_page_request
from farmly.api.schemas.catalog import EventOut, FarmOut, ProductOut, StallOfferOut
from farmly.constants import PRODUCT_CATEGORIES
from farmly.core.pagination import PageRequest, build_response
from farmly.database import FileBackedDB

router = APIRouter(prefix="/api", tags=["catalog"])


def parse_id(raw: str, label: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")


def _int(raw: Any, default: Optional[int] = 0) -> Optional[int]:
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return default


def _float(raw: Any) -> Optional[float]:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _parse_date(raw: Any) -> Optional[datetime]:
    # stored dates are naive UTC; an explicit offset is dropped
    try:
        return datetime.fromisoformat(str(raw)).replace(tzinfo=None)
    except (TypeError, ValueError):
        return None


def _newest_first(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(rows, key=lambda r: (str(r.get("created_at") or ""), _int(r.get("id"))), reverse=True)


def _row_to_product(row: Dict[str, Any]) -> Dict[str, Any]:
    category = row.get("category") or "Other"
    return ProductOut(
        id=_int(row.get("id")),
        name=row.get("name") or "",
        category=category if category in PRODUCT_CATEGORIES else "Other",
        description=row.get("description") or "",
        price=_float(row.get("price")) or 0.0,
        stock=_int(row.get("stock")),
        farm_id=_int(row.get("farm_id"), None) if row.get("farm_id") else None,
        seller_name=row.get("seller_name") or None,
        rating=_float(row.get("rating")) if row.get("rating") not in (None, "") else None,
        created_at=row.get("created_at") or None,
    ).model_dump(by_alias=True)


def _row_to_farm(row: Dict[str, Any]) -> Dict[str, Any]:
    return FarmOut(
        id=_int(row.get("id")),
        name=row.get("name") or "",
        description=row.get("description") or "",
        city=row.get("city") or "",
        street=row.get("street") or "",
        region=row.get("region") or "",
        postal_code=row.get("postal_code") or "",
        country=row.get("country") or "",
        created_at=row.get("created_at") or None,
    ).model_dump(by_alias=True)


def _row_to_event(row: Dict[str, Any]) -> Dict[str, Any]:
    return EventOut(
        id=_int(row.get("id")),
        title=row.get("title") or "",
        description=row.get("description") or "",
        start_date=str(row.get("start_date") or ""),
        end_date=str(row.get("end_date") or ""),
        city=row.get("city") or "",
        street=row.get("street") or "",
        region=row.get("region") or "",
        postal_code=row.get("postal_code") or "",
        country=row.get("country") or "",
    ).model_dump(by_alias=True)


def _row_to_offer(row: Dict[str, Any]) -> Dict[str, Any]:
    return StallOfferOut(
        id=_int(row.get("id")),
        event_id=_int(row.get("event_id")),
        product_id=_int(row.get("product_id")),
        product_name=row.get("product_name") or "",
        seller_name=row.get("seller_name") or "",
        stall_name=(row.get("stall_name") or "").strip() or None,
        price=_float(row.get("price")) or 0.0,
        stock=_int(row.get("stock")),
    ).model_dump(by_alias=True)


# --- products ---

@router.get("/products", response_model=Dict[str, Any])
def list_products(
    category: Optional[str] = Query(None, description="exact category, case-insensitive"),
    q: Optional[str] = Query(None, description="name substring"),
    page: PageRequest = Depends(get_page_request),
    db: FileBackedDB = Depends(get_db),
):
    """
    Paginated product listing, newest first.
    Query: page, limit (or pageSize), category, q
    """
    rows = db.list_records("products")
    if category:
        rows = [r for r in rows if str(r.get("category") or "").lower() == category.lower()]
    if q:
        rows = [r for r in rows if q.lower() in str(r.get("name") or "").lower()]
    rows = _newest_first(rows)
    items = [_row_to_product(r) for r in page.slice(rows)]
    return build_response(items, page.page, page.page_size, len(rows)).to_dict()


@router.get("/products/{product_id}", response_model=Dict[str, Any])
def get_product(product_id: str, db: FileBackedDB = Depends(get_db)):
    pid = parse_id(product_id, "product")
    row = db.get_record("products", "id", pid)
    if not row:
        raise HTTPException(status_code=404, detail="Product was not found")
    return _row_to_product(row)


# --- farms ---

@router.get("/farms", response_model=Dict[str, Any])
def list_farms(page: PageRequest = Depends(get_page_request), db: FileBackedDB = Depends(get_db)):
    rows = _newest_first(db.list_records("farms"))
    items = [_row_to_farm(r) for r in page.slice(rows)]
    return build_response(items, page.page, page.page_size, len(rows)).to_dict()


@router.get("/farms/{farm_id}", response_model=Dict[str, Any])
def get_farm(farm_id: str, db: FileBackedDB = Depends(get_db)):
    """
    Farm profile with the products it sells.
    """
    fid = parse_id(farm_id, "farm")
    row = db.get_record("farms", "id", fid)
    if not row:
        raise HTTPException(status_code=404, detail="Farm was not found")
    out = _row_to_farm(row)
    out["products"] = [_row_to_product(r) for r in _newest_first(db.filter_records("products", "farm_id", fid))]
    return out


# --- events ---

@router.get("/events", response_model=Dict[str, Any])
def list_events(page: PageRequest = Depends(get_page_request), db: FileBackedDB = Depends(get_db)):
    """
    Upcoming and ongoing events (end date not yet passed), soonest first.
    """
    now = datetime.utcnow()
    upcoming = []
    for r in db.list_records("events"):
        end = _parse_date(r.get("end_date"))
        if end is not None and end >= now:
            upcoming.append((_parse_date(r.get("start_date")) or datetime.max, r))
    upcoming.sort(key=lambda pair: pair[0])
    rows = [r for _, r in upcoming]
    items = [_row_to_event(r) for r in page.slice(rows)]
    return build_response(items, page.page, page.page_size, len(rows)).to_dict()


@router.get("/events/{event_id}", response_model=Dict[str, Any])
def get_event(event_id: str, db: FileBackedDB = Depends(get_db)):
    """
    Event with the stall offers that can be preordered.
    """
    eid = parse_id(event_id, "event")
    row = db.get_record("events", "id", eid)
    if not row:
        raise HTTPException(status_code=404, detail="Event was not found")
    out = _row_to_event(row)
    out["eventProducts"] = [_row_to_offer(r) for r in db.filter_records("event_products", "event_id", eid)]
    return out
