from typing import Any, Dict, List
from datetime import datetime
import logging

from fastapi import APIRouter, Depends, HTTPException, Body

from farmly.api.deps import get_db, get_page_request
from farmly.api.routes.catalog import parse_id
from farmly.api.schemas.catalog import ReviewCreate, ReviewOut
from farmly.core.pagination import PageRequest, build_response
from farmly.database import FileBackedDB

router = APIRouter(prefix="/api/products", tags=["reviews"])
logger = logging.getLogger(__name__)


def average_rating(ratings: List[Any]) -> float:
    """Mean of the ratings rounded to 2 decimals; 0.0 when there are none."""
    values = []
    for r in ratings:
        try:
            values.append(float(r))
        except (TypeError, ValueError):
            continue
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def _row_to_review(row: Dict[str, Any]) -> Dict[str, Any]:
    return ReviewOut(
        id=int(row.get("id")),
        product_id=int(row.get("product_id")),
        rating=int(float(row.get("rating") or 0)),
        comment=row.get("comment") or "",
        author_name=row.get("author_name") or None,
        created_at=row.get("created_at") or None,
    ).model_dump(by_alias=True)


def _require_product(db: FileBackedDB, product_id: str) -> int:
    pid = parse_id(product_id, "product")
    if not db.get_record("products", "id", pid):
        raise HTTPException(status_code=404, detail="Product was not found")
    return pid


@router.get("/{product_id}/reviews", response_model=Dict[str, Any])
def list_reviews(product_id: str, page: PageRequest = Depends(get_page_request), db: FileBackedDB = Depends(get_db)):
    """
    Reviews of one product, newest first, paginated like every other listing.
    """
    pid = _require_product(db, product_id)
    rows = db.filter_records("reviews", "product_id", pid)
    rows.sort(key=lambda r: (str(r.get("created_at") or ""), int(r.get("id") or 0)), reverse=True)
    items = [_row_to_review(r) for r in page.slice(rows)]
    return build_response(items, page.page, page.page_size, len(rows)).to_dict()


@router.post("/{product_id}/reviews", status_code=201, response_model=Dict[str, Any])
def create_review(product_id: str, payload: ReviewCreate = Body(...), db: FileBackedDB = Depends(get_db)):
    """
    Create a review and refresh the product's average rating.
    Body: { "rating": int (1-5), "comment": "optional text", "authorName": "optional" }
    """
    pid = _require_product(db, product_id)
    review = {
        "product_id": pid,
        "rating": payload.rating,
        "comment": (payload.comment or "").strip(),
        "author_name": (payload.author_name or "").strip(),
        "created_at": datetime.utcnow().isoformat(sep=" "),
    }
    saved = db.create_record("reviews", review, id_field="id")

    ratings = [r.get("rating") for r in db.filter_records("reviews", "product_id", pid)]
    rating = average_rating(ratings)
    db.update_record("products", "id", pid, {"rating": rating})
    logger.info("review %s added to product %s, rating now %.2f", saved["id"], pid, rating)

    out = _row_to_review(saved)
    out["productRating"] = rating
    return out
