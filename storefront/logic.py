import logging
from typing import Any, Dict, List

from .config import Settings
from .core import _find_review, _make_review_dict, _now_iso, normalize_product_id
from .database import DocumentStore
from .errors import Forbidden, NotFound
from .listing import PRODUCTS, ProductQuery, run_listing
from .models import Identity, ListingPage, Product, Review, ReviewIn, ReviewUpdate

logger = logging.getLogger(__name__)

# This file contains the core logic behind the API endpoints. Handlers in
# main.py only translate HTTP in and out.


# Product endpoints
def list_products_logic(store: DocumentStore, settings: Settings, query: ProductQuery) -> ListingPage:
    query.validate(max_page_size=settings.MAX_PAGE_SIZE)
    return run_listing(store, query, search_threshold=settings.SEARCH_THRESHOLD)


def _load_product_doc(store: DocumentStore, settings: Settings, product_id: str) -> Dict[str, Any]:
    pid = normalize_product_id(product_id, settings.PRODUCT_ID_WIDTH)
    doc = store.get(PRODUCTS, pid)
    if doc is None:
        raise NotFound("Product not found")
    return doc


def get_product_logic(store: DocumentStore, settings: Settings, product_id: str) -> Product:
    return Product.model_validate(_load_product_doc(store, settings, product_id))


def list_categories_logic(store: DocumentStore) -> List[str]:
    return sorted({c for c in store.distinct(PRODUCTS, "category") if isinstance(c, str) and c})


# Review endpoints
def add_review_logic(
    store: DocumentStore, settings: Settings, product_id: str, payload: ReviewIn, identity: Identity
) -> Review:
    doc = _load_product_doc(store, settings, product_id)
    review = _make_review_dict(payload, identity)
    if not store.push(PRODUCTS, doc["id"], "reviews", review):
        raise NotFound("Product not found")
    logger.info("review %s added to product %s by %s", review["id"], doc["id"], identity.email)
    return Review.model_validate(review)


def _owned_review(doc: Dict[str, Any], review_id: str, identity: Identity, action: str) -> Dict[str, Any]:
    reviews = doc.get("reviews") or []
    idx = _find_review(reviews, review_id)
    if idx is None:
        raise NotFound("Review not found")
    if reviews[idx].get("reviewerEmail") != identity.email:
        logger.warning("%s refused to %s review %s", identity.email, action, review_id)
        raise Forbidden(f"Not authorized to {action} this review")
    return reviews[idx]


def edit_review_logic(
    store: DocumentStore, settings: Settings, product_id: str, payload: ReviewUpdate, identity: Identity
) -> Review:
    doc = _load_product_doc(store, settings, product_id)
    current = _owned_review(doc, payload.review_id, identity, "edit")

    changes = {"rating": payload.rating, "comment": payload.comment, "date": _now_iso()}
    # matches on the owner as well as the id
    match = {"id": payload.review_id, "reviewerEmail": identity.email}
    if not store.set_in_array(PRODUCTS, doc["id"], "reviews", match, changes):
        raise NotFound("Review not found")
    logger.info("review %s on product %s updated", payload.review_id, doc["id"])
    return Review.model_validate({**current, **changes})


def delete_review_logic(
    store: DocumentStore, settings: Settings, product_id: str, review_id: str, identity: Identity
) -> Dict[str, str]:
    doc = _load_product_doc(store, settings, product_id)
    _owned_review(doc, review_id, identity, "delete")

    match = {"id": review_id, "reviewerEmail": identity.email}
    if not store.pull(PRODUCTS, doc["id"], "reviews", match):
        raise NotFound("Review not found")
    logger.info("review %s on product %s deleted", review_id, doc["id"])
    return {"message": "Review deleted successfully"}
