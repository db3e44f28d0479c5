"""
Product listing pipeline: filter -> sort -> fuzzy search -> paginate.

``run_listing`` is the only entry point. It takes an immutable
``ProductQuery`` and a document store and returns one ``ListingPage``.
Search always runs over the whole filtered and sorted set, so the page
metadata counts every match and not only the ones on the current page.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from rapidfuzz import utils
from rapidfuzz.distance import Levenshtein

from .database import DocumentStore
from .errors import ValidationFailure
from .models import ListingPage, Product

logger = logging.getLogger(__name__)

PRODUCTS = "products"
SORTABLE_FIELDS = ("id", "title", "price", "rating", "stock", "category")
SORT_ORDERS = ("asc", "desc")


@dataclass(frozen=True)
class ProductQuery:
    page: int = 1
    page_size: int = 20
    sort_by: str = "id"
    sort_order: str = "asc"
    category: Optional[str] = None
    search: Optional[str] = None

    def validate(self, max_page_size: Optional[int] = None) -> "ProductQuery":
        if self.page < 1:
            raise ValidationFailure("page must be a positive integer")
        if self.page_size < 1:
            raise ValidationFailure("limit must be a positive integer")
        if max_page_size is not None and self.page_size > max_page_size:
            raise ValidationFailure(f"limit must be at most {max_page_size}")
        if self.sort_by not in SORTABLE_FIELDS:
            raise ValidationFailure(f"sortBy must be one of: {', '.join(SORTABLE_FIELDS)}")
        if self.sort_order not in SORT_ORDERS:
            raise ValidationFailure("order must be 'asc' or 'desc'")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def where(self) -> Dict[str, Any]:
        return {"category": self.category} if self.category else {}

    @property
    def search_term(self) -> str:
        return (self.search or "").strip()


def _substring_distance(term: str, text: str, budget: int) -> int:
    """
    Fewest edits turning ``term`` into some substring of ``text``, or
    ``budget + 1`` when every substring needs more than ``budget`` edits.
    """
    n = len(term)
    best = budget + 1
    for size in range(max(1, n - budget), n + budget + 1):
        for start in range(max(1, len(text) - size + 1)):
            best = min(best, Levenshtein.distance(term, text[start:start + size], score_cutoff=budget))
            if best == 0:
                return 0
    return best


def fuzzy_search(docs: List[Dict[str, Any]], term: str, threshold: float = 0.3) -> List[Dict[str, Any]]:
    """
    Keep the docs whose title approximately contains ``term``, best match first.

    ``threshold`` is the share of the search term that may be edited: 0 asks
    for an exact substring, 0.3 lets a 10 letter term carry 3 typos. Both
    sides are lower-cased and stripped of punctuation first. Equal scores
    keep their incoming order.
    """
    needle = utils.default_process(term)
    if not needle:
        return []
    budget = int(threshold * len(needle) + 1e-9)

    scored = []
    for index, doc in enumerate(docs):
        title = utils.default_process(str(doc.get("title") or ""))
        distance = _substring_distance(needle, title, budget)
        if distance <= budget:
            scored.append((distance, index))
    return [docs[index] for _, index in sorted(scored)]


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total else 0


def run_listing(store: DocumentStore, query: ProductQuery, search_threshold: float = 0.3) -> ListingPage:
    descending = query.sort_order == "desc"
    term = query.search_term

    if term:
        ordered = store.find(PRODUCTS, where=query.where, order_by=query.sort_by, descending=descending)
        matched = fuzzy_search(ordered, term, search_threshold)
        total = len(matched)
        window = matched[query.offset:query.offset + query.page_size]
    else:
        # no re-ranking, so the store can slice and count on its own
        total = store.count(PRODUCTS, where=query.where)
        # past the last page: skip the store, whose offset may not fit in 64 bits
        if query.offset >= total:
            window = []
        else:
            window = store.find(
                PRODUCTS,
                where=query.where,
                order_by=query.sort_by,
                descending=descending,
                offset=query.offset,
                limit=query.page_size,
            )

    pages = total_pages(total, query.page_size)
    logger.debug(
        "listing page=%s size=%s sort=%s:%s category=%r search=%r -> %s/%s",
        query.page, query.page_size, query.sort_by, query.sort_order,
        query.category, term, len(window), total,
    )
    return ListingPage(
        products=[Product.model_validate(d) for d in window],
        page=query.page,
        page_size=query.page_size,
        total_pages=pages,
        total_products=total,
        has_more=query.page < pages,
    )
