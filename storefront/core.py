import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import Identity, ReviewIn


def normalize_product_id(product_id: str, width: int = 3) -> str:
    # catalog ids are zero-padded ("7" -> "007"); non-numeric ids pass through
    pid = str(product_id).strip()
    return pid.zfill(width) if pid.isdigit() else pid


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _make_review_dict(payload: ReviewIn, identity: Identity) -> Dict[str, Any]:
    return {
        "id": uuid.uuid4().hex,
        "rating": payload.rating,
        "comment": payload.comment,
        "reviewerEmail": identity.email,
        "reviewerName": identity.name or "Anonymous",
        "date": _now_iso(),
    }


def _find_review(reviews: List[Dict[str, Any]], review_id: str) -> Optional[int]:
    for i, r in enumerate(reviews):
        if r.get("id") == review_id:
            return i
    return None
