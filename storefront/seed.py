"""
Load a JSON product catalog into a document store.

    python -m storefront.seed data/products.json
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Union

from .config import Settings
from .core import normalize_product_id
from .database import DocumentStore, build_store
from .listing import PRODUCTS
from .models import Product

logger = logging.getLogger(__name__)


def seed_products(store: DocumentStore, path: Union[str, Path], id_width: int = 3) -> int:
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON array of products")

    count = 0
    for item in raw:
        item = {**item, "id": normalize_product_id(item["id"], id_width)}
        product = Product.model_validate(item)
        store.insert(PRODUCTS, product.model_dump(by_alias=True))
        count += 1
    logger.info("seeded %d products from %s", count, path)
    return count


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the product catalog")
    parser.add_argument("path", help="JSON file holding an array of products")
    args = parser.parse_args()

    settings = Settings()
    logging.basicConfig(level=settings.LOG_LEVEL)
    store = build_store(settings)
    try:
        print(f"Inserted {seed_products(store, args.path, settings.PRODUCT_ID_WIDTH)} products")
    finally:
        store.close()
