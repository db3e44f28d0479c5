# sdk/storefront_client.py
import requests
import httpx
from typing import Optional, Dict, Any


class StoreClient:
    def __init__(self, base_url: str = "http://localhost:8085", token: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        if token:
            self.set_token(token)

    def set_token(self, token: Optional[str]):
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})
        else:
            self.session.headers.pop("Authorization", None)

    @staticmethod
    def _listing_params(page: int, limit: int, sort_by: str, order: str,
                        category: Optional[str], search: Optional[str]) -> Dict[str, Any]:
        params = {"page": page, "limit": limit, "sortBy": sort_by, "order": order}
        if category:
            params["category"] = category
        if search:
            params["search"] = search
        return params

    # Products
    def list_products(self, page: int = 1, limit: int = 20, sort_by: str = "id", order: str = "asc",
                      category: Optional[str] = None, search: Optional[str] = None):
        params = self._listing_params(page, limit, sort_by, order, category, search)
        r = self.session.get(f"{self.base_url}/api/products", params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    async def list_products_async(self, page: int = 1, limit: int = 20, sort_by: str = "id", order: str = "asc",
                                  category: Optional[str] = None, search: Optional[str] = None):
        params = self._listing_params(page, limit, sort_by, order, category, search)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(f"{self.base_url}/api/products", params=params)
            r.raise_for_status()
            return r.json()

    def get_product(self, product_id: str):
        r = self.session.get(f"{self.base_url}/api/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def list_categories(self):
        r = self.session.get(f"{self.base_url}/api/categories", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Reviews (bearer token required)
    def add_review(self, product_id: str, rating: int, comment: str = ""):
        r = self.session.post(f"{self.base_url}/api/products/{product_id}/reviews",
                              json={"rating": rating, "comment": comment}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def edit_review(self, product_id: str, review_id: str, rating: int, comment: str = ""):
        r = self.session.put(f"{self.base_url}/api/products/{product_id}/reviews",
                             json={"reviewId": review_id, "rating": rating, "comment": comment},
                             timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def delete_review(self, product_id: str, review_id: str):
        r = self.session.delete(f"{self.base_url}/api/products/{product_id}/reviews",
                                json={"reviewId": review_id}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()


if __name__ == "__main__":
    import argparse
    from rich import print

    parser = argparse.ArgumentParser(description="Storefront API client")
    parser.add_argument("--base-url", default="http://127.0.0.1:8085")
    parser.add_argument("--token", help="Bearer token for review commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---------------------------
    # Product commands
    # ---------------------------
    lp = subparsers.add_parser("list-products", help="List one page of products")
    lp.add_argument("--page", type=int, default=1)
    lp.add_argument("--limit", type=int, default=20)
    lp.add_argument("--sort-by", default="id")
    lp.add_argument("--order", default="asc", choices=["asc", "desc"])
    lp.add_argument("--category", help="Filter products by category")
    lp.add_argument("--search", help="Fuzzy search on product title")

    gp = subparsers.add_parser("get-product", help="Get a product by its ID")
    gp.add_argument("--product-id", required=True, help="ID of the product")

    subparsers.add_parser("categories", help="List product categories")

    # ---------------------------
    # Review commands
    # ---------------------------
    ar = subparsers.add_parser("add-review", help="Add a review to a product")
    ar.add_argument("--product-id", required=True)
    ar.add_argument("--rating", type=int, required=True)
    ar.add_argument("--comment", default="")

    er = subparsers.add_parser("edit-review", help="Edit one of your reviews")
    er.add_argument("--product-id", required=True)
    er.add_argument("--review-id", required=True)
    er.add_argument("--rating", type=int, required=True)
    er.add_argument("--comment", default="")

    dr = subparsers.add_parser("delete-review", help="Delete one of your reviews")
    dr.add_argument("--product-id", required=True)
    dr.add_argument("--review-id", required=True)

    args = parser.parse_args()
    c = StoreClient(base_url=args.base_url, token=args.token)

    if args.command == "list-products":
        print(c.list_products(args.page, args.limit, args.sort_by, args.order, args.category, args.search))
    elif args.command == "get-product":
        print(c.get_product(args.product_id))
    elif args.command == "categories":
        print(c.list_categories())
    elif args.command == "add-review":
        print(c.add_review(args.product_id, args.rating, args.comment))
    elif args.command == "edit-review":
        print(c.edit_review(args.product_id, args.review_id, args.rating, args.comment))
    elif args.command == "delete-review":
        print(c.delete_review(args.product_id, args.review_id))
