#!/usr/bin/env python
# Walks through the storefront API. Start the server first, with the same
# AUTH_SECRET and a seeded catalog:
#   SEED_FILE=data/products.json python -m storefront.main
from sdk.storefront_client import StoreClient
from storefront.auth import TokenVerifier
from storefront.config import Settings


def main():
    settings = Settings()
    verifier = TokenVerifier(settings.AUTH_SECRET, settings.AUTH_ALGORITHM, settings.AUTH_TOKEN_TTL_MINUTES)
    c = StoreClient(base_url="http://127.0.0.1:8085")

    # -----------------------------
    # Browse
    # -----------------------------
    print("Categories:")
    print(c.list_categories())

    print("\nFirst page, cheapest first...")
    page = c.list_products(page=1, limit=5, sort_by="price", order="asc")
    for p in page["products"]:
        print(f"  {p['id']}  {p['title']:<40} ${p['price']:.2f}")
    print(f"  page {page['page']}/{page['totalPages']} of {page['totalProducts']} products, hasMore={page['hasMore']}")

    print("\nSports, highest rated first...")
    page = c.list_products(category="Sports", sort_by="rating", order="desc")
    for p in page["products"]:
        print(f"  {p['id']}  {p['title']:<40} {p['rating']}")

    print("\nSearching for 'skilet' (typo on purpose)...")
    print([p["title"] for p in c.list_products(search="skilet")["products"]])

    # -----------------------------
    # Reviews
    # -----------------------------
    alice = verifier.issue("alice@example.com", name="Alice")
    c.set_token(alice)

    print("\nAlice reviews product 7...")
    review = c.add_review("7", 5, "Great grip, no slipping.")
    print(review)

    print("\nAlice edits her review...")
    print(c.edit_review("7", review["id"], 4, "Great grip, a bit thin."))

    print("\nProduct 7 with reviews:")
    print(c.get_product("7")["reviews"])

    print("\nAlice deletes her review...")
    print(c.delete_review("7", review["id"]))


if __name__ == "__main__":
    main()
