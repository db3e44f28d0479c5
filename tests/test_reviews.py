# tests/test_reviews.py
import threading

import pytest

from storefront.auth import TokenVerifier
from storefront.database import InMemoryStore
from storefront.listing import PRODUCTS
from storefront.logic import add_review_logic, delete_review_logic, edit_review_logic
from storefront.models import Identity, ReviewIn, ReviewUpdate
from storefront.seed import seed_products

ALICE = "alice@example.com"
BOB = "bob@example.com"


@pytest.fixture
def alice_review(client, auth_headers):
    r = client.post("/api/products/7/reviews", json={"rating": 5, "comment": "Great grip"},
                    headers=auth_headers(ALICE, name="Alice"))
    assert r.status_code == 201
    return r.json()


def _delete(client, product_id, review_id, headers=None):
    return client.request("DELETE", f"/api/products/{product_id}/reviews",
                          json={"reviewId": review_id}, headers=headers or {})


def test_add_review_requires_token(client):
    r = client.post("/api/products/7/reviews", json={"rating": 5, "comment": "nice"})
    assert r.status_code == 401
    assert "error" in r.json()


def test_add_review_rejects_bad_token(client):
    r = client.post("/api/products/7/reviews", json={"rating": 5},
                    headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_add_review_rejects_token_from_other_issuer(client):
    forged = TokenVerifier("some-other-secret-0123456789abcdef0123").issue(ALICE)
    r = client.post("/api/products/7/reviews", json={"rating": 5},
                    headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401


def test_add_review(alice_review):
    assert alice_review["rating"] == 5
    assert alice_review["comment"] == "Great grip"
    assert alice_review["reviewerEmail"] == ALICE
    assert alice_review["reviewerName"] == "Alice"
    assert alice_review["id"]
    assert alice_review["date"].startswith("20")


def test_added_review_shows_on_product(client, alice_review):
    product = client.get("/api/products/007").json()
    assert [r["id"] for r in product["reviews"]] == [alice_review["id"]]


def test_reviewer_name_defaults_to_anonymous(client, auth_headers):
    r = client.post("/api/products/7/reviews", json={"rating": 3}, headers=auth_headers(BOB))
    assert r.status_code == 201
    assert r.json()["reviewerName"] == "Anonymous"


def test_add_review_to_missing_product(client, auth_headers):
    r = client.post("/api/products/999/reviews", json={"rating": 4}, headers=auth_headers(ALICE))
    assert r.status_code == 404
    assert r.json() == {"error": "Product not found"}


@pytest.mark.parametrize("body", [{"rating": 0}, {"rating": 6}, {"comment": "no rating"}, {"rating": "five"}])
def test_add_review_validates_body(client, auth_headers, body):
    r = client.post("/api/products/7/reviews", json=body, headers=auth_headers(ALICE))
    assert r.status_code == 400
    assert "error" in r.json()


def test_owner_can_edit(client, auth_headers, alice_review):
    r = client.put("/api/products/7/reviews",
                   json={"reviewId": alice_review["id"], "rating": 3, "comment": "Wore out"},
                   headers=auth_headers(ALICE, name="Alice"))
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == alice_review["id"]
    assert body["rating"] == 3
    assert body["comment"] == "Wore out"
    assert body["reviewerEmail"] == ALICE

    stored = client.get("/api/products/7").json()["reviews"][0]
    assert stored["rating"] == 3


def test_other_user_cannot_edit(client, auth_headers, alice_review):
    r = client.put("/api/products/7/reviews",
                   json={"reviewId": alice_review["id"], "rating": 1, "comment": "bad"},
                   headers=auth_headers(BOB))
    assert r.status_code == 403
    assert r.json() == {"error": "Not authorized to edit this review"}

    stored = client.get("/api/products/7").json()["reviews"][0]
    assert stored == alice_review


def test_edit_missing_review(client, auth_headers):
    r = client.put("/api/products/7/reviews", json={"reviewId": "nope", "rating": 2},
                   headers=auth_headers(ALICE))
    assert r.status_code == 404
    assert r.json() == {"error": "Review not found"}


def test_edit_requires_token(client, alice_review):
    r = client.put("/api/products/7/reviews", json={"reviewId": alice_review["id"], "rating": 2})
    assert r.status_code == 401


def test_other_user_cannot_delete(client, auth_headers, alice_review):
    r = _delete(client, 7, alice_review["id"], auth_headers(BOB))
    assert r.status_code == 403
    assert len(client.get("/api/products/7").json()["reviews"]) == 1


def test_owner_can_delete(client, auth_headers, alice_review):
    r = _delete(client, 7, alice_review["id"], auth_headers(ALICE))
    assert r.status_code == 200
    assert r.json() == {"message": "Review deleted successfully"}
    assert client.get("/api/products/7").json()["reviews"] == []

    # second delete finds nothing
    assert _delete(client, 7, alice_review["id"], auth_headers(ALICE)).status_code == 404


def test_delete_requires_token(client, alice_review):
    assert _delete(client, 7, alice_review["id"]).status_code == 401


def test_reviews_do_not_leak_across_products(client, auth_headers, alice_review):
    assert client.get("/api/products/8").json()["reviews"] == []
    r = _delete(client, 8, alice_review["id"], auth_headers(ALICE))
    assert r.status_code == 404


# ---------------------------
# Concurrent writers on one product
# ---------------------------
class LockstepStore(InMemoryStore):
    """Once ``barrier`` is set, readers wait in get() until all of them hold the same snapshot."""

    def __init__(self):
        super().__init__()
        self.barrier = None

    def get(self, collection, doc_id):
        doc = super().get(collection, doc_id)
        if self.barrier is not None:
            self.barrier.wait()
        return doc


@pytest.fixture
def lockstep_store(catalog_path):
    store = LockstepStore()
    seed_products(store, catalog_path)
    return store


def _in_lockstep(store, *calls):
    store.barrier = threading.Barrier(len(calls), timeout=5)
    errors = []

    def run(call):
        try:
            call()
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=run, args=(c,)) for c in calls]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    store.barrier = None
    assert errors == []


alice = Identity(uid="u-alice", email=ALICE, name="Alice")
bob = Identity(uid="u-bob", email=BOB, name="Bob")


def test_concurrent_adds_keep_every_review(lockstep_store, settings):
    _in_lockstep(
        lockstep_store,
        lambda: add_review_logic(lockstep_store, settings, "7", ReviewIn(rating=5, comment="a"), alice),
        lambda: add_review_logic(lockstep_store, settings, "7", ReviewIn(rating=2, comment="b"), bob),
    )
    reviews = lockstep_store.get(PRODUCTS, "007")["reviews"]
    assert len(reviews) == 2
    assert sorted(r["reviewerEmail"] for r in reviews) == [ALICE, BOB]


def test_edit_racing_an_add_keeps_both(lockstep_store, settings):
    mine = add_review_logic(lockstep_store, settings, "7", ReviewIn(rating=5, comment="a"), alice)
    _in_lockstep(
        lockstep_store,
        lambda: edit_review_logic(lockstep_store, settings, "7",
                                  ReviewUpdate(review_id=mine.id, rating=1, comment="changed"), alice),
        lambda: add_review_logic(lockstep_store, settings, "7", ReviewIn(rating=4, comment="b"), bob),
    )
    reviews = {r["reviewerEmail"]: r for r in lockstep_store.get(PRODUCTS, "007")["reviews"]}
    assert set(reviews) == {ALICE, BOB}
    assert reviews[ALICE]["rating"] == 1
    assert reviews[ALICE]["comment"] == "changed"


def test_delete_racing_an_add_removes_only_its_review(lockstep_store, settings):
    mine = add_review_logic(lockstep_store, settings, "7", ReviewIn(rating=5), alice)
    _in_lockstep(
        lockstep_store,
        lambda: delete_review_logic(lockstep_store, settings, "7", mine.id, alice),
        lambda: add_review_logic(lockstep_store, settings, "7", ReviewIn(rating=4), bob),
    )
    reviews = lockstep_store.get(PRODUCTS, "007")["reviews"]
    assert [r["reviewerEmail"] for r in reviews] == [BOB]
