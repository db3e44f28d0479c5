# storefront/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .auth import AuthError, TokenVerifier, authenticate
from .config import Settings
from .database import DocumentStore, build_store
from .errors import StorefrontError, Unauthorized
from .listing import PRODUCTS, ProductQuery
from .logic import (
    add_review_logic, delete_review_logic, edit_review_logic,
    get_product_logic, list_categories_logic, list_products_logic,
)
from .models import (
    Identity, ListingPage, MessageOut, Product, Review,
    ReviewDelete, ReviewIn, ReviewUpdate,
)
from .seed import seed_products

logger = logging.getLogger(__name__)


# ---------------------------
# Dependencies
# ---------------------------
def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_identity(request: Request) -> Identity:
    result = authenticate(request)
    if isinstance(result, AuthError):
        logger.info("unauthenticated %s %s: %s", request.method, request.url.path, result.reason)
        raise Unauthorized(result.reason)
    return result


# ---------------------------
# Error rendering: every failure is one {"error": ...} body
# ---------------------------
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.get("loc", ()) if p not in ("query", "body"))
        message = f"Invalid {where or 'request'}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ---------------------------
# App factory
# ---------------------------
def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStore] = None,
    verifier: Optional[TokenVerifier] = None,
) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    store = store or build_store(settings)
    verifier = verifier or TokenVerifier(
        settings.AUTH_SECRET, settings.AUTH_ALGORITHM, settings.AUTH_TOKEN_TTL_MINUTES
    )
    if settings.SEED_FILE and store.count(PRODUCTS) == 0:
        seed_products(store, settings.SEED_FILE, settings.PRODUCT_ID_WIDTH)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.store.close()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.verifier = verifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ---------------------------
    # Product endpoints
    # ---------------------------
    @app.get("/api/products", response_model=ListingPage)
    def list_products(
        page: int = 1,
        limit: Optional[int] = None,
        sort_by: str = Query("id", alias="sortBy"),
        order: Optional[str] = None,
        sort_order: Optional[str] = Query(None, alias="sortOrder"),
        category: Optional[str] = None,
        search: Optional[str] = None,
        store: DocumentStore = Depends(get_store),
        settings: Settings = Depends(get_settings),
    ):
        query = ProductQuery(
            page=page,
            page_size=limit if limit is not None else settings.DEFAULT_PAGE_SIZE,
            sort_by=sort_by,
            sort_order=(order or sort_order or "asc").lower(),
            category=category or None,
            search=search or None,
        )
        return list_products_logic(store, settings, query)

    @app.get("/api/products/{product_id}", response_model=Product)
    def get_product(
        product_id: str,
        store: DocumentStore = Depends(get_store),
        settings: Settings = Depends(get_settings),
    ):
        return get_product_logic(store, settings, product_id)

    @app.get("/api/categories", response_model=List[str])
    def list_categories(store: DocumentStore = Depends(get_store)):
        return list_categories_logic(store)

    # ---------------------------
    # Review endpoints
    # ---------------------------
    @app.post("/api/products/{product_id}/reviews", response_model=Review, status_code=201)
    def add_review(
        product_id: str,
        payload: ReviewIn,
        identity: Identity = Depends(require_identity),
        store: DocumentStore = Depends(get_store),
        settings: Settings = Depends(get_settings),
    ):
        return add_review_logic(store, settings, product_id, payload, identity)

    @app.put("/api/products/{product_id}/reviews", response_model=Review)
    def edit_review(
        product_id: str,
        payload: ReviewUpdate,
        identity: Identity = Depends(require_identity),
        store: DocumentStore = Depends(get_store),
        settings: Settings = Depends(get_settings),
    ):
        return edit_review_logic(store, settings, product_id, payload, identity)

    @app.delete("/api/products/{product_id}/reviews", response_model=MessageOut)
    def delete_review(
        product_id: str,
        payload: ReviewDelete,
        identity: Identity = Depends(require_identity),
        store: DocumentStore = Depends(get_store),
        settings: Settings = Depends(get_settings),
    ):
        return delete_review_logic(store, settings, product_id, payload.review_id, identity)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8085))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
