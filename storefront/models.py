# storefront/models.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # JSON payloads use camelCase (pageSize, reviewerEmail, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Review(CamelModel):
    id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    reviewer_email: str
    reviewer_name: str = "Anonymous"
    date: str


class Product(CamelModel):
    id: str
    title: str
    price: float = Field(..., ge=0)
    description: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    rating: float = Field(0, ge=0, le=5)
    stock: int = Field(0, ge=0)
    images: List[str] = Field(default_factory=list)
    reviews: List[Review] = Field(default_factory=list)


class ListingPage(CamelModel):
    products: List[Product]
    page: int
    page_size: int
    total_pages: int
    total_products: int
    has_more: bool


class ReviewIn(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class ReviewUpdate(ReviewIn):
    review_id: str = Field(..., min_length=1)


class ReviewDelete(CamelModel):
    review_id: str = Field(..., min_length=1)


class MessageOut(BaseModel):
    message: str


class Identity(BaseModel):
    uid: str
    email: str
    name: Optional[str] = None
