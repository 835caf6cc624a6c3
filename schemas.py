"""
Catalog Schemas

Pydantic models for documents written by this service outside the request
handlers (seeding). Collection names are plural and lowercase:
- Product -> "products" collection
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Review(BaseModel):
    user: Optional[str] = Field(None, description="Reviewer user id")
    name: Optional[str] = Field(None, description="Reviewer display name")
    rating: float = Field(..., ge=0, le=5)
    comment: Optional[str] = None
    date: Optional[datetime] = None


class Product(BaseModel):
    """
    Products collection schema.
    `rating` is stored as given; it is not recomputed from `reviews`.
    """
    name: str
    description: str
    price: float = Field(..., ge=0, description="Price in rupees")
    images: List[str] = Field(..., min_length=1)
    category: str
    brand: Optional[str] = None
    demographic: Optional[str] = None
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    stock: int = Field(100, ge=0)
    rating: float = Field(0, ge=0, le=5)
    reviews: List[Review] = Field(default_factory=list)
    featured: bool = False
