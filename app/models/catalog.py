from __future__ import annotations

from typing import List, Optional

from pydantic import ConfigDict, Field

from .nlu import CamelModel, Entities


class Product(CamelModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    category: str
    brand: Optional[str] = None
    price: float = Field(ge=0)
    features: List[str] = Field(default_factory=list)
    rating: Optional[float] = None


class FAQItem(CamelModel):
    model_config = ConfigDict(extra="ignore")

    category: str
    question: str
    answer: str


class ProductFit(CamelModel):
    """How well one product matches the parsed preferences."""

    product: Product
    within_budget: Optional[bool] = None
    brand_match: Optional[bool] = None
    category_match: Optional[bool] = None
    matched_features: List[str] = Field(default_factory=list)
    score: int = 0


class ComparisonResult(CamelModel):
    success: bool = True
    preferences: Entities
    products: List[ProductFit] = Field(default_factory=list)
    missing_ids: List[str] = Field(default_factory=list)
    best_match: Optional[str] = None


class RecommendationsResponse(CamelModel):
    success: bool = True
    session_id: Optional[str] = None
    preferences: Entities
    products: List[Product] = Field(default_factory=list)
