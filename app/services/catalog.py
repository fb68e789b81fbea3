"""
Product / FAQ catalog collaborators.

The chat core never owns product data: it hands parsed preference entities to
a ``CatalogClient`` and reports whatever comes back. ``DemoCatalog`` is the
in-memory stand-in used when no catalog URL is configured.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..config import Settings
from ..models import Entities, FAQItem, Product, ProductFit
from ..utils.logging import get_request_logger
from .cache import TTLCache
from .error_handling import CatalogError
from .vocabulary import normalize_text

logger = logging.getLogger(__name__)

FAQ_CACHE_KEY = "faqs"
FAQ_CACHE_TTL_SECONDS = 300.0


class CatalogClient(Protocol):
    async def search_products(self, entities: Entities, limit: int = 5) -> List[Product]:
        ...

    async def get_products(self, product_ids: Sequence[str]) -> List[Product]:
        ...

    async def list_faqs(self) -> List[FAQItem]:
        ...


def product_fit(product: Product, preferences: Entities) -> ProductFit:
    """Score one product against parsed preferences; one point per satisfied criterion."""

    within_budget: Optional[bool] = None
    if preferences.budget is not None:
        if preferences.budget_type == "min":
            within_budget = product.price >= preferences.budget
        else:
            within_budget = product.price <= preferences.budget

    brand_match = None
    if preferences.brand:
        brand_match = (product.brand or "").lower() == preferences.brand.lower()

    category_match = None
    if preferences.category:
        category_match = product.category.lower() == preferences.category.lower()

    product_features = {feature.lower() for feature in product.features}
    matched = [feature for feature in preferences.features or [] if feature.lower() in product_features]

    score = sum(1 for flag in (within_budget, brand_match, category_match) if flag) + len(matched)
    return ProductFit(
        product=product,
        within_budget=within_budget,
        brand_match=brand_match,
        category_match=category_match,
        matched_features=matched,
        score=score,
    )


def _demo_products() -> List[Product]:
    rows: List[Dict[str, Any]] = [
        {"id": "LAP-001", "name": "ASUS ROG Strix G16", "category": "laptop", "brand": "Asus", "price": 68990,
         "features": ["gaming", "display", "performance"], "rating": 4.5},
        {"id": "LAP-002", "name": "Lenovo LOQ 15", "category": "laptop", "brand": "Lenovo", "price": 61990,
         "features": ["gaming", "performance"], "rating": 4.3},
        {"id": "LAP-003", "name": "Dell Inspiron 14", "category": "laptop", "brand": "Dell", "price": 54990,
         "features": ["lightweight", "battery"], "rating": 4.2},
        {"id": "LAP-004", "name": "Apple MacBook Air M2", "category": "laptop", "brand": "Apple", "price": 99900,
         "features": ["lightweight", "battery", "display"], "rating": 4.8},
        {"id": "LAP-005", "name": "HP Victus 15", "category": "laptop", "brand": "HP", "price": 72990,
         "features": ["gaming", "display"], "rating": 4.1},
        {"id": "PHN-001", "name": "Samsung Galaxy M35 5G", "category": "smartphone", "brand": "Samsung",
         "price": 18999, "features": ["battery", "5g", "camera"], "rating": 4.2},
        {"id": "PHN-002", "name": "Samsung Galaxy A55", "category": "smartphone", "brand": "Samsung",
         "price": 24999, "features": ["camera", "display", "5g", "waterproof"], "rating": 4.4},
        {"id": "PHN-003", "name": "OnePlus Nord CE4", "category": "smartphone", "brand": "OnePlus",
         "price": 24999, "features": ["fast charging", "performance", "5g"], "rating": 4.3},
        {"id": "PHN-004", "name": "Google Pixel 8a", "category": "smartphone", "brand": "Google",
         "price": 39999, "features": ["camera", "display"], "rating": 4.6},
        {"id": "PHN-005", "name": "Redmi Note 13 Pro", "category": "smartphone", "brand": "Xiaomi",
         "price": 26999, "features": ["camera", "fast charging", "display"], "rating": 4.2},
        {"id": "AUD-001", "name": "Sony WH-1000XM5", "category": "headphones", "brand": "Sony", "price": 29990,
         "features": ["noise cancellation", "wireless", "battery"], "rating": 4.7},
        {"id": "AUD-002", "name": "boAt Airdopes 141", "category": "headphones", "brand": "boAt", "price": 1299,
         "features": ["wireless", "battery"], "rating": 4.0},
        {"id": "TAB-001", "name": "Samsung Galaxy Tab S9 FE", "category": "tablet", "brand": "Samsung",
         "price": 36999, "features": ["display", "waterproof"], "rating": 4.4},
        {"id": "WCH-001", "name": "Apple Watch SE", "category": "smartwatch", "brand": "Apple", "price": 29900,
         "features": ["display", "waterproof"], "rating": 4.6},
        {"id": "TV-001", "name": "LG 55\" 4K OLED", "category": "television", "brand": "LG", "price": 119990,
         "features": ["display"], "rating": 4.7},
    ]
    return [Product.model_validate(row) for row in rows]


def _demo_faqs() -> List[FAQItem]:
    rows = [
        ("returns", "What is your return policy?",
         "Most products can be returned within 7 days of delivery in original packaging. "
         "Refunds reach your original payment method within 5-7 business days."),
        ("shipping", "How long does shipping take?",
         "Standard shipping takes 3-5 business days; express delivery arrives in 1-2 business days "
         "in metro cities."),
        ("shipping", "Do you offer free delivery?", "Delivery is free on orders above ₹499."),
        ("payments", "Which payment methods do you accept?",
         "We accept UPI, credit and debit cards, net banking, EMI and cash on delivery."),
        ("warranty", "Do products come with a warranty?",
         "All products carry the manufacturer's warranty, usually 1 year. Extended warranty is available "
         "at checkout."),
        ("orders", "How do I track my order?",
         "Share your order number (for example #ORD12345) in the chat or open My Orders to see live tracking."),
        ("orders", "Can I cancel my order?", "Orders can be cancelled free of charge until they are dispatched."),
    ]
    return [FAQItem(category=category, question=question, answer=answer) for category, question, answer in rows]


class DemoCatalog:
    """In-memory electronics catalog and FAQ list."""

    def __init__(self, products: Sequence[Product] | None = None, faqs: Sequence[FAQItem] | None = None) -> None:
        self._products = list(products) if products is not None else _demo_products()
        self._faqs = list(faqs) if faqs is not None else _demo_faqs()

    async def search_products(self, entities: Entities, limit: int = 5) -> List[Product]:
        fits = []
        for product in self._products:
            fit = product_fit(product, entities)
            if fit.category_match is False or fit.brand_match is False or fit.within_budget is False:
                continue
            fits.append(fit)
        fits.sort(key=lambda fit: (-len(fit.matched_features), -(fit.product.rating or 0), fit.product.price))
        return [fit.product for fit in fits[: max(limit, 0)]]

    async def get_products(self, product_ids: Sequence[str]) -> List[Product]:
        by_id = {product.id: product for product in self._products}
        return [by_id[pid] for pid in product_ids if pid in by_id]

    async def list_faqs(self) -> List[FAQItem]:
        return list(self._faqs)


class HttpCatalogClient:
    """HTTP client for the store catalog API."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        if not settings.catalog_base_url:
            raise ValueError("CATALOG_BASE_URL is required for HttpCatalogClient")
        self._settings = settings
        self._base_url = settings.catalog_base_url.rstrip("/")
        self._transport = transport
        self._cache = cache or TTLCache()

    def _headers(self, trace_id: str | None) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/json"}
        token = (self._settings.catalog_token or "").strip()
        if token:
            headers["Authorization"] = token if token.lower().startswith("bearer ") else f"Bearer {token}"
        if trace_id:
            headers["X-Request-Id"] = trace_id
        return headers

    async def _get(self, path: str, params: Dict[str, Any] | None = None, *, trace_id: str | None = None) -> Any:
        url = f"{self._base_url}{path}"
        req_logger = get_request_logger(logger, trace_id=trace_id)
        timeout = httpx.Timeout(self._settings.http_timeout_seconds)
        start = time.perf_counter()
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                response = await client.get(url, params=params, headers=self._headers(trace_id))
                req_logger.info(
                    "catalog.get path=%s status=%s latency_ms=%.1f",
                    path,
                    response.status_code,
                    (time.perf_counter() - start) * 1000,
                )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as exc:
                req_logger.error("catalog error url=%s error=%s", url, exc)
                raise CatalogError(str(exc), reason="catalog_unavailable") from exc
            except ValueError as exc:
                raise CatalogError("catalog returned invalid JSON", reason="catalog_bad_payload") from exc

    @staticmethod
    def _items(payload: Any, key: str) -> List[Any]:
        if isinstance(payload, dict):
            payload = payload.get(key, payload.get("data"))
        if not isinstance(payload, list):
            raise CatalogError(f"expected a list of {key}", reason="catalog_bad_payload")
        return payload

    def _products(self, payload: Any) -> List[Product]:
        try:
            return [Product.model_validate(item) for item in self._items(payload, "products")]
        except PydanticValidationError as exc:
            raise CatalogError("catalog returned malformed products", reason="catalog_bad_payload") from exc

    async def search_products(self, entities: Entities, limit: int = 5) -> List[Product]:
        params: Dict[str, Any] = {"limit": limit}
        if entities.category:
            params["category"] = entities.category
        if entities.brand:
            params["brand"] = entities.brand
        if entities.features:
            params["features"] = ",".join(entities.features)
        if entities.budget is not None:
            params["minPrice" if entities.budget_type == "min" else "maxPrice"] = entities.budget
        return self._products(await self._get("/api/products/search", params))[:limit]

    async def get_products(self, product_ids: Sequence[str]) -> List[Product]:
        if not product_ids:
            return []
        return self._products(await self._get("/api/products", {"ids": ",".join(product_ids)}))

    async def list_faqs(self) -> List[FAQItem]:
        cached = self._cache.get(FAQ_CACHE_KEY)
        if cached is not None:
            return list(cached)
        payload = await self._get("/api/faqs")
        try:
            faqs = [FAQItem.model_validate(item) for item in self._items(payload, "faqs")]
        except PydanticValidationError as exc:
            raise CatalogError("catalog returned malformed FAQs", reason="catalog_bad_payload") from exc
        self._cache.set(FAQ_CACHE_KEY, faqs, FAQ_CACHE_TTL_SECONDS)
        return list(faqs)


def best_faq_match(faqs: Sequence[FAQItem], text: str) -> Optional[FAQItem]:
    """FAQ sharing the most words (4+ letters) with ``text``; None when nothing overlaps."""

    words = {word for word in normalize_text(text).replace("?", " ").split() if len(word) >= 4}
    best: Optional[FAQItem] = None
    best_overlap = 0
    for faq in faqs:
        haystack = set(normalize_text(f"{faq.category} {faq.question}").replace("?", " ").split())
        overlap = len(words & haystack)
        if overlap > best_overlap:
            best, best_overlap = faq, overlap
    return best


def build_catalog(settings: Settings) -> CatalogClient:
    if settings.catalog_base_url:
        logger.info("Using HTTP catalog at %s", settings.catalog_base_url)
        return HttpCatalogClient(settings)
    logger.info("CATALOG_BASE_URL not set, using demo catalog")
    return DemoCatalog()
