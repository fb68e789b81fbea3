from __future__ import annotations

import httpx
import pytest

from app.config import Settings
from app.models import Entities, Product
from app.services.cache import TTLCache
from app.services.catalog import DemoCatalog, HttpCatalogClient, best_faq_match, build_catalog, product_fit
from app.services.error_handling import CatalogError
from conftest import FakeClock

LAPTOP = {
    "id": "LAP-9",
    "name": "Test Laptop",
    "category": "laptop",
    "brand": "Dell",
    "price": 50000,
    "features": ["gaming"],
}


def _settings(**overrides) -> Settings:
    values = {"catalog_base_url": "http://catalog.test", "catalog_token": "secret"}
    values.update(overrides)
    return Settings(**values)


@pytest.mark.asyncio
async def test_search_sends_preferences_as_query_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"products": [LAPTOP]})

    client = HttpCatalogClient(_settings(), transport=httpx.MockTransport(handler))
    entities = Entities(category="laptop", budget=70000, budget_type="max", features=["gaming"])

    products = await client.search_products(entities, limit=3)

    assert [product.id for product in products] == ["LAP-9"]
    request = seen[0]
    assert request.url.path == "/api/products/search"
    assert request.url.params["category"] == "laptop"
    assert request.url.params["maxPrice"] == "70000"
    assert request.url.params["features"] == "gaming"
    assert request.headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_min_budget_maps_to_min_price() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    client = HttpCatalogClient(_settings(), transport=httpx.MockTransport(handler))

    await client.search_products(Entities(budget=20000, budget_type="min"))

    assert seen[0].url.params["minPrice"] == "20000"
    assert "maxPrice" not in seen[0].url.params


@pytest.mark.asyncio
async def test_get_products_accepts_data_envelope() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["ids"] == "LAP-9,PHN-1"
        return httpx.Response(200, json={"data": [LAPTOP]})

    client = HttpCatalogClient(_settings(), transport=httpx.MockTransport(handler))

    products = await client.get_products(["LAP-9", "PHN-1"])

    assert products[0].name == "Test Laptop"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(503, json={"error": "down"}),
        httpx.Response(200, content=b"<html>"),
        httpx.Response(200, json={"products": "nope"}),
        httpx.Response(200, json={"products": [{"id": "x"}]}),
    ],
)
async def test_failures_raise_catalog_error(response: httpx.Response) -> None:
    client = HttpCatalogClient(_settings(), transport=httpx.MockTransport(lambda request: response))

    with pytest.raises(CatalogError):
        await client.search_products(Entities(category="laptop"))


@pytest.mark.asyncio
async def test_connection_error_raises_catalog_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = HttpCatalogClient(_settings(), transport=httpx.MockTransport(handler))

    with pytest.raises(CatalogError) as exc_info:
        await client.list_faqs()

    assert exc_info.value.reason == "catalog_unavailable"


@pytest.mark.asyncio
async def test_faqs_are_cached() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json={"faqs": [{"category": "returns", "question": "Q?", "answer": "A."}]})

    clock = FakeClock()
    client = HttpCatalogClient(_settings(), transport=httpx.MockTransport(handler), cache=TTLCache(clock=clock))

    first = await client.list_faqs()
    second = await client.list_faqs()
    assert calls == 1
    assert first == second

    clock.advance(301)
    await client.list_faqs()
    assert calls == 2


def test_http_client_requires_base_url() -> None:
    with pytest.raises(ValueError):
        HttpCatalogClient(Settings(catalog_base_url=None))


def test_build_catalog_picks_demo_without_url(settings: Settings) -> None:
    assert isinstance(build_catalog(settings), DemoCatalog)
    assert isinstance(build_catalog(_settings()), HttpCatalogClient)


@pytest.mark.asyncio
async def test_demo_search_filters_mismatches(demo_catalog: DemoCatalog) -> None:
    products = await demo_catalog.search_products(Entities(category="smartphone", brand="Samsung"))

    assert {product.id for product in products} == {"PHN-001", "PHN-002"}


def test_product_fit_scores_each_criterion() -> None:
    product = Product.model_validate(LAPTOP)
    fit = product_fit(product, Entities(category="laptop", brand="dell", budget=40000, features=["gaming", "camera"]))

    assert fit.category_match is True
    assert fit.brand_match is True
    assert fit.within_budget is False
    assert fit.matched_features == ["gaming"]
    assert fit.score == 3


@pytest.mark.asyncio
async def test_best_faq_match(demo_catalog: DemoCatalog) -> None:
    faqs = await demo_catalog.list_faqs()

    assert best_faq_match(faqs, "what is the return policy").category == "returns"
    assert best_faq_match(faqs, "hi") is None
