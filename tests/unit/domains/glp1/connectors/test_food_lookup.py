"""Tests for the barcode nutrition lookup and its product cache."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx
import pytest
from conftest import StubFoodProvider

from companion.domains.glp1.connectors import FoodDataProvider
from companion.domains.glp1.connectors.food_lookup import (
    CachedFoodLookup,
    FoodDecodingError,
    FoodLookupService,
    ProductNotFoundError,
    ServiceUnavailableError,
    parse_alerts,
    parse_product,
)
from companion.domains.glp1.domain_logic.models import FoodItem

BASE_URL = "https://food.test"
ALERTS_URL = "https://alerts.test/food-alerts"
BARCODE = "5000159484695"

_PRODUCT = {
    "status": 1,
    "product": {
        "product_name": "Oat Crunch Bar",
        "nutriments": {
            "energy-kcal_100g": 412,
            "carbohydrates_100g": 58.5,
            "proteins_100g": "9.1",
            "fat_serving": 6.2,
            "fiber_100g": 7.4,
        },
    },
}

_ALERTS = {
    "items": [
        {
            "shortTitle": "Oat Crunch Bar recalled: undeclared milk",
            "created": "2025-03-01",
            "allergen": [{"label": "Milk"}, "Soya"],
            "alertURL": "https://alerts.test/FSA-AA-01",
        }
    ]
}


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _service(handler: Callable[[httpx.Request], httpx.Response]) -> FoodLookupService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FoodLookupService(base_url=BASE_URL, alerts_url=ALERTS_URL, http_client=client)


class TestParseProduct:
    def test_prefers_per_100g_and_falls_back_to_serving(self):
        item = parse_product(_PRODUCT)
        assert item.name == "Oat Crunch Bar"
        assert item.calories == 412
        assert item.protein == 9.1
        assert item.fat == 6.2
        assert item.fiber == 7.4

    def test_missing_nutriments_are_none(self):
        item = parse_product({"status": 1, "product": {"product_name": "Water"}})
        assert item.calories is None
        assert item.fiber is None

    def test_unnamed_product_is_meal(self):
        assert parse_product({"status": 1, "product": {"nutriments": {}}}).name == "Meal"

    def test_status_zero_is_not_found(self):
        with pytest.raises(ProductNotFoundError):
            parse_product({"status": 0, "status_verbose": "product not found"})

    def test_non_object_is_decoding_error(self):
        with pytest.raises(FoodDecodingError):
            parse_product(["not", "a", "dict"])


class TestParseAlerts:
    def test_maps_fields(self):
        alerts = parse_alerts(_ALERTS)
        assert len(alerts) == 1
        assert alerts[0].title.startswith("Oat Crunch Bar recalled")
        assert alerts[0].allergens == ("Milk", "Soya")
        assert alerts[0].url == "https://alerts.test/FSA-AA-01"

    def test_empty(self):
        assert parse_alerts({}) == []


class TestFoodLookupService:
    def test_lookup_with_alerts(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if str(request.url).startswith(f"{BASE_URL}/api/v0/product/{BARCODE}.json"):
                return httpx.Response(200, json=_PRODUCT)
            if str(request.url).startswith(ALERTS_URL):
                return httpx.Response(200, json=_ALERTS)
            return httpx.Response(500)

        item = _run(_service(handler).lookup_product(BARCODE))
        assert item.calories == 412
        assert [a.title for a in item.alerts] == ["Oat Crunch Bar recalled: undeclared milk"]
        assert requests[1].url.params["_search"] == "Oat Crunch Bar"

    def test_alert_failure_does_not_fail_lookup(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url).startswith(ALERTS_URL):
                return httpx.Response(503)
            return httpx.Response(200, json=_PRODUCT)

        item = _run(_service(handler).lookup_product(BARCODE))
        assert item.name == "Oat Crunch Bar"
        assert item.alerts == ()

    def test_non_digit_barcode_never_hits_network(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        with pytest.raises(ProductNotFoundError):
            _run(_service(handler).lookup_product("abc-123"))

    def test_404_is_not_found(self):
        with pytest.raises(ProductNotFoundError):
            _run(_service(lambda r: httpx.Response(404)).lookup_product(BARCODE))

    def test_server_error_is_unavailable(self):
        with pytest.raises(ServiceUnavailableError, match="HTTP 502"):
            _run(_service(lambda r: httpx.Response(502)).lookup_product(BARCODE))

    def test_network_error_is_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(ServiceUnavailableError):
            _run(_service(handler).lookup_product(BARCODE))

    def test_invalid_json_is_decoding_error(self):
        with pytest.raises(FoodDecodingError):
            _run(_service(lambda r: httpx.Response(200, text="<html>")).lookup_product(BARCODE))

    def test_satisfies_provider_protocol(self):
        assert isinstance(_service(lambda r: httpx.Response(404)), FoodDataProvider)


class TestCachedFoodLookup:
    def test_second_lookup_served_from_cache(self, health_repository):
        upstream = StubFoodProvider({BARCODE: FoodItem(name="Oat Crunch Bar", calories=412)})
        lookup = CachedFoodLookup(upstream, health_repository)

        first = _run(lookup.lookup_product(BARCODE))
        second = _run(lookup.lookup_product(BARCODE))
        assert first == second
        assert upstream.calls == [BARCODE]

    def test_refresh_bypasses_and_overwrites_cache(self, health_repository):
        upstream = StubFoodProvider({BARCODE: FoodItem(name="Old recipe", calories=400)})
        lookup = CachedFoodLookup(upstream, health_repository)
        _run(lookup.lookup_product(BARCODE))

        upstream.items[BARCODE] = FoodItem(name="New recipe", calories=380)
        refreshed = _run(lookup.lookup_product(BARCODE, refresh=True))
        assert refreshed.name == "New recipe"
        assert health_repository.get_cached_product(BARCODE).name == "New recipe"

    def test_not_found_is_not_cached(self, health_repository):
        lookup = CachedFoodLookup(StubFoodProvider(), health_repository)
        with pytest.raises(ProductNotFoundError):
            _run(lookup.lookup_product("123"))
        assert health_repository.get_cached_product("123") is None
