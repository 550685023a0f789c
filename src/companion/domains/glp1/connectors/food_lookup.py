"""Barcode nutrition lookup via Open Food Facts, with UK FSA food alerts.

Macros prefer the per-100 g figures and fall back to per-serving values.
Food alerts are best effort: any failure there yields an empty alert list
rather than failing the lookup.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from companion.domains.glp1.domain_logic.models import FoodAlert, FoodItem

if TYPE_CHECKING:
    from companion.core.storage.repository import HealthLogRepository
    from companion.domains.glp1.connectors import FoodDataProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://world.openfoodfacts.org"
DEFAULT_ALERTS_URL = "https://data.food.gov.uk/food-alerts/alerts"


class FoodLookupError(Exception):
    """Base class for barcode lookup failures."""


class ProductNotFoundError(FoodLookupError):
    """No nutrition data exists for the barcode."""


class FoodDecodingError(FoodLookupError):
    """The nutrition service answered in an unexpected format."""


class ServiceUnavailableError(FoodLookupError):
    """The nutrition service could not be reached or returned an error status."""


def _first_number(nutriments: dict[str, Any], *keys: str) -> float | None:
    for key in keys:
        value = nutriments.get(key)
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def parse_product(payload: dict[str, Any]) -> FoodItem:
    """Map an Open Food Facts product payload to a ``FoodItem``.

    Raises:
        ProductNotFoundError: If the payload reports no product.
        FoodDecodingError: If the payload is not shaped like a product response.
    """
    if not isinstance(payload, dict):
        raise FoodDecodingError("Product response is not a JSON object")
    if payload.get("status") != 1 or not payload.get("product"):
        raise ProductNotFoundError("No nutrition data found for that barcode")

    product = payload["product"]
    if not isinstance(product, dict):
        raise FoodDecodingError("Product entry is not a JSON object")
    nutriments = product.get("nutriments") or {}
    if not isinstance(nutriments, dict):
        raise FoodDecodingError("Nutriments entry is not a JSON object")

    return FoodItem(
        name=product.get("product_name") or "Meal",
        calories=_first_number(nutriments, "energy-kcal_100g", "energy-kcal_serving"),
        carbs=_first_number(nutriments, "carbohydrates_100g", "carbohydrates_serving"),
        protein=_first_number(nutriments, "proteins_100g", "proteins_serving"),
        fat=_first_number(nutriments, "fat_100g", "fat_serving"),
        fiber=_first_number(nutriments, "fiber_100g", "fiber_serving"),
    )


def parse_alerts(payload: dict[str, Any]) -> list[FoodAlert]:
    """Map an FSA alerts payload to ``FoodAlert`` values."""
    alerts = []
    for item in payload.get("items", []):
        if not isinstance(item, dict):
            continue
        allergens = []
        for allergen in item.get("allergen") or []:
            if isinstance(allergen, dict):
                label = allergen.get("label")
                if label:
                    allergens.append(label)
            elif isinstance(allergen, str):
                allergens.append(allergen)
        alerts.append(FoodAlert(
            title=item.get("shortTitle") or item.get("title") or "Food Standards Alert",
            issued=item.get("created") or item.get("modified"),
            allergens=tuple(allergens),
            url=item.get("alertURL") or item.get("@id"),
        ))
    return alerts


class FoodLookupService:
    """Looks up products by barcode over HTTP.

    Usage::

        service = FoodLookupService()
        item = await service.lookup_product("5000159484695")
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        alerts_url: str = DEFAULT_ALERTS_URL,
        timeout_s: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._alerts_url = alerts_url
        self._http = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=httpx.Timeout(timeout_s), follow_redirects=True)
        )

    async def lookup_product(self, barcode: str) -> FoodItem:
        """Fetch macros (and any food alerts) for a barcode.

        Raises:
            ProductNotFoundError: Unknown barcode.
            FoodDecodingError: Malformed response.
            ServiceUnavailableError: Network failure or non-2xx status.
        """
        barcode = barcode.strip()
        if not barcode.isdigit():
            raise ProductNotFoundError(f"Not a barcode: {barcode!r}")

        url = f"{self._base_url}/api/v0/product/{barcode}.json"
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as exc:
            raise ServiceUnavailableError(f"Nutrition service unreachable: {exc}") from exc

        if response.status_code == 404:
            raise ProductNotFoundError("No nutrition data found for that barcode")
        if not response.is_success:
            raise ServiceUnavailableError(
                f"Nutrition service returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FoodDecodingError("Nutrition response was not valid JSON") from exc

        item = parse_product(payload)
        alerts = await self._fetch_alerts(item.name)
        if alerts:
            item = FoodItem(
                name=item.name,
                calories=item.calories,
                carbs=item.carbs,
                protein=item.protein,
                fat=item.fat,
                fiber=item.fiber,
                alerts=tuple(alerts),
            )
        logger.info("Looked up barcode %s (%d alerts)", barcode, len(alerts))
        return item

    async def _fetch_alerts(self, product_name: str) -> list[FoodAlert]:
        name = product_name.strip()
        if not name:
            return []
        try:
            response = await self._http.get(
                self._alerts_url,
                params={"_limit": 5, "_search": name},
                headers={"Accept": "application/json"},
            )
            if not response.is_success:
                return []
            return parse_alerts(response.json())
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("Food alert lookup failed: %s", exc)
            return []

    async def aclose(self) -> None:
        await self._http.aclose()


class CachedFoodLookup:
    """Serves barcodes from the repository cache, refreshing from ``upstream``.

    Cache entries are keyed by barcode, overwritten on every fresh lookup,
    and never expire.
    """

    def __init__(self, upstream: FoodDataProvider, repository: HealthLogRepository) -> None:
        self._upstream = upstream
        self._repo = repository

    async def lookup_product(self, barcode: str, *, refresh: bool = False) -> FoodItem:
        barcode = barcode.strip()
        if not refresh:
            cached = self._repo.get_cached_product(barcode)
            if cached is not None:
                logger.info("Barcode %s served from cache", barcode)
                return cached

        item = await self._upstream.lookup_product(barcode)
        self._repo.cache_product(barcode, item)
        return item
