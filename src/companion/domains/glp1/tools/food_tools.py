"""MCP tools for barcode nutrition lookups."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from companion.domains.glp1.connectors.food_lookup import FoodLookupError, ProductNotFoundError
from companion.domains.glp1.tools.common import error

if TYPE_CHECKING:
    from companion.domains.glp1.connectors.food_lookup import CachedFoodLookup

logger = logging.getLogger(__name__)


def register_food_tools(
    mcp: FastMCP,
    food_lookup: CachedFoodLookup,
) -> None:
    """Register barcode lookup tools on the MCP server."""

    @mcp.tool
    async def lookup_barcode(
        ctx: Context,
        barcode: str,
        refresh: bool = False,
    ) -> str:
        """Look up a product's macros (per 100 g) and any UK food alerts.

        Results are cached; pass refresh=True to fetch again.

        Args:
            barcode: EAN/UPC barcode digits.
            refresh: Ignore the cache and query the nutrition service.
        """
        try:
            item = await food_lookup.lookup_product(barcode, refresh=refresh)
        except ProductNotFoundError as exc:
            return json.dumps({"status": "not_found", "barcode": barcode, "message": str(exc)})
        except FoodLookupError as exc:
            logger.warning("Barcode lookup failed: %s", exc)
            return error(str(exc))

        return json.dumps({"status": "ok", "barcode": barcode, "product": item.as_dict()}, indent=2)
