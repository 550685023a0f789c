"""Food data connectors: abstraction layer for barcode nutrition lookups."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from companion.domains.glp1.domain_logic.models import FoodItem


@runtime_checkable
class FoodDataProvider(Protocol):
    """Abstract interface for barcode-to-macros lookups.

    The logging tools call this without knowing whether the product comes
    from the local cache, Open Food Facts, or a test double.
    """

    async def lookup_product(self, barcode: str) -> FoodItem:
        """Return macro data for ``barcode`` or raise ``FoodLookupError``."""
        ...
