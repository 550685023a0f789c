"""Shared test fixtures for GLP-1 Companion tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("COMPANION_TIMEZONE", "UTC")
    monkeypatch.setenv("APPLE_HEALTH_EXPORT_PATH", "")
    monkeypatch.setenv("FOOD_LOOKUP_BASE_URL", "https://food.test")
    monkeypatch.setenv("FOOD_ALERTS_URL", "https://alerts.test/food-alerts")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from companion.domains.glp1.domain_logic.models import (  # noqa: E402
    FluidIntakeLog,
    FluidType,
    FoodItem,
    Record,
    RecordType,
)


def at(hour: int, minute: int = 0, day: int = 15) -> datetime:
    """A UTC moment on 2025-03-<day>."""
    return datetime(2025, 3, day, hour, minute, tzinfo=timezone.utc)


def meal(calories: float | None = None, fiber: float | None = None, **kwargs) -> Record:
    return Record(
        type=RecordType.MEAL,
        date=kwargs.pop("date", at(12)),
        calories=calories,
        fiber=fiber,
        **kwargs,
    )


def activity(calories: float | None = None, minutes: int = 30, **kwargs) -> Record:
    return Record(
        type=RecordType.ACTIVITY,
        date=kwargs.pop("date", at(18)),
        value=str(minutes),
        calories=calories,
        **kwargs,
    )


def mood(value: str | None, hour: int = 20) -> Record:
    return Record(type=RecordType.MOOD, date=at(hour), value=value)


def fluid(amount_ml: float, type: FluidType = FluidType.WATER, hour: int = 9) -> FluidIntakeLog:
    return FluidIntakeLog(amount_ml=amount_ml, type=type, date=at(hour))


class StubFoodProvider:
    """In-memory FoodDataProvider that counts upstream calls."""

    def __init__(self, items: dict[str, FoodItem] | None = None) -> None:
        self.items = items or {}
        self.calls: list[str] = []

    async def lookup_product(self, barcode: str) -> FoodItem:
        from companion.domains.glp1.connectors.food_lookup import ProductNotFoundError

        self.calls.append(barcode)
        if barcode not in self.items:
            raise ProductNotFoundError("No nutrition data found for that barcode")
        return self.items[barcode]


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def health_db():
    """Create an in-memory HealthDatabase for testing."""
    from companion.core.storage.database import HealthDatabase

    db = HealthDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from companion.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def health_repository(health_db, field_encryptor):
    """Create a HealthLogRepository backed by in-memory SQLite."""
    from companion.core.storage.repository import HealthLogRepository

    return HealthLogRepository(health_db, field_encryptor)


@pytest.fixture
def audit_logger(health_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from companion.core.audit.logger import AuditLogger

    return AuditLogger(health_db)


@pytest.fixture
def consent_manager(health_repository, audit_logger):
    """Create a ConsentManager with every category enabled."""
    from companion.core.privacy.consent import ConsentManager

    manager = ConsentManager(health_repository, audit_logger)
    manager.ensure_defaults()
    return manager
