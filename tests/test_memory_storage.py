"""Tests for the in-memory storage backend."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
import pytest
from datetime import datetime, timedelta, timezone

from services.memory_storage import MemoryStorage
from services.storage import NotFoundError

NOW = datetime(2024, 1, 15, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_create_subscription_is_idempotent():
    storage = MemoryStorage()
    user_id = uuid.uuid4()
    first = await storage.create_subscription(user_id, NOW)
    second = await storage.create_subscription(user_id, NOW + timedelta(days=3))

    assert first is second
    assert first.status == "trial"
    assert first.end_date == NOW + timedelta(days=7)
    assert first.amount is None


@pytest.mark.asyncio
async def test_update_missing_subscription_raises():
    with pytest.raises(NotFoundError):
        await MemoryStorage().update_subscription(uuid.uuid4(), status="active")


@pytest.mark.asyncio
async def test_column_defaults_applied():
    storage = MemoryStorage()
    cafe = await storage.create_cafe(owner_id=uuid.uuid4(), name="Cafe", slug="cafe-1")
    assert isinstance(cafe.id, uuid.UUID)
    assert cafe.menu_type == "digital"
    assert cafe.theme == "standard"


@pytest.mark.asyncio
async def test_promo_code_usage():
    storage = MemoryStorage()
    promo = await storage.create_promo_code(code="LAUNCH50", type="percent", value=50, max_uses=10)
    assert promo.current_uses == 0

    found = await storage.get_promo_code("LAUNCH50")
    await storage.update_promo_code(found.id, current_uses=found.current_uses + 1)
    assert (await storage.get_promo_code("LAUNCH50")).current_uses == 1
    assert await storage.get_promo_code("NOPE") is None


@pytest.mark.asyncio
async def test_menu_items_filtered_by_category():
    storage = MemoryStorage()
    cafe_id = uuid.uuid4()
    coffee = await storage.create_category(cafe_id=cafe_id, name="Coffee", sort_order=1)
    tea = await storage.create_category(cafe_id=cafe_id, name="Tea", sort_order=0)
    await storage.create_menu_item(cafe_id=cafe_id, category_id=coffee.id, name="Latte", price=18000)
    await storage.create_menu_item(cafe_id=cafe_id, category_id=tea.id, name="Chai", price=4000)

    assert [c.name for c in await storage.list_categories(cafe_id)] == ["Tea", "Coffee"]
    assert [i.name for i in await storage.list_menu_items(cafe_id, tea.id)] == ["Chai"]
    assert len(await storage.list_menu_items(cafe_id)) == 2
