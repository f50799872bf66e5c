"""In-memory `Storage` backend with no database behind it."""

import logging
import uuid

from models import User, Cafe, Category, MenuItem, Offer, Tag, PromoCode, Subscription
from services.storage import Storage, NotFoundError, new_trial_fields

logger = logging.getLogger(__name__)


def _build(model, **fields):
    """
    Instantiate an ORM object outside any session, applying the column
    defaults a database flush would normally fill in.
    """
    for column in model.__table__.columns:
        if column.key in fields or column.default is None:
            continue
        default = column.default
        fields[column.key] = default.arg(None) if default.is_callable else default.arg
    return model(**fields)


class MemoryStorage(Storage):
    def __init__(self):
        self.users: dict[uuid.UUID, User] = {}
        self.cafes: dict[uuid.UUID, Cafe] = {}
        self.categories: dict[uuid.UUID, Category] = {}
        self.menu_items: dict[uuid.UUID, MenuItem] = {}
        self.offers: dict[uuid.UUID, Offer] = {}
        self.tags: dict[uuid.UUID, Tag] = {}
        self.promo_codes: dict[uuid.UUID, PromoCode] = {}
        self.subscriptions: dict[uuid.UUID, Subscription] = {}  # keyed by user_id

    def _insert(self, table: dict, model, **fields):
        obj = _build(model, **fields)
        table[obj.id] = obj
        return obj

    @staticmethod
    def _patch(table: dict, entity: str, key, updates: dict):
        obj = table.get(key)
        if obj is None:
            raise NotFoundError(entity, key)
        for field, value in updates.items():
            setattr(obj, field, value)
        return obj

    # Users
    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def get_user_by_username(self, username):
        return next((u for u in self.users.values() if u.username == username), None)

    async def create_user(self, username, password_hash):
        return self._insert(self.users, User, username=username, password_hash=password_hash)

    # Cafes
    async def get_cafe(self, cafe_id):
        return self.cafes.get(cafe_id)

    async def get_cafe_by_slug(self, slug):
        return next((c for c in self.cafes.values() if c.slug == slug), None)

    async def list_cafes_by_owner(self, owner_id):
        return [c for c in self.cafes.values() if c.owner_id == owner_id]

    async def count_cafes_by_owner(self, owner_id):
        return len(await self.list_cafes_by_owner(owner_id))

    async def create_cafe(self, **fields):
        return self._insert(self.cafes, Cafe, **fields)

    async def update_cafe(self, cafe_id, **updates):
        return self._patch(self.cafes, "Cafe", cafe_id, updates)

    # Categories
    async def get_category(self, category_id):
        return self.categories.get(category_id)

    async def list_categories(self, cafe_id):
        rows = [c for c in self.categories.values() if c.cafe_id == cafe_id]
        return sorted(rows, key=lambda c: c.sort_order)

    async def create_category(self, **fields):
        return self._insert(self.categories, Category, **fields)

    async def update_category(self, category_id, **updates):
        return self._patch(self.categories, "Category", category_id, updates)

    async def delete_category(self, category_id):
        self.categories.pop(category_id, None)
        for item_id in [i.id for i in self.menu_items.values() if i.category_id == category_id]:
            del self.menu_items[item_id]

    # Menu items
    async def get_menu_item(self, item_id):
        return self.menu_items.get(item_id)

    async def list_menu_items(self, cafe_id, category_id=None):
        rows = [
            i for i in self.menu_items.values()
            if i.cafe_id == cafe_id and (category_id is None or i.category_id == category_id)
        ]
        return sorted(rows, key=lambda i: i.sort_order)

    async def create_menu_item(self, **fields):
        return self._insert(self.menu_items, MenuItem, **fields)

    async def update_menu_item(self, item_id, **updates):
        return self._patch(self.menu_items, "MenuItem", item_id, updates)

    async def delete_menu_item(self, item_id):
        self.menu_items.pop(item_id, None)

    # Offers
    async def get_offer(self, offer_id):
        return self.offers.get(offer_id)

    async def list_offers(self, cafe_id):
        return [o for o in self.offers.values() if o.cafe_id == cafe_id]

    async def create_offer(self, **fields):
        return self._insert(self.offers, Offer, **fields)

    async def update_offer(self, offer_id, **updates):
        return self._patch(self.offers, "Offer", offer_id, updates)

    async def delete_offer(self, offer_id):
        self.offers.pop(offer_id, None)

    # Tags
    async def list_tags(self):
        return sorted(self.tags.values(), key=lambda t: (t.group, t.label))

    async def create_tag(self, **fields):
        if any(t.key == fields.get("key") for t in self.tags.values()):
            raise ValueError(f"Tag key already exists: {fields.get('key')}")
        return self._insert(self.tags, Tag, **fields)

    # Promo codes
    async def get_promo_code(self, code):
        return next((p for p in self.promo_codes.values() if p.code == code), None)

    async def create_promo_code(self, **fields):
        return self._insert(self.promo_codes, PromoCode, **fields)

    async def update_promo_code(self, promo_id, **updates):
        return self._patch(self.promo_codes, "PromoCode", promo_id, updates)

    # Subscriptions
    async def get_subscription(self, user_id):
        return self.subscriptions.get(user_id)

    async def create_subscription(self, user_id, now=None):
        existing = self.subscriptions.get(user_id)
        if existing:
            return existing
        sub = _build(Subscription, **new_trial_fields(user_id, now))
        self.subscriptions[user_id] = sub
        logger.info("Trial started: user_id=%s ends=%s", user_id, sub.end_date)
        return sub

    async def update_subscription(self, user_id, **updates):
        return self._patch(self.subscriptions, "Subscription", user_id, updates)
