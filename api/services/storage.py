"""
Persistence interface for the menu and subscription data.

`Storage` is the contract every backend implements; handlers receive one
through the `get_storage` dependency:

  SqlStorage     → async SQLAlchemy session (production)
  MemoryStorage  → plain dicts (tests, local demos)

All identifiers are `uuid.UUID`.
"""

import abc
import logging
import uuid
from datetime import datetime

from fastapi import Depends
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db.database import get_db
from models import User, Cafe, Category, MenuItem, Offer, Tag, PromoCode, Subscription
from services.subscription_utils import TRIAL_PLAN, calculate_end_date, now_utc

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Raised when an update targets a row that does not exist."""

    def __init__(self, entity: str, key):
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


def new_trial_fields(user_id: uuid.UUID, now: datetime | None = None) -> dict:
    """Column values for a freshly started trial."""
    now = now or now_utc()
    return {
        "user_id": user_id,
        "plan_type": TRIAL_PLAN,
        "status": "trial",
        "start_date": now,
        "end_date": calculate_end_date(TRIAL_PLAN, now),
        "payment_id": None,
        "order_id": None,
        "amount": None,
        "created_at": now,
        "updated_at": now,
    }


class Storage(abc.ABC):
    # Users
    @abc.abstractmethod
    async def get_user(self, user_id: uuid.UUID) -> User | None: ...

    @abc.abstractmethod
    async def get_user_by_username(self, username: str) -> User | None: ...

    @abc.abstractmethod
    async def create_user(self, username: str, password_hash: str) -> User: ...

    # Cafes
    @abc.abstractmethod
    async def get_cafe(self, cafe_id: uuid.UUID) -> Cafe | None: ...

    @abc.abstractmethod
    async def get_cafe_by_slug(self, slug: str) -> Cafe | None: ...

    @abc.abstractmethod
    async def list_cafes_by_owner(self, owner_id: uuid.UUID) -> list[Cafe]: ...

    @abc.abstractmethod
    async def count_cafes_by_owner(self, owner_id: uuid.UUID) -> int: ...

    @abc.abstractmethod
    async def create_cafe(self, **fields) -> Cafe: ...

    @abc.abstractmethod
    async def update_cafe(self, cafe_id: uuid.UUID, **updates) -> Cafe: ...

    # Categories
    @abc.abstractmethod
    async def get_category(self, category_id: uuid.UUID) -> Category | None: ...

    @abc.abstractmethod
    async def list_categories(self, cafe_id: uuid.UUID) -> list[Category]: ...

    @abc.abstractmethod
    async def create_category(self, **fields) -> Category: ...

    @abc.abstractmethod
    async def update_category(self, category_id: uuid.UUID, **updates) -> Category: ...

    @abc.abstractmethod
    async def delete_category(self, category_id: uuid.UUID) -> None: ...

    # Menu items
    @abc.abstractmethod
    async def get_menu_item(self, item_id: uuid.UUID) -> MenuItem | None: ...

    @abc.abstractmethod
    async def list_menu_items(
        self, cafe_id: uuid.UUID, category_id: uuid.UUID | None = None
    ) -> list[MenuItem]: ...

    @abc.abstractmethod
    async def create_menu_item(self, **fields) -> MenuItem: ...

    @abc.abstractmethod
    async def update_menu_item(self, item_id: uuid.UUID, **updates) -> MenuItem: ...

    @abc.abstractmethod
    async def delete_menu_item(self, item_id: uuid.UUID) -> None: ...

    # Offers
    @abc.abstractmethod
    async def get_offer(self, offer_id: uuid.UUID) -> Offer | None: ...

    @abc.abstractmethod
    async def list_offers(self, cafe_id: uuid.UUID) -> list[Offer]: ...

    @abc.abstractmethod
    async def create_offer(self, **fields) -> Offer: ...

    @abc.abstractmethod
    async def update_offer(self, offer_id: uuid.UUID, **updates) -> Offer: ...

    @abc.abstractmethod
    async def delete_offer(self, offer_id: uuid.UUID) -> None: ...

    # Tags
    @abc.abstractmethod
    async def list_tags(self) -> list[Tag]: ...

    @abc.abstractmethod
    async def create_tag(self, **fields) -> Tag: ...

    # Promo codes
    @abc.abstractmethod
    async def get_promo_code(self, code: str) -> PromoCode | None: ...

    @abc.abstractmethod
    async def create_promo_code(self, **fields) -> PromoCode: ...

    @abc.abstractmethod
    async def update_promo_code(self, promo_id: uuid.UUID, **updates) -> PromoCode: ...

    # Subscriptions
    @abc.abstractmethod
    async def get_subscription(self, user_id: uuid.UUID) -> Subscription | None: ...

    @abc.abstractmethod
    async def create_subscription(
        self, user_id: uuid.UUID, now: datetime | None = None
    ) -> Subscription:
        """Start a trial; returns the existing row when the user already has one."""

    @abc.abstractmethod
    async def update_subscription(self, user_id: uuid.UUID, **updates) -> Subscription:
        """Raises NotFoundError when the user has no subscription."""


# ── SQLAlchemy backend ─────────────────────────────────────

class SqlStorage(Storage):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _first(self, query):
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _all(self, query) -> list:
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _add(self, obj):
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def _update(self, model, key, **updates):
        obj = await self.db.get(model, key)
        if obj is None:
            raise NotFoundError(model.__name__, key)
        for field, value in updates.items():
            setattr(obj, field, value)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def _delete(self, model, key) -> None:
        obj = await self.db.get(model, key)
        if obj is not None:
            await self.db.delete(obj)
            await self.db.commit()

    # Users
    async def get_user(self, user_id):
        return await self.db.get(User, user_id)

    async def get_user_by_username(self, username):
        return await self._first(select(User).where(User.username == username))

    async def create_user(self, username, password_hash):
        return await self._add(User(username=username, password_hash=password_hash))

    # Cafes
    async def get_cafe(self, cafe_id):
        return await self.db.get(Cafe, cafe_id)

    async def get_cafe_by_slug(self, slug):
        return await self._first(select(Cafe).where(Cafe.slug == slug))

    async def list_cafes_by_owner(self, owner_id):
        return await self._all(
            select(Cafe).where(Cafe.owner_id == owner_id).order_by(Cafe.created_at)
        )

    async def count_cafes_by_owner(self, owner_id):
        result = await self.db.execute(
            select(func.count(Cafe.id)).where(Cafe.owner_id == owner_id)
        )
        return result.scalar() or 0

    async def create_cafe(self, **fields):
        return await self._add(Cafe(**fields))

    async def update_cafe(self, cafe_id, **updates):
        return await self._update(Cafe, cafe_id, **updates)

    # Categories
    async def get_category(self, category_id):
        return await self.db.get(Category, category_id)

    async def list_categories(self, cafe_id):
        return await self._all(
            select(Category).where(Category.cafe_id == cafe_id).order_by(Category.sort_order)
        )

    async def create_category(self, **fields):
        return await self._add(Category(**fields))

    async def update_category(self, category_id, **updates):
        return await self._update(Category, category_id, **updates)

    async def delete_category(self, category_id):
        await self._delete(Category, category_id)

    # Menu items
    async def get_menu_item(self, item_id):
        return await self.db.get(MenuItem, item_id)

    async def list_menu_items(self, cafe_id, category_id=None):
        query = select(MenuItem).where(MenuItem.cafe_id == cafe_id)
        if category_id:
            query = query.where(MenuItem.category_id == category_id)
        return await self._all(query.order_by(MenuItem.sort_order))

    async def create_menu_item(self, **fields):
        return await self._add(MenuItem(**fields))

    async def update_menu_item(self, item_id, **updates):
        return await self._update(MenuItem, item_id, **updates)

    async def delete_menu_item(self, item_id):
        await self._delete(MenuItem, item_id)

    # Offers
    async def get_offer(self, offer_id):
        return await self.db.get(Offer, offer_id)

    async def list_offers(self, cafe_id):
        return await self._all(
            select(Offer).where(Offer.cafe_id == cafe_id).order_by(Offer.created_at.desc())
        )

    async def create_offer(self, **fields):
        return await self._add(Offer(**fields))

    async def update_offer(self, offer_id, **updates):
        return await self._update(Offer, offer_id, **updates)

    async def delete_offer(self, offer_id):
        await self._delete(Offer, offer_id)

    # Tags
    async def list_tags(self):
        return await self._all(select(Tag).order_by(Tag.group, Tag.label))

    async def create_tag(self, **fields):
        try:
            return await self._add(Tag(**fields))
        except IntegrityError:
            await self.db.rollback()
            raise ValueError(f"Tag key already exists: {fields.get('key')}")

    # Promo codes
    async def get_promo_code(self, code):
        return await self._first(select(PromoCode).where(PromoCode.code == code))

    async def create_promo_code(self, **fields):
        return await self._add(PromoCode(**fields))

    async def update_promo_code(self, promo_id, **updates):
        return await self._update(PromoCode, promo_id, **updates)

    # Subscriptions
    async def get_subscription(self, user_id):
        return await self._first(select(Subscription).where(Subscription.user_id == user_id))

    async def create_subscription(self, user_id, now=None):
        existing = await self.get_subscription(user_id)
        if existing:
            return existing
        try:
            sub = await self._add(Subscription(**new_trial_fields(user_id, now)))
        except IntegrityError:
            # Concurrent request created it first (unique user_id)
            await self.db.rollback()
            return await self.get_subscription(user_id)
        logger.info("Trial started: user_id=%s ends=%s", user_id, sub.end_date)
        return sub

    async def update_subscription(self, user_id, **updates):
        sub = await self.get_subscription(user_id)
        if sub is None:
            raise NotFoundError("Subscription", user_id)
        for field, value in updates.items():
            setattr(sub, field, value)
        await self.db.commit()
        await self.db.refresh(sub)
        return sub


async def get_sql_storage(db: AsyncSession = Depends(get_db)) -> Storage:
    """FastAPI dependency: a `SqlStorage` over the request's session."""
    return SqlStorage(db)


def select_storage_dependency(backend: str):
    """
    Pick the persistence backend once, at process start.

      sql    → one SqlStorage per request
      memory → one MemoryStorage shared by the whole process (demos, no DB)
    """
    if backend == "sql":
        return get_sql_storage
    if backend == "memory":
        from services.memory_storage import MemoryStorage

        shared = MemoryStorage()

        def get_memory_storage() -> Storage:
            return shared

        logger.warning("Using in-memory storage; data is lost on restart")
        return get_memory_storage
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")


get_storage = select_storage_dependency(settings.STORAGE_BACKEND)
