from models.user import User
from models.cafe import Cafe
from models.category import Category
from models.menu_item import MenuItem
from models.offer import Offer
from models.tag import Tag
from models.promo_code import PromoCode
from models.subscription import Subscription

__all__ = [
    "User", "Cafe", "Category", "MenuItem",
    "Offer", "Tag", "PromoCode", "Subscription",
]
