from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from pizzeria.core.cache import cache, invalidate_cache
from pizzeria.models import Category, MenuItem, OrderItem, User

from . import exceptions

CATEGORY_NAMESPACE = "menu_categories"
ITEM_NAMESPACE = "menu_items"
MENU_FULL_NAMESPACE = "menu_full"


class MenuService:
    def __init__(self, db: Session):
        self.db = db

    @cache(CATEGORY_NAMESPACE, key_builder=lambda self: "active")
    def get_cached_categories(self) -> list[dict]:
        categories = (
            self.db.query(Category)
            .filter(Category.is_active == True)  # noqa: E712
            .order_by(Category.order, Category.name)
            .all()
        )
        result: list[dict] = []
        for category in categories:
            first_image = (
                self.db.query(MenuItem.image_url)
                .filter(MenuItem.category_id == category.id, MenuItem.image_url.isnot(None))
                .order_by(MenuItem.id)
                .first()
            )
            result.append(self._serialize_category(category, first_image[0] if first_image else None))
        return result

    @cache(
        ITEM_NAMESPACE,
        key_builder=lambda self, category_id=None: f"category:{category_id or 'all'}",
    )
    def get_cached_items(self, category_id: int | None = None) -> list[dict]:
        query = self.db.query(MenuItem).filter(MenuItem.is_available == True)  # noqa: E712
        if category_id:
            query = query.filter(MenuItem.category_id == category_id)
        items = query.order_by(MenuItem.name).all()
        return [self._serialize_item(item) for item in items]

    @cache(MENU_FULL_NAMESPACE, key_builder=lambda self: "full")
    def get_menu_cached(self) -> list[dict]:
        categories = (
            self.db.query(Category)
            .options(selectinload(Category.items))
            .filter(Category.is_active == True)  # noqa: E712
            .order_by(Category.order, Category.name)
            .all()
        )
        return [
            {
                **self._serialize_category(category),
                "items": [
                    self._serialize_item(item)
                    for item in sorted(category.items, key=lambda item: item.name)
                    if item.is_available
                ],
            }
            for category in categories
        ]

    def create_category(self, *, actor: User, data: dict) -> Category:
        self._ensure_admin(actor)
        exists = self.db.query(Category.id).filter(func.lower(Category.name) == data["name"].lower()).first()
        if exists:
            raise exceptions.ConflictError("Category with this name already exists")
        category = Category(**data)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        self._invalidate()
        return category

    def update_category(self, *, actor: User, category_id: int, data: dict) -> Category:
        self._ensure_admin(actor)
        category = self._get_category(category_id)
        for key, value in data.items():
            setattr(category, key, value)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        self._invalidate()
        return category

    def delete_category(self, *, actor: User, category_id: int) -> None:
        self._ensure_admin(actor)
        category = self._get_category(category_id)
        has_items = self.db.query(MenuItem.id).filter(MenuItem.category_id == category.id).first()
        if has_items:
            raise exceptions.ConflictError("Category still has menu items")
        self.db.delete(category)
        self.db.commit()
        self._invalidate()

    def create_item(self, *, actor: User, data: dict) -> MenuItem:
        self._ensure_admin(actor)
        self._get_category(data["category_id"])
        item = MenuItem(**data)
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        self._invalidate()
        return item

    def update_item(self, *, actor: User, item_id: int, data: dict) -> MenuItem:
        self._ensure_admin(actor)
        item = self._get_item(item_id)
        if data.get("category_id") is not None:
            self._get_category(data["category_id"])
        for key, value in data.items():
            setattr(item, key, value)
        self.db.add(item)
        self.db.commit()
        self._invalidate()
        self.db.refresh(item)
        return item

    def delete_item(self, *, actor: User, item_id: int) -> None:
        self._ensure_admin(actor)
        item = self._get_item(item_id)
        ordered = self.db.query(OrderItem.id).filter(OrderItem.menu_item_id == item.id).first()
        if ordered:
            raise exceptions.ConflictError("Menu item has been ordered; mark it unavailable instead")
        self.db.delete(item)
        self.db.commit()
        self._invalidate()

    @staticmethod
    def _invalidate() -> None:
        invalidate_cache(CATEGORY_NAMESPACE, ITEM_NAMESPACE, MENU_FULL_NAMESPACE)

    def _get_category(self, category_id: int) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise exceptions.NotFoundError("Category not found")
        return category

    def _get_item(self, item_id: int) -> MenuItem:
        item = self.db.query(MenuItem).filter(MenuItem.id == item_id).first()
        if not item:
            raise exceptions.NotFoundError("Menu item not found")
        return item

    @staticmethod
    def _ensure_admin(actor: User) -> None:
        if not actor.is_admin:
            raise exceptions.AuthorizationError("Only admins can change the menu")

    @staticmethod
    def _serialize_category(category: Category, fallback_image: str | None = None) -> dict:
        return {
            "id": category.id,
            "name": category.name,
            "order": category.order,
            "image_url": fallback_image,
        }

    @staticmethod
    def _serialize_item(item: MenuItem) -> dict:
        return {
            "id": item.id,
            "category_id": item.category_id,
            "name": item.name,
            "description": item.description,
            "base_price": str(item.base_price),
            "image_url": item.image_url,
            "is_available": item.is_available,
            "is_popular": item.is_popular,
        }
