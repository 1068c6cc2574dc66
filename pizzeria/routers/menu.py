from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pizzeria.core.dependencies import get_db, require_admin
from pizzeria.models import User
from pizzeria.schemas import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    MenuCategory,
    MenuItemCreate,
    MenuItemRead,
    MenuItemUpdate,
)
from pizzeria.services import MenuService

router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("", response_model=list[MenuCategory])
def full_menu(db: Session = Depends(get_db)):
    service = MenuService(db)
    return [MenuCategory(**category) for category in service.get_menu_cached()]


@router.get("/categories", response_model=list[CategoryRead])
def list_categories(db: Session = Depends(get_db)):
    service = MenuService(db)
    return [CategoryRead(**item) for item in service.get_cached_categories()]


@router.get("/items", response_model=list[MenuItemRead])
def list_items(
    category_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    service = MenuService(db)
    return [MenuItemRead(**item) for item in service.get_cached_items(category_id)]


@router.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = MenuService(db)
    category = service.create_category(actor=admin, data=payload.model_dump())
    return CategoryRead.model_validate(category)


@router.put("/categories/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_none=True)
    service = MenuService(db)
    category = service.update_category(actor=admin, category_id=category_id, data=updates)
    return CategoryRead.model_validate(category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    MenuService(db).delete_category(actor=admin, category_id=category_id)


@router.post("/items", response_model=MenuItemRead, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: MenuItemCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = MenuService(db)
    item = service.create_item(actor=admin, data=payload.model_dump())
    return MenuItemRead.model_validate(item)


@router.put("/items/{item_id}", response_model=MenuItemRead)
def update_item(
    item_id: int,
    payload: MenuItemUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_none=True)
    service = MenuService(db)
    item = service.update_item(actor=admin, item_id=item_id, data=updates)
    return MenuItemRead.model_validate(item)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    MenuService(db).delete_item(actor=admin, item_id=item_id)
