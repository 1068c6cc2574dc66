from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., max_length=150)
    order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=150)
    order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    order: int = 0
    image_url: Optional[str] = None


class MenuItemCreate(BaseModel):
    category_id: int
    name: str = Field(..., max_length=255)
    description: Optional[str] = None
    base_price: Decimal = Field(..., ge=0)
    image_url: Optional[str] = Field(default=None, max_length=500)
    is_available: bool = True
    is_popular: bool = False


class MenuItemUpdate(BaseModel):
    category_id: Optional[int] = None
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(default=None, ge=0)
    image_url: Optional[str] = Field(default=None, max_length=500)
    is_available: Optional[bool] = None
    is_popular: Optional[bool] = None


class MenuItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    name: str
    description: Optional[str] = None
    base_price: Decimal
    image_url: Optional[str] = None
    is_available: bool
    is_popular: bool


class MenuCategory(CategoryRead):
    items: list[MenuItemRead]
