from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict


class BrandIn(BaseModel):
    name: str


class BrandOut(BaseModel):
    id: int
    name: str
    user_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryIn(BaseModel):
    name: str
    description: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = None
    description: str | None = None


class CategoryOut(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class InfluencerCategoriesIn(BaseModel):
    category_ids: List[int]


class PlatformIn(BaseModel):
    name: str


class PlatformOut(BaseModel):
    id: int
    name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ServiceIn(BaseModel):
    platform_id: int
    name: str
    description: str | None = None
    type: str = "post"
    is_active: bool = True


class ServiceUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    type: str | None = None
    is_active: bool | None = None


class ServiceOut(BaseModel):
    id: int
    platform_id: int
    name: str
    description: str | None = None
    type: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
