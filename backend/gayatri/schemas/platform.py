from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from ..models.notification import NotificationType


class OAuthCallback(BaseModel):
    code: str
    state: str


class ConnectionOut(BaseModel):
    id: int
    influencer_id: int
    platform_id: int
    username: str | None = None
    followers: int
    following: int
    posts: int
    engagement_rate: float
    last_synced: datetime | None = None
    platform_data: Dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)


class RateCardIn(BaseModel):
    influencer_platform_id: int
    service_id: int
    price: int = Field(gt=0)
    notes: str | None = None


class RateCardOut(BaseModel):
    id: int
    influencer_platform_id: int
    service_id: int | None = None
    price: int
    currency: str
    is_auto_generated: bool
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationOut(BaseModel):
    id: int
    title: str
    message: str
    type: NotificationType
    data: Dict[str, Any] | None = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
