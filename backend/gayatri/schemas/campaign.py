from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.campaign import CampaignStatus, CampaignType, InvitationStatus

MAX_CAMPAIGN_NAME_LEN = 200
MAX_MESSAGE_LEN = 2000


class PlatformSelection(BaseModel):
    platformId: int | None = None
    serviceId: int | None = None
    quantity: int = Field(default=1, ge=1)


class CampaignCreate(BaseModel):
    brand_id: int
    name: str
    type: CampaignType
    start_date: datetime
    end_date: datetime
    goal: str | None = None
    mou_required: bool = True

    # DIRECT
    budget: float | None = Field(default=None, ge=0)
    target_audience: str | None = None
    categories: List[int] = []
    platform_selections: List[PlatformSelection] = []

    # SELF_SERVICE
    self_service_data: Dict[str, Any] | None = None
    influencer_ids: List[int] = []
    invitation_message: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        if len(v) > MAX_CAMPAIGN_NAME_LEN:
            raise ValueError(f"name must be at most {MAX_CAMPAIGN_NAME_LEN} characters")
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> "CampaignCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class CampaignUpdate(BaseModel):
    name: str | None = None
    goal: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    direct_data: Dict[str, Any] | None = None
    self_service_data: Dict[str, Any] | None = None
    mou_required: bool | None = None


class CampaignOut(BaseModel):
    id: int
    name: str
    goal: str | None = None
    type: CampaignType
    status: CampaignStatus
    brand_id: int
    start_date: datetime
    end_date: datetime
    direct_data: Dict[str, Any] | None = None
    self_service_data: Dict[str, Any] | None = None
    mou_required: bool
    can_start_without_mou: bool
    rejection_reason: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CampaignStatusUpdate(BaseModel):
    status: CampaignStatus


class RejectRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason must not be empty")
        return v


class InvitationSend(BaseModel):
    influencer_ids: List[int]
    message: str | None = Field(default=None, max_length=MAX_MESSAGE_LEN)


class InvitationResponse(BaseModel):
    response: Literal["ACCEPTED", "REJECTED"]
    message: str | None = Field(default=None, max_length=MAX_MESSAGE_LEN)

    @field_validator("response", mode="before")
    @classmethod
    def _upper(cls, v):
        return v.upper() if isinstance(v, str) else v


class InvitationOut(BaseModel):
    id: int
    campaign_id: int
    influencer_id: int
    brand_id: int
    status: InvitationStatus
    message: str | None = None
    response_message: str | None = None
    responded_at: datetime | None = None
    mou_creation_requested: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
