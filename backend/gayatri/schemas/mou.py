from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.mou import ApprovalStatus, MOUStatus


class MOUDetails(BaseModel):
    """Fields that may be set on creation or changed by a revision."""

    title: str | None = None
    description: str | None = None
    brand_representative: str | None = None
    campaign_objective: str | None = None
    campaign_scope: str | None = None
    deliverable_details: List[Dict[str, Any]] | None = None
    effective_date: datetime | None = None
    expiry_date: datetime | None = None
    total_budget: float | None = Field(default=None, ge=0)
    payment_terms: str | None = None
    payment_schedule: str | None = None
    terms_and_conditions: str | None = None
    cancellation_clause: str | None = None
    confidentiality_clause: str | None = None
    intellectual_property_clause: str | None = None

    @model_validator(mode="after")
    def validate_dates(self):
        if self.effective_date and self.expiry_date and self.expiry_date < self.effective_date:
            raise ValueError("expiry_date must be on or after effective_date")
        return self


class MOUCreate(MOUDetails):
    campaign_id: int
    influencer_id: int | None = None
    admin_preapproved: bool = False


class MOURevision(MOUDetails):
    revision_notes: str | None = None


class MOUDecision(BaseModel):
    decision: Literal["APPROVED", "REJECTED"]
    comments: str | None = None
    reason: str | None = None

    @field_validator("decision", mode="before")
    @classmethod
    def _upper(cls, v):
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_reason(self) -> "MOUDecision":
        if self.decision == "REJECTED" and not (self.reason or "").strip():
            raise ValueError("reason is required when rejecting")
        return self


class BulkDecision(MOUDecision):
    mou_ids: List[int]


class AmendmentCreate(BaseModel):
    title: str
    description: str
    changed_fields: Dict[str, Any] | None = None
    effective_date: datetime | None = None


class AmendmentOut(BaseModel):
    id: int
    mou_id: int
    amendment_number: int
    title: str
    description: str
    changed_fields: Dict[str, Any] | None = None
    effective_date: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MOURequest(BaseModel):
    invitation_id: int
    urgent: bool = False


class CampaignStartRequest(BaseModel):
    force: bool = False


class TemplateIn(BaseModel):
    name: str
    description: str | None = None
    terms_and_conditions: str | None = None
    cancellation_clause: str | None = None
    confidentiality_clause: str | None = None
    intellectual_property_clause: str | None = None
    payment_terms_template: str | None = None
    minimum_budget: float | None = Field(default=None, ge=0)
    applicable_platforms: List[str] | None = None
    is_default: bool = False
    is_active: bool = True


class TemplateUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    terms_and_conditions: str | None = None
    cancellation_clause: str | None = None
    confidentiality_clause: str | None = None
    intellectual_property_clause: str | None = None
    payment_terms_template: str | None = None
    minimum_budget: float | None = Field(default=None, ge=0)
    applicable_platforms: List[str] | None = None
    is_default: bool | None = None
    is_active: bool | None = None


class TemplateOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    terms_and_conditions: str | None = None
    cancellation_clause: str | None = None
    confidentiality_clause: str | None = None
    intellectual_property_clause: str | None = None
    payment_terms_template: str | None = None
    minimum_budget: float | None = None
    applicable_platforms: List[str] | None = None
    is_default: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class MOUApprovalOut(BaseModel):
    id: int
    approver_id: int | None = None
    approver_role: str
    status: ApprovalStatus
    comments: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MOUOut(BaseModel):
    id: int
    mou_number: str
    version: int
    parent_mou_id: int | None = None
    campaign_id: int
    brand_id: int
    influencer_id: int
    title: str
    description: str | None = None
    brand_name: str
    brand_email: str | None = None
    brand_representative: str | None = None
    influencer_name: str
    influencer_email: str | None = None
    campaign_objective: str | None = None
    campaign_scope: str | None = None
    deliverable_details: List[Dict[str, Any]] | None = None
    effective_date: datetime
    expiry_date: datetime
    total_budget: float
    payment_terms: str | None = None
    payment_schedule: str | None = None
    terms_and_conditions: str | None = None
    cancellation_clause: str | None = None
    confidentiality_clause: str | None = None
    intellectual_property_clause: str | None = None
    status: MOUStatus
    brand_approval_status: ApprovalStatus
    brand_approved_at: datetime | None = None
    brand_rejection_reason: str | None = None
    influencer_approval_status: ApprovalStatus
    influencer_approved_at: datetime | None = None
    influencer_rejection_reason: str | None = None
    admin_approval_status: ApprovalStatus
    admin_approved_at: datetime | None = None
    admin_rejection_reason: str | None = None
    rejected_at: datetime | None = None
    revision_notes: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
