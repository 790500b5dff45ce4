"""
Memorandum of understanding between a brand and an influencer for a campaign.

Each MOU row is one version of the agreement. Revisions create a new row
pointing at the previous one through ``parent_mou_id``; the current MOU of a
campaign is the one with the highest version. Approval is tracked per party
(brand, influencer, admin) and ``status`` is derived from those three flags,
see ``services/mou_status.py``.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Boolean,
    JSON,
    Numeric,
    Enum,
    ForeignKey,
    UniqueConstraint,
)
from datetime import datetime
import enum
from ..core.db import Base


class MOUStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_BRAND = "PENDING_BRAND"
    PENDING_INFLUENCER = "PENDING_INFLUENCER"
    PENDING_ADMIN = "PENDING_ADMIN"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    AMENDED = "AMENDED"


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class MOU(Base):
    __tablename__ = "mous"
    __table_args__ = (
        UniqueConstraint("mou_number", "version", name="uq_mou_number_version"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    mou_number = Column(String(32), index=True, nullable=False)  # MOU/YYYY/MM/NNN, shared by versions
    version = Column(Integer, default=1, nullable=False)
    parent_mou_id = Column(Integer, ForeignKey("mous.id", ondelete="SET NULL"), nullable=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), index=True, nullable=False)
    influencer_id = Column(Integer, ForeignKey("influencers.id", ondelete="CASCADE"), index=True, nullable=False)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # party snapshot at creation time
    brand_name = Column(String, nullable=False)
    brand_email = Column(String, nullable=True)
    brand_representative = Column(String, nullable=True)
    influencer_name = Column(String, nullable=False)
    influencer_email = Column(String, nullable=True)

    campaign_objective = Column(Text, nullable=True)
    campaign_scope = Column(Text, nullable=True)
    deliverable_details = Column(JSON, nullable=True)  # [{platform, service, quantity}]
    effective_date = Column(DateTime, nullable=False)
    expiry_date = Column(DateTime, nullable=False)

    total_budget = Column(Numeric(16, 2), nullable=False, default=0)
    payment_terms = Column(Text, nullable=True)
    payment_schedule = Column(Text, nullable=True)

    terms_and_conditions = Column(Text, nullable=True)
    cancellation_clause = Column(Text, nullable=True)
    confidentiality_clause = Column(Text, nullable=True)
    intellectual_property_clause = Column(Text, nullable=True)

    status = Column(Enum(MOUStatus), nullable=False, default=MOUStatus.DRAFT)

    brand_approval_status = Column(Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    brand_approved_at = Column(DateTime, nullable=True)
    brand_approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    brand_rejection_reason = Column(Text, nullable=True)

    influencer_approval_status = Column(Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    influencer_approved_at = Column(DateTime, nullable=True)
    influencer_approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    influencer_rejection_reason = Column(Text, nullable=True)

    admin_approval_status = Column(Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    admin_approved_at = Column(DateTime, nullable=True)
    admin_approved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    admin_rejection_reason = Column(Text, nullable=True)

    rejected_at = Column(DateTime, nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    revision_notes = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class MOUApproval(Base):
    """Append-only log of every approval decision taken on an MOU."""
    __tablename__ = "mou_approvals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    mou_id = Column(Integer, ForeignKey("mous.id", ondelete="CASCADE"), index=True, nullable=False)
    approver_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approver_role = Column(String(16), nullable=False)
    status = Column(Enum(ApprovalStatus), nullable=False)
    comments = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class MOUAmendment(Base):
    __tablename__ = "mou_amendments"
    __table_args__ = (
        UniqueConstraint("mou_id", "amendment_number", name="uq_mou_amendment_number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    mou_id = Column(Integer, ForeignKey("mous.id", ondelete="CASCADE"), index=True, nullable=False)
    amendment_number = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    changed_fields = Column(JSON, nullable=True)
    effective_date = Column(DateTime, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class MOUTemplate(Base):
    __tablename__ = "mou_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    terms_and_conditions = Column(Text, nullable=True)
    cancellation_clause = Column(Text, nullable=True)
    confidentiality_clause = Column(Text, nullable=True)
    intellectual_property_clause = Column(Text, nullable=True)
    payment_terms_template = Column(Text, nullable=True)
    minimum_budget = Column(Numeric(16, 2), nullable=True)
    applicable_platforms = Column(JSON, nullable=True)  # [platform name]
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
