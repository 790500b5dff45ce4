from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON, Enum, ForeignKey, UniqueConstraint
from datetime import datetime
import enum
from ..core.db import Base


class CampaignType(str, enum.Enum):
    DIRECT = "DIRECT"              # brief reviewed by an admin
    SELF_SERVICE = "SELF_SERVICE"  # brand invites influencers directly


class CampaignStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"


class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    goal = Column(Text, nullable=True)
    type = Column(Enum(CampaignType), nullable=False)
    status = Column(Enum(CampaignStatus), nullable=False, default=CampaignStatus.PENDING)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), index=True, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)

    # {budget, targetAudience, categories, platformSelections}
    direct_data = Column(JSON, nullable=True)
    # {influencerId, platformId, serviceId, ...}
    self_service_data = Column(JSON, nullable=True)

    mou_required = Column(Boolean, default=True, nullable=False)
    can_start_without_mou = Column(Boolean, default=False, nullable=False)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class CampaignInvitation(Base):
    __tablename__ = "campaign_invitations"
    __table_args__ = (
        UniqueConstraint("campaign_id", "influencer_id", name="uq_invitation_campaign_influencer"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), index=True, nullable=False)
    influencer_id = Column(Integer, ForeignKey("influencers.id", ondelete="CASCADE"), index=True, nullable=False)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(InvitationStatus), nullable=False, default=InvitationStatus.PENDING)
    message = Column(Text, nullable=True)
    response_message = Column(Text, nullable=True)
    responded_at = Column(DateTime, nullable=True)

    mou_creation_requested = Column(Boolean, default=False, nullable=False)
    mou_requested_at = Column(DateTime, nullable=True)
    mou_requested_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
