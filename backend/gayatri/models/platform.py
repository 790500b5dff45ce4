"""
Social platforms, the services sold on them and influencer connections.

An InfluencerPlatform row is the live, most recently synced view of one
influencer account. InfluencerPlatformMetric rows are immutable snapshots of
that view taken at campaign milestones; growth is always computed from two
snapshots, never from the live row.
"""
from sqlalchemy import (
    Column,
    Integer,
    BigInteger,
    String,
    Text,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Enum,
    UniqueConstraint,
    Index,
)
from datetime import datetime
import enum
from ..core.db import Base


class Platform(Base):
    __tablename__ = "platforms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, unique=True, nullable=False)  # "TikTok", "Instagram", ...
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        UniqueConstraint("platform_id", "name", name="uq_service_platform_name"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform_id = Column(Integer, ForeignKey("platforms.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(32), nullable=False, default="post")  # post, story, live, ...
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class InfluencerPlatform(Base):
    __tablename__ = "influencer_platforms"
    __table_args__ = (
        UniqueConstraint("influencer_id", "platform_id", name="uq_influencer_platform"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    influencer_id = Column(Integer, ForeignKey("influencers.id", ondelete="CASCADE"), index=True, nullable=False)
    platform_id = Column(Integer, ForeignKey("platforms.id", ondelete="CASCADE"), nullable=False)

    username = Column(String, nullable=True)
    open_id = Column(String, nullable=True)     # TikTok account id
    ig_user_id = Column(String, nullable=True)  # Instagram account id

    followers = Column(BigInteger, default=0, nullable=False)
    following = Column(BigInteger, default=0, nullable=False)
    posts = Column(Integer, default=0, nullable=False)
    likes = Column(BigInteger, default=0, nullable=False)
    comments = Column(BigInteger, default=0, nullable=False)
    shares = Column(BigInteger, default=0, nullable=False)
    saves = Column(BigInteger, default=0, nullable=False)
    engagement_rate = Column(Float, default=0.0, nullable=False)  # percent

    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)
    last_synced = Column(DateTime, nullable=True)
    platform_data = Column(JSON, nullable=True)  # {bio, avatarUrl, displayName, isVerified, ...}

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SnapshotPhase(str, enum.Enum):
    BASELINE = "BASELINE"
    PERIODIC = "PERIODIC"
    FINAL = "FINAL"


class InfluencerPlatformMetric(Base):
    __tablename__ = "influencer_platform_metrics"
    __table_args__ = (
        Index("ix_metric_platform_recorded", "influencer_platform_id", "recorded_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    influencer_platform_id = Column(
        Integer, ForeignKey("influencer_platforms.id", ondelete="CASCADE"), nullable=False
    )
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="SET NULL"), index=True, nullable=True)
    phase = Column(Enum(SnapshotPhase), nullable=False, default=SnapshotPhase.PERIODIC)

    followers = Column(BigInteger, default=0, nullable=False)
    posts = Column(Integer, default=0, nullable=False)
    likes = Column(BigInteger, default=0, nullable=False)
    comments = Column(BigInteger, default=0, nullable=False)
    shares = Column(BigInteger, default=0, nullable=False)
    saves = Column(BigInteger, default=0, nullable=False)
    engagement_rate = Column(Float, default=0.0, nullable=False)
    recorded_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class RateCard(Base):
    __tablename__ = "rate_cards"
    __table_args__ = (
        UniqueConstraint("influencer_platform_id", "service_id", name="uq_rate_card_service"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    influencer_platform_id = Column(
        Integer, ForeignKey("influencer_platforms.id", ondelete="CASCADE"), index=True, nullable=False
    )
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=True)
    price = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="IDR")
    is_auto_generated = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class OAuthState(Base):
    """Short-lived PKCE state for an in-flight platform authorization."""
    __tablename__ = "oauth_states"

    id = Column(Integer, primary_key=True, autoincrement=True)
    state = Column(String(64), unique=True, index=True, nullable=False)
    code_verifier = Column(String(128), nullable=True)  # Instagram basic display has no PKCE
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    provider = Column(String(32), nullable=False)  # "tiktok" | "instagram"
    redirect_uri = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
