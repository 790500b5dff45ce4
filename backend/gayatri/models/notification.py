from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON, Enum, ForeignKey
from datetime import datetime
import enum
from ..core.db import Base

class NotificationType(str, enum.Enum):
    ROLE_UPDATE = "ROLE_UPDATE"
    INVITATION = "INVITATION"
    CAMPAIGN_APPROVAL = "CAMPAIGN_APPROVAL"
    CAMPAIGN_REJECTION = "CAMPAIGN_REJECTION"
    SYSTEM = "SYSTEM"

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationType), nullable=False, default=NotificationType.SYSTEM)
    data = Column(JSON, nullable=True)  # {campaignId, mouId, invitationId, action}
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
