"""
Test setup: an in-memory SQLite database per test, plain factories for the
core rows and a FastAPI client wired to the same session.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6399/0")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gayatri.core.db import Base, get_db
from gayatri.core.security import create_access_token, hash_password
import gayatri.models  # noqa: F401  (registers every table on Base.metadata)
from gayatri.models.brand import Brand
from gayatri.models.campaign import (
    Campaign,
    CampaignInvitation,
    CampaignStatus,
    CampaignType,
    InvitationStatus,
)
from gayatri.models.influencer import Influencer
from gayatri.models.platform import InfluencerPlatform, Platform, Service
from gayatri.models.user import User, UserRole

PASSWORD = "correct-horse"
# bcrypt is slow on purpose; hash once for every factory user
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own; let SQLAlchemy emit it so SAVEPOINTs nest
    @event.listens_for(engine, "connect")
    def _no_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient

    from gayatri.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.role.value if user.role else None)
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class Factory:
    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def user(self, role: UserRole | None = UserRole.BRAND, name: str | None = None) -> User:
        n = self._next()
        user = User(
            name=name or f"User {n}",
            email=f"user{n}@example.com",
            password_hash=PASSWORD_HASH,
            role=role,
        )
        self.db.add(user)
        self.db.flush()
        if role == UserRole.INFLUENCER:
            self.db.add(Influencer(user_id=user.id))
        self.db.commit()
        self.db.refresh(user)
        return user

    def admin(self) -> User:
        return self.user(UserRole.ADMIN, name="Admin")

    def influencer(self, name: str | None = None) -> tuple[User, Influencer]:
        user = self.user(UserRole.INFLUENCER, name=name)
        influencer = self.db.query(Influencer).filter(Influencer.user_id == user.id).one()
        return user, influencer

    def brand(self, owner: User | None = None, name: str = "Acme Cosmetics") -> Brand:
        owner = owner or self.user(UserRole.BRAND)
        brand = Brand(name=name, user_id=owner.id)
        self.db.add(brand)
        self.db.commit()
        self.db.refresh(brand)
        return brand

    def campaign(
        self,
        brand: Brand,
        type: CampaignType = CampaignType.SELF_SERVICE,
        status: CampaignStatus = CampaignStatus.PENDING,
        start: datetime | None = None,
        end: datetime | None = None,
        mou_required: bool = True,
        budget: float = 5_000_000,
    ) -> Campaign:
        start = start or datetime.utcnow() - timedelta(days=1)
        campaign = Campaign(
            name=f"Campaign {self._next()}",
            goal="Launch the new serum",
            type=type,
            status=status,
            brand_id=brand.id,
            start_date=start,
            end_date=end or start + timedelta(days=30),
            mou_required=mou_required,
            direct_data={"budget": budget, "platformSelections": []}
            if type == CampaignType.DIRECT
            else None,
            self_service_data={"budget": budget} if type == CampaignType.SELF_SERVICE else None,
        )
        self.db.add(campaign)
        self.db.commit()
        self.db.refresh(campaign)
        return campaign

    def invitation(
        self,
        campaign: Campaign,
        influencer: Influencer,
        status: InvitationStatus = InvitationStatus.PENDING,
    ) -> CampaignInvitation:
        invitation = CampaignInvitation(
            campaign_id=campaign.id,
            influencer_id=influencer.id,
            brand_id=campaign.brand_id,
            status=status,
        )
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)
        return invitation

    def platform(self, name: str = "TikTok", services: tuple = ("Feed Post",)) -> Platform:
        platform = Platform(name=name)
        self.db.add(platform)
        self.db.flush()
        for service_name in services:
            self.db.add(Service(platform_id=platform.id, name=service_name))
        self.db.commit()
        self.db.refresh(platform)
        return platform

    def connection(
        self,
        influencer: Influencer,
        platform: Platform,
        followers: int = 10_000,
        engagement_rate: float = 3.0,
        **fields,
    ) -> InfluencerPlatform:
        connection = InfluencerPlatform(
            influencer_id=influencer.id,
            platform_id=platform.id,
            username=f"creator{influencer.id}",
            followers=followers,
            engagement_rate=engagement_rate,
            access_token="access-token",
            refresh_token="refresh-token",
            **fields,
        )
        self.db.add(connection)
        self.db.commit()
        self.db.refresh(connection)
        return connection


@pytest.fixture
def make(db):
    return Factory(db)
