"""
Tests for the scheduled Celery jobs, called synchronously against the
test session.
"""
from datetime import datetime, timedelta

import pytest

from gayatri.models.campaign import CampaignStatus, InvitationStatus
from gayatri.models.platform import InfluencerPlatformMetric, SnapshotPhase
from gayatri.services import jobs


class _Session:
    """Hands the test session to a job without letting the job close it."""

    def __init__(self, db):
        self._db = db

    def __getattr__(self, name):
        return getattr(self._db, name)

    def close(self):
        pass


@pytest.fixture
def job_session(db, monkeypatch):
    monkeypatch.setattr(jobs, "SessionLocal", lambda: _Session(db))
    return db


class TestExpireCampaignsJob:
    def test_completes_expired_campaigns(self, job_session, make):
        start = datetime.utcnow() - timedelta(days=10)
        campaign = make.campaign(
            make.brand(), status=CampaignStatus.ACTIVE, start=start, end=start + timedelta(days=5)
        )

        result = jobs.expire_campaigns()

        assert result["campaign_ids"] == [campaign.id]
        job_session.refresh(campaign)
        assert campaign.status == CampaignStatus.COMPLETED

    def test_failure_rolls_back_and_reraises(self, job_session, monkeypatch):
        def boom(db):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(jobs, "update_expired_campaigns", boom)

        with pytest.raises(RuntimeError):
            jobs.expire_campaigns()


class TestSnapshotJob:
    def test_periodic_snapshots_for_active_campaigns(self, job_session, make):
        _, influencer = make.influencer()
        make.connection(influencer, make.platform())
        campaign = make.campaign(make.brand(), status=CampaignStatus.ACTIVE)
        make.invitation(campaign, influencer, InvitationStatus.ACTIVE)

        assert jobs.capture_active_campaign_snapshots() == 1

        snapshot = job_session.query(InfluencerPlatformMetric).one()
        assert snapshot.phase == SnapshotPhase.PERIODIC
        assert snapshot.campaign_id == campaign.id
