"""
Point-in-time snapshots of influencer platform metrics and the growth
figures derived from them.

Snapshots are taken when a campaign starts (BASELINE), daily while it runs
(PERIODIC) and when it ends (FINAL). Growth for a platform is the difference
between its earliest and latest snapshot in the requested window.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..models.campaign import Campaign, CampaignInvitation, CampaignStatus, InvitationStatus
from ..models.platform import (
    InfluencerPlatform,
    InfluencerPlatformMetric,
    Platform,
    SnapshotPhase,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_MESSAGE = "Insufficient data for growth calculation"


def _snapshot_from(connection: InfluencerPlatform, campaign_id: int | None,
                   phase: SnapshotPhase, now: datetime) -> InfluencerPlatformMetric:
    return InfluencerPlatformMetric(
        influencer_platform_id=connection.id,
        campaign_id=campaign_id,
        phase=phase,
        followers=connection.followers or 0,
        posts=connection.posts or 0,
        likes=connection.likes or 0,
        comments=connection.comments or 0,
        shares=connection.shares or 0,
        saves=connection.saves or 0,
        engagement_rate=connection.engagement_rate or 0.0,
        recorded_at=now,
    )


def capture_and_create_snapshots(
    db: Session,
    campaign_id: int | None = None,
    phase: SnapshotPhase = SnapshotPhase.PERIODIC,
    now: datetime | None = None,
) -> int:
    """
    Record one snapshot per connected platform of every influencer with an
    ACTIVE invitation on the campaign. Without ``campaign_id`` every ACTIVE
    campaign is covered.

    Rows are added to the session; the caller commits. Returns the number of
    snapshots created.
    """
    now = now or datetime.utcnow()

    if campaign_id is not None:
        campaign_ids = [campaign_id]
    else:
        campaign_ids = [
            c.id
            for c in db.query(Campaign.id).filter(Campaign.status == CampaignStatus.ACTIVE).all()
        ]

    created = 0
    for cid in campaign_ids:
        influencer_ids = [
            row.influencer_id
            for row in db.query(CampaignInvitation.influencer_id)
            .filter(
                CampaignInvitation.campaign_id == cid,
                CampaignInvitation.status == InvitationStatus.ACTIVE,
            )
            .all()
        ]
        if not influencer_ids:
            continue

        connections = (
            db.query(InfluencerPlatform)
            .filter(InfluencerPlatform.influencer_id.in_(influencer_ids))
            .all()
        )
        for connection in connections:
            db.add(_snapshot_from(connection, cid, phase, now))
            created += 1

        logger.info(
            "Captured %s metric snapshots",
            len(connections),
            extra={"campaign_id": cid, "step": f"snapshot:{phase.value.lower()}"},
        )

    db.flush()
    return created


def _growth_between(first: InfluencerPlatformMetric, last: InfluencerPlatformMetric) -> Dict[str, Any]:
    followers_delta = (last.followers or 0) - (first.followers or 0)
    if first.followers:
        followers_percent = round(followers_delta / first.followers * 100, 2)
    else:
        followers_percent = 0
    return {
        "followers": followers_delta,
        "followers_percent": followers_percent,
        "likes": (last.likes or 0) - (first.likes or 0),
        "comments": (last.comments or 0) - (first.comments or 0),
        "engagement": round((last.engagement_rate or 0) - (first.engagement_rate or 0), 2),
        "period": {"start": first.recorded_at, "end": last.recorded_at},
    }


def growth_metrics(
    db: Session,
    influencer_id: int,
    campaign_id: int | None = None,
) -> List[Dict[str, Any]]:
    """Per-platform growth for an influencer, optionally within one campaign."""
    q = (
        db.query(InfluencerPlatformMetric, InfluencerPlatform, Platform)
        .join(InfluencerPlatform, InfluencerPlatform.id == InfluencerPlatformMetric.influencer_platform_id)
        .join(Platform, Platform.id == InfluencerPlatform.platform_id)
        .filter(InfluencerPlatform.influencer_id == influencer_id)
    )
    if campaign_id is not None:
        q = q.filter(InfluencerPlatformMetric.campaign_id == campaign_id)

    rows = q.order_by(
        InfluencerPlatformMetric.recorded_at.asc(), InfluencerPlatformMetric.id.asc()
    ).all()

    grouped: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for metric, connection, platform in rows:
        bucket = grouped.setdefault(
            platform.name,
            {"platform": platform.name, "influencer_platform_id": connection.id, "snapshots": []},
        )
        bucket["snapshots"].append(metric)

    out: List[Dict[str, Any]] = []
    for name, bucket in grouped.items():
        snapshots = bucket["snapshots"]
        entry: Dict[str, Any] = {
            "platform": name,
            "influencer_platform_id": bucket["influencer_platform_id"],
            "snapshot_count": len(snapshots),
        }
        if len(snapshots) < 2:
            entry["growth"] = None
            entry["message"] = INSUFFICIENT_DATA_MESSAGE
        else:
            entry["growth"] = _growth_between(snapshots[0], snapshots[-1])
        out.append(entry)
    return out


def campaign_performance_summary(
    db: Session, influencer_id: int, campaign_id: int
) -> List[Dict[str, Any]]:
    growth_by_platform = {g["platform"]: g for g in growth_metrics(db, influencer_id, campaign_id)}

    connections = (
        db.query(InfluencerPlatform, Platform)
        .join(Platform, Platform.id == InfluencerPlatform.platform_id)
        .filter(InfluencerPlatform.influencer_id == influencer_id)
        .all()
    )
    summary: List[Dict[str, Any]] = []
    for connection, platform in connections:
        growth = growth_by_platform.get(platform.name)
        summary.append(
            {
                "platform": platform.name,
                "total_metrics": growth["snapshot_count"] if growth else 0,
                "growth": growth["growth"] if growth else None,
                "current": {
                    "followers": connection.followers,
                    "posts": connection.posts,
                    "engagement_rate": connection.engagement_rate,
                    "last_synced": connection.last_synced,
                },
            }
        )
    return summary


def top_platforms(db: Session, influencer_id: int, limit: int = 5) -> List[Dict[str, Any]]:
    rows = (
        db.query(InfluencerPlatform, Platform)
        .join(Platform, Platform.id == InfluencerPlatform.platform_id)
        .filter(InfluencerPlatform.influencer_id == influencer_id)
        .order_by(
            InfluencerPlatform.followers.desc(),
            InfluencerPlatform.engagement_rate.desc(),
        )
        .limit(limit)
        .all()
    )
    return [
        {
            "influencer_platform_id": connection.id,
            "platform": platform.name,
            "username": connection.username,
            "followers": connection.followers,
            "engagement_rate": connection.engagement_rate,
        }
        for connection, platform in rows
    ]


def campaign_metrics(db: Session, campaign_id: int) -> Dict[str, Any]:
    """Response rate over invitations plus growth summed over participants."""
    invitations = (
        db.query(CampaignInvitation)
        .filter(CampaignInvitation.campaign_id == campaign_id)
        .all()
    )
    total = len(invitations)
    responded = sum(1 for inv in invitations if inv.status != InvitationStatus.PENDING)
    accepted = sum(
        1
        for inv in invitations
        if inv.status in (InvitationStatus.ACTIVE, InvitationStatus.COMPLETED)
    )
    response_rate = round(responded / total * 100, 2) if total else 0

    follower_growth = 0
    engagement_growth = 0.0
    participants: List[Dict[str, Any]] = []
    for inv in invitations:
        if inv.status not in (InvitationStatus.ACTIVE, InvitationStatus.COMPLETED):
            continue
        growth = growth_metrics(db, inv.influencer_id, campaign_id)
        for g in growth:
            if g["growth"]:
                follower_growth += g["growth"]["followers"]
                engagement_growth += g["growth"]["engagement"]
        participants.append({"influencer_id": inv.influencer_id, "platforms": growth})

    return {
        "campaign_id": campaign_id,
        "total_invitations": total,
        "responded": responded,
        "accepted": accepted,
        "response_rate": response_rate,
        "follower_growth": follower_growth,
        "engagement_growth": round(engagement_growth, 2),
        "participants": participants,
    }

