from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from ..core.celery_app import celery_app
from ..core.db import SessionLocal
from ..models.platform import SnapshotPhase
from .campaigns import update_expired_campaigns
from .metrics import capture_and_create_snapshots

logger = logging.getLogger(__name__)


@celery_app.task(name="gayatri.services.jobs.expire_campaigns")
def expire_campaigns() -> Dict[str, Any]:
    """
    Daily job:
    - ACTIVE campaigns past their end date -> COMPLETED (final snapshots,
      invitations closed, brand notified)
    - signed MOUs past their expiry date -> EXPIRED
    """
    db: Session = SessionLocal()
    try:
        result = update_expired_campaigns(db)
        logger.info(
            "Expired %s campaigns and %s MOUs",
            result["updated"],
            result["expired_mous"],
            extra={"step": "expire_campaigns"},
        )
        return result
    except Exception:
        db.rollback()
        logger.exception(
            "Error during expire_campaigns",
            extra={"step": "expire_campaigns"},
        )
        raise
    finally:
        db.close()


@celery_app.task(name="gayatri.services.jobs.capture_active_campaign_snapshots")
def capture_active_campaign_snapshots() -> int:
    """Daily PERIODIC snapshot of every participant of every ACTIVE campaign."""
    db: Session = SessionLocal()
    try:
        created = capture_and_create_snapshots(db, phase=SnapshotPhase.PERIODIC)
        db.commit()
        logger.info(
            "Captured %s periodic snapshots",
            created,
            extra={"step": "snapshot:periodic"},
        )
        return created
    except Exception:
        db.rollback()
        logger.exception(
            "Error during capture_active_campaign_snapshots",
            extra={"step": "snapshot:periodic"},
        )
        raise
    finally:
        db.close()
