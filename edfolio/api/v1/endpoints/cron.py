"""
Cron Endpoints Module

Scheduled jobs triggered over HTTP by the hosting platform's cron. Callers
authenticate with "Authorization: Bearer <CRON_SECRET>"; without a configured
secret the endpoints are only open in development.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlmodel import Session

from edfolio.api import deps
from edfolio.core.config import settings
from edfolio.core.time import utcnow
from edfolio.db.session import get_db
from edfolio.services.notifications import Notifier
from edfolio.services.share_expiry import expire_shares

logger = logging.getLogger(__name__)

router = APIRouter()


def verify_cron_secret(authorization: Optional[str] = Header(default=None)) -> None:
    if not settings.CRON_SECRET:
        if settings.is_development:
            return
        logger.error("CRON_SECRET not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")

    if authorization != f"Bearer {settings.CRON_SECRET}":
        logger.warning("Rejected cron call with invalid secret")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/expire-shares", dependencies=[Depends(verify_cron_secret)])
def run_share_expiry(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(deps.get_notifier),
):
    """Revoke every active share whose expiry date has passed."""
    expired = expire_shares(db, notifier)
    return {"success": True, "expired": expired, "timestamp": utcnow().isoformat()}
