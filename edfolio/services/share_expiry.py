"""Scheduled revocation of shares whose expiry date has passed."""
import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from edfolio.core.time import utcnow
from edfolio.models.page_share import PageShare, ShareStatus
from edfolio.services.notifications import Notifier
from edfolio.services.shares import delete_share_collaborators

logger = logging.getLogger(__name__)


def expire_shares(db: Session, notifier: Notifier, now: Optional[datetime] = None) -> int:
    """
    Revoke every active share with expires_at in the past.

    Collaborator rows created from those shares are removed and each invitee
    gets an expiry notice once the changes are committed.

    Returns:
        int: number of shares revoked
    """
    now = now or utcnow()
    expired = db.exec(
        select(PageShare).where(
            PageShare.status == ShareStatus.ACTIVE.value,
            PageShare.expires_at.is_not(None),
            PageShare.expires_at < now,
        )
    ).all()

    if not expired:
        logger.info("No expired shares found")
        return 0

    notices = []
    for share in expired:
        notices.append((share.invited_email, share.page.note.title))
        share.mark_revoked()
        delete_share_collaborators(db, share)
        db.add(share)
    db.commit()
    logger.info("Expired %d shares", len(expired))

    for email, title in notices:
        notifier.send_expiry_notice(to_email=email, page_title=title)
    return len(expired)
