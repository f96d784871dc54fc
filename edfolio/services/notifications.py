"""
Share notification emails.

Messages are rendered from the Jinja2 templates in edfolio/templates/email.
Only "console" delivery ships with the API: the rendered message is written
to the log. A real transport plugs in by overriding `deliver`.

A failed notification never fails the share operation that triggered it;
it is logged and reported through the boolean return value.
"""
import logging
from datetime import datetime
from typing import Optional

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from edfolio.core.config import settings
from edfolio.models.page_share import SharePermission

logger = logging.getLogger(__name__)

SHARE_INVITATION = "share_invitation"
PERMISSION_CHANGED = "permission_changed"
ACCESS_REVOKED = "access_revoked"
SHARE_EXPIRED = "share_expired"


def _permission_label(permission: str) -> str:
    return "Can Edit" if permission == SharePermission.EDIT.value else "Can View"


class Notifier:
    """Renders and delivers the emails sent to share invitees."""

    def __init__(self, environment: Optional[Environment] = None, from_address: Optional[str] = None):
        self.environment = environment or Environment(
            loader=PackageLoader("edfolio", "templates/email"),
            autoescape=select_autoescape(["html"]),
        )
        self.from_address = from_address or settings.email_from

    def deliver(self, kind: str, to_email: str, subject: str, body: str) -> None:
        logger.info(
            "EMAIL (%s) [%s] to=%s from=%s subject=%r\n%s",
            settings.EMAIL_SERVICE, kind, to_email, self.from_address, subject, body[:500],
        )

    def _send(self, kind: str, to_email: str, subject: str, **context) -> bool:
        try:
            body = self.environment.get_template(f"{kind}.html").render(**context)
            self.deliver(kind, to_email, subject, body)
        except (TemplateError, OSError):
            logger.exception("Failed to send %s email to %s", kind, to_email)
            return False
        return True

    def send_share_invitation(
        self,
        *,
        to_email: str,
        from_user_name: str,
        page_title: str,
        access_link: str,
        permission: str,
        expires_at: Optional[datetime] = None,
    ) -> bool:
        return self._send(
            SHARE_INVITATION,
            to_email,
            f'{from_user_name} shared "{page_title}" with you',
            sender_name=from_user_name,
            page_title=page_title,
            access_link=access_link,
            permission=_permission_label(permission),
            is_edit_permission=permission == SharePermission.EDIT.value,
            expiry_date=expires_at.strftime("%d %B %Y") if expires_at else None,
        )

    def send_permission_changed(
        self,
        *,
        to_email: str,
        page_title: str,
        old_permission: str,
        new_permission: str,
        page_link: str,
    ) -> bool:
        return self._send(
            PERMISSION_CHANGED,
            to_email,
            f'Your permissions changed for "{page_title}"',
            page_title=page_title,
            old_permission=_permission_label(old_permission),
            new_permission=_permission_label(new_permission),
            page_link=page_link,
        )

    def send_access_revoked(self, *, to_email: str, page_title: str, revoked_by: str) -> bool:
        return self._send(
            ACCESS_REVOKED,
            to_email,
            f'Access removed for "{page_title}"',
            page_title=page_title,
            revoked_by=revoked_by,
        )

    def send_expiry_notice(self, *, to_email: str, page_title: str) -> bool:
        return self._send(
            SHARE_EXPIRED,
            to_email,
            f'Your access to "{page_title}" has expired',
            page_title=page_title,
        )


default_notifier = Notifier()
