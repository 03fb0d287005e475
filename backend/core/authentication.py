# backend/core/authentication.py
"""
Admin session handling.

The admin surface is protected by a single shared password. A successful
login sets the ``admin-session`` cookie, signed with ``django.core.signing``
so it cannot be forged without SECRET_KEY. This is a minimal-trust scheme:
there is no per-user identity, no server-side revocation and no audit trail.
Rotating SECRET_KEY (or ADMIN_SESSION_SALT) is the only way to invalidate
issued sessions early.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.utils import timezone
from django.utils.crypto import constant_time_compare

from .exceptions import Unauthorized

logger = logging.getLogger(__name__)

SESSION_SUBJECT = "admin"


@dataclass(frozen=True)
class AdminSession:
    subject: str
    issued_at: str = ""


@dataclass(frozen=True)
class AdminContext:
    """
    Request-scoped view of the admin session. Built once per request and
    passed explicitly into every write operation.
    """
    session: Optional[AdminSession] = None

    @property
    def is_admin(self) -> bool:
        return self.session is not None

    def require_admin(self) -> AdminSession:
        if self.session is None:
            raise Unauthorized()
        return self.session

    @classmethod
    def from_request(cls, request) -> "AdminContext":
        return cls(session=read_admin_session(request))

    @classmethod
    def anonymous(cls) -> "AdminContext":
        return cls()

    @classmethod
    def trusted(cls, subject=SESSION_SUBJECT) -> "AdminContext":
        """Context for management commands and other in-process callers."""
        return cls(session=AdminSession(subject=subject))


def read_admin_session(request) -> Optional[AdminSession]:
    value = request.get_signed_cookie(
        settings.ADMIN_SESSION_COOKIE,
        default=None,
        salt=settings.ADMIN_SESSION_SALT,
        max_age=settings.ADMIN_SESSION_MAX_AGE,
    )
    if not value:
        return None
    subject, _, issued_at = value.partition("|")
    if subject != SESSION_SUBJECT:
        return None
    return AdminSession(subject=subject, issued_at=issued_at)


def check_admin_password(candidate) -> bool:
    expected = settings.ADMIN_PASSWORD
    if not expected:
        # no password configured: admin login is disabled
        logger.warning("ADMIN_PASSWORD is not set; refusing admin login")
        return False
    return constant_time_compare(str(candidate or ""), expected)


def start_admin_session(response):
    response.set_signed_cookie(
        settings.ADMIN_SESSION_COOKIE,
        f"{SESSION_SUBJECT}|{timezone.now().isoformat()}",
        salt=settings.ADMIN_SESSION_SALT,
        max_age=settings.ADMIN_SESSION_MAX_AGE,
        httponly=True,
        secure=not settings.DEBUG,
        samesite="Strict",
    )
    return response


def end_admin_session(response):
    response.delete_cookie(settings.ADMIN_SESSION_COOKIE, samesite="Strict")
    return response
