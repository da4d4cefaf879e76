"""Admin session check for the matching endpoint.

Sessions are issued elsewhere (admin login); this module only verifies the
signed ``token_admin`` cookie and the role it carries.
"""
from __future__ import annotations

from dataclasses import dataclass

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from talentnest.config import get_env
from talentnest.log import get_logger

log = get_logger(__name__)

ADMIN_COOKIE = "token_admin"
ADMIN_ROLES: tuple[str, ...] = ("SuperAdmin", "Admin")
SESSION_MAX_AGE = 60 * 60 * 8


class AuthError(Exception):
    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class AdminSession:
    admin_id: str
    role: str

    @property
    def is_super_admin(self) -> bool:
        return self.role == "SuperAdmin"


def signing_key(secret: str | None = None) -> str:
    """*secret*, else ``ADMIN_SECRET_KEY``; there is no built-in fallback."""
    key = secret or get_env("ADMIN_SECRET_KEY")
    if not key:
        raise RuntimeError("ADMIN_SECRET_KEY is not configured; refusing to sign or verify admin sessions")
    return key


def _serializer(secret: str | None = None) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(signing_key(secret), salt="admin-session")


def issue_admin_token(admin_id: str, role: str, secret: str | None = None) -> str:
    return _serializer(secret).dumps({"admin_id": admin_id, "role": role})


def verify_admin_token(
    token: str | None,
    required_roles: tuple[str, ...] = ADMIN_ROLES,
    *,
    secret: str | None = None,
    max_age: int = SESSION_MAX_AGE,
) -> AdminSession:
    if not token:
        raise AuthError("Authentication required")
    try:
        data = _serializer(secret).loads(token, max_age=max_age)
    except SignatureExpired:
        raise AuthError("Session expired. Please log in again.")
    except BadSignature:
        log.warning("Rejected admin token with bad signature")
        raise AuthError("Invalid token.")

    session = AdminSession(admin_id=str(data.get("admin_id", "")), role=str(data.get("role", "")))
    if required_roles and session.role not in required_roles:
        raise AuthError("Forbidden: Access is denied", status_code=403)
    return session
