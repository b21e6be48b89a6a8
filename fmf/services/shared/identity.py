"""
Identity store: email/password verification and bearer sessions.

The login engine only depends on the IdentityStore protocol:
  sign_in(email, password) -> AuthResult | None
  resolve_session(token)   -> user id | None

DatabaseIdentityStore is the bundled implementation. Passwords are bcrypt
hashed; session tokens are random, handed out once, and stored as sha256
digests so a leaked table does not leak live tokens.

Note: sign_in always mints a session when the password is correct. Whether
the caller is then allowed to USE it is an authorization decision made
elsewhere (the location gate), and a deferred CS login leaves its session
unused rather than revoked.
"""

import hashlib
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Optional, Protocol

import bcrypt
from sqlalchemy.orm import Session

from fmf.services.shared.models import Profile, StaffCredential, StaffRole, StaffSession

SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "12"))
BCRYPT_ROUNDS     = int(os.getenv("BCRYPT_ROUNDS", "12"))

# bcrypt only looks at the first 72 bytes; newer releases refuse anything longer.
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    token_type: str
    expires_at: datetime


@dataclass(frozen=True)
class AuthResult:
    user: AuthUser
    session: AuthSession


class IdentityStore(Protocol):
    def sign_in(self, email: str, password: str) -> Optional[AuthResult]: ...

    def resolve_session(self, token: str) -> Optional[str]: ...

    def sign_out(self, token: str) -> bool: ...


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class DatabaseIdentityStore:
    """IdentityStore backed by the staff_credentials / staff_sessions tables."""

    def __init__(self, db: Session, session_ttl: timedelta | None = None):
        self.db = db
        self.session_ttl = session_ttl or timedelta(hours=SESSION_TTL_HOURS)

    def sign_in(self, email: str, password: str) -> Optional[AuthResult]:
        if not email or not password:
            return None
        if len(password.encode()) > MAX_PASSWORD_BYTES:
            return None
        cred = self.db.query(StaffCredential).filter_by(email=email.strip().lower()).first()
        if cred is None:
            return None
        if not bcrypt.checkpw(password.encode(), cred.password_hash.encode()):
            return None

        token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + self.session_ttl
        self.db.add(StaffSession(
            token_hash=_token_digest(token),
            user_id=cred.id,
            expires_at=expires_at,
        ))
        self.db.commit()
        return AuthResult(
            user=AuthUser(id=cred.id, email=cred.email),
            session=AuthSession(access_token=token, token_type="bearer", expires_at=expires_at),
        )

    def resolve_session(self, token: str) -> Optional[str]:
        if not token:
            return None
        now = datetime.now(timezone.utc)
        row = (
            self.db.query(StaffSession)
            .filter(
                StaffSession.token_hash == _token_digest(token),
                StaffSession.revoked == False,  # noqa: E712
                StaffSession.expires_at > now,
            )
            .first()
        )
        return row.user_id if row else None

    def sign_out(self, token: str) -> bool:
        row = self.db.query(StaffSession).filter_by(token_hash=_token_digest(token)).first()
        if row is None or row.revoked:
            return False
        row.revoked = True
        self.db.commit()
        return True

    def create_staff(
        self,
        email: str,
        password: str,
        full_name: str,
        role: StaffRole,
    ) -> Profile:
        """Provision a credential and its profile under one identity handle."""
        role = StaffRole(role)
        cred = StaffCredential(email=email.strip().lower(), password_hash=hash_password(password))
        self.db.add(cred)
        self.db.flush()   # assigns cred.id
        profile = Profile(id=cred.id, full_name=full_name, role=role.value)
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)
        return profile
