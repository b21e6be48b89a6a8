"""
Location-gated login decision.

Evaluation order (first match wins):
  1. identity store rejects the password    → Rejected(INVALID_CREDENTIALS)
  2. no profile for the identity            → Rejected(PROFILE_NOT_FOUND)
  3. ADMIN                                  → Granted (address never consulted)
  4. CS, address in allowed_ips             → Granted
  5. CS, address unknown                    → Deferred(request_id), reusing any PENDING
                                              request for the same (profile, address)
  6. any other role                         → Rejected(UNKNOWN_ROLE)

Authentication (who you are) and the address gate (where you may connect
from) are separate stages: the identity store has already minted a session
by the time step 5 runs, and Deferred deliberately carries none of it.
"""

import enum
from dataclasses import dataclass
from typing import Union

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fmf.services.access import registry
from fmf.services.shared.errors import StorageUnavailable
from fmf.services.shared.identity import AuthSession, AuthUser, IdentityStore
from fmf.services.shared.models import Profile, StaffRole

logger = structlog.get_logger()


class RejectReason(enum.Enum):
    INVALID_CREDENTIALS = (401, "Invalid credentials")
    PROFILE_NOT_FOUND   = (404, "Profile not found")
    UNKNOWN_ROLE        = (403, "Invalid user role")

    @property
    def status_code(self) -> int:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


@dataclass(frozen=True)
class Granted:
    user: AuthUser
    profile: Profile
    session: AuthSession


@dataclass(frozen=True)
class Deferred:
    request_id: str
    created: bool = False


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason


LoginOutcome = Union[Granted, Deferred, Rejected]


def _parse_role(value: str) -> StaffRole | None:
    try:
        return StaffRole(value)
    except ValueError:
        return None


def attempt_login(
    db: Session,
    identity: IdentityStore,
    email: str,
    password: str,
    client_address: str,
) -> LoginOutcome:
    auth = identity.sign_in(email, password)
    if auth is None:
        logger.info("secure_login_rejected", reason="invalid_credentials")
        return Rejected(RejectReason.INVALID_CREDENTIALS)

    profile = db.query(Profile).filter_by(id=auth.user.id).first()
    if profile is None:
        logger.warning("secure_login_rejected", reason="profile_not_found", user_id=auth.user.id)
        return Rejected(RejectReason.PROFILE_NOT_FOUND)

    role = _parse_role(profile.role)

    if role == StaffRole.ADMIN:
        logger.info("secure_login_granted", profile_id=profile.id, role=role.value, ip_address=client_address)
        return Granted(user=auth.user, profile=profile, session=auth.session)

    if role == StaffRole.CS:
        if registry.is_allowed(db, client_address):
            logger.info("secure_login_granted", profile_id=profile.id, role=role.value, ip_address=client_address)
            return Granted(user=auth.user, profile=profile, session=auth.session)

        try:
            req, created = registry.get_or_create_pending(db, profile.id, client_address)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("access_request_create_failed", profile_id=profile.id, error=str(exc))
            raise StorageUnavailable("Failed to create access request") from exc

        if created:
            logger.info("access_request_created", request_id=req.id, profile_id=profile.id, ip_address=client_address)
        logger.info("secure_login_deferred", request_id=req.id, profile_id=profile.id, ip_address=client_address)
        return Deferred(request_id=req.id, created=created)

    logger.warning("secure_login_rejected", reason="unknown_role", profile_id=profile.id, role=profile.role)
    return Rejected(RejectReason.UNKNOWN_ROLE)
