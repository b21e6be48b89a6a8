"""
Staff bearer authentication
---------------------------
Provides the `get_current_profile` / `require_admin` FastAPI dependencies used
by the admin endpoints.

  - Authorization: Bearer <access_token> header is required
  - the token is resolved through the identity store to a user id
  - the profile is DERIVED from that user id (cannot be spoofed by the body)
  - missing header → 401 "Authorization required"
  - unknown / expired / revoked token → 401 "Invalid authentication"
  - require_admin additionally → 403 "Admin access required" for non-ADMIN profiles

Usage in a FastAPI route:
    from fmf.services.shared.auth import require_admin

    @router.post("/resolve-access-request")
    def resolve(body: ResolveBody, admin: Profile = Depends(require_admin), db=Depends(get_db)):
        ...
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from fmf.services.shared.database import get_db
from fmf.services.shared.errors import Forbidden, Unauthenticated
from fmf.services.shared.identity import DatabaseIdentityStore, IdentityStore
from fmf.services.shared.models import Profile, StaffRole


def has_role(profile: Optional[Profile], required: StaffRole) -> bool:
    """ADMIN satisfies every requirement; CS satisfies only CS."""
    if profile is None:
        return False
    if required == StaffRole.CS:
        return profile.role in (StaffRole.ADMIN.value, StaffRole.CS.value)
    return profile.role == required.value


def get_identity_store(db: Session = Depends(get_db)) -> IdentityStore:
    return DatabaseIdentityStore(db)


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise Unauthenticated("Authorization required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated()
    return token.strip()


def get_current_profile(
    token: str = Depends(bearer_token),
    identity: IdentityStore = Depends(get_identity_store),
    db: Session = Depends(get_db),
) -> Profile:
    user_id = identity.resolve_session(token)
    if user_id is None:
        raise Unauthenticated()
    profile = db.query(Profile).filter_by(id=user_id).first()
    if profile is None:
        # Authenticated but unprovisioned: treated like a non-admin.
        raise Forbidden()
    return profile


def require_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if not has_role(profile, StaffRole.ADMIN):
        raise Forbidden()
    return profile
