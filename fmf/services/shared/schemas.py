"""
Pydantic request/response schemas for the access gate endpoints.
Field names follow the wire contract consumed by the dashboard front end.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from fmf.services.shared.models import AccessRequestStatus, ResolveAction


# ── Secure login ──────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    id: str
    email: str


class ProfileOut(BaseModel):
    id: str
    full_name: str
    role: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LoginGrantedOut(BaseModel):
    success: Literal[True] = True
    user: UserOut
    profile: ProfileOut
    session: SessionOut


class LoginPendingOut(BaseModel):
    # No user / profile / session here: their absence is what the UI keys on.
    success: Literal[False] = False
    status: Literal["PENDING_APPROVAL"] = "PENDING_APPROVAL"
    message: str = "Access request pending admin approval"
    request_id: str


class RequestStatusOut(BaseModel):
    status: AccessRequestStatus
    resolved_at: Optional[datetime] = None


# ── Approval ──────────────────────────────────────────────────────────────────

class ResolveRequestBody(BaseModel):
    # Validated by the resolver so malformed input maps to 400, not 422.
    request_id: Optional[str] = None
    action: Optional[str] = None


class ResolveOut(BaseModel):
    success: bool = True
    action: ResolveAction
    message: str


class AccessRequestOut(BaseModel):
    id: str
    profile_id: str
    ip_address: str
    status: AccessRequestStatus
    requested_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ── Allowed addresses ─────────────────────────────────────────────────────────

class AllowedIpCreate(BaseModel):
    ip_address: str = Field(..., min_length=1, examples=["203.0.113.10"])
    description: Optional[str] = None


class AllowedIpOut(BaseModel):
    id: str
    ip_address: str
    description: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
