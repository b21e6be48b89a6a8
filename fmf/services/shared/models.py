"""
FMF access gate SQLAlchemy ORM models - all data models in one file.
Uses SQLAlchemy 2.0 Mapped + mapped_column for full type-checker support.

Core registry:
  Profile, AllowedIp, AccessRequest

Identity store (credentials and sessions behind DatabaseIdentityStore):
  StaffCredential, StaffSession

Registry invariants (enforced by constraints, not application locks):
  allowed_ips.ip_address is unique             → approvals of one address collapse to one row
  at most one PENDING access_request per (profile_id, ip_address)
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean, DateTime, Enum as SAEnum, ForeignKey,
    Index, String, Text, text,
)
from sqlalchemy.orm import Mapped, mapped_column

from fmf.services.shared.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Enumerations ──────────────────────────────────────────────────────────────

class StaffRole(str, enum.Enum):
    ADMIN = "ADMIN"   # bypasses address gating, resolves access requests
    CS    = "CS"      # front-desk staff, address-gated


class AccessRequestStatus(str, enum.Enum):
    PENDING  = "PENDING"
    APPROVED = "APPROVED"
    DENIED   = "DENIED"


class ResolveAction(str, enum.Enum):
    APPROVE = "APPROVE"
    DENY    = "DENY"


# ── Staff Profiles ────────────────────────────────────────────────────────────

class Profile(Base):
    """
    Staff profile keyed by the identity handle issued by the identity store.
    Provisioned out-of-band (fmf/scripts/bootstrap_staff.py); read-only to the gate.

    role is a plain string column: a value outside StaffRole is reported by the
    login engine as an unknown role rather than failing when the row is loaded.
    """
    __tablename__ = "profiles"

    id:         Mapped[str]       = mapped_column(String(36), primary_key=True, default=_uuid)
    full_name:  Mapped[str]       = mapped_column(String(255), nullable=False)
    role:       Mapped[str]       = mapped_column(String(32), nullable=False, index=True)
    is_active:  Mapped[bool]      = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime]  = mapped_column(DateTime, default=_now)
    updated_at: Mapped[datetime]  = mapped_column(DateTime, default=_now, onupdate=_now)


# ── Location Control ──────────────────────────────────────────────────────────

class AllowedIp(Base):
    """
    A client address cleared for CS-role login.
    Created by the approval resolver or manually by an operator. Never mutated.
    """
    __tablename__ = "allowed_ips"

    id:          Mapped[str]            = mapped_column(String(36), primary_key=True, default=_uuid)
    ip_address:  Mapped[str]            = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]]  = mapped_column(Text, nullable=True)
    created_by:  Mapped[Optional[str]]  = mapped_column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at:  Mapped[datetime]       = mapped_column(DateTime, default=_now)


class AccessRequest(Base):
    """
    A CS login attempt from an address absent from allowed_ips.
    Created PENDING by the login engine; resolved exactly once by an ADMIN.
    """
    __tablename__ = "access_requests"

    id:           Mapped[str]                 = mapped_column(String(36), primary_key=True, default=_uuid)
    profile_id:   Mapped[str]                 = mapped_column(String(36), ForeignKey("profiles.id"), nullable=False)
    ip_address:   Mapped[str]                 = mapped_column(String(255), nullable=False)
    status:       Mapped[AccessRequestStatus] = mapped_column(
        SAEnum(AccessRequestStatus, name="access_request_status"),
        nullable=False,
        default=AccessRequestStatus.PENDING,
    )
    requested_at: Mapped[datetime]            = mapped_column(DateTime, default=_now, index=True)
    resolved_at:  Mapped[Optional[datetime]]  = mapped_column(DateTime, nullable=True)
    resolved_by:  Mapped[Optional[str]]       = mapped_column(String(36), ForeignKey("profiles.id"), nullable=True)

    __table_args__ = (
        Index("ix_access_requests_status", "status"),
        # Closes the check-then-insert race between two concurrent logins.
        Index(
            "uq_access_requests_one_pending",
            "profile_id", "ip_address",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )


# ── Identity Store ────────────────────────────────────────────────────────────

class StaffCredential(Base):
    """
    Email/password login for a staff member.
    Plain-text passwords are NEVER stored; only bcrypt hashes.
    id is the identity handle and equals the matching Profile.id.
    """
    __tablename__ = "staff_credentials"

    id:            Mapped[str]      = mapped_column(String(36), primary_key=True, default=_uuid)
    email:         Mapped[str]      = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str]      = mapped_column(String(255), nullable=False)
    created_at:    Mapped[datetime] = mapped_column(DateTime, default=_now)


class StaffSession(Base):
    """
    Bearer session minted on every successful password check.
    Only the sha256 of the token is stored.
    """
    __tablename__ = "staff_sessions"

    token_hash: Mapped[str]      = mapped_column(String(64), primary_key=True)
    user_id:    Mapped[str]      = mapped_column(String(36), ForeignKey("staff_credentials.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_now)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    revoked:    Mapped[bool]     = mapped_column(Boolean, default=False)
