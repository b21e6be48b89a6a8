"""
Access registry: the allowed-address list and the access-request queue.

Both uniqueness invariants live in the database (see models.py); the helpers
here turn a constraint violation into the intended outcome instead of an
error:
  - add_allowed_ip:            duplicate address   → no-op, existing row returned
  - get_or_create_pending:     concurrent pending  → the winner's row is reused

Inserts run inside a SAVEPOINT so a violation only rolls back the one insert.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fmf.services.shared.models import AccessRequest, AccessRequestStatus, AllowedIp

logger = structlog.get_logger()


# ── Allowed addresses ──────────────────────────────────────────────────────────

def is_allowed(db: Session, ip_address: str) -> bool:
    return db.query(AllowedIp.id).filter(AllowedIp.ip_address == ip_address).first() is not None


def add_allowed_ip(
    db: Session,
    ip_address: str,
    description: Optional[str] = None,
    added_by: Optional[str] = None,
) -> AllowedIp:
    """Insert-if-absent. Returns whichever row holds the address afterwards."""
    try:
        with db.begin_nested():
            row = AllowedIp(ip_address=ip_address, description=description, created_by=added_by)
            db.add(row)
        db.commit()
        logger.info("allowed_ip_added", ip_address=ip_address, added_by=added_by)
        return row
    except IntegrityError:
        db.commit()
        logger.info("allowed_ip_already_listed", ip_address=ip_address)
        return db.query(AllowedIp).filter_by(ip_address=ip_address).one()


def list_allowed_ips(db: Session) -> list[AllowedIp]:
    return db.query(AllowedIp).order_by(AllowedIp.created_at.desc()).all()


# ── Access requests ────────────────────────────────────────────────────────────

def find_pending(db: Session, profile_id: str, ip_address: str) -> Optional[AccessRequest]:
    return (
        db.query(AccessRequest)
        .filter(
            AccessRequest.profile_id == profile_id,
            AccessRequest.ip_address == ip_address,
            AccessRequest.status == AccessRequestStatus.PENDING,
        )
        .first()
    )


def get_or_create_pending(db: Session, profile_id: str, ip_address: str) -> tuple[AccessRequest, bool]:
    """
    Return (request, created). Reuses the PENDING row for the pair if one
    exists; otherwise inserts one. A concurrent insert that wins the race is
    picked up through uq_access_requests_one_pending.
    """
    existing = find_pending(db, profile_id, ip_address)
    if existing is not None:
        return existing, False

    try:
        with db.begin_nested():
            req = AccessRequest(
                profile_id=profile_id,
                ip_address=ip_address,
                status=AccessRequestStatus.PENDING,
                requested_at=datetime.now(timezone.utc),
            )
            db.add(req)
        db.commit()
        db.refresh(req)
        return req, True
    except IntegrityError:
        db.commit()
        winner = find_pending(db, profile_id, ip_address)
        if winner is None:
            # Violation came from something other than the pending index.
            raise
        logger.info("access_request_race_collapsed", request_id=winner.id, profile_id=profile_id)
        return winner, False


def get_request(db: Session, request_id: str) -> Optional[AccessRequest]:
    return db.query(AccessRequest).filter_by(id=request_id).first()


def list_access_requests(
    db: Session,
    status: Optional[AccessRequestStatus] = None,
    limit: int = 100,
) -> list[AccessRequest]:
    q = db.query(AccessRequest)
    if status is not None:
        q = q.filter(AccessRequest.status == status)
    return q.order_by(AccessRequest.requested_at.desc()).limit(limit).all()
