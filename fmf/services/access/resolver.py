"""
Access request resolution and status polling.

Resolution lifecycle:
  PENDING → APPROVED   status stamped, then the address is added to allowed_ips
  PENDING → DENIED     status stamped, registry untouched
  APPROVED / DENIED    terminal; a second resolve is rejected, whatever the action,
                       including one that raced the first on a stale read

The status write is the ground truth. The allowed_ips write that follows an
approval is best-effort: a failure there is logged and the approval still
reports success; access takes effect once the address row lands.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fmf.services.access import registry
from fmf.services.shared.errors import AlreadyResolved, BadAction, Forbidden, NotFound, StorageUnavailable
from fmf.services.shared.models import AccessRequest, AccessRequestStatus, Profile, ResolveAction, StaffRole

logger = structlog.get_logger()

AUTO_APPROVE_DESCRIPTION = "Auto-approved for CS user access"


@dataclass(frozen=True)
class ResolveOutcome:
    success: bool
    action: ResolveAction

    @property
    def message(self) -> str:
        verb = "approved" if self.action == ResolveAction.APPROVE else "denied"
        return f"Access request {verb} successfully"


@dataclass(frozen=True)
class RequestStatus:
    status: AccessRequestStatus
    resolved_at: Optional[datetime]


def _parse_action(action) -> ResolveAction:
    try:
        return ResolveAction(action)
    except ValueError:
        raise BadAction() from None


def resolve_request(
    db: Session,
    request_id: Optional[str],
    action,
    resolver: Profile,
) -> ResolveOutcome:
    if resolver is None or resolver.role != StaffRole.ADMIN.value:
        raise Forbidden()
    resolver_id = resolver.id
    if not request_id:
        raise BadAction()
    act = _parse_action(action)

    req = registry.get_request(db, request_id)
    if req is None:
        raise NotFound()
    if req.status != AccessRequestStatus.PENDING:
        raise AlreadyResolved()

    profile_id, ip_address = req.profile_id, req.ip_address
    new_status = AccessRequestStatus.APPROVED if act == ResolveAction.APPROVE else AccessRequestStatus.DENIED

    # The PENDING filter makes the transition a compare-and-set: of two
    # resolvers racing on the same row only one UPDATE matches.
    try:
        updated = (
            db.query(AccessRequest)
            .filter(
                AccessRequest.id == request_id,
                AccessRequest.status == AccessRequestStatus.PENDING,
            )
            .update(
                {
                    AccessRequest.status: new_status,
                    AccessRequest.resolved_at: datetime.now(timezone.utc),
                    AccessRequest.resolved_by: resolver_id,
                },
                synchronize_session=False,
            )
        )
        if updated:
            db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("access_request_update_failed", request_id=request_id, error=str(exc))
        raise StorageUnavailable("Failed to update request") from exc

    if not updated:
        db.rollback()
        logger.info("access_request_resolve_lost_race", request_id=request_id, resolved_by=resolver_id)
        raise AlreadyResolved()

    logger.info(
        "access_request_resolved",
        request_id=request_id,
        action=act.value,
        profile_id=profile_id,
        ip_address=ip_address,
        resolved_by=resolver_id,
    )

    if act == ResolveAction.APPROVE:
        try:
            registry.add_allowed_ip(
                db,
                ip_address,
                description=AUTO_APPROVE_DESCRIPTION,
                added_by=resolver_id,
            )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "allowed_ip_insert_failed",
                request_id=request_id,
                ip_address=ip_address,
                error=str(exc),
            )

    return ResolveOutcome(success=True, action=act)


def get_request_status(db: Session, request_id: str) -> RequestStatus:
    req = registry.get_request(db, request_id)
    if req is None:
        raise NotFound("Request not found")
    return RequestStatus(status=req.status, resolved_at=req.resolved_at)
