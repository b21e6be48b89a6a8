"""
Admin views over the access registry: the request queue and the allowed-address list.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from fmf.services.access import registry
from fmf.services.shared.auth import require_admin
from fmf.services.shared.database import get_db
from fmf.services.shared.models import AccessRequestStatus, Profile
from fmf.services.shared.schemas import AccessRequestOut, AllowedIpCreate, AllowedIpOut

router = APIRouter()


@router.get("/access-requests", response_model=list[AccessRequestOut])
def list_access_requests(
    status: Optional[AccessRequestStatus] = None,
    limit:  int                           = Query(default=100, le=500),
    admin:  Profile                       = Depends(require_admin),
    db=Depends(get_db),
):
    """Newest first. Pass status=PENDING for the approval queue."""
    rows = registry.list_access_requests(db, status=status, limit=limit)
    return [AccessRequestOut.model_validate(r) for r in rows]


@router.get("/allowed-ips", response_model=list[AllowedIpOut])
def list_allowed_ips(admin: Profile = Depends(require_admin), db=Depends(get_db)):
    return [AllowedIpOut.model_validate(r) for r in registry.list_allowed_ips(db)]


@router.post("/allowed-ips", response_model=AllowedIpOut, status_code=201)
def add_allowed_ip(
    req: AllowedIpCreate,
    admin: Profile = Depends(require_admin),
    db=Depends(get_db),
):
    """Manual operator entry. Re-adding a listed address returns the existing row."""
    row = registry.add_allowed_ip(db, req.ip_address, description=req.description, added_by=admin.id)
    return AllowedIpOut.model_validate(row)
