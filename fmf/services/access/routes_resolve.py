"""
Admin resolution of CS access requests.

  POST /resolve-access-request  {request_id, action: "APPROVE" | "DENY"}

Bearer auth resolves the caller's profile; the ADMIN check itself happens in
resolve_request so the guard holds for any caller of the resolver, not just
this route.
"""

from fastapi import APIRouter, Depends

from fmf.services.access.resolver import resolve_request
from fmf.services.shared.auth import get_current_profile
from fmf.services.shared.database import get_db
from fmf.services.shared.models import Profile
from fmf.services.shared.schemas import ResolveOut, ResolveRequestBody

router = APIRouter()


@router.post("/resolve-access-request", response_model=ResolveOut)
def resolve_access_request(
    body: ResolveRequestBody,
    caller: Profile = Depends(get_current_profile),
    db=Depends(get_db),
):
    outcome = resolve_request(db, body.request_id, body.action, caller)
    return ResolveOut(success=outcome.success, action=outcome.action, message=outcome.message)
