"""
Secure login routes.

  POST /secure-login                      → Granted (200), Deferred (200, PENDING_APPROVAL) or rejection
  GET  /secure-login/status/{request_id}  → poll an access request while the UI shows "pending"
  POST /sign-out                          → revoke the caller's bearer session

The client address is read from the connection headers, never from the body.
"""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from fmf.services.access.client_address import client_address
from fmf.services.access.gate import Deferred, Granted, Rejected, attempt_login
from fmf.services.access.resolver import get_request_status
from fmf.services.shared.auth import bearer_token, get_identity_store
from fmf.services.shared.database import get_db
from fmf.services.shared.errors import Unauthenticated
from fmf.services.shared.identity import IdentityStore
from fmf.services.shared.schemas import (
    LoginGrantedOut, LoginPendingOut, LoginRequest,
    ProfileOut, RequestStatusOut, SessionOut, UserOut,
)

router = APIRouter()


@router.post("/secure-login")
def secure_login(
    body: LoginRequest,
    request: Request,
    identity: IdentityStore = Depends(get_identity_store),
    db=Depends(get_db),
):
    outcome = attempt_login(
        db,
        identity,
        body.email,
        body.password,
        client_address(request.headers),
    )

    if isinstance(outcome, Granted):
        return LoginGrantedOut(
            user=UserOut(id=outcome.user.id, email=outcome.user.email),
            profile=ProfileOut.model_validate(outcome.profile),
            session=SessionOut.model_validate(outcome.session),
        ).model_dump(mode="json")

    if isinstance(outcome, Deferred):
        return LoginPendingOut(request_id=outcome.request_id).model_dump(mode="json")

    if isinstance(outcome, Rejected):
        return JSONResponse(
            status_code=outcome.reason.status_code,
            content={"error": outcome.reason.message},
        )

    raise TypeError(f"unhandled login outcome {outcome!r}")


@router.get("/secure-login/status/{request_id}", response_model=RequestStatusOut)
def secure_login_status(request_id: str, db=Depends(get_db)):
    status = get_request_status(db, request_id)
    return RequestStatusOut(status=status.status, resolved_at=status.resolved_at)


@router.post("/sign-out", status_code=204)
def sign_out(
    token: str = Depends(bearer_token),
    identity: IdentityStore = Depends(get_identity_store),
):
    if not identity.sign_out(token):
        raise Unauthenticated()
    return Response(status_code=204)
