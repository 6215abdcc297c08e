from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import LoginRequest
from server.models.responses import SessionResponse

router = APIRouter(prefix="/session", tags=["session"])


@router.post("/login")
async def login(
    request: Request,
    body: LoginRequest,
    _: None = Depends(verify_api_key),
) -> SessionResponse:
    """Log in to the PLM and store the session for the current user.

    Args:
        request (Request): FastAPI request (provides app.state.plm_client).
        body (LoginRequest): Email, password and workspace id.
        _ (None): Auth dependency result (unused).
    """
    session = await request.app.state.plm_client.do_login(body.email, body.password, body.workspace_id)
    return SessionResponse(logged_in=True, email=session.email, workspace_id=session.workspace_id)


@router.post("/logout")
async def logout(request: Request, _: None = Depends(verify_api_key)) -> SessionResponse:
    request.app.state.plm_client.do_logout()
    request.app.state.catalog_service.refresh()
    return SessionResponse(logged_in=False)


@router.get("")
async def get_session(request: Request, _: None = Depends(verify_api_key)) -> SessionResponse:
    session = request.app.state.plm_client.get_session()
    if session is None or not session.is_usable():
        return SessionResponse(logged_in=False)
    return SessionResponse(logged_in=True, email=session.email, workspace_id=session.workspace_id)
