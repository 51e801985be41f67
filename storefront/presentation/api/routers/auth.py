from typing import Any, Dict

from fastapi import APIRouter, Depends, Response, status

from ....application.services.auth_service import AuthService
from ....core.dependencies import get_auth_service
from ....domain.models import AuthToken
from ...api.dependencies import require_auth_token
from ...api.schemas.auth import RegisterRequest, SignInRequest
from ...api.serializers import serialize_session

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register")
def register(
    payload: RegisterRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Create an account and return its first session token in the ``authorization`` header."""
    _, token = auth_service.register(
        method=payload.method,
        email=payload.email,
        name=payload.name,
        password=payload.password,
        phone_number=payload.phone_number,
    )
    response.headers["authorization"] = token.token
    return serialize_session(token)


@router.post("/signin")
def sign_in(
    payload: SignInRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Return the user's active token, rotating it first when it has expired."""
    token = auth_service.authenticate(payload.method, payload.email, payload.password)
    response.headers["authorization"] = token.token
    return serialize_session(token)


@router.post("/refresh")
def refresh(
    response: Response,
    session: AuthToken = Depends(require_auth_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    token = auth_service.refresh(session.user_id)
    response.headers["authorization"] = token.token
    return serialize_session(token)


@router.post("/signout", status_code=status.HTTP_204_NO_CONTENT)
def sign_out(
    session: AuthToken = Depends(require_auth_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> Response:
    auth_service.sign_out(session.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/session")
def current_session(session: AuthToken = Depends(require_auth_token)) -> Dict[str, Any]:
    return {"authorized": True, **serialize_session(session)}
