from typing import Optional

from fastapi import Depends
from fastapi.security import APIKeyHeader

from ...application.services.auth_service import AuthService
from ...application.services.user_service import UserService
from ...core.dependencies import get_auth_service, get_user_service
from ...domain.models import AuthToken, User

# clients send the raw token in a custom header, not "Authorization: Bearer"
_token_header = APIKeyHeader(name="auth_token", auto_error=False)


def require_auth_token(
    token: Optional[str] = Depends(_token_header),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthToken:
    return auth_service.verify(token)


def require_current_user(
    session: AuthToken = Depends(require_auth_token),
    user_service: UserService = Depends(get_user_service),
) -> User:
    return user_service.get_user(session.user_id)
