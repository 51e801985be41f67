from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SignInMethod(str, Enum):
    GOOGLE = "Google"
    EMAIL_PASSWORD = "Email-Password"


@dataclass(slots=True)
class AuthToken:
    id: int
    user_id: int
    token: str
    created_at: datetime
    # mirrors the token's exp claim; never consulted when verifying
    expires_at: datetime
