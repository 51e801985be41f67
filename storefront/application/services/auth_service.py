from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from ...domain.errors import (
    AuthError,
    EmailTakenError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidTokenError,
    TokenExpiredError,
    TokenMissingError,
    TokenRevokedError,
    UnsupportedSignInMethodError,
)
from ...domain.models import AuthToken, SignInMethod, User
from ...domain.ports.persistence import AuthPersistence

logger = logging.getLogger(__name__)

# bcrypt ignores (newer releases reject) anything past 72 bytes
_BCRYPT_MAX_BYTES = 72


class AuthService:
    """Registers customers and manages their single active session token.

    The JWT decides authenticity and expiry. The stored token row decides
    which token is the current one, so a token replaced by refresh or removed
    by sign-out stops working before it expires.
    """

    def __init__(
        self,
        persistence: AuthPersistence,
        secret_key: str,
        issuer: str,
        audience: str,
        token_ttl: timedelta = timedelta(days=30),
        algorithm: str = "HS256",
        bcrypt_rounds: int = 12,
    ) -> None:
        if not secret_key:
            raise RuntimeError("JWT_SECRET_KEY is not configured.")
        if secret_key == "change-me":
            logger.warning("JWT_SECRET_KEY is using the default value. Configure a real secret in production.")
        self._persistence = persistence
        self._secret_key = secret_key
        self._issuer = issuer
        self._audience = audience
        self._token_ttl = token_ttl
        self._algorithm = algorithm
        self._bcrypt_rounds = bcrypt_rounds
        # checked against for unknown e-mails
        self._dummy_hash = bcrypt.hashpw(secrets.token_bytes(16), bcrypt.gensalt(rounds=bcrypt_rounds))

    # ------------------------------------------------------------------
    def register(
        self,
        method: SignInMethod,
        email: str,
        name: str,
        password: Optional[str],
        phone_number: Optional[str] = None,
    ) -> Tuple[User, AuthToken]:
        secret = self._require_password(method, password)
        email_clean = email.strip().lower()
        name_clean = name.strip()
        if not name_clean:
            raise InvalidInputError("Name is required.")
        if self._persistence.get_user_by_email(email_clean):
            raise EmailTakenError(email_clean)
        hashed = bcrypt.hashpw(secret, bcrypt.gensalt(rounds=self._bcrypt_rounds)).decode("utf-8")
        user = self._persistence.create_user(
            name=name_clean,
            email=email_clean,
            password_hash=hashed,
            phone_number=phone_number,
        )
        token = self._issue(user.id)
        logger.info("Registered user %s (%s)", user.id, email_clean)
        return user, token

    def authenticate(self, method: SignInMethod, email: str, password: Optional[str]) -> AuthToken:
        secret = self._require_password(method, password)
        user = self._persistence.get_user_by_email(email.strip().lower())
        if user is None:
            bcrypt.checkpw(secret, self._dummy_hash)
            raise InvalidCredentialsError()
        if not bcrypt.checkpw(secret, user.password_hash.encode("utf-8")):
            raise InvalidCredentialsError()

        current = self._persistence.get_auth_token(user.id)
        if current is not None:
            try:
                self._decode(current.token)
            except AuthError:
                logger.info("Stored token for user %s is no longer valid, rotating", user.id)
            else:
                return current
        return self._issue(user.id)

    def refresh(self, user_id: int) -> AuthToken:
        token = self._issue(user_id)
        logger.info("Token refreshed for user %s", user_id)
        return token

    def sign_out(self, user_id: int) -> None:
        if self._persistence.delete_auth_token(user_id):
            logger.info("User %s signed out", user_id)

    def verify(self, token: Optional[str]) -> AuthToken:
        if not token:
            raise TokenMissingError()
        user_id = self._decode(token)
        current = self._persistence.get_auth_token(user_id)
        if current is None or not hmac.compare_digest(current.token, token):
            raise TokenRevokedError()
        return current

    # Helpers ----------------------------------------------------------
    @staticmethod
    def _require_password(method: SignInMethod, password: Optional[str]) -> bytes:
        if method is not SignInMethod.EMAIL_PASSWORD:
            raise UnsupportedSignInMethodError(
                f"Sign-in method {method.value!r} is not supported by this server.",
                method=method.value,
            )
        if not password:
            raise UnsupportedSignInMethodError("Email-Password sign-in requires a password.")
        encoded = password.encode("utf-8")
        if len(encoded) > _BCRYPT_MAX_BYTES:
            raise InvalidInputError(f"Password must be at most {_BCRYPT_MAX_BYTES} bytes.")
        return encoded

    def _issue(self, user_id: int) -> AuthToken:
        now = datetime.now(tz=timezone.utc).replace(microsecond=0)
        expires_at = now + self._token_ttl
        payload = {
            "sub": str(user_id),
            "iss": self._issuer,
            "aud": self._audience,
            "iat": now,
            "exp": expires_at,
            "jti": secrets.token_hex(16),
        }
        token = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        return self._persistence.save_auth_token(user_id, token, now, expires_at)

    def _decode(self, token: str) -> int:
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except JWTError as exc:
            raise InvalidTokenError() from exc
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidTokenError() from exc
