import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/storefront.db")).resolve()
        self.database_busy_timeout = self._get_float("DATABASE_BUSY_TIMEOUT", default=5.0)
        self.jwt_secret_key = os.getenv("JWT_SECRET_KEY", "change-me")
        self.jwt_issuer = os.getenv("JWT_ISSUER", "urn:storefront:issuer")
        self.jwt_audience = os.getenv("JWT_AUDIENCE", "urn:storefront:audience")
        self.token_exp_days = self._get_int("TOKEN_EXP_DAYS", default=30)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12)
        self.storage_backend = os.getenv("STORAGE_BACKEND", "local").strip().lower()
        self.media_root = Path(os.getenv("MEDIA_ROOT", "data/media")).resolve()
        self.media_base_url = os.getenv("MEDIA_BASE_URL", "http://localhost:8000/media").rstrip("/")
        self.supabase_url = os.getenv("SUPABASE_URL")
        self.supabase_service_role_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
        self.supabase_bucket = os.getenv("SUPABASE_BUCKET", "products")
        self.image_width = self._get_int("IMAGE_WIDTH", default=800)
        self.image_quality = self._get_int("IMAGE_QUALITY", default=80)
        self.max_upload_bytes = self._get_int("MAX_UPLOAD_BYTES", default=4_000_000)
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

        if self.storage_backend not in {"local", "supabase"}:
            raise RuntimeError(
                f"STORAGE_BACKEND must be 'local' or 'supabase', got {self.storage_backend!r}"
            )
        if self.storage_backend == "supabase":
            self.supabase_url = self._get("SUPABASE_URL")
            self.supabase_service_role_key = self._get("SUPABASE_SERVICE_ROLE_KEY")

    @staticmethod
    def _get(key: str) -> str:
        value = os.getenv(key)
        if not value:
            raise RuntimeError(f"Missing required environment variable: {key}")
        return value

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc

    @staticmethod
    def _get_float(key: str, default: Optional[float] = None) -> float:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return float(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be a number") from exc
