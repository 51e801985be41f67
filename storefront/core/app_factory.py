from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.auth_service import AuthService
from ..application.services.catalog_service import CatalogService
from ..application.services.interaction_service import InteractionService
from ..application.services.user_service import UserService
from ..domain.ports.storage import BlobStorage
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..infrastructure.storage.local import LocalBlobStorage
from ..infrastructure.storage.supabase_storage import SupabaseBlobStorage
from ..presentation.api.errors import register_exception_handlers
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import products as products_router
from ..presentation.api.routers import user as user_router
from ..services.image_processor import ImageProcessor

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Storefront API",
        description="Customer accounts, product catalog and like/reserve interactions for the store site.",
        version="1.0.0",
        lifespan=_create_lifespan(settings),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["authorization"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(products_router.router)
    app.include_router(user_router.router)

    if settings.storage_backend == "local":
        settings.media_root.mkdir(parents=True, exist_ok=True)
        app.mount("/media", StaticFiles(directory=settings.media_root), name="media")

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True}

    return app


def _build_blob_storage(settings: Settings) -> BlobStorage:
    if settings.storage_backend == "supabase":
        return SupabaseBlobStorage(
            url=settings.supabase_url,
            key=settings.supabase_service_role_key,
            bucket=settings.supabase_bucket,
        )
    return LocalBlobStorage(settings.media_root, settings.media_base_url)


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        persistence = SQLitePersistence(
            settings.database_path,
            busy_timeout=settings.database_busy_timeout,
        )
        blob_storage = _build_blob_storage(settings)
        image_processor = ImageProcessor(
            width=settings.image_width,
            quality=settings.image_quality,
            max_bytes=settings.max_upload_bytes,
        )
        auth_service = AuthService(
            persistence=persistence,
            secret_key=settings.jwt_secret_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            token_ttl=timedelta(days=settings.token_exp_days),
            bcrypt_rounds=settings.bcrypt_rounds,
        )
        catalog_service = CatalogService(persistence, blob_storage, image_processor)
        interaction_service = InteractionService(persistence)
        user_service = UserService(persistence)

        container = ApplicationContainer(
            settings=settings,
            persistence=persistence,
            blob_storage=blob_storage,
            image_processor=image_processor,
            auth_service=auth_service,
            catalog_service=catalog_service,
            interaction_service=interaction_service,
            user_service=user_service,
        )

        app.state.container = container  # type: ignore[attr-defined]
        logger.info(
            "Storefront API ready (database=%s, storage=%s)",
            settings.database_path,
            settings.storage_backend,
        )

        try:
            yield
        finally:
            persistence.close()

    return lifespan
