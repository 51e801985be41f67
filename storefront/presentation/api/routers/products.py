from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import JSONResponse

from ....application.services.catalog_service import CatalogService
from ....application.services.interaction_service import InteractionService
from ....core.dependencies import get_catalog_service, get_interaction_service
from ....domain.errors import InvalidInputError
from ....domain.models import ProductType, User
from ...api.dependencies import require_current_user
from ...api.serializers import serialize_product

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("")
def list_products(service: CatalogService = Depends(get_catalog_service)) -> List[Dict[str, Any]]:
    return [serialize_product(product) for product in service.list_products()]


@router.get("/{product_id}")
def get_product(
    product_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    return serialize_product(service.get_product(product_id))


@router.post("")
def create_product(
    image: UploadFile = File(...),
    name: str = Form(..., min_length=1, max_length=120),
    product_type: ProductType = Form(..., alias="type"),
    price: Optional[float] = Form(default=None),
    features: Optional[str] = Form(default=None),
    _: User = Depends(require_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    """Upload an image (resized and stored as WEBP) and create the product that owns it."""
    # one byte past the limit is enough for the size check to reject it
    content = image.file.read(service.max_upload_bytes + 1)
    product = service.create_product(
        name=name,
        product_type=product_type,
        price=price,
        data=_parse_features(features),
        image=content,
        filename=image.filename,
    )
    return serialize_product(product)


@router.delete("", status_code=status.HTTP_200_OK)
def delete_all_products(
    _: User = Depends(require_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    deletions = service.delete_all_products()
    return {
        "deleted": len(deletions),
        "imageCleanupFailures": [item.product.image_name for item in deletions if not item.image_deleted],
    }


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    _: User = Depends(require_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> Response:
    deletion = service.delete_product(product_id)
    if not deletion.image_deleted:
        return JSONResponse(
            status_code=status.HTTP_207_MULTI_STATUS,
            content={
                "message": "Product deleted, but image cleanup failed.",
                "imageName": deletion.product.image_name,
                "error": deletion.error,
            },
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{product_id}/like")
def like_product(
    product_id: int,
    user: User = Depends(require_current_user),
    service: InteractionService = Depends(get_interaction_service),
) -> Dict[str, Any]:
    return serialize_product(service.like(user.id, product_id))


@router.patch("/{product_id}/dislike")
def dislike_product(
    product_id: int,
    user: User = Depends(require_current_user),
    service: InteractionService = Depends(get_interaction_service),
) -> Dict[str, Any]:
    return serialize_product(service.unlike(user.id, product_id))


@router.patch("/{product_id}/reserve")
def reserve_product(
    product_id: int,
    user: User = Depends(require_current_user),
    service: InteractionService = Depends(get_interaction_service),
) -> Dict[str, Any]:
    return serialize_product(service.reserve(user.id, product_id))


@router.patch("/{product_id}/release")
def release_product(
    product_id: int,
    user: User = Depends(require_current_user),
    service: InteractionService = Depends(get_interaction_service),
) -> Dict[str, Any]:
    return serialize_product(service.release(user.id, product_id))


def _parse_features(raw: Optional[str]) -> Any:
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw, parse_constant=_reject_constant, parse_float=_finite_float)
    except ValueError as exc:
        raise InvalidInputError("features must be valid JSON.") from exc


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON and cannot be returned as such
    raise ValueError(f"{name} is not allowed")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} is out of range")
    return value
