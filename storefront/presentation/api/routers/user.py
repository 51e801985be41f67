from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ....application.services.user_service import UserService
from ....core.dependencies import get_user_service
from ....domain.models import User
from ...api.dependencies import require_current_user
from ...api.serializers import serialize_product, serialize_user

router = APIRouter(prefix="/user", tags=["User"])


@router.get("")
def get_profile(
    user: User = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    profile = service.get_profile(user.id)
    return {
        **serialize_user(profile.user),
        "likedProducts": [serialize_product(item) for item in profile.liked_products],
        "reservedProducts": [serialize_product(item) for item in profile.reserved_products],
    }


@router.get("/products/liked")
def liked_products(
    user: User = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
) -> List[Dict[str, Any]]:
    return [serialize_product(item) for item in service.liked_products(user.id)]


@router.get("/products/reserved")
def reserved_products(
    user: User = Depends(require_current_user),
    service: UserService = Depends(get_user_service),
) -> List[Dict[str, Any]]:
    return [serialize_product(item) for item in service.reserved_products(user.id)]
