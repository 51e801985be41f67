from datetime import datetime
from typing import Any, Dict

from ...domain.models import AuthToken, Product, User


def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "type": product.type.value,
        "data": product.data,
        "imageUrl": product.image_url,
        "imageName": product.image_name,
        "isReserved": product.is_reserved,
        "reservedByUserId": product.reserved_by_user_id,
        "likedByUserIds": list(product.liked_by_user_ids),
        "likes": product.likes,
        "createdAt": _iso(product.created_at),
        "updatedAt": _iso(product.updated_at),
    }


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phoneNumber": user.phone_number,
        "createdAt": _iso(user.created_at),
    }


def serialize_session(token: AuthToken) -> Dict[str, Any]:
    return {
        "userId": token.user_id,
        "expiresAt": _iso(token.expires_at),
    }


def _iso(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat()
