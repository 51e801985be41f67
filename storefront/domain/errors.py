"""Typed failures raised by the storefront services.

Each family maps to one HTTP status in ``presentation.api.errors``; services
never raise ``HTTPException`` themselves.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    code = "storefront_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details


# Not found --------------------------------------------------------------
class NotFoundError(StorefrontError):
    code = "not_found"


class UserNotFoundError(NotFoundError):
    code = "user_not_found"

    def __init__(self, user_id: int) -> None:
        super().__init__(f"User {user_id} not found.", user_id=user_id)


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"

    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product {product_id} not found.", product_id=product_id)


# Conflicts --------------------------------------------------------------
class ConflictError(StorefrontError):
    code = "conflict"


class AlreadyLikedError(ConflictError):
    code = "already_liked"

    def __init__(self, product_id: int) -> None:
        super().__init__("Product already liked.", product_id=product_id)


class NotLikedError(ConflictError):
    code = "not_liked"

    def __init__(self, product_id: int) -> None:
        super().__init__("Product is not liked.", product_id=product_id)


class AlreadyReservedError(ConflictError):
    code = "already_reserved"

    def __init__(self, product_id: int) -> None:
        super().__init__("Product already reserved.", product_id=product_id)


class NotReservedError(ConflictError):
    code = "not_reserved"

    def __init__(self, product_id: int) -> None:
        super().__init__("Product is not reserved.", product_id=product_id)


class ReservationHeldByOtherError(ConflictError):
    code = "reservation_held_by_other"

    def __init__(self, product_id: int) -> None:
        super().__init__("Product is reserved by another user.", product_id=product_id)


class EmailTakenError(ConflictError):
    code = "email_taken"

    def __init__(self, email: str) -> None:
        super().__init__("E-mail already registered.", email=email)


# Invalid input ----------------------------------------------------------
class InvalidInputError(StorefrontError):
    code = "invalid_input"


class InvalidImageError(InvalidInputError):
    code = "invalid_image"


class UnsupportedSignInMethodError(InvalidInputError):
    code = "unsupported_sign_in_method"


# Authentication ---------------------------------------------------------
class AuthError(StorefrontError):
    code = "unauthorized"


class InvalidCredentialsError(AuthError):
    code = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid e-mail or password.")


class TokenMissingError(AuthError):
    code = "token_missing"

    def __init__(self) -> None:
        super().__init__("Token not found.")


class TokenExpiredError(AuthError):
    code = "token_expired"

    def __init__(self) -> None:
        super().__init__("Token expired.")


class InvalidTokenError(AuthError):
    code = "invalid_token"

    def __init__(self) -> None:
        super().__init__("Invalid token.")


class TokenRevokedError(AuthError):
    code = "token_revoked"

    def __init__(self) -> None:
        super().__init__("Token is no longer active.")


# Storage ----------------------------------------------------------------
class StorageError(StorefrontError):
    code = "storage_error"


class BlobStorageError(StorageError):
    code = "blob_storage_error"


class ImageUploadError(StorageError):
    code = "image_upload_failed"


class ProductPersistError(StorageError):
    """The record write failed after the image was uploaded.

    ``image_rolled_back`` tells whether the compensating delete succeeded; when
    it did not, ``image_name`` is the object left behind in the blob store.
    """

    code = "product_persist_failed"

    def __init__(self, image_rolled_back: bool, image_name: Optional[str] = None) -> None:
        if image_rolled_back:
            message = "Unable to create this product; the uploaded image was removed."
        else:
            message = "Unable to create this product and the uploaded image could not be removed."
        super().__init__(message, image_rolled_back=image_rolled_back, image_name=image_name)
        self.image_rolled_back = image_rolled_back
        self.image_name = image_name


class TransientStoreError(StorefrontError):
    code = "transient_store_error"
