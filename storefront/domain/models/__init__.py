"""Domain models for the storefront application."""

from .auth_token import AuthToken, SignInMethod
from .product import Product, ProductDeletion, ProductType
from .user import User

__all__ = [
    "AuthToken",
    "Product",
    "ProductDeletion",
    "ProductType",
    "SignInMethod",
    "User",
]
