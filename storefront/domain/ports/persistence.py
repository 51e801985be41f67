from __future__ import annotations

from datetime import datetime
from typing import Any, ContextManager, List, Optional, Protocol, Set

from ..models import AuthToken, Product, ProductType, User


class UserRepository(Protocol):
    """Persistence functions related to customer accounts."""

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        phone_number: Optional[str] = None,
    ) -> User:
        ...

    def get_liked_products(self, user_id: int) -> List[Product]:
        ...

    def get_reserved_products(self, user_id: int) -> List[Product]:
        ...


class AuthTokenRepository(Protocol):
    """Persistence for the single active session token of each user."""

    def get_auth_token(self, user_id: int) -> Optional[AuthToken]:
        ...

    def save_auth_token(
        self,
        user_id: int,
        token: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> AuthToken:
        ...

    def delete_auth_token(self, user_id: int) -> bool:
        ...


class AuthPersistence(UserRepository, AuthTokenRepository, Protocol):
    """What the credential flows need: accounts plus their session tokens."""

    pass


class ProductRepository(Protocol):
    """Persistence for catalog records."""

    def create_product(
        self,
        name: str,
        price: Optional[float],
        product_type: ProductType,
        data: Any,
        image_url: str,
        image_name: str,
    ) -> Product:
        ...

    def get_product(self, product_id: int) -> Optional[Product]:
        ...

    def list_products(self) -> List[Product]:
        ...

    def delete_product(self, product_id: int) -> Optional[Product]:
        ...

    def delete_all_products(self) -> List[Product]:
        ...


class InteractionTransaction(Protocol):
    """Reads and writes of the like/reserve relations inside one open transaction."""

    def user_exists(self, user_id: int) -> bool:
        ...

    def get_product(self, product_id: int) -> Optional[Product]:
        ...

    def liked_product_ids(self, user_id: int) -> Set[int]:
        ...

    def add_like(self, user_id: int, product_id: int) -> bool:
        ...

    def remove_like(self, user_id: int, product_id: int) -> bool:
        ...

    def set_reservation(self, product_id: int, user_id: int) -> bool:
        ...

    def clear_reservation(self, product_id: int, user_id: int) -> bool:
        ...


class InteractionStore(Protocol):
    def interaction(self) -> ContextManager[InteractionTransaction]:
        ...


class PersistenceGateway(
    UserRepository,
    AuthTokenRepository,
    ProductRepository,
    InteractionStore,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    def close(self) -> None:
        ...
