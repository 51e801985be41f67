"""Read-side queries for customer accounts."""

from dataclasses import dataclass
from typing import List

from ...domain.errors import UserNotFoundError
from ...domain.models import Product, User
from ...domain.ports.persistence import UserRepository


@dataclass(slots=True)
class UserProfile:
    user: User
    liked_products: List[Product]
    reserved_products: List[Product]


class UserService:
    """Looks up customers and the products they like or hold."""

    def __init__(self, users: UserRepository) -> None:
        self._users = users

    def get_user(self, user_id: int) -> User:
        user = self._users.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def get_profile(self, user_id: int) -> UserProfile:
        user = self.get_user(user_id)
        return UserProfile(
            user=user,
            liked_products=self._users.get_liked_products(user_id),
            reserved_products=self._users.get_reserved_products(user_id),
        )

    def liked_products(self, user_id: int) -> List[Product]:
        self.get_user(user_id)
        return self._users.get_liked_products(user_id)

    def reserved_products(self, user_id: int) -> List[Product]:
        self.get_user(user_id)
        return self._users.get_reserved_products(user_id)
