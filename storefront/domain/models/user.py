"""User domain model for storefront customers."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class User:
    """
    Customer account.

    Attributes:
        id: Unique identifier
        name: Display name
        email: Lower-cased e-mail address (unique)
        password_hash: bcrypt hash of the password
        phone_number: Optional contact number
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    id: int
    name: str
    email: str
    password_hash: str
    phone_number: Optional[str]
    created_at: datetime
    updated_at: datetime

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
