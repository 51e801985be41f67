from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional


class ProductType(str, Enum):
    CLOTHES = "CLOTHES"
    SHOE = "SHOE"
    HAT = "HAT"
    PERFUME = "PERFUME"
    BAG = "BAG"


@dataclass(slots=True)
class Product:
    id: int
    name: str
    price: Optional[float]
    type: ProductType
    data: Any
    image_url: str
    image_name: str
    is_reserved: bool
    reserved_by_user_id: Optional[int]
    created_at: datetime
    updated_at: datetime
    liked_by_user_ids: List[int] = field(default_factory=list)

    @property
    def likes(self) -> int:
        return len(self.liked_by_user_ids)


@dataclass(slots=True)
class ProductDeletion:
    """Outcome of a hard delete: the record is gone, the image may have leaked."""

    product: Product
    image_deleted: bool
    error: Optional[str] = None
