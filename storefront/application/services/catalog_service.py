from __future__ import annotations

import logging
import math
import re
import secrets
import time
from pathlib import Path
from typing import Any, List, Optional

from ...domain.errors import (
    BlobStorageError,
    ImageUploadError,
    InvalidInputError,
    ProductNotFoundError,
    ProductPersistError,
)
from ...domain.models import Product, ProductDeletion, ProductType
from ...domain.ports.persistence import ProductRepository
from ...domain.ports.storage import BlobStorage
from ...services.image_processor import ImageProcessor

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


class CatalogService:
    """Product records and the images they own.

    Creation is image-then-record: the image is uploaded first and removed
    again if the record cannot be written. Deletion is record-then-image, and
    an image that cannot be removed is reported rather than raised.
    """

    def __init__(
        self,
        products: ProductRepository,
        storage: BlobStorage,
        images: ImageProcessor,
        prefix: str = "products",
    ) -> None:
        self._products = products
        self._storage = storage
        self._images = images
        self._prefix = prefix.strip("/")

    @property
    def max_upload_bytes(self) -> int:
        return self._images.max_bytes

    # Queries ------------------------------------------------------------------
    def list_products(self) -> List[Product]:
        return self._products.list_products()

    def get_product(self, product_id: int) -> Product:
        product = self._products.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    # Commands -----------------------------------------------------------------
    def create_product(
        self,
        name: str,
        product_type: ProductType,
        price: Optional[float],
        data: Any,
        image: bytes,
        filename: Optional[str] = None,
    ) -> Product:
        clean_name = name.strip()
        if not clean_name:
            raise InvalidInputError("Product name is required.")
        if price is not None and not math.isfinite(price):
            raise InvalidInputError("Price must be a finite number.")
        if price is not None and price < 0:
            raise InvalidInputError("Price cannot be negative.", price=price)

        processed = self._images.process(image)
        object_name = self._object_name(filename, processed.extension)
        try:
            image_url = self._storage.upload(object_name, processed.content, processed.content_type)
        except BlobStorageError as exc:
            logger.error("Upload of %s failed: %s", object_name, exc)
            raise ImageUploadError("Unable to upload the product image.") from exc

        try:
            product = self._products.create_product(
                name=clean_name,
                price=price,
                product_type=product_type,
                data=data,
                image_url=image_url,
                image_name=object_name,
            )
        except Exception as exc:
            logger.exception("Failed to create product %r. Initializing image rollback", clean_name)
            raise self._rollback_image(object_name) from exc

        logger.info("Product %s (%s) created with image %s", product.id, clean_name, object_name)
        return product

    def delete_product(self, product_id: int) -> ProductDeletion:
        product = self._products.delete_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        logger.info("Product %s deleted", product_id)
        return self._remove_image(product)

    def delete_all_products(self) -> List[ProductDeletion]:
        products = self._products.delete_all_products()
        logger.info("Deleted %d products", len(products))
        return [self._remove_image(product) for product in products]

    # Helpers ------------------------------------------------------------------
    def _rollback_image(self, object_name: str) -> ProductPersistError:
        try:
            self._storage.delete(object_name)
        except BlobStorageError:
            logger.exception("Unable to delete image %s after failed product creation", object_name)
            return ProductPersistError(image_rolled_back=False, image_name=object_name)
        logger.info("Image %s rolled back", object_name)
        return ProductPersistError(image_rolled_back=True)

    def _remove_image(self, product: Product) -> ProductDeletion:
        try:
            self._storage.delete(product.image_name)
        except BlobStorageError as exc:
            logger.error("Product %s deleted, but image cleanup failed: %s", product.id, exc)
            return ProductDeletion(product=product, image_deleted=False, error=str(exc))
        return ProductDeletion(product=product, image_deleted=True)

    def _object_name(self, filename: Optional[str], extension: str) -> str:
        stem = _UNSAFE_NAME_CHARS.sub("-", Path(filename or "image").stem).strip("-")[:60] or "image"
        millis = int(time.time() * 1000)
        return f"{self._prefix}/{millis}-{secrets.token_hex(4)}-{stem}.{extension}"
