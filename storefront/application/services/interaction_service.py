from __future__ import annotations

import logging

from ...domain.errors import (
    AlreadyLikedError,
    AlreadyReservedError,
    NotLikedError,
    NotReservedError,
    ProductNotFoundError,
    ReservationHeldByOtherError,
    UserNotFoundError,
)
from ...domain.models import Product
from ...domain.ports.persistence import InteractionStore, InteractionTransaction

logger = logging.getLogger(__name__)


class InteractionService:
    """Like and reserve toggles between users and products.

    Every operation reads the current relation state, decides, and writes
    inside a single transaction. A toggle that would be a no-op fails with a
    conflict error instead of silently succeeding, and nothing is written.
    """

    def __init__(self, store: InteractionStore) -> None:
        self._store = store

    def like(self, user_id: int, product_id: int) -> Product:
        with self._store.interaction() as tx:
            self._require_parties(tx, user_id, product_id)
            if product_id in tx.liked_product_ids(user_id):
                logger.info("User %s already likes product %s", user_id, product_id)
                raise AlreadyLikedError(product_id)
            if not tx.add_like(user_id, product_id):
                raise AlreadyLikedError(product_id)
            product = self._reload(tx, product_id)
        logger.info("User %s liked product %s", user_id, product_id)
        return product

    def unlike(self, user_id: int, product_id: int) -> Product:
        with self._store.interaction() as tx:
            self._require_parties(tx, user_id, product_id)
            if product_id not in tx.liked_product_ids(user_id):
                logger.info("User %s does not like product %s", user_id, product_id)
                raise NotLikedError(product_id)
            if not tx.remove_like(user_id, product_id):
                raise NotLikedError(product_id)
            product = self._reload(tx, product_id)
        logger.info("User %s unliked product %s", user_id, product_id)
        return product

    def reserve(self, user_id: int, product_id: int) -> Product:
        with self._store.interaction() as tx:
            current = self._require_parties(tx, user_id, product_id)
            # the caller holding it already counts as a conflict too
            if current.is_reserved:
                logger.info(
                    "User %s cannot reserve product %s, held by user %s",
                    user_id,
                    product_id,
                    current.reserved_by_user_id,
                )
                raise AlreadyReservedError(product_id)
            if not tx.set_reservation(product_id, user_id):
                raise AlreadyReservedError(product_id)
            product = self._reload(tx, product_id)
        logger.info("User %s reserved product %s", user_id, product_id)
        return product

    def release(self, user_id: int, product_id: int) -> Product:
        with self._store.interaction() as tx:
            current = self._require_parties(tx, user_id, product_id)
            if not current.is_reserved:
                raise NotReservedError(product_id)
            if current.reserved_by_user_id != user_id:
                logger.info(
                    "User %s cannot release product %s, held by user %s",
                    user_id,
                    product_id,
                    current.reserved_by_user_id,
                )
                raise ReservationHeldByOtherError(product_id)
            if not tx.clear_reservation(product_id, user_id):
                raise NotReservedError(product_id)
            product = self._reload(tx, product_id)
        logger.info("User %s released product %s", user_id, product_id)
        return product

    # Helpers ------------------------------------------------------------------
    @staticmethod
    def _require_parties(tx: InteractionTransaction, user_id: int, product_id: int) -> Product:
        if not tx.user_exists(user_id):
            raise UserNotFoundError(user_id)
        product = tx.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    @staticmethod
    def _reload(tx: InteractionTransaction, product_id: int) -> Product:
        product = tx.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product
