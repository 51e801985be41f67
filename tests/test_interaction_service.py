import sqlite3
import threading

import pytest

from storefront.application.services.interaction_service import InteractionService
from storefront.domain.errors import (
    AlreadyLikedError,
    AlreadyReservedError,
    NotLikedError,
    NotReservedError,
    ProductNotFoundError,
    ReservationHeldByOtherError,
    TransientStoreError,
    UserNotFoundError,
)
from storefront.domain.models import ProductType
from storefront.infrastructure.persistence.sqlite import SQLitePersistence


def _user(persistence, email):
    return persistence.create_user(name=email.split("@")[0], email=email, password_hash="x")


def _product(persistence, name="Shirt"):
    return persistence.create_product(
        name=name,
        price=29.9,
        product_type=ProductType.CLOTHES,
        data={"size": "M"},
        image_url=f"http://testserver/media/products/{name}.webp",
        image_name=f"products/{name}.webp",
    )


@pytest.fixture
def service(persistence):
    return InteractionService(persistence)


def test_like_adds_user_once(persistence, service):
    user = _user(persistence, "a@x.com")
    product = _product(persistence)

    liked = service.like(user.id, product.id)
    assert liked.liked_by_user_ids == [user.id]
    assert liked.likes == 1

    with pytest.raises(AlreadyLikedError):
        service.like(user.id, product.id)
    assert persistence.get_product(product.id).likes == 1


def test_unlike_requires_existing_like(persistence, service):
    user = _user(persistence, "a@x.com")
    product = _product(persistence)

    with pytest.raises(NotLikedError):
        service.unlike(user.id, product.id)

    service.like(user.id, product.id)
    assert service.unlike(user.id, product.id).likes == 0
    assert service.like(user.id, product.id).likes == 1
    assert [item.id for item in persistence.get_liked_products(user.id)] == [product.id]


def test_likes_from_two_users_are_counted(persistence, service):
    first = _user(persistence, "a@x.com")
    second = _user(persistence, "b@x.com")
    product = _product(persistence)

    service.like(first.id, product.id)
    result = service.like(second.id, product.id)
    assert sorted(result.liked_by_user_ids) == sorted([first.id, second.id])
    assert result.likes == 2


def test_reserve_and_release(persistence, service):
    user = _user(persistence, "a@x.com")
    product = _product(persistence)

    reserved = service.reserve(user.id, product.id)
    assert reserved.is_reserved is True
    assert reserved.reserved_by_user_id == user.id
    assert [item.id for item in persistence.get_reserved_products(user.id)] == [product.id]

    with pytest.raises(AlreadyReservedError):
        service.reserve(user.id, product.id)

    released = service.release(user.id, product.id)
    assert released.is_reserved is False
    assert released.reserved_by_user_id is None

    with pytest.raises(NotReservedError):
        service.release(user.id, product.id)


def test_release_by_other_user_is_rejected(persistence, service):
    holder = _user(persistence, "a@x.com")
    other = _user(persistence, "b@x.com")
    product = _product(persistence)
    service.reserve(holder.id, product.id)

    with pytest.raises(AlreadyReservedError):
        service.reserve(other.id, product.id)
    with pytest.raises(ReservationHeldByOtherError):
        service.release(other.id, product.id)

    current = persistence.get_product(product.id)
    assert current.reserved_by_user_id == holder.id


def test_concurrent_reservations_have_one_winner(persistence, service):
    users = [_user(persistence, f"user{index}@x.com") for index in range(8)]
    product = _product(persistence)
    barrier = threading.Barrier(len(users))
    winners = []
    conflicts = []

    def attempt(user_id):
        barrier.wait()
        try:
            service.reserve(user_id, product.id)
        except AlreadyReservedError:
            conflicts.append(user_id)
        else:
            winners.append(user_id)

    threads = [threading.Thread(target=attempt, args=(user.id,)) for user in users]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(winners) == 1
    assert len(conflicts) == len(users) - 1
    assert persistence.get_product(product.id).reserved_by_user_id == winners[0]


def test_concurrent_likes_from_one_user_add_one_entry(persistence, service):
    user = _user(persistence, "a@x.com")
    product = _product(persistence)
    barrier = threading.Barrier(6)
    outcomes = []

    def attempt():
        barrier.wait()
        try:
            service.like(user.id, product.id)
        except AlreadyLikedError:
            outcomes.append("conflict")
        else:
            outcomes.append("ok")

    threads = [threading.Thread(target=attempt) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert persistence.get_product(product.id).liked_by_user_ids == [user.id]


def test_missing_user_or_product(persistence, service):
    user = _user(persistence, "a@x.com")
    product = _product(persistence)

    with pytest.raises(UserNotFoundError):
        service.like(9999, product.id)
    with pytest.raises(ProductNotFoundError):
        service.reserve(user.id, 9999)


def test_lock_timeout_is_transient_and_writes_nothing(tmp_path):
    path = tmp_path / "locked.db"
    persistence = SQLitePersistence(path, busy_timeout=0.1)
    service = InteractionService(persistence)
    user = _user(persistence, "a@x.com")
    product = _product(persistence)

    blocker = sqlite3.connect(path, isolation_level=None)
    try:
        blocker.execute("BEGIN IMMEDIATE")
        with pytest.raises(TransientStoreError):
            service.reserve(user.id, product.id)
    finally:
        blocker.execute("ROLLBACK")
        blocker.close()

    current = persistence.get_product(product.id)
    assert current.is_reserved is False
    assert current.reserved_by_user_id is None
