import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

from ...domain.errors import EmailTakenError, TransientStoreError
from ...domain.models import AuthToken, Product, ProductType, User
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

_PRODUCT_TYPES = ", ".join(f"'{item.value}'" for item in ProductType)

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    phone_number TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS auth_tokens (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL UNIQUE,
    token TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS products (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    price REAL,
    type TEXT NOT NULL CHECK (type IN ({_PRODUCT_TYPES})),
    data TEXT,
    image_url TEXT NOT NULL,
    image_name TEXT NOT NULL,
    is_reserved INTEGER NOT NULL DEFAULT 0,
    reserved_by_user_id INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY(reserved_by_user_id) REFERENCES users(id),
    CHECK (
        (is_reserved = 1 AND reserved_by_user_id IS NOT NULL)
        OR (is_reserved = 0 AND reserved_by_user_id IS NULL)
    )
);

CREATE INDEX IF NOT EXISTS idx_products_reserved_by
    ON products(reserved_by_user_id);

CREATE TABLE IF NOT EXISTS product_likes (
    user_id INTEGER NOT NULL,
    product_id INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (user_id, product_id),
    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_product_likes_product
    ON product_likes(product_id);
"""


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway.

    Each operation opens its own connection. Writes run inside
    ``BEGIN IMMEDIATE`` so SQLite's write lock serializes them across threads
    and processes; waiting longer than ``busy_timeout`` seconds raises
    :class:`TransientStoreError`.
    """

    def __init__(self, path: Path, busy_timeout: float = 5.0) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._path = path
        self._busy_timeout = busy_timeout
        self._initialize()

    def _initialize(self) -> None:
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    def close(self) -> None:
        # connections are per-operation
        logger.debug("SQLite persistence at %s closed", self._path)

    # Connection helpers ------------------------------------------------------
    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path, timeout=self._busy_timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self, immediate: bool = True) -> Iterator[sqlite3.Connection]:
        with self._connect() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
                yield conn
                conn.execute("COMMIT")
            except sqlite3.OperationalError as exc:
                _rollback(conn)
                if _is_lock_error(exc):
                    logger.warning("Transaction aborted on %s: %s", self._path, exc)
                    raise TransientStoreError("Database is busy, retry the operation.") from exc
                raise
            except BaseException:
                _rollback(conn)
                raise

    # UserRepository API -------------------------------------------------------
    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email.lower(),)).fetchone()
        return _row_to_user(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None

    def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        phone_number: Optional[str] = None,
    ) -> User:
        normalized = email.lower()
        now = _now()
        try:
            with self._transaction() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO users (name, email, password_hash, phone_number, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (name, normalized, password_hash, phone_number, now, now),
                )
                row = conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,)).fetchone()
        except sqlite3.IntegrityError as exc:
            raise EmailTakenError(normalized) from exc
        if not row:
            raise RuntimeError("Failed to persist user.")
        return _row_to_user(row)

    def get_liked_products(self, user_id: int) -> List[Product]:
        with self._transaction(immediate=False) as conn:
            return _load_products(
                conn,
                "WHERE id IN (SELECT product_id FROM product_likes WHERE user_id = ?)",
                (user_id,),
            )

    def get_reserved_products(self, user_id: int) -> List[Product]:
        with self._transaction(immediate=False) as conn:
            return _load_products(conn, "WHERE reserved_by_user_id = ?", (user_id,))

    # AuthTokenRepository API --------------------------------------------------
    def get_auth_token(self, user_id: int) -> Optional[AuthToken]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM auth_tokens WHERE user_id = ?", (user_id,)).fetchone()
        return _row_to_auth_token(row) if row else None

    def save_auth_token(
        self,
        user_id: int,
        token: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> AuthToken:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO auth_tokens (user_id, token, created_at, expires_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    token = excluded.token,
                    created_at = excluded.created_at,
                    expires_at = excluded.expires_at
                """,
                (user_id, token, _format_datetime(created_at), _format_datetime(expires_at)),
            )
            row = conn.execute("SELECT * FROM auth_tokens WHERE user_id = ?", (user_id,)).fetchone()
        if not row:
            raise RuntimeError("Failed to persist auth token.")
        return _row_to_auth_token(row)

    def delete_auth_token(self, user_id: int) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM auth_tokens WHERE user_id = ?", (user_id,))
            return cur.rowcount > 0

    # ProductRepository API ----------------------------------------------------
    def create_product(
        self,
        name: str,
        price: Optional[float],
        product_type: ProductType,
        data: Any,
        image_url: str,
        image_name: str,
    ) -> Product:
        now = _now()
        payload = json.dumps(data, ensure_ascii=False) if data is not None else None
        with self._transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO products (
                    name, price, type, data, image_url, image_name,
                    is_reserved, reserved_by_user_id, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, 0, NULL, ?, ?)
                """,
                (name, price, product_type.value, payload, image_url, image_name, now, now),
            )
            products = _load_products(conn, "WHERE id = ?", (cur.lastrowid,))
        if not products:
            raise RuntimeError("Failed to persist product.")
        return products[0]

    def get_product(self, product_id: int) -> Optional[Product]:
        with self._transaction(immediate=False) as conn:
            products = _load_products(conn, "WHERE id = ?", (product_id,))
        return products[0] if products else None

    def list_products(self) -> List[Product]:
        with self._transaction(immediate=False) as conn:
            return _load_products(conn)

    def delete_product(self, product_id: int) -> Optional[Product]:
        with self._transaction() as conn:
            products = _load_products(conn, "WHERE id = ?", (product_id,))
            if not products:
                return None
            conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
        return products[0]

    def delete_all_products(self) -> List[Product]:
        with self._transaction() as conn:
            products = _load_products(conn)
            conn.execute("DELETE FROM products")
        return products

    # InteractionStore API -----------------------------------------------------
    @contextmanager
    def interaction(self) -> Iterator["SQLiteInteraction"]:
        with self._transaction() as conn:
            yield SQLiteInteraction(conn)


class SQLiteInteraction:
    """Relation reads and writes bound to one open ``BEGIN IMMEDIATE`` transaction."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def user_exists(self, user_id: int) -> bool:
        row = self._conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone()
        return row is not None

    def get_product(self, product_id: int) -> Optional[Product]:
        products = _load_products(self._conn, "WHERE id = ?", (product_id,))
        return products[0] if products else None

    def liked_product_ids(self, user_id: int) -> Set[int]:
        cur = self._conn.execute("SELECT product_id FROM product_likes WHERE user_id = ?", (user_id,))
        return {row["product_id"] for row in cur.fetchall()}

    def add_like(self, user_id: int, product_id: int) -> bool:
        cur = self._conn.execute(
            "INSERT OR IGNORE INTO product_likes (user_id, product_id, created_at) VALUES (?, ?, ?)",
            (user_id, product_id, _now()),
        )
        return cur.rowcount == 1

    def remove_like(self, user_id: int, product_id: int) -> bool:
        cur = self._conn.execute(
            "DELETE FROM product_likes WHERE user_id = ? AND product_id = ?",
            (user_id, product_id),
        )
        return cur.rowcount == 1

    def set_reservation(self, product_id: int, user_id: int) -> bool:
        cur = self._conn.execute(
            """
            UPDATE products
            SET is_reserved = 1, reserved_by_user_id = ?, updated_at = ?
            WHERE id = ? AND reserved_by_user_id IS NULL
            """,
            (user_id, _now(), product_id),
        )
        return cur.rowcount == 1

    def clear_reservation(self, product_id: int, user_id: int) -> bool:
        cur = self._conn.execute(
            """
            UPDATE products
            SET is_reserved = 0, reserved_by_user_id = NULL, updated_at = ?
            WHERE id = ? AND reserved_by_user_id = ?
            """,
            (_now(), product_id, user_id),
        )
        return cur.rowcount == 1


# Helpers --------------------------------------------------------------------
def _rollback(conn: sqlite3.Connection) -> None:
    if conn.in_transaction:
        conn.execute("ROLLBACK")


def _is_lock_error(exc: sqlite3.OperationalError) -> bool:
    message = str(exc).lower()
    return "locked" in message or "busy" in message


def _now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def _parse_datetime(value: str) -> datetime:
    result = datetime.fromisoformat(value)
    if result.tzinfo is None:
        return result.replace(tzinfo=timezone.utc)
    return result.astimezone(timezone.utc)


def _load_products(
    conn: sqlite3.Connection,
    where: str = "",
    params: Iterable[Any] = (),
) -> List[Product]:
    rows = conn.execute(f"SELECT * FROM products {where} ORDER BY id ASC", tuple(params)).fetchall()
    if not rows:
        return []
    ids = [row["id"] for row in rows]
    placeholders = ", ".join("?" for _ in ids)
    likes: Dict[int, List[int]] = {product_id: [] for product_id in ids}
    cur = conn.execute(
        f"""
        SELECT product_id, user_id FROM product_likes
        WHERE product_id IN ({placeholders})
        ORDER BY created_at ASC, user_id ASC
        """,
        ids,
    )
    for like in cur.fetchall():
        likes[like["product_id"]].append(like["user_id"])
    return [_row_to_product(row, likes[row["id"]]) for row in rows]


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        phone_number=row["phone_number"],
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
    )


def _row_to_auth_token(row: sqlite3.Row) -> AuthToken:
    return AuthToken(
        id=row["id"],
        user_id=row["user_id"],
        token=row["token"],
        created_at=_parse_datetime(row["created_at"]),
        expires_at=_parse_datetime(row["expires_at"]),
    )


def _row_to_product(row: sqlite3.Row, liked_by_user_ids: List[int]) -> Product:
    return Product(
        id=row["id"],
        name=row["name"],
        price=row["price"],
        type=ProductType(row["type"]),
        data=json.loads(row["data"]) if row["data"] is not None else None,
        image_url=row["image_url"],
        image_name=row["image_name"],
        is_reserved=bool(row["is_reserved"]),
        reserved_by_user_id=row["reserved_by_user_id"],
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
        liked_by_user_ids=liked_by_user_ids,
    )
