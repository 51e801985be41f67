from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, Iterator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from storefront.core.app_factory import create_application
from storefront.core.config import Settings
from storefront.domain.models import ProductType
from storefront.infrastructure.persistence.sqlite import SQLitePersistence


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "storefront.db"))
    monkeypatch.setenv("MEDIA_ROOT", str(tmp_path / "media"))
    monkeypatch.setenv("MEDIA_BASE_URL", "http://testserver/media")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.delenv("TOKEN_EXP_DAYS", raising=False)
    monkeypatch.delenv("MAX_UPLOAD_BYTES", raising=False)
    return Settings()


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    app = create_application(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def container(client: TestClient):
    return client.app.state.container


@pytest.fixture
def persistence(tmp_path: Path) -> SQLitePersistence:
    return SQLitePersistence(tmp_path / "service.db", busy_timeout=10.0)


def make_image(width: int = 100, height: int = 100, fmt: str = "PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_image() -> bytes:
    return make_image()


@pytest.fixture
def register(client: TestClient) -> Callable[..., Dict[str, str]]:
    """Registers a customer and returns the ``auth_token`` header for it."""

    def _register(email: str = "a@x.com", password: str = "pw1", name: str = "Ana") -> Dict[str, str]:
        response = client.post(
            "/auth/register",
            json={"method": "Email-Password", "email": email, "password": password, "name": name},
        )
        assert response.status_code == 200, response.text
        return {"auth_token": response.headers["authorization"]}

    return _register


@pytest.fixture
def create_product(client: TestClient, png_image: bytes) -> Callable[..., dict]:
    def _create(headers: Dict[str, str], name: str = "Shirt", product_type: ProductType = ProductType.CLOTHES, price: str = "29.9") -> dict:
        response = client.post(
            "/products",
            headers=headers,
            data={"name": name, "type": product_type.value, "price": price},
            files={"image": ("shirt.png", png_image, "image/png")},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _create
