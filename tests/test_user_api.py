def test_profile_lists_liked_and_reserved_products(client, register, create_product):
    headers = register(email="a@x.com", name="Ana")
    shirt = create_product(headers, name="Shirt")
    cap = create_product(headers, name="Cap")

    client.patch(f"/products/{shirt['id']}/like", headers=headers)
    client.patch(f"/products/{cap['id']}/reserve", headers=headers)

    response = client.get("/user", headers=headers)
    assert response.status_code == 200
    profile = response.json()
    assert profile["email"] == "a@x.com"
    assert profile["name"] == "Ana"
    assert "password" not in str(profile).lower()
    assert [item["id"] for item in profile["likedProducts"]] == [shirt["id"]]
    assert [item["id"] for item in profile["reservedProducts"]] == [cap["id"]]

    liked = client.get("/user/products/liked", headers=headers).json()
    reserved = client.get("/user/products/reserved", headers=headers).json()
    assert [item["name"] for item in liked] == ["Shirt"]
    assert [item["name"] for item in reserved] == ["Cap"]


def test_profile_is_empty_for_new_user(client, register):
    headers = register()
    profile = client.get("/user", headers=headers).json()
    assert profile["likedProducts"] == []
    assert profile["reservedProducts"] == []


def test_profile_requires_auth(client):
    assert client.get("/user").status_code == 401
    assert client.get("/user/products/liked").status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
