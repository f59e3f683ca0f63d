import re

import pytest

from app.models.user import User

PHONE = "+38161234567"


def sent_code(gateway):
    _, message = gateway.sent[-1]
    return re.search(r"code is: (\d{6})", message).group(1)


def test_profile_requires_authentication(client):
    response = client.get("/api/users/profile")

    assert response.status_code == 401
    assert response.json() == {"error": "Could not validate credentials"}


def test_get_profile(client, make_user, auth_headers):
    user = make_user(first_name="Ana", phone=PHONE)

    response = client.get("/api/users/profile", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()["user"]
    assert body["id"] == user.id
    assert body["firstName"] == "Ana"
    assert body["phone"] == PHONE
    assert body["phoneVerified"] is False
    assert "password" not in body
    assert "phoneVerificationCode" not in body


def test_update_profile_requires_verified_email(client, make_user, auth_headers):
    user = make_user(verified=False)

    response = client.put("/api/users/profile", json={"firstName": "Ana"}, headers=auth_headers(user))

    assert response.status_code == 403
    assert "error" in response.json()


def test_update_profile(client, make_user, auth_headers):
    user = make_user(last_name="Petrovic")

    response = client.put(
        "/api/users/profile",
        json={"firstName": "Jovana", "email": "jovana@example.com"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Profile updated successfully"
    assert body["user"]["firstName"] == "Jovana"
    assert body["user"]["lastName"] == "Petrovic"
    assert body["user"]["email"] == "jovana@example.com"


def test_update_profile_rejects_invalid_email(client, make_user, auth_headers):
    user = make_user()

    response = client.put("/api/users/profile", json={"email": "not-an-email"}, headers=auth_headers(user))

    assert response.status_code == 400


def test_change_password(client, make_user, auth_headers):
    user = make_user()

    response = client.put(
        "/api/users/password",
        json={"currentPassword": "password123", "newPassword": "brand-new-pass"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Password changed successfully"}


def test_change_password_wrong_current_password(client, make_user, auth_headers):
    user = make_user()

    response = client.put(
        "/api/users/password",
        json={"currentPassword": "wrong-password", "newPassword": "brand-new-pass"},
        headers=auth_headers(user),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Current password is incorrect"}


def test_change_password_enforces_minimum_length(client, make_user, auth_headers):
    user = make_user()

    response = client.put(
        "/api/users/password",
        json={"currentPassword": "password123", "newPassword": "short"},
        headers=auth_headers(user),
    )

    assert response.status_code == 400


def test_phone_verification_flow(client, make_user, auth_headers, gateway, db):
    user = make_user(verified=True)
    headers = auth_headers(user)

    response = client.post("/api/users/phone/send-verification", json={"phone": PHONE}, headers=headers)
    assert response.status_code == 200
    assert gateway.sent[0][0] == PHONE

    response = client.post("/api/users/phone/verify", json={"code": sent_code(gateway)}, headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "message": "Phone number verified successfully.",
        "phoneVerified": True,
        "verifiedSeller": True,
    }
    db.expire_all()
    assert db.query(User).filter(User.id == user.id).one().phone_verified is True


@pytest.mark.parametrize("phone", ["061-123", "+1\u0663\u0668\u0661\u0666\u0661", "+38161234567\n"])
def test_send_verification_rejects_invalid_phone(client, make_user, auth_headers, gateway, phone):
    user = make_user()

    response = client.post(
        "/api/users/phone/send-verification", json={"phone": phone}, headers=auth_headers(user)
    )

    assert response.status_code == 400
    assert "error" in response.json()
    assert gateway.sent == []


def test_verify_requires_six_character_code(client, make_user, auth_headers):
    user = make_user()

    response = client.post("/api/users/phone/verify", json={"code": "12345"}, headers=auth_headers(user))

    assert response.status_code == 400


def test_verify_without_pending_code(client, make_user, auth_headers):
    user = make_user()

    response = client.post("/api/users/phone/verify", json={"code": "123456"}, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json() == {"error": "No pending phone verification. Please request a new code."}


def test_send_verification_delivery_failure(client, make_user, auth_headers, gateway):
    user = make_user()
    gateway.fail = True

    response = client.post(
        "/api/users/phone/send-verification", json={"phone": PHONE}, headers=auth_headers(user)
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to send verification SMS"}


def test_send_verification_when_already_verified(client, make_user, auth_headers):
    user = make_user(phone=PHONE, phone_verified=True)

    response = client.post(
        "/api/users/phone/send-verification", json={"phone": "+38162222222"}, headers=auth_headers(user)
    )

    assert response.status_code == 400


def test_resend_verification(client, make_user, auth_headers, gateway):
    user = make_user()
    headers = auth_headers(user)
    client.post("/api/users/phone/send-verification", json={"phone": PHONE}, headers=headers)

    response = client.post("/api/users/phone/resend-verification", headers=headers)

    assert response.status_code == 200
    assert len(gateway.sent) == 2


def test_resend_without_phone(client, make_user, auth_headers):
    user = make_user()

    response = client.post("/api/users/phone/resend-verification", headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json() == {"error": "No phone number on file. Please add a phone number first."}


def test_user_products_route_is_not_shadowed(client, make_user, make_product):
    seller = make_user()
    make_product(seller, status="active")
    make_product(seller, status="deleted")

    response = client.get(f"/api/users/{seller.id}/products", params={"status": "all"})

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 1
    assert body["data"][0]["images"][0].startswith("https://cdn.example.com/")
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1, "hasMore": False}


def test_user_products_query_filters(client, make_user, make_product):
    seller = make_user()
    make_product(seller, price=100, condition="new")
    make_product(seller, price=200, condition="good")
    make_product(seller, price=300, condition="satisfactory")

    response = client.get(
        f"/api/users/{seller.id}/products",
        params=[("condition", "new"), ("condition", "good"), ("sortBy", "price-desc"), ("maxPrice", "250")],
    )

    assert response.status_code == 200
    assert [p["price"] for p in response.json()["data"]] == [200, 100]


def test_user_products_rejects_unknown_status(client, make_user):
    seller = make_user()

    response = client.get(f"/api/users/{seller.id}/products", params={"status": "archived"})

    assert response.status_code == 400


def test_user_products_caps_page_size(client, make_user):
    seller = make_user()

    response = client.get(f"/api/users/{seller.id}/products", params={"limit": 500})

    assert response.status_code == 200
    assert response.json()["pagination"]["limit"] == 100


def test_public_profile(client, make_user, make_product):
    seller = make_user(phone=PHONE, phone_verified=True)
    make_product(seller, status="active")
    make_product(seller, status="sold")

    response = client.get(f"/api/users/{seller.id}")

    assert response.status_code == 200
    body = response.json()["user"]
    assert body["id"] == seller.id
    assert body["stats"] == {"activeListings": 1, "soldListings": 1}
    assert "email" not in body
    assert "phone" not in body
    assert "phoneVerified" not in body


def test_public_profile_not_found(client):
    response = client.get("/api/users/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_public_routes_ignore_bad_tokens(client, make_user):
    seller = make_user()
    headers = {"Authorization": "Bearer not-a-token"}

    assert client.get(f"/api/users/{seller.id}", headers=headers).status_code == 200
    assert client.get(f"/api/users/{seller.id}/products", headers=headers).status_code == 200
