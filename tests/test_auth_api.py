"""Tests for registration, login and the seller approval lifecycle."""

PASSWORD = "correct-horse-battery"


def _register(client, email, role="customer"):
    return client.post(
        "/auth/register",
        json={"name": "New User", "email": email, "password": PASSWORD, "role": role},
    )


def _login(client, email, password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


class TestRegistration:
    def test_customer_is_approved_immediately(self, client):
        response = _register(client, "Shopper@Example.com")

        assert response.status_code == 201
        assert response.json()["account_status"] == "approved"
        assert response.json()["email"] == "shopper@example.com"

    def test_seller_starts_pending(self, client):
        response = _register(client, "maker@example.com", role="seller")

        assert response.json()["role"] == "seller"
        assert response.json()["account_status"] == "pending"

    def test_admin_role_cannot_be_claimed(self, client):
        response = _register(client, "sneaky@example.com", role="admin")

        assert response.status_code == 422

    def test_duplicate_email(self, client):
        _register(client, "twice@example.com")

        response = _register(client, "twice@example.com")

        assert response.status_code == 400


class TestLogin:
    def test_token_identifies_user(self, client):
        _register(client, "buyer@example.com")

        token = _login(client, "buyer@example.com").json()["access_token"]
        me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert me.status_code == 200
        assert me.json()["email"] == "buyer@example.com"

    def test_wrong_password(self, client):
        _register(client, "buyer@example.com")

        response = _login(client, "buyer@example.com", password="not-the-password")

        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401


class TestSellerApproval:
    def test_pending_seller_cannot_log_in(self, client):
        _register(client, "maker@example.com", role="seller")

        response = _login(client, "maker@example.com")

        assert response.status_code == 403
        assert "pending approval" in response.json()["detail"]

    def test_admin_approves_seller(self, client, admin, auth_headers):
        seller_id = _register(client, "maker@example.com", role="seller").json()["id"]

        requests = client.get("/admin/sellers/requests", headers=auth_headers(admin))
        approved = client.put(f"/admin/sellers/{seller_id}/approve", headers=auth_headers(admin))

        assert [u["id"] for u in requests.json()] == [seller_id]
        assert approved.json()["account_status"] == "approved"
        assert _login(client, "maker@example.com").status_code == 200

    def test_rejection_revokes_existing_tokens(self, client, seller, admin, auth_headers):
        headers = auth_headers(seller)
        assert client.get("/seller/stats", headers=headers).status_code == 200

        client.put(f"/admin/sellers/{seller.id}/reject", headers=auth_headers(admin))

        assert client.get("/seller/stats", headers=headers).status_code == 403

    def test_only_admins_manage_sellers(self, client, customer, seller, auth_headers):
        response = client.put(f"/admin/sellers/{seller.id}/approve", headers=auth_headers(customer))

        assert response.status_code == 403

    def test_approving_a_customer_is_not_found(self, client, customer, admin, auth_headers):
        response = client.put(f"/admin/sellers/{customer.id}/approve", headers=auth_headers(admin))

        assert response.status_code == 404
