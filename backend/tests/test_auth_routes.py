"""
Authentication API tests.

Verifies:
- Register/login return an access token and set the refresh cookie
- /auth/token rotates the refresh cookie; the old value stops working
- /auth/logout revokes the refresh token and clears the cookie
- Profile read/update through the access token
"""

from weblarek.models import User
from weblarek.services import auth_service, token_service

from conftest import PASSWORD, login

COOKIE = "refreshToken"


def _set_cookie_header(resp) -> str:
    headers = [h for h in resp.headers.getlist("Set-Cookie") if h.startswith(f"{COOKIE}=")]
    assert len(headers) == 1
    return headers[0]


class TestRegister:

    def test_register_creates_user_and_tokens(self, client, db_session):
        resp = client.post("/auth/register", json={
            "email": "new@example.com",
            "password": PASSWORD,
            "name": "Newbie",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["user"]["email"] == "new@example.com"
        assert body["user"]["name"] == "Newbie"
        assert "password" not in body["user"]
        assert body["accessToken"]

        cookie = _set_cookie_header(resp)
        assert "HttpOnly" in cookie
        assert "SameSite=Lax" in cookie
        assert "Path=/" in cookie

        user = db_session.query(User).filter_by(email="new@example.com").one()
        assert user.roles == ["customer"]
        assert len(auth_service.list_refresh_fingerprints(user)) == 1

    def test_register_default_name(self, client, db_session):
        resp = client.post("/auth/register", json={"email": "anon@example.com", "password": PASSWORD})
        assert resp.status_code == 201
        assert resp.get_json()["user"]["name"] == "Евлампий"

    def test_duplicate_email(self, client, customer):
        resp = client.post("/auth/register", json={"email": customer.email, "password": PASSWORD})
        assert resp.status_code == 409
        assert resp.get_json() == {"error": auth_service.DUPLICATE_EMAIL}

    def test_short_password(self, client, db_session):
        resp = client.post("/auth/register", json={"email": "x@example.com", "password": "123"})
        assert resp.status_code == 400


class TestLogin:

    def test_login_success(self, client, customer):
        resp = login(client, customer.email)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["id"] == customer.id

        claims = token_service.verify_access_token(body["accessToken"])
        assert claims["sub"] == str(customer.id)
        assert client.get_cookie(COOKIE) is not None

    def test_wrong_password_and_unknown_email_look_the_same(self, client, customer):
        wrong = login(client, customer.email, "wrong-password")
        unknown = login(client, "nobody@example.com")
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json() == {"error": auth_service.INVALID_CREDENTIALS}


class TestRefreshAndLogout:

    def test_refresh_rotates_cookie(self, client, customer):
        login(client, customer.email)
        old = client.get_cookie(COOKIE).value

        resp = client.get("/auth/token")
        assert resp.status_code == 200
        assert resp.get_json()["accessToken"]

        new = client.get_cookie(COOKIE).value
        assert new != old

        stored = auth_service.list_refresh_fingerprints(customer)
        assert token_service.fingerprint(old) not in stored
        assert token_service.fingerprint(new) in stored

    def test_old_refresh_token_rejected_after_rotation(self, client, customer):
        login(client, customer.email)
        old = client.get_cookie(COOKIE).value
        client.get("/auth/token")

        client.set_cookie(COOKIE, old)
        resp = client.get("/auth/token")
        assert resp.status_code == 401

    def test_refresh_without_cookie(self, client, db_session):
        resp = client.get("/auth/token")
        assert resp.status_code == 401

    def test_logout_revokes_and_clears_cookie(self, client, customer):
        login(client, customer.email)
        raw = client.get_cookie(COOKIE).value

        resp = client.get("/auth/logout")
        assert resp.status_code == 200
        assert resp.get_json() == {"success": True}

        cookie = _set_cookie_header(resp)
        assert cookie.startswith(f"{COOKIE}=;")
        assert "Max-Age=-1" in cookie

        assert auth_service.list_refresh_fingerprints(customer) == []

        client.set_cookie(COOKIE, raw)
        assert client.get("/auth/logout").status_code == 401


class TestProfile:

    def test_current_user(self, client, customer, customer_headers):
        resp = client.get("/auth/user", headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["email"] == customer.email

    def test_current_user_roles(self, client, admin, admin_headers):
        resp = client.get("/auth/user/roles", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json() == ["admin", "customer"]

    def test_update_me(self, client, customer, customer_headers):
        resp = client.patch("/auth/me", json={"name": "Renamed", "phone": "+7 999 123-45-67"},
                            headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["name"] == "Renamed"

    def test_update_me_password_rehashed(self, client, customer, customer_headers):
        resp = client.patch("/auth/me", json={"password": "another1"}, headers=customer_headers)
        assert resp.status_code == 200
        assert login(client, customer.email, "another1").status_code == 200
        assert login(client, customer.email, PASSWORD).status_code == 401

    def test_update_me_cannot_grant_roles(self, client, customer, customer_headers):
        resp = client.patch("/auth/me", json={"roles": ["admin"]}, headers=customer_headers)
        assert resp.status_code == 400
        assert customer.roles == ["customer"]

    def test_requires_token(self, client, db_session):
        resp = client.get("/auth/user")
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid token"}
