"""
End-to-end tests through the FastAPI app
"""


def _register(client, email="amy@example.com", password="amypw", username="amy"):
    return client.post("/auth/register", json={
        "username": username, "email": email, "password": password,
    })


def _login(client, email="amy@example.com", password="amypw"):
    return client.post("/auth/login", json={"email": email, "password": password})


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestHealth:

    def test_healthz(self, client):
        r = client.get("/healthz")
        assert r.status_code == 200
        assert r.json() == {"ok": True}


class TestRegisterAndLogin:

    def test_register_returns_redacted_profile(self, client):
        r = _register(client)
        assert r.status_code == 201
        body = r.json()
        assert body["email"] == "amy@example.com"
        assert body["role"] == "user"
        assert body["transaction_history"] == []
        assert "password_hash" not in body and "password" not in body
        assert "seed" not in body

    def test_duplicate_email(self, client):
        _register(client)
        r = _register(client, username="amy2")
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "DUPLICATE_EMAIL"

    def test_register_cannot_pick_role(self, client):
        r = client.post("/auth/register", json={
            "username": "m", "email": "m@example.com", "password": "pw", "role": "admin",
        })
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "VALIDATION_FAILURE"

    def test_register_missing_fields(self, client):
        r = client.post("/auth/register", json={"email": "m@example.com"})
        assert r.status_code == 400
        fields = {f["field"] for f in r.json()["detail"]["fields"]}
        assert {"username", "password"} <= fields

    def test_login(self, client):
        user_id = _register(client).json()["id"]
        r = _login(client)
        assert r.status_code == 200
        body = r.json()
        assert body["message"] == "Login successful"
        assert body["token"]
        assert body["user"] == {
            "id": user_id, "username": "amy", "email": "amy@example.com", "role": "user",
        }

    def test_login_failures_are_uniform(self, client):
        _register(client)
        wrong = _login(client, password="nope")
        unknown = _login(client, email="nobody@example.com")
        assert wrong.status_code == unknown.status_code == 400
        assert wrong.json() == unknown.json()
        assert wrong.json()["detail"]["error"] == "INVALID_CREDENTIALS"

    def test_login_with_mixed_case_email_as_registered(self, client):
        r = _register(client, email="Bob@Example.COM", password="bobpw", username="bob")
        assert r.status_code == 201
        assert r.json()["email"] == "Bob@example.com"

        for email in ("Bob@Example.COM", "Bob@example.com"):
            r = _login(client, email=email, password="bobpw")
            assert r.status_code == 200
            assert r.json()["user"]["email"] == "Bob@example.com"

    def test_login_with_unparseable_email_is_invalid_credentials(self, client):
        r = _login(client, email="not an email")
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "INVALID_CREDENTIALS"


class TestAuthentication:

    def test_missing_header(self, client):
        r = client.get("/users")
        assert r.status_code == 401
        assert r.headers["www-authenticate"] == "Bearer"

    def test_malformed_header(self, client):
        r = client.get("/users", headers={"Authorization": "Token abc"})
        assert r.status_code == 401

    def test_garbage_token(self, client):
        r = client.get("/users", headers=_bearer("not.a.jwt"))
        assert r.status_code == 401
        assert r.json()["detail"] == {"error": "UNAUTHENTICATED", "message": "Invalid token"}

    def test_auth_checked_before_body(self, client):
        r = client.patch("/users/anything/transactions", json={"amount": -1})
        assert r.status_code == 401


class TestAccounts:

    def test_self_service_flow(self, client):
        user_id = _register(client).json()["id"]
        token = _login(client).json()["token"]

        r = client.get(f"/users/{user_id}", headers=_bearer(token))
        assert r.status_code == 200
        assert r.json()["id"] == user_id

        r = client.put(f"/users/{user_id}", headers=_bearer(token),
                       json={"wallet": "0xabc", "seed": "secret words"})
        assert r.status_code == 200
        assert r.json()["wallet"] == "0xabc"
        assert "seed" not in r.json()

        r = client.delete(f"/users/{user_id}", headers=_bearer(token))
        assert r.status_code == 200
        assert r.json() == {"message": "User deleted successfully"}

    def test_user_cannot_touch_other_accounts(self, client, alice, bob, auth_header):
        h = auth_header(alice)
        tx = {"date": "2024-01-01", "amount": 1, "recipient": "r"}
        assert client.get(f"/users/{bob.id}", headers=h).status_code == 403
        assert client.put(f"/users/{bob.id}", headers=h, json={"wallet": "x"}).status_code == 403
        assert client.patch(f"/users/{bob.id}/transactions", headers=h, json=tx).status_code == 403
        assert client.delete(f"/users/{bob.id}", headers=h).status_code == 403

    def test_user_cannot_list_or_create(self, client, alice, auth_header):
        h = auth_header(alice)
        assert client.get("/users", headers=h).status_code == 403
        r = client.post("/users", headers=h, json={
            "username": "x", "email": "x@example.com", "password": "pw",
        })
        assert r.status_code == 403
        assert r.json()["detail"]["error"] == "FORBIDDEN"

    def test_user_cannot_promote_self(self, client, alice, auth_header):
        r = client.put(f"/users/{alice.id}", headers=auth_header(alice), json={"role": "admin"})
        assert r.status_code == 403

    def test_admin_flow(self, client, admin, bob, auth_header):
        h = auth_header(admin)

        r = client.post("/users", headers=h, json={
            "username": "svc", "email": "svc@example.com", "passwordless": True,
            "wallet": "0xsvc", "balance": 5,
            "transaction_history": [{"date": "2024-01-01", "amount": 2, "recipient": "r"}],
        })
        assert r.status_code == 201
        created = r.json()
        assert created["balance"] == 5
        assert created["transaction_history"][0]["status"] == "Pending"

        r = client.get("/users", headers=h)
        assert r.status_code == 200
        assert {u["email"] for u in r.json()} == {
            "root@example.com", "bob@example.com", "svc@example.com",
        }

        assert client.get(f"/users/{bob.id}", headers=h).status_code == 200
        r = client.put(f"/users/{bob.id}", headers=h, json={"role": "admin"})
        assert r.json()["role"] == "admin"

        assert client.delete(f"/users/{created['id']}", headers=h).status_code == 200
        assert client.get(f"/users/{created['id']}", headers=h).status_code == 404
        assert client.delete(f"/users/{created['id']}", headers=h).status_code == 404

    def test_admin_create_needs_password_or_marker(self, client, admin, auth_header):
        r = client.post("/users", headers=auth_header(admin), json={
            "username": "x", "email": "x@example.com",
        })
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "VALIDATION_FAILURE"

    def test_update_validation(self, client, alice, auth_header):
        r = client.put(f"/users/{alice.id}", headers=auth_header(alice),
                       json={"transaction_history": []})
        assert r.status_code == 400

    def test_deleted_user_token_gets_not_found(self, client, alice, tokens):
        h = _bearer(tokens.issue(alice.id, "user"))
        assert client.delete(f"/users/{alice.id}", headers=h).status_code == 200
        assert client.get(f"/users/{alice.id}", headers=h).status_code == 404


class TestTransactions:

    def test_append(self, client, alice, auth_header):
        h = auth_header(alice)
        url = f"/users/{alice.id}/transactions"
        first = {"date": "2024-01-01", "amount": 10, "recipient": "a", "status": "Success"}
        second = {"date": "2024-01-02", "amount": 0, "recipient": "b", "status": "Pending"}

        assert client.patch(url, headers=h, json=first).status_code == 200
        r = client.patch(url, headers=h, json=second)
        assert r.status_code == 200
        assert [t["recipient"] for t in r.json()["transaction_history"]] == ["a", "b"]

    def test_negative_amount(self, client, alice, auth_header):
        h = auth_header(alice)
        url = f"/users/{alice.id}/transactions"
        r = client.patch(url, headers=h, json={"date": "d", "amount": -1, "recipient": "r"})
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "VALIDATION_FAILURE"
        assert client.get(f"/users/{alice.id}", headers=h).json()["transaction_history"] == []

    def test_bad_status(self, client, alice, auth_header):
        r = client.patch(f"/users/{alice.id}/transactions", headers=auth_header(alice),
                         json={"date": "d", "amount": 1, "recipient": "r", "status": "Done"})
        assert r.status_code == 400

    def test_admin_appends_for_missing_user(self, client, admin, auth_header):
        r = client.patch("/users/missing/transactions", headers=auth_header(admin),
                         json={"date": "d", "amount": 1, "recipient": "r"})
        assert r.status_code == 404
        assert r.json()["detail"]["error"] == "NOT_FOUND"
