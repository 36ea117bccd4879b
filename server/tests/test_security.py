"""Tests for the IP allow-list and the shared-password session."""

from atlas_dashboard.security import SESSION_COOKIE, session_token, valid_session

OFFICE_IP = "190.104.229.130"


def test_unlisted_ip_is_rejected(make_client):
    client = make_client(allowed_ips=OFFICE_IP)

    response = client.get("/api/health", headers={"X-Forwarded-For": "203.0.113.9"})

    assert response.status_code == 403
    assert response.text == "Access restricted"


def test_first_forwarded_hop_is_the_client(make_client):
    client = make_client(allowed_ips=f"10.0.0.1, {OFFICE_IP}")

    response = client.get("/api/health", headers={"X-Forwarded-For": f"{OFFICE_IP}, 10.9.9.9"})

    assert response.status_code == 200


def test_untrusted_forwarded_header_is_ignored(make_client):
    client = make_client(allowed_ips=OFFICE_IP, trust_forwarded_for=False)

    response = client.get("/api/health", headers={"X-Forwarded-For": OFFICE_IP})

    assert response.status_code == 403


def test_favicon_is_exempt(make_client):
    client = make_client(allowed_ips=OFFICE_IP)

    response = client.get("/favicon.ico", headers={"X-Forwarded-For": "203.0.113.9"})

    assert response.status_code != 403


def test_data_routes_require_login(make_client):
    client = make_client(dashboard_password="hunter2")

    assert client.get("/api/metrics/registered-users").status_code == 401
    assert client.get("/api/cache").status_code == 401
    assert client.get("/api/health").status_code == 200
    assert client.get("/api/auth/session").json() == {"authenticated": False, "passwordRequired": True}


def test_login_sets_session_cookie(make_client):
    client = make_client(dashboard_password="hunter2")

    assert client.post("/api/auth/login", json={"password": "wrong"}).status_code == 401

    response = client.post("/api/auth/login", json={"password": "hunter2"})
    assert response.status_code == 200
    assert response.cookies[SESSION_COOKIE] == session_token("hunter2")

    assert client.get("/api/metrics/registered-users").status_code == 200
    assert client.get("/api/auth/session").json()["authenticated"] is True


def test_logout_expires_cookie(make_client):
    client = make_client(dashboard_password="hunter2")

    response = client.post("/api/auth/logout")

    assert response.json() == {"authenticated": False}
    assert "Max-Age=0" in response.headers["set-cookie"]


def test_no_password_means_open_access(client):
    assert client.post("/api/auth/login", json={"password": ""}).json() == {"authenticated": True}
    assert client.get("/api/metrics/registered-users").status_code == 200


def test_session_tokens():
    token = session_token("hunter2")

    assert token == session_token("hunter2")
    assert token != session_token("hunter3")
    assert valid_session(token, "hunter2")
    assert not valid_session(token, "hunter3")
    assert not valid_session(None, "hunter2")
    assert valid_session(None, "")
