from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)

CREDS = {"email": "Sigma@Example.com", "password": "ohio123"}


def signup(creds=CREDS):
    return client.post("/api/auth/signup", json=creds)


def test_signup_returns_token_and_user():
    r = signup()
    assert r.status_code == 201
    data = r.json()
    assert "token" in data
    assert data["user"]["email"] == "sigma@example.com"


def test_signup_duplicate_email():
    signup()
    r = signup({"email": "sigma@example.com", "password": "different1"})
    assert r.status_code == 400
    assert r.json()["detail"] == "User already registered"


def test_signup_validates_payload():
    assert client.post("/api/auth/signup", json={"email": "nope", "password": "ohio123"}).status_code == 422
    assert client.post("/api/auth/signup", json={"email": "a@b.co", "password": "123"}).status_code == 422


def test_login_success():
    signup()
    r = client.post("/api/auth/login", json=CREDS)
    assert r.status_code == 200
    data = r.json()
    assert "token" in data
    assert data["user"]["last_login"] is not None


def test_login_fail():
    signup()
    r = client.post("/api/auth/login", json={"email": CREDS["email"], "password": "wrong-pass"})
    assert r.status_code == 401
    r = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "ohio123"})
    assert r.status_code == 401


def test_me_requires_token():
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_me_with_token():
    token = signup().json()["token"]
    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["user"]["email"] == "sigma@example.com"
