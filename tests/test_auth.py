from datetime import timedelta

from config import settings
from models.log import Log
from models.session import UserSession
from utils.dates import utcnow

from conftest import PASSWORD, auth_headers


def login(client, email, password=PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_register_creates_plain_user_and_session(client, db):
    response = client.post(
        "/auth/register",
        json={"email": "New.User@DentalClinic.com", "password": "s3cretpass", "displayName": "New User"},
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == "new.user@dentalclinic.com"
    assert user["role"] == "user"
    assert user["displayName"] == "New User"
    assert settings.SESSION_COOKIE_NAME in response.cookies

    session = client.get("/auth/session")
    assert session.status_code == 200
    assert session.json()["user"]["id"] == user["id"]


def test_register_duplicate_email(client, dentist):
    response = client.post(
        "/auth/register",
        json={"email": "LAURA@dentalclinic.com", "password": "s3cretpass", "displayName": "Dup"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "Registration failed: email already in use."


def test_register_validates_payload(client):
    response = client.post("/auth/register", json={"email": "not-an-email", "password": "short", "displayName": ""})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid input data"


def test_login_sets_http_only_cookie(client, dentist):
    response = login(client, "laura@dentalclinic.com")
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "dentist"

    set_cookie = response.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=strict" in set_cookie

    assert client.get("/auth/session").json()["user"]["email"] == "laura@dentalclinic.com"


def test_login_wrong_password(client, db, dentist):
    response = login(client, "laura@dentalclinic.com", "wrong-password")
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}

    failure = db.query(Log).filter(Log.action == "LOGIN", Log.status == "FAIL").one()
    assert failure.meta["email"] == "laura@dentalclinic.com"


def test_login_unknown_email(client):
    response = login(client, "nobody@dentalclinic.com")
    assert response.status_code == 401


def test_login_locks_out_after_repeated_failures(client, dentist):
    for _ in range(settings.LOGIN_MAX_ATTEMPTS):
        assert login(client, "laura@dentalclinic.com", "wrong-password").status_code == 401

    # Even the right password is refused while locked out
    locked = login(client, "laura@dentalclinic.com")
    assert locked.status_code == 429
    assert "Too many failed login attempts" in locked.json()["error"]


def test_old_failures_do_not_count(client, db, dentist):
    old = utcnow() - timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES + 1)
    for _ in range(settings.LOGIN_MAX_ATTEMPTS):
        db.add(Log(ts=old, action="LOGIN", resource="auth", status="FAIL", meta={"email": "laura@dentalclinic.com"}))
    db.commit()

    assert login(client, "laura@dentalclinic.com").status_code == 200


def test_session_requires_authentication(client):
    response = client.get("/auth/session")
    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}


def test_bearer_token_is_accepted(client, db, admin):
    response = client.get("/auth/session", headers=auth_headers(db, admin))
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "admin"


def test_tampered_token_is_rejected(client, db, admin):
    headers = auth_headers(db, admin)
    headers["Authorization"] += "x"
    assert client.get("/auth/session", headers=headers).status_code == 401


def test_expired_session_is_rejected_and_removed(client, db, admin):
    headers = auth_headers(db, admin)
    session = db.query(UserSession).filter(UserSession.user_id == admin.id).one()
    session.expires_at = utcnow() - timedelta(seconds=1)
    db.commit()

    response = client.get("/auth/session", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "Session expired"

    db.expire_all()
    assert db.query(UserSession).count() == 0


def test_logout_deletes_session(client, db, dentist):
    login(client, "laura@dentalclinic.com")

    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully"}

    db.expire_all()
    assert db.query(UserSession).count() == 0
    assert client.get("/auth/session").status_code == 401


def test_lockout_counts_only_the_attempted_email(client, db, dentist):
    for _ in range(settings.LOGIN_MAX_ATTEMPTS * 2):
        db.add(Log(ts=utcnow(), action="LOGIN", resource="auth", status="FAIL", meta={"email": "other@dentalclinic.com"}))
    db.commit()

    assert login(client, "laura@dentalclinic.com").status_code == 200
    assert login(client, "other@dentalclinic.com").status_code == 429
