import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from cms.core.security import verify_password
from cms.db.models.user import User as UserModel
from cms.errors import DomainValidationError
from cms.repositories.user import get_user_by_email
from cms.schemas.user import PasswordReset
from cms.services import auth as auth_service


def _error_messages(response) -> list[str]:
    return [error["message"] for error in response.json()["errors"]]


def _signup(client, **overrides):
    payload = {
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret1",
    }
    payload.update(overrides)
    return client.post("/api/auth/signup", json=payload)


# ============================================================================
# SIGNUP TESTS
# ============================================================================


def test_signup_success(client, db: Session):
    """A fresh signup creates a standard user and returns a token for it."""
    response = _signup(client)

    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["username"] == "alice"
    assert data["user"]["role"] == "standard"

    user = get_user_by_email(db, "alice@example.com")
    assert user is not None
    assert user.id == data["user"]["id"]
    assert user.activated is True
    assert user.password_hash != "secret1"


def test_signup_token_is_usable(client):
    token = _signup(client).json()["token"]

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["email"] == "alice@example.com"


def test_signup_duplicate_email(client, db: Session):
    """A second signup with the same email fails and creates nothing."""
    assert _signup(client).status_code == 201

    response = _signup(client, username="alice2")

    assert response.status_code == 422
    assert "Email is already in use" in _error_messages(response)
    assert db.query(UserModel).filter(UserModel.email == "alice@example.com").count() == 1


def test_signup_duplicate_email_ignores_case(client):
    _signup(client)

    response = _signup(client, email="  ALICE@Example.com ")

    assert response.status_code == 422
    assert "Email is already in use" in _error_messages(response)


def test_signup_normalizes_email(client, db: Session):
    _signup(client, email="Alice@Example.COM")

    assert get_user_by_email(db, "alice@example.com") is not None


def test_signup_reports_all_errors_at_once(client, db: Session):
    """Every failing field is reported in a single response."""
    users_before = db.query(UserModel).count()

    response = _signup(client, username="  ", email="not-an-email", password="123")

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    fields = {error["field"] for error in body["errors"]}
    assert fields == {"username", "email", "password"}
    assert "Username cannot be blank." in _error_messages(response)
    assert "Email format is invalid." in _error_messages(response)
    assert "Password must be at least 6 characters." in _error_messages(response)
    assert db.query(UserModel).count() == users_before


def test_signup_blank_email(client):
    response = _signup(client, email="")

    assert response.status_code == 422
    assert "Email cannot be blank." in _error_messages(response)


def test_signup_password_confirmation_mismatch(client):
    response = _signup(client, password_confirmation="secret2")

    assert response.status_code == 422
    assert response.json()["errors"] == [
        {
            "field": "password_confirmation",
            "message": "Password confirmation does not match password",
        }
    ]


def test_signup_ignores_role_field(client):
    """Clients cannot choose their own role."""
    response = _signup(client, role="admin")

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "standard"


# ============================================================================
# LOGIN TESTS
# ============================================================================


def test_login_success(client, db: Session, admin_user: dict, tokens):
    """The token role matches the stored role."""
    response = client.post(
        "/api/auth/login",
        json={"email": admin_user["email"], "password": admin_user["password"]},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == admin_user["id"]
    assert data["user"]["role"] == "admin"
    assert tokens.verify(data["token"]).role.value == admin_user["role"]


def test_login_email_is_case_insensitive(client, standard_user: dict):
    response = client.post(
        "/api/auth/login",
        json={"email": standard_user["email"].upper(), "password": standard_user["password"]},
    )

    assert response.status_code == 200


def test_login_wrong_password_and_unknown_email_look_the_same(client, standard_user: dict):
    """Login never reveals whether the email exists."""
    wrong_password = client.post(
        "/api/auth/login",
        json={"email": standard_user["email"], "password": "wrong-password"},
    )
    unknown_email = client.post(
        "/api/auth/login",
        json={"email": "nobody@example.com", "password": "wrong-password"},
    )

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["detail"] == "Email or password is incorrect."


def test_login_blank_fields(client):
    response = client.post("/api/auth/login", json={"email": "", "password": ""})

    assert response.status_code == 422
    assert {e["field"] for e in response.json()["errors"]} == {"email", "password"}


def test_login_missing_password(client):
    response = client.post("/api/auth/login", json={"email": "a@example.com"})

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["errors"][0]["field"] == "password"


def test_logout_clears_cookie(client):
    client.cookies.set("jwt", "something")

    response = client.get("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"message": "logged out"}
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("jwt=")
    assert "Max-Age=0" in set_cookie


# ============================================================================
# ACCOUNT ACTIVATION TESTS
# ============================================================================


def test_signup_with_activation_required(client, db: Session, require_activation):
    """The account is created inactive and no token is returned."""
    response = _signup(client)

    assert response.status_code == 202
    assert response.json() == {"message": "Please check your email to activate your account."}
    user = get_user_by_email(db, "alice@example.com")
    assert user.activated is False
    assert user.activation_token


def test_inactive_user_cannot_login(client, require_activation):
    _signup(client)

    response = client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": "secret1"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == (
        "Account not activated. Check your email for activation link."
    )


def test_activate_account(client, db: Session, require_activation):
    _signup(client)
    token = get_user_by_email(db, "alice@example.com").activation_token

    response = client.post(
        "/api/auth/activate-account", json={"email": "alice@example.com", "token": token}
    )

    assert response.status_code == 200
    assert response.json()["user"]["username"] == "alice"
    db.expire_all()
    user = get_user_by_email(db, "alice@example.com")
    assert user.activated is True
    assert user.activation_token is None

    login = client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": "secret1"}
    )
    assert login.status_code == 200


def test_activation_token_is_single_use(client, db: Session, require_activation):
    _signup(client)
    token = get_user_by_email(db, "alice@example.com").activation_token
    payload = {"email": "alice@example.com", "token": token}
    assert client.post("/api/auth/activate-account", json=payload).status_code == 200

    response = client.post("/api/auth/activate-account", json=payload)

    assert response.status_code == 422
    assert _error_messages(response) == ["Could not activate account."]


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "alice@example.com", "token": "wrong-token"},
        {"email": "bob@example.com", "token": "wrong-token"},
        {"email": "", "token": ""},
    ],
)
def test_activate_account_rejects_bad_links(client, require_activation, payload):
    _signup(client)

    response = client.post("/api/auth/activate-account", json=payload)

    assert response.status_code == 422


# ============================================================================
# PASSWORD RESET TESTS
# ============================================================================


def test_forgot_password_stores_reset_token(client, db: Session, standard_user: dict):
    response = client.post(
        "/api/auth/forgot-password", json={"email": standard_user["email"]}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Email sent with password reset instructions."}
    db.expire_all()
    user = get_user_by_email(db, standard_user["email"])
    assert user.reset_token
    assert user.reset_sent_at is not None


def test_forgot_password_unknown_email(client):
    response = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

    assert response.status_code == 422
    assert _error_messages(response) == ["Email address not found."]


def test_reset_password(client, db: Session, standard_user: dict):
    client.post("/api/auth/forgot-password", json={"email": standard_user["email"]})
    db.expire_all()
    reset_token = get_user_by_email(db, standard_user["email"]).reset_token

    response = client.post(
        "/api/auth/reset-password",
        json={
            "email": standard_user["email"],
            "token": reset_token,
            "password": "brand-new",
            "password_confirmation": "brand-new",
        },
    )

    assert response.status_code == 200
    assert response.json()["user"]["id"] == standard_user["id"]
    db.expire_all()
    user = get_user_by_email(db, standard_user["email"])
    assert verify_password("brand-new", user.password_hash)
    assert user.reset_token is None
    assert user.reset_sent_at is None

    old_login = client.post(
        "/api/auth/login",
        json={"email": standard_user["email"], "password": standard_user["password"]},
    )
    assert old_login.status_code == 401


def test_reset_password_wrong_token(client, standard_user: dict):
    client.post("/api/auth/forgot-password", json={"email": standard_user["email"]})

    response = client.post(
        "/api/auth/reset-password",
        json={"email": standard_user["email"], "token": "nope", "password": "brand-new"},
    )

    assert response.status_code == 422
    assert "Reset email or token is invalid" in _error_messages(response)


def test_reset_password_after_window(client, db: Session, standard_user: dict):
    """A reset one millisecond past the window is refused."""
    client.post("/api/auth/forgot-password", json={"email": standard_user["email"]})
    db.expire_all()
    user = get_user_by_email(db, standard_user["email"])
    user.reset_sent_at = datetime.now(timezone.utc) - timedelta(hours=2, seconds=1)
    db.commit()

    response = client.post(
        "/api/auth/reset-password",
        json={"email": user.email, "token": user.reset_token, "password": "brand-new"},
    )

    assert response.status_code == 422
    assert "Password Reset has Expired." in _error_messages(response)


def test_reset_password_window_boundary(db: Session, standard_user: dict, tokens):
    """Completing exactly at the window edge succeeds; one millisecond later fails."""
    sent_at = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    asyncio.run(auth_service.forgot_password(db, standard_user["email"], now=sent_at))
    user = get_user_by_email(db, standard_user["email"])
    data = PasswordReset(
        email=standard_user["email"], token=user.reset_token, password="brand-new"
    )

    with pytest.raises(DomainValidationError) as exc_info:
        auth_service.reset_password(
            db, data, tokens, now=sent_at + timedelta(hours=2, milliseconds=1)
        )
    assert exc_info.value.messages() == ["Password Reset has Expired."]

    result = auth_service.reset_password(db, data, tokens, now=sent_at + timedelta(hours=2))
    assert result.user.id == standard_user["id"]


def test_reset_token_is_single_use(client, db: Session, standard_user: dict):
    client.post("/api/auth/forgot-password", json={"email": standard_user["email"]})
    db.expire_all()
    payload = {
        "email": standard_user["email"],
        "token": get_user_by_email(db, standard_user["email"]).reset_token,
        "password": "brand-new",
    }
    assert client.post("/api/auth/reset-password", json=payload).status_code == 200

    response = client.post("/api/auth/reset-password", json=payload)

    assert response.status_code == 422


# ============================================================================
# EMAIL NORMALIZATION AND RACE TESTS
# ============================================================================


def test_login_with_non_canonical_signup_email(client, db: Session):
    """The exact string used at signup logs in, even when it gets normalized."""
    email = "alice@ｅxample.com"  # fullwidth 'e' in the domain
    signup = _signup(client, email=email)
    assert signup.status_code == 201

    response = client.post("/api/auth/login", json={"email": email, "password": "secret1"})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == signup.json()["user"]["id"]
    assert get_user_by_email(db, "alice@example.com") is not None


def test_forgot_password_with_non_canonical_email(client):
    email = "alice@ｅxample.com"
    _signup(client, email=email)

    response = client.post("/api/auth/forgot-password", json={"email": email})

    assert response.status_code == 200


def test_signup_race_on_duplicate_email(client, db: Session, standard_user: dict, monkeypatch):
    """An insert that hits the unique index still reports the email field error."""
    monkeypatch.setattr("cms.repositories.user.get_user_by_email", lambda db, email: None)

    response = _signup(client, username="bob2", email=standard_user["email"])

    assert response.status_code == 422
    assert response.json()["errors"] == [{"field": "email", "message": "Email is already in use"}]
    assert db.query(UserModel).filter(UserModel.email == standard_user["email"]).count() == 1


def test_signup_hashes_password_off_the_event_loop(client, monkeypatch):
    real_hash = auth_service.get_password_hash
    threads = []

    def recording_hash(password: str) -> str:
        try:
            asyncio.get_running_loop()
            threads.append("event loop")
        except RuntimeError:
            threads.append("worker")
        return real_hash(password)

    monkeypatch.setattr(auth_service, "get_password_hash", recording_hash)

    assert _signup(client).status_code == 201
    assert threads == ["worker"]
