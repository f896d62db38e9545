import os
import tempfile
from pathlib import Path

# Set environment variables BEFORE any imports that might use settings
_test_db_dir = tempfile.mkdtemp()
_test_db_path = os.path.join(_test_db_dir, "test_cms.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_test_db_path}"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-characters-long-for-testing"
os.environ["ALGORITHM"] = "HS256"
os.environ["ACCESS_TOKEN_EXPIRE_DAYS"] = "365"
os.environ["PASSWORD_RESET_EXPIRE_MINUTES"] = "120"
os.environ["ACCOUNT_ACTIVATION_REQUIRED"] = "false"
os.environ["FIRST_ADMIN_EMAIL"] = "admin@test.example.com"
os.environ["FIRST_ADMIN_USERNAME"] = "admin"
os.environ["FIRST_ADMIN_PASSWORD"] = "AdminTest123!"
for _smtp_var in ("SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD", "SMTP_FROM_EMAIL"):
    os.environ[_smtp_var] = ""

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from cms.core.security import get_password_hash, get_token_service
from cms.db.models.user import User as UserModel, UserRole
from cms.main import app
from cms.schemas.user import Identity

ROOT_DIR = Path(__file__).resolve().parent.parent


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test and run migrations."""
    temp_db_dir = tempfile.mkdtemp()
    test_db_path = os.path.join(temp_db_dir, "test.db")
    test_db_url = f"sqlite:///{test_db_path}"

    test_engine = create_engine(
        test_db_url,
        connect_args={"check_same_thread": False},
    )
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )

    # Run Alembic migrations to set up the schema and seed the first admin
    alembic_cfg = Config(str(ROOT_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT_DIR / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", test_db_url)
    command.upgrade(alembic_cfg, "head")

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        test_engine.dispose()
        for suffix in ["", "-journal"]:
            path = f"{test_db_path}{suffix}"
            if os.path.exists(path):
                os.remove(path)
        os.rmdir(temp_db_dir)


@pytest.fixture(scope="function")
def client(db_session):
    """Create a test client with database dependency override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    from cms.api.deps import get_db

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session to match test naming conventions."""
    return db_session


@pytest.fixture(scope="function")
def tokens():
    return get_token_service()


@pytest.fixture(scope="function")
def make_user(db: Session):
    """Factory creating users straight in the database."""

    def _make_user(
        username: str = "bob",
        email: str = "bob@example.com",
        password: str = "secret1",
        role: UserRole = UserRole.STANDARD,
        activated: bool = True,
    ) -> dict:
        user = UserModel(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            role=role.value,
            activated=activated,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return {
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "password": password,
            "role": user.role,
        }

    return _make_user


def issue_token(user: dict) -> str:
    identity = Identity(id=user["id"], username=user["username"], role=user["role"])
    return get_token_service().issue(identity)


@pytest.fixture(scope="function")
def token_for():
    """Issue an identity token for a user dict."""
    return issue_token


@pytest.fixture(scope="function")
def admin_user(db: Session) -> dict:
    """The admin seeded by the users migration."""
    from cms.core.config import settings
    from cms.repositories.user import get_user_by_email

    user = get_user_by_email(db, settings.first_admin_email)
    if not user:
        raise RuntimeError("Admin user not found. Check migration 001.")

    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "password": settings.first_admin_password,
        "role": user.role,
    }


@pytest.fixture(scope="function")
def admin_token(admin_user: dict) -> str:
    return issue_token(admin_user)


@pytest.fixture(scope="function")
def standard_user(make_user) -> dict:
    return make_user()


@pytest.fixture(scope="function")
def standard_token(standard_user: dict) -> str:
    return issue_token(standard_user)


@pytest.fixture(scope="function")
def require_activation(monkeypatch):
    """Switch the app to the activation-required signup flow."""
    from cms.core.config import settings

    monkeypatch.setattr(settings, "account_activation_required", True)
