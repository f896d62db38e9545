"""create users table

Revision ID: 001
Revises:
Create Date: 2026-09-14 10:00:00.000000

"""

from datetime import datetime, timezone
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from passlib.context import CryptContext

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="standard"),
        sa.Column("activated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("activation_token", sa.String(), nullable=True),
        sa.Column("reset_token", sa.String(), nullable=True),
        sa.Column("reset_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("role IN ('standard', 'admin')", name="ck_users_role"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_reset_token", "users", ["reset_token"], unique=False)

    # Get settings from environment (will be loaded by Alembic env.py)
    from cms.core.config import settings
    from cms.services.validation import normalize_email

    # Seed the first admin only when credentials are configured
    if not (settings.first_admin_email and settings.first_admin_password):
        return

    now = datetime.now(timezone.utc)
    op.execute(
        sa.text(
            """
            INSERT INTO users (username, email, password_hash, role, activated, created_at, updated_at)
            VALUES (:username, :email, :password_hash, 'admin', :activated, :now, :now)
            """
        ).bindparams(
            username=settings.first_admin_username,
            email=normalize_email(settings.first_admin_email),
            password_hash=pwd_context.hash(settings.first_admin_password),
            activated=True,
        ).bindparams(sa.bindparam("now", value=now, type_=sa.DateTime(timezone=True)))
    )


def downgrade() -> None:
    op.drop_index("ix_users_reset_token", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
