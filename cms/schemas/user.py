from datetime import datetime

from pydantic import BaseModel, ConfigDict

from cms.db.models.user import UserRole


class Identity(BaseModel):
    """The claims carried by an identity token."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: UserRole


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: UserRole
    activated: bool
    created_at: datetime
    updated_at: datetime


class SignupRequest(BaseModel):
    # Plain strings so that every field rule is checked and reported together
    username: str = ""
    email: str = ""
    password: str = ""
    password_confirmation: str | None = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class ActivationRequest(BaseModel):
    email: str = ""
    token: str = ""


class UserUpdate(BaseModel):
    username: str = ""
    email: str = ""
    password: str | None = None
    password_confirmation: str | None = None


class PasswordResetRequest(BaseModel):
    email: str = ""


class PasswordReset(BaseModel):
    email: str = ""
    token: str = ""
    password: str = ""
    password_confirmation: str | None = None


class Token(BaseModel):
    token: str
    token_type: str = "bearer"
    user: Identity


class Message(BaseModel):
    message: str
