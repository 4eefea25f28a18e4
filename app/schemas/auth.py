"""Pydantic schemas for authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.user import Role


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    password: str
    password_confirm: str = Field(alias="passwordConfirm")
    role: Role | None = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str
    password_confirm: str = Field(alias="passwordConfirm")


class UserResponse(BaseModel):
    """Public view of a user; never carries password or reset-token fields."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: Role
    created_at: datetime


class UserData(BaseModel):
    user: UserResponse


class TokenResponse(BaseModel):
    status: str = "success"
    token: str


class SignupResponse(TokenResponse):
    data: UserData


class MeResponse(BaseModel):
    status: str = "success"
    data: UserData


class MessageResponse(BaseModel):
    status: str = "success"
    message: str
