from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ..models.user import UserRole

MAX_NAME_LEN = 120
MAX_EMAIL_LEN = 254
MIN_PASSWORD_LEN = 8


def _check_email(v: str) -> str:
    v = v.strip().lower()
    if len(v) > MAX_EMAIL_LEN:
        raise ValueError("email is too long")
    local, _, domain = v.partition("@")
    if not local or "." not in domain:
        raise ValueError("email is not a valid address")
    return v


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str
    role: UserRole

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) > MAX_NAME_LEN:
            raise ValueError(f"name must be at most {MAX_NAME_LEN} characters")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return v.strip().lower()


class UserOut(BaseModel):
    id: int
    name: str | None = None
    email: str
    role: UserRole | None = None
    image: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
    redirect_to: str


class RoleAssignRequest(BaseModel):
    role: UserRole


class ProfileUpdateRequest(BaseModel):
    name: str | None = None
    current_password: str | None = None
    new_password: str | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

    @model_validator(mode="after")
    def validate_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class AdminUserCreate(BaseModel):
    name: str
    email: str
    password: str
    role: UserRole | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)


class AdminUserUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    role: UserRole | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return _check_email(v) if v is not None else None


class AuditLogOut(BaseModel):
    id: int
    action: str
    message: str
    user_id: int | None = None
    target_id: int | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
