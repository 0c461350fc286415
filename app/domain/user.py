"""Domain models for users and authentication."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from app.domain.record import Record


class User(Record):
    """Registered account.

    Attributes:
        email: User's email address (unique)
        name: Display name
        password_hash: argon2id hash of the password, never serialized
        role: User role (user, admin)
        sign_in_count: Number of successful sign-ins
        current_sign_in_at: Time of the latest sign-in
        last_sign_in_at: Time of the sign-in before that
    """
    email: EmailStr
    name: str = ""
    password_hash: str = Field(default="", exclude=True, repr=False)
    role: str = "user"
    sign_in_count: int = 0
    current_sign_in_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None

    def track_sign_in(self, at: datetime) -> None:
        self.last_sign_in_at = self.current_sign_in_at or at
        self.current_sign_in_at = at
        self.sign_in_count += 1

    def to_profile(self) -> "UserProfile":
        return UserProfile.model_validate(self.model_dump())


class UserProfile(BaseModel):
    """Public view of a user."""
    id: int
    email: str
    name: str
    role: str
    sign_in_count: int = 0
    current_sign_in_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TokenData(BaseModel):
    """JWT token payload data.

    Attributes:
        sub: Subject (user ID)
        email: User email
        role: User role
        jti: Unique token id, used for revocation
        exp: Token expiration time
        iat: Token issued at time
    """
    sub: str
    email: str
    role: str
    jti: str
    exp: datetime
    iat: Optional[datetime] = None


class SignInRequest(BaseModel):
    """Sign-in credentials."""
    email: EmailStr
    password: str

    model_config = {
        "json_schema_extra": {
            "example": {"email": "user@example.com", "password": "secret123"}
        }
    }


class RegistrationRequest(BaseModel):
    """Sign-up form."""
    email: EmailStr
    password: str
    password_confirmation: Optional[str] = None
    name: str = ""


class AccountUpdateRequest(BaseModel):
    """Account edit form; ``current_password`` is always required."""
    current_password: str
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class PasswordResetRequest(BaseModel):
    """Request reset instructions for an email address."""
    email: EmailStr


class PasswordChangeRequest(BaseModel):
    """Set a new password with a reset token."""
    reset_password_token: str
    password: str
    password_confirmation: Optional[str] = None


class TokenResponse(BaseModel):
    """Authentication token response.

    Attributes:
        access_token: JWT access token
        token_type: Token type (always "bearer")
        expires_in: Token lifetime in seconds
        user: Authenticated user details
    """
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile
