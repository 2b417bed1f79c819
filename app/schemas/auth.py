"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.schemas.users import ProfileResponse, UserRole


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class SignInRequest(BaseModel):
    """Email and password sign-in request."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class SignUpRequest(SignInRequest):
    """Registration request: credentials plus the initial profile."""

    confirm_password: str = Field(..., min_length=6, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=200)
    role: UserRole
    department: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=30)

    @model_validator(mode="after")
    def passwords_match(self) -> "SignUpRequest":
        """Validate the password confirmation."""
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class DemoSignInRequest(BaseModel):
    """Demo mode sign-in as one of the seeded profiles."""

    role: UserRole


class LoginResponse(BaseModel):
    """Login response with tokens and profile."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    profile: ProfileResponse


class SessionResponse(BaseModel):
    """The caller's current session."""

    profile: ProfileResponse
    role: UserRole
    capabilities: list[str]
    demo: bool
