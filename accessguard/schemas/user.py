"""Account schemas: registration, login and the /me profile."""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from accessguard.models.user import PlanType, UserRole


class UserBase(BaseModel):
    email: EmailStr
    full_name: str | None = None


class RegisterRequest(UserBase):
    """Registration request.

    Subscribers whose account was opened by checkout use it to set their
    first password, passing the claim token from their welcome email.
    """
    # bcrypt only hashes the first 72 bytes
    password: str = Field(..., min_length=8, max_length=72)
    confirm_password: str
    claim_token: str | None = None

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not any(c.isalpha() for c in v) or not any(c.isdigit() for c in v):
            raise ValueError("Password must contain letters and digits")
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(UserBase):
    id: int
    role: UserRole
    plan: PlanType
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None

    model_config = {"from_attributes": True}


class SubscriptionResponse(BaseModel):
    """Current Stripe subscription as mirrored locally."""
    plan: PlanType
    status: str
    current_period_end: datetime | None
    trial_end: datetime | None
    cancel_at: datetime | None

    model_config = {"from_attributes": True}


class ProfileResponse(UserResponse):
    """The signed-in user with plan allowances and billing state."""
    site_limit: int
    has_billing_account: bool
    subscription: SubscriptionResponse | None = None


class UserUpdate(BaseModel):
    full_name: str | None = Field(default=None, max_length=255)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
