# app/schemas/user.py
import re
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# At least one lowercase letter, one uppercase letter and one digit
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
PASSWORD_MIN_LENGTH = 6
# bcrypt only looks at the first 72 bytes
PASSWORD_MAX_BYTES = 72


def check_password_strength(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number"
        )
    return value


def _clean_name(value, label: str):
    if not isinstance(value, str):
        return value
    value = value.strip()
    if len(value) < 2:
        raise ValueError(f"{label} must be at least 2 characters long")
    return value

class RegisterRequest(BaseModel):
    name: str = Field(..., max_length=100)
    firstname: str = Field(..., max_length=100)
    email: EmailStr
    password: str

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, value):
        return _clean_name(value, "Name")

    @field_validator("firstname", mode="before")
    @classmethod
    def check_firstname(cls, value):
        return _clean_name(value, "First name")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return check_password_strength(value)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, description="Password is required")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

# Fields accepted on PUT /users/profile
class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    firstname: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, value):
        return _clean_name(value, "Name")

    @field_validator("firstname", mode="before")
    @classmethod
    def check_firstname(cls, value):
        return _clean_name(value, "First name")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: Optional[str]) -> Optional[str]:
        return check_password_strength(value) if value is not None else value

class BalanceMovement(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    type: Literal["deposit", "removal"]

# Public fields, never the password hash
class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    firstname: str
    email: EmailStr

class UserProfileRead(UserSummary):
    created_at: datetime

class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserSummary

class ProfileResponse(BaseModel):
    user: UserProfileRead

class ProfileUpdateResponse(BaseModel):
    message: str
    user: UserSummary

class VerifyResponse(BaseModel):
    message: str
    user: Dict

class BalanceResponse(BaseModel):
    message: str
    balance: float

class MonthlyActivity(BaseModel):
    month: str
    expenses: float
    revenues: float
    balance: float

class DashboardResponse(BaseModel):
    user: UserProfileRead
    categoryData: Dict[str, float]
    monthlyData: List[MonthlyActivity]
