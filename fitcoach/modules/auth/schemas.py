from enum import Enum
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional


class Role(str, Enum):
    COACH = "coach"
    CLIENT = "client"


class BearerToken(BaseModel):
    """The single accepted credential type: a provider-issued access token."""
    model_config = ConfigDict(frozen=True)

    token: str = Field(min_length=1)

    def __repr__(self) -> str:
        return "BearerToken(<redacted>)"

    __str__ = __repr__


class CallerIdentity(BaseModel):
    """Verified, request-scoped identity. Never persisted, never shared."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    role: Role
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def is_coach(self) -> bool:
        return self.role == Role.COACH


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    role: Role


class RegisterRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: EmailStr
    password: str = Field(min_length=8)
    role: Role = Role.CLIENT
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class RegisterResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    email: str
    message: str
