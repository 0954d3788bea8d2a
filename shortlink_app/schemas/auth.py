from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class AuthResponse(CamelModel):
    id: str
    email: str
    access_token: str
    refresh_token: str


class ProfileResponse(CamelModel):
    id: str
    email: str


class CurrentUser(CamelModel):
    """Identity extracted from a verified access token"""
    id: str
    email: str
