from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class SignUpIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=200)
    display_name: str | None = Field(default=None, max_length=200)


class SignInIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=200)


class AccountOut(BaseModel):
    uid: str
    email: str
    display_name: str | None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    uid: str
    expires_at: datetime
