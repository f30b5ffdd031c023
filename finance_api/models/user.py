from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from finance_api.models.common import UTCDateTime, new_id, utcnow

Role = Literal["admin", "user"]


class UserCreate(BaseModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    role: Role = "user"
    preferred_currency: str = "USD"

    @field_validator("preferred_currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()


class UserLogin(BaseModel):
    username: str
    password: str


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=new_id)
    username: str
    password_hash: str
    role: Role = "user"
    preferred_currency: str = "USD"
    created_at: UTCDateTime = Field(default_factory=utcnow)


class UserPublic(BaseModel):
    user_id: str
    username: str
    role: Role
    preferred_currency: str
    created_at: datetime
