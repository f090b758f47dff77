from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    name: str
    email: EmailStr
    phone: Optional[str] = None

    model_config = {"from_attributes": True}


class UserCreate(UserBase):
    password: str = Field(min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(UserBase):
    id: int
    role: str = "user"


class TokenOut(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    role: str
    user: UserOut


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class UserSummary(BaseModel):
    id: int
    email: str
    name: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
