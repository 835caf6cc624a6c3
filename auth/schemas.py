from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserInfo(BaseModel):
    id: str = Field(..., alias="_id")
    name: str
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None

    model_config = {"populate_by_name": True}


class AuthResponse(BaseModel):
    token: str
    user: UserInfo


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=80)
    phone: Optional[str] = None
    address: Optional[str] = None
