from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional


class UserRegister(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[UserOut] = None


class UserUpdate(BaseModel):
    name: str = Field(..., min_length=2)


class ProfileResponse(UserOut):
    favorites: List[int] = []
    downloads: List[int] = []
    purchased_assets: List[int] = []
