from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from beanie import PydanticObjectId
from typing import Optional


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    shop_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)

    @field_validator("name", "shop_name", "phone", "address", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    shop_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    # Changing the password requires the current one
    password: Optional[str] = Field(default=None, min_length=6)
    old_password: Optional[str] = None

    @field_validator("name", "shop_name", "phone", "address", mode="before")
    @classmethod
    def strip(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class UserResponse(BaseModel):
    id: PydanticObjectId
    name: str
    email: str
    shop_name: str
    phone: str
    address: str

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class ProfileResponse(BaseModel):
    message: str
    user: UserResponse
