from beanie import Document, Indexed
from pydantic import Field
from typing import Annotated, Optional
from datetime import datetime


class User(Document):
    """A shop owner. Every product and bill is scoped to one of these."""

    name: str
    email: Annotated[str, Indexed(unique=True)]  # Stored lowercased
    hashed_password: str

    # Shop details
    shop_name: str
    phone: str
    address: str

    is_active: bool = True

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    last_login: Optional[datetime] = None

    class Settings:
        name = "users"
