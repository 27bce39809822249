from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class Role(StrEnum):
    user = "user"
    admin = "admin"


class User(BaseModel):
    """User entity stored in MongoDB."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id", description="MongoDB identifier")
    email: EmailStr = Field(..., description="Unique, lower-cased login")
    password_hash: str = Field(..., min_length=8, description="Hashed password")
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    role: Role = Role.user
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @field_validator("email", mode="before")
    @classmethod
    def _lower_email(cls, v):
        return str(v or "").strip().lower()

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin

    def to_mongo(self) -> dict:
        data = self.model_dump(exclude_none=True, by_alias=True)
        data["role"] = Role(self.role).value
        if isinstance(data.get("_id"), str):
            data["_id"] = ObjectId(data["_id"])
        return data

    @classmethod
    def from_mongo(cls, doc: dict | None) -> "User | None":
        if not doc:
            return None
        doc = {**doc, "_id": str(doc.get("_id"))}
        return cls(**doc)

    def to_public_dict(self) -> dict:
        """Profile without the password hash."""
        data = self.model_dump(mode="json", exclude={"password_hash"})
        data["is_admin"] = self.is_admin
        return data
