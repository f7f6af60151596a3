"""Member model. Circulation reads ``membership_status`` and nothing else."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class MembershipStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"
    DELETED = "DELETED"


class Member(BaseModel):
    id: str = Field(..., pattern=r"^member_[a-zA-Z0-9]+$", examples=["member_5be1f0a2c9d4"])
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    membership_status: MembershipStatus = Field(default=MembershipStatus.ACTIVE)
    membership_date: date

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)


class MemberCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    membership_status: MembershipStatus = MembershipStatus.ACTIVE
    membership_date: date | None = None
