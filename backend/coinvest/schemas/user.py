"""
User schema for CoinVest API

Only the balance-holding slice of the account is modelled here.
"""

from pydantic import BaseModel, Field


class UserBase(BaseModel):
    """Base schema for user data"""
    username: str = Field(..., min_length=1, max_length=50)
    is_active: bool = True


class UserCreate(UserBase):
    """Schema for user creation"""
    coins_count: int = Field(0, ge=0)

