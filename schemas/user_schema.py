"""Schemas for registration, login and user profile requests and responses."""

from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from .common_schema import Envelope, ORMModel


class RegisterRequest(BaseModel):
    """Request payload for creating an account."""

    username: str = Field(..., min_length=3, max_length=80, examples=["alice"], description="Unique login name")
    password: str = Field(..., min_length=6, examples=["s3cretpw"], description="Plain password, hashed before storage")
    height: Optional[float] = Field(None, gt=0, le=300, examples=[165.0], description="Height in centimeters")
    weight: Optional[float] = Field(None, gt=0, le=500, examples=[60.0], description="Weight in kilograms")
    gender: Optional[Literal["male", "female"]] = Field(None, examples=["female"])
    date_of_birth: Optional[date] = Field(None, examples=["1995-04-12"])
    daily_kcal_goal: Optional[float] = Field(None, gt=0, examples=[2000])


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, examples=["alice"])
    password: str = Field(..., min_length=1, examples=["s3cretpw"])


class LoginCredentials(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=80)
    password: Optional[str] = Field(None, min_length=6)


class UserUpdateRequest(BaseModel):
    """Profile fields to change; omitted fields keep their value."""

    height: Optional[float] = Field(None, gt=0, le=300)
    weight: Optional[float] = Field(None, gt=0, le=500)
    gender: Optional[Literal["male", "female"]] = None
    date_of_birth: Optional[date] = None
    daily_kcal_goal: Optional[float] = Field(None, gt=0)
    login_cred: Optional[LoginCredentials] = None


class PermissionUpdateRequest(BaseModel):
    permission_level: int = Field(..., ge=0, le=2, examples=[1], description="0 admin, 1 trusted, 2 standard")


class UserDetail(ORMModel):
    """Public representation of a user (never includes the password hash)."""

    id: int
    username: str
    height: float
    weight: float
    gender: str
    date_of_birth: Optional[date] = None
    daily_kcal_goal: Optional[float] = None
    permission_level: int
    grocery_links: List[int] = []
    meal_links: List[int] = []
    created_at: datetime


class UserResponse(Envelope):
    user: UserDetail


class LoginResponse(Envelope):
    login_token: str
    token_type: str = "bearer"
    user: UserDetail
