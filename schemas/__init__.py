"""Pydantic schema package for request and response models."""

from .common_schema import Envelope, PageResponse, DeletedResponse
from .user_schema import RegisterRequest, LoginRequest, UserUpdateRequest, UserResponse, LoginResponse
from .grocery_schema import GroceryResponse, GroceryListResponse, WalletAddRequest, WalletResponse
from .recipe_schema import RecipeCreateRequest, RecipeResponse, RecipeListResponse
from .meal_schema import MealCreateRequest, MealResponse, MealListResponse, ScheduleRequest

__all__ = [
    "Envelope",
    "PageResponse",
    "DeletedResponse",
    "RegisterRequest",
    "LoginRequest",
    "UserUpdateRequest",
    "UserResponse",
    "LoginResponse",
    "GroceryResponse",
    "GroceryListResponse",
    "WalletAddRequest",
    "WalletResponse",
    "RecipeCreateRequest",
    "RecipeResponse",
    "RecipeListResponse",
    "MealCreateRequest",
    "MealResponse",
    "MealListResponse",
    "ScheduleRequest",
]
