"""Schemas for recipe requests and responses."""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional

from .common_schema import CreatorSummary, Envelope, ORMModel, PageResponse


class RecipeGroceryItem(BaseModel):
    """A grocery and the amount of it a recipe uses."""

    id: int = Field(..., examples=[3], description="Grocery id")
    amount: float = Field(..., ge=0, examples=[200])


class RecipeCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, examples=["Tomato omelette"])
    difficulty: Optional[int] = Field(None, ge=0, le=10, examples=[3])
    time_to_cook: Optional[int] = Field(None, ge=0, examples=[10], description="Minutes")
    time_to_prepare: Optional[int] = Field(None, ge=0, examples=[5], description="Minutes")
    kcal_per_serving: Optional[float] = Field(None, ge=0, examples=[320])
    recipe_in_text: str = Field(..., min_length=1, examples=["Beat the eggs, add the tomatoes..."])
    groceries: List[RecipeGroceryItem] = Field(default_factory=list)


class RecipeUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    difficulty: Optional[int] = Field(None, ge=0, le=10)
    time_to_cook: Optional[int] = Field(None, ge=0)
    time_to_prepare: Optional[int] = Field(None, ge=0)
    kcal_per_serving: Optional[float] = Field(None, ge=0)
    recipe_in_text: Optional[str] = Field(None, min_length=1)


class RecipeGroceriesAddRequest(BaseModel):
    groceries: List[RecipeGroceryItem] = Field(..., min_length=1)


class RecipeGroceriesRemoveRequest(BaseModel):
    groceries: List[int] = Field(..., min_length=1, description="Grocery ids to remove from the recipe")


class RecipeDetail(ORMModel):
    id: int
    name: str
    difficulty: int
    time_to_cook: int
    time_to_prepare: int
    kcal_per_serving: float
    recipe_in_text: str
    creator_id: int
    created_at: datetime


class RecipeGroceryEntry(BaseModel):
    id: int
    name: str
    image_path: str
    unit: str
    kcal_per_unit: float
    amount: float
    recipe_grocery_map_id: int


class RecipeWithGroceries(BaseModel):
    id: int
    name: str
    difficulty: int
    time_to_cook: int
    time_to_prepare: int
    kcal_per_serving: float
    recipe_in_text: str
    creator: Optional[CreatorSummary] = None
    groceries: List[RecipeGroceryEntry] = []


class RecipeResponse(Envelope):
    recipe: RecipeWithGroceries


class RecipeListResponse(PageResponse):
    recipes: List[RecipeDetail]
