"""Schemas for meals, their recipes and user schedules."""

from datetime import datetime
from pydantic import AfterValidator, BaseModel, Field, model_validator
from typing import Annotated, List, Optional

from .common_schema import CreatorSummary, Envelope, ORMModel, PageResponse, as_naive_utc

UtcDatetime = Annotated[datetime, AfterValidator(as_naive_utc)]


class MealCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, examples=["Sunday lunch"])
    total_time_cook: float = Field(..., ge=0, examples=[45], description="Minutes")
    total_kcal: float = Field(..., ge=0, examples=[850])
    recipes: List[int] = Field(default_factory=list, description="Recipe ids")


class MealUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    total_time_cook: Optional[float] = Field(None, ge=0)
    total_kcal: Optional[float] = Field(None, ge=0)


class MealRecipesRequest(BaseModel):
    recipes: List[int] = Field(..., min_length=1, description="Recipe ids")


class ScheduleSlot(BaseModel):
    start: UtcDatetime
    end: UtcDatetime

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class ScheduleRequest(BaseModel):
    schedules: List[ScheduleSlot]


class MealDetail(ORMModel):
    """Representation of a meal in listings."""

    id: int
    name: str
    total_time_cook: float
    total_kcal: float
    creator_id: int
    created_at: datetime


class MealRecipeEntry(BaseModel):
    id: int
    name: str
    difficulty: int
    time_to_cook: int
    time_to_prepare: int
    kcal_per_serving: float
    recipe_in_text: str
    meal_recipe_map_id: int


class MealWithRecipes(BaseModel):
    id: int
    name: str
    total_time_cook: float
    total_kcal: float
    creator: Optional[CreatorSummary] = None
    recipes: List[MealRecipeEntry] = []


class UserMealLink(ORMModel):
    id: int
    user_id: int
    meal_id: int
    schedules: List[ScheduleSlot] = []


class UserMealEntry(BaseModel):
    id: int
    meal_id: int
    name: str
    total_time_cook: float
    total_kcal: float
    schedules: List[ScheduleSlot] = []


class MealResponse(Envelope):
    meal: MealWithRecipes


class MealListResponse(PageResponse):
    meals: List[MealDetail]


class UserMealLinkResponse(Envelope):
    user_meal_map: UserMealLink


class UserScheduleResponse(Envelope):
    meals: List[UserMealEntry]
