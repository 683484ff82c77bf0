"""Schemas for groceries and for the user's wallet / buying list."""

from datetime import datetime
from pydantic import AfterValidator, BaseModel, Field
from typing import Annotated, List, Literal, Optional

from .common_schema import CreatorSummary, Envelope, ORMModel, PageResponse, as_naive_utc

GroceryUnit = Literal["kg", "grams", "liter", "ml", "number", "unit"]


def _not_in_past(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return value
    value = as_naive_utc(value)
    if value < datetime.utcnow():
        raise ValueError("expires_date must not be in the past")
    return value


FutureDatetime = Annotated[datetime, AfterValidator(_not_in_past)]


class GroceryUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    unit: Optional[GroceryUnit] = None
    kcal_per_unit: Optional[float] = Field(None, gt=0)


class WalletAddRequest(BaseModel):
    """Add a grocery to the caller's wallet, or to their buying list."""

    amount: float = Field(..., gt=0, examples=[2], description="Quantity in the grocery's unit")
    expires_date: FutureDatetime = Field(..., examples=["2030-01-01T00:00:00"])
    is_in_buying_list: bool = Field(False, description="True puts the grocery on the buying list")


class WalletUpdateRequest(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    expires_date: Optional[FutureDatetime] = None
    is_in_buying_list: Optional[bool] = None


class GroceryDetail(ORMModel):
    id: int
    name: str
    unit: str
    kcal_per_unit: float
    image_path: str
    creator_id: int
    created_at: datetime


class GroceryRecipeEntry(BaseModel):
    """A recipe that uses the grocery, with the amount it uses."""

    id: int
    name: str
    difficulty: int
    kcal_per_serving: float
    amount: float
    recipe_grocery_map_id: int


class GroceryWithRecipes(BaseModel):
    id: int
    name: str
    unit: str
    kcal_per_unit: float
    image_path: str
    creator: Optional[CreatorSummary] = None
    recipes: List[GroceryRecipeEntry] = []


class WalletEntry(BaseModel):
    id: int
    grocery_id: int
    name: str
    unit: str
    kcal_per_unit: float
    image_path: str
    amount: float
    expires_date: datetime
    is_in_buying_list: bool


class WalletLink(ORMModel):
    id: int
    user_id: int
    grocery_id: int
    amount: float
    expires_date: datetime
    is_in_buying_list: bool


class GroceryResponse(Envelope):
    grocery: GroceryDetail


class GroceryWithRecipesResponse(Envelope):
    grocery: GroceryWithRecipes


class GroceryListResponse(PageResponse):
    groceries: List[GroceryDetail]


class WalletLinkResponse(Envelope):
    user_grocery_map: WalletLink


class WalletResponse(Envelope):
    groceries: List[WalletEntry]
