"""Meals API router.

Meal listings and detail, meal edits, and the caller's own meal plan:
adding a meal to the plan, removing it, and setting its schedule.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.logger import get_logger
from core.security import get_current_user
from database.deps import get_db_read, get_db_write
from database.models import Meal, User
from schemas.common_schema import DeletedResponse
from schemas.meal_schema import (
    MealCreateRequest, MealDetail, MealListResponse, MealRecipesRequest, MealResponse, MealUpdateRequest,
    MealWithRecipes, ScheduleRequest, UserMealEntry, UserMealLink, UserMealLinkResponse, UserScheduleResponse,
)
from services.meal_service import meal_service
from services.queries import ListFilters, query_service, resolve_sort

logger = get_logger("api.meals")
router = APIRouter(prefix="/api/meals", tags=["meals"])

SORT_FIELDS = {"by_name": "name", "by_kcal": "total_kcal", "by_time_cook": "total_time_cook"}


def _list_response(page_result) -> MealListResponse:
    return MealListResponse(
        meals=[MealDetail.model_validate(m) for m in page_result.items],
        total=page_result.total,
        nextPage=page_result.next_page,
        prevPage=page_result.prev_page,
    )


def _detail(db: Session, meal_id: int) -> MealResponse:
    return MealResponse(meal=MealWithRecipes(**query_service.get_meal_with_recipes(db, meal_id)))


@router.get("", response_model=MealListResponse)
def list_meals(
    page: int = 1,
    limit: Optional[int] = None,
    name: Optional[str] = None,
    min_kcal: Optional[float] = None,
    max_kcal: Optional[float] = None,
    min_time_cook: Optional[float] = None,
    max_time_cook: Optional[float] = None,
    linked_user: Optional[int] = None,
    by_name: Optional[str] = None,
    by_kcal: Optional[str] = None,
    by_time_cook: Optional[str] = None,
    db: Session = Depends(get_db_read),
):
    """List meals, filtered, sorted and paginated.

    Args:
        linked_user: Only meals this user added to their plan.
        by_name: Sort direction on the name; by_kcal and by_time_cook
            sort on total_kcal and total_time_cook. At most one may be set.
    """
    sort = resolve_sort(SORT_FIELDS, by_name=by_name, by_kcal=by_kcal, by_time_cook=by_time_cook)
    filters = ListFilters(
        name=name,
        ranges={"total_kcal": (min_kcal, max_kcal), "total_time_cook": (min_time_cook, max_time_cook)},
        linked_user_id=linked_user,
    )
    return _list_response(query_service.list_primary(db, Meal, filters, page, limit, sort))


@router.get("/user", response_model=MealListResponse)
def list_my_meals(
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db_read),
    current_user: User = Depends(get_current_user),
):
    """Meals created by the caller."""
    filters = ListFilters(creator_id=current_user.id)
    return _list_response(query_service.list_primary(db, Meal, filters, page, limit))


@router.get("/schedule", response_model=UserScheduleResponse)
def my_schedule(db: Session = Depends(get_db_read), current_user: User = Depends(get_current_user)):
    """Meals in the caller's plan, each with its scheduled slots."""
    entries = query_service.get_user_schedule(db, current_user.id)
    return UserScheduleResponse(meals=[UserMealEntry(**e) for e in entries])


@router.get("/{meal_id}", response_model=MealResponse)
def get_meal(meal_id: int, db: Session = Depends(get_db_read)):
    return _detail(db, meal_id)


@router.post("", response_model=MealResponse, status_code=201)
def create_meal(
    payload: MealCreateRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    meal = meal_service.create(db, current_user, payload.model_dump())
    return _detail(db, meal.id)


@router.put("/{meal_id}", response_model=MealResponse)
def update_meal(
    meal_id: int,
    payload: MealUpdateRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    meal_service.update(db, meal_id, current_user, payload.model_dump(exclude_none=True))
    return _detail(db, meal_id)


@router.put("/{meal_id}/recipes/add", response_model=MealResponse)
def add_meal_recipes(
    meal_id: int,
    payload: MealRecipesRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    meal_service.add_recipes(db, meal_id, current_user, payload.recipes)
    return _detail(db, meal_id)


@router.put("/{meal_id}/recipes/remove", response_model=MealResponse)
def remove_meal_recipes(
    meal_id: int,
    payload: MealRecipesRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    meal_service.remove_recipes(db, meal_id, current_user, payload.recipes)
    return _detail(db, meal_id)


@router.post("/{meal_id}/user", response_model=UserMealLinkResponse, status_code=201)
def add_meal_to_user(
    meal_id: int,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Add the meal to the caller's plan.

    Raises:
        NotFoundError: If the meal does not exist.
        ConflictError: If the caller already added it.
    """
    link = meal_service.add_to_user(db, current_user, meal_id)
    return UserMealLinkResponse(user_meal_map=UserMealLink.model_validate(link))


@router.delete("/{meal_id}/user", response_model=DeletedResponse)
def remove_meal_from_user(
    meal_id: int,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    meal_service.remove_from_user(db, current_user, meal_id)
    return DeletedResponse(deleted_id=meal_id)


@router.put("/{meal_id}/schedule", response_model=UserMealLinkResponse)
def schedule_meal(
    meal_id: int,
    payload: ScheduleRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Replace the time slots of a meal in the caller's plan."""
    slots = [slot.model_dump() for slot in payload.schedules]
    link = meal_service.set_schedule(db, current_user, meal_id, slots)
    return UserMealLinkResponse(user_meal_map=UserMealLink.model_validate(link))


@router.delete("/{meal_id}", response_model=DeletedResponse)
def delete_meal(
    meal_id: int,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Delete a meal and every recipe and user link to it. Admin only."""
    meal_service.delete(db, meal_id, current_user)
    return DeletedResponse(deleted_id=meal_id)
