"""Recipes API router: listings, detail with groceries, and recipe edits."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.logger import get_logger
from core.security import get_current_user
from database.deps import get_db_read, get_db_write
from database.models import Recipe, User
from schemas.common_schema import DeletedResponse
from schemas.recipe_schema import (
    RecipeCreateRequest, RecipeDetail, RecipeGroceriesAddRequest, RecipeGroceriesRemoveRequest,
    RecipeListResponse, RecipeResponse, RecipeUpdateRequest, RecipeWithGroceries,
)
from services.queries import ListFilters, query_service, resolve_sort
from services.recipe_service import recipe_service

logger = get_logger("api.recipes")
router = APIRouter(prefix="/api/recipes", tags=["recipes"])

SORT_FIELDS = {"by_name": "name", "by_kcal": "kcal_per_serving", "by_time_cook": "time_to_cook"}


def _list_response(page_result) -> RecipeListResponse:
    return RecipeListResponse(
        recipes=[RecipeDetail.model_validate(r) for r in page_result.items],
        total=page_result.total,
        nextPage=page_result.next_page,
        prevPage=page_result.prev_page,
    )


def _detail(db: Session, recipe_id: int) -> RecipeResponse:
    return RecipeResponse(recipe=RecipeWithGroceries(**query_service.get_recipe_with_groceries(db, recipe_id)))


@router.get("", response_model=RecipeListResponse)
def list_recipes(
    page: int = 1,
    limit: Optional[int] = None,
    name: Optional[str] = None,
    min_kcal: Optional[float] = None,
    max_kcal: Optional[float] = None,
    by_name: Optional[str] = None,
    by_kcal: Optional[str] = None,
    by_time_cook: Optional[str] = None,
    db: Session = Depends(get_db_read),
):
    """List recipes. At most one of by_name / by_kcal / by_time_cook may be given."""
    sort = resolve_sort(SORT_FIELDS, by_name=by_name, by_kcal=by_kcal, by_time_cook=by_time_cook)
    filters = ListFilters(name=name, ranges={"kcal_per_serving": (min_kcal, max_kcal)})
    return _list_response(query_service.list_primary(db, Recipe, filters, page, limit, sort))


@router.get("/user", response_model=RecipeListResponse)
def list_my_recipes(
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db_read),
    current_user: User = Depends(get_current_user),
):
    filters = ListFilters(creator_id=current_user.id)
    return _list_response(query_service.list_primary(db, Recipe, filters, page, limit))


@router.get("/{recipe_id}", response_model=RecipeResponse)
def get_recipe(recipe_id: int, db: Session = Depends(get_db_read)):
    """A recipe with its groceries, amounts and RecipeGroceryMap ids."""
    return _detail(db, recipe_id)


@router.post("", response_model=RecipeResponse, status_code=201)
def create_recipe(
    payload: RecipeCreateRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Create a recipe together with its grocery links.

    Raises:
        NotFoundError: If any listed grocery does not exist; nothing is
            created in that case.
    """
    recipe = recipe_service.create(db, current_user, payload.model_dump())
    return _detail(db, recipe.id)


@router.put("/{recipe_id}", response_model=RecipeResponse)
def update_recipe(
    recipe_id: int,
    payload: RecipeUpdateRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    recipe_service.update(db, recipe_id, current_user, payload.model_dump(exclude_none=True))
    return _detail(db, recipe_id)


@router.put("/{recipe_id}/groceries/add", response_model=RecipeResponse)
def add_recipe_groceries(
    recipe_id: int,
    payload: RecipeGroceriesAddRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    """Link groceries; already linked ones get the new amount."""
    recipe_service.add_groceries(db, recipe_id, current_user, [item.model_dump() for item in payload.groceries])
    return _detail(db, recipe_id)


@router.put("/{recipe_id}/groceries/remove", response_model=RecipeResponse)
def remove_recipe_groceries(
    recipe_id: int,
    payload: RecipeGroceriesRemoveRequest,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    recipe_service.remove_groceries(db, recipe_id, current_user, payload.groceries)
    return _detail(db, recipe_id)


@router.delete("/{recipe_id}", response_model=DeletedResponse)
def delete_recipe(
    recipe_id: int,
    db: Session = Depends(get_db_write),
    current_user: User = Depends(get_current_user),
):
    recipe_service.delete(db, recipe_id, current_user)
    return DeletedResponse(deleted_id=recipe_id)
