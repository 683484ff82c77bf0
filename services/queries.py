"""Read side: filtered, paginated listings and denormalized detail views.

Listings return a `Page` ({items, nextPage, prevPage, total}). Detail views
follow an entity's back-reference list to its join rows and then to the
entities on the other side, producing one flat dict per dependent.
Nothing in this module writes to the session.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from core import config
from core.exceptions import ValidationError
from core.logger import get_logger
from core.repository import BaseRepository
from database.models import (
    User, Grocery, Recipe, Meal,
    UserGroceryMap, RecipeGroceryMap, MealRecipeMap, UserMealMap,
)

logger = get_logger("services.queries")

ASCENDING = {"asc", "ascending", "1", 1}
DESCENDING = {"desc", "descending", "-1", -1}


def parse_direction(value: Union[str, int], field_name: str = "sort") -> str:
    """Normalize a sort direction synonym to "asc" or "desc"."""
    normalized = value.strip().lower() if isinstance(value, str) else value
    if normalized in ASCENDING:
        return "asc"
    if normalized in DESCENDING:
        return "desc"
    raise ValidationError(
        f"{field_name} must be one of asc, ascending, 1, desc, descending, -1",
        field=field_name,
    )


def resolve_sort(sort_fields: Dict[str, str], **requested) -> Optional[tuple]:
    """Pick the single active sort key out of the request.

    Args:
        sort_fields: Map of request parameter name to model attribute name.
        **requested: Parameter values; None means "not requested".

    Returns:
        (attribute, "asc"|"desc") or None when no key was given.

    Raises:
        ValidationError: If more than one key is set or a direction is invalid.
    """
    active = [(name, value) for name, value in requested.items() if value is not None]
    if len(active) > 1:
        names = ", ".join(name for name, _ in active)
        raise ValidationError(f"Only one sort key may be used at a time (got {names})", field="sort")
    if not active:
        return None
    name, value = active[0]
    return sort_fields[name], parse_direction(value, name)


@dataclass
class ListFilters:
    """Filters shared by grocery, recipe and meal listings."""

    name: Optional[str] = None
    ranges: Dict[str, tuple] = field(default_factory=dict)  # attr -> (min, max)
    creator_id: Optional[int] = None
    linked_user_id: Optional[int] = None


@dataclass
class Page:
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def next_page(self) -> Optional[int]:
        return self.page + 1 if self.page * self.limit < self.total else None

    @property
    def prev_page(self) -> Optional[int]:
        return self.page - 1 if self.page > 1 else None


def paginate(query, model: type, page: int = 1, limit: Optional[int] = None, sort: Optional[tuple] = None) -> Page:
    """Apply ordering and offset/limit to `query`.

    Raises:
        ValidationError: If page or limit is not a positive integer.
    """
    limit = config.DEFAULT_PAGE_LIMIT if limit is None else limit
    for name, value in (("page", page), ("limit", limit)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(f"{name} must be a positive integer", field=name)

    total = query.order_by(None).count()
    if sort is not None:
        attr, direction = sort
        column = getattr(model, attr)
        query = query.order_by(column.asc() if direction == "asc" else column.desc(), model.id.asc())
    else:
        query = query.order_by(model.id.asc())
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total=total, page=page, limit=limit)


# relation used by the "linked to user" filter, per listed model
_USER_LINKS = {
    Grocery: (UserGroceryMap, "grocery_links", "grocery_id"),
    Meal: (UserMealMap, "meal_links", "meal_id"),
}


def linked_ids_for_user(session: Session, model: type, user_id: int) -> List[int]:
    """Ids of `model` rows the user is linked to, via the user's back-reference list."""
    join, backref, fk = _USER_LINKS[model]
    user = BaseRepository(User, session).get_or_404(user_id)
    link_ids = list(getattr(user, backref) or [])
    if not link_ids:
        return []
    rows = session.query(getattr(join, fk)).filter(join.id.in_(link_ids)).distinct().all()
    return [r[0] for r in rows]


class QueryService:
    """Listings and denormalized views for the read endpoints."""

    def _filtered(self, session: Session, model: type, filters: ListFilters):
        query = session.query(model)
        if filters.name:
            query = query.filter(func.lower(model.name).contains(filters.name.lower(), autoescape=True))
        for attr, (low, high) in filters.ranges.items():
            column = getattr(model, attr)
            if low is not None:
                query = query.filter(column >= low)
            if high is not None:
                query = query.filter(column <= high)
        if filters.creator_id is not None:
            query = query.filter(model.creator_id == filters.creator_id)
        if filters.linked_user_id is not None:
            ids = linked_ids_for_user(session, model, filters.linked_user_id)
            query = query.filter(model.id.in_(ids))
        return query

    def list_primary(self, session: Session, model: type, filters: ListFilters, page: int = 1,
                     limit: Optional[int] = None, sort: Optional[tuple] = None) -> Page:
        result = paginate(self._filtered(session, model, filters), model, page, limit, sort)
        logger.debug("Listed %s: %s of %s (page %s)", model.__name__, len(result.items), result.total, page)
        return result

    def _creator(self, session: Session, creator_id: int) -> Optional[dict]:
        creator = session.get(User, creator_id)
        if creator is None:
            return None
        return {"id": creator.id, "username": creator.username}

    def _joined(self, session: Session, owner, backref: str, join: type, other: type, other_fk: str):
        link_ids = list(getattr(owner, backref) or [])
        if not link_ids:
            return []
        return (
            session.query(join, other)
            .join(other, getattr(join, other_fk) == other.id)
            .filter(join.id.in_(link_ids))
            .order_by(join.id)
            .all()
        )

    def get_recipe_with_groceries(self, session: Session, recipe_id: int) -> dict:
        recipe = BaseRepository(Recipe, session).get_or_404(recipe_id)
        groceries = [
            {
                "id": grocery.id,
                "name": grocery.name,
                "image_path": grocery.image_path,
                "unit": grocery.unit,
                "kcal_per_unit": grocery.kcal_per_unit,
                "amount": link.amount,
                "recipe_grocery_map_id": link.id,
            }
            for link, grocery in self._joined(session, recipe, "grocery_links", RecipeGroceryMap, Grocery, "grocery_id")
        ]
        return {
            "id": recipe.id,
            "name": recipe.name,
            "difficulty": recipe.difficulty,
            "time_to_cook": recipe.time_to_cook,
            "time_to_prepare": recipe.time_to_prepare,
            "kcal_per_serving": recipe.kcal_per_serving,
            "recipe_in_text": recipe.recipe_in_text,
            "creator": self._creator(session, recipe.creator_id),
            "groceries": groceries,
        }

    def get_grocery_with_recipes(self, session: Session, grocery_id: int) -> dict:
        grocery = BaseRepository(Grocery, session).get_or_404(grocery_id)
        recipes = [
            {
                "id": recipe.id,
                "name": recipe.name,
                "difficulty": recipe.difficulty,
                "kcal_per_serving": recipe.kcal_per_serving,
                "amount": link.amount,
                "recipe_grocery_map_id": link.id,
            }
            for link, recipe in self._joined(session, grocery, "recipe_links", RecipeGroceryMap, Recipe, "recipe_id")
        ]
        return {
            "id": grocery.id,
            "name": grocery.name,
            "unit": grocery.unit,
            "kcal_per_unit": grocery.kcal_per_unit,
            "image_path": grocery.image_path,
            "creator": self._creator(session, grocery.creator_id),
            "recipes": recipes,
        }

    def get_meal_with_recipes(self, session: Session, meal_id: int) -> dict:
        meal = BaseRepository(Meal, session).get_or_404(meal_id)
        recipes = [
            {
                "id": recipe.id,
                "name": recipe.name,
                "difficulty": recipe.difficulty,
                "time_to_cook": recipe.time_to_cook,
                "time_to_prepare": recipe.time_to_prepare,
                "kcal_per_serving": recipe.kcal_per_serving,
                "recipe_in_text": recipe.recipe_in_text,
                "meal_recipe_map_id": link.id,
            }
            for link, recipe in self._joined(session, meal, "recipe_links", MealRecipeMap, Recipe, "recipe_id")
        ]
        return {
            "id": meal.id,
            "name": meal.name,
            "total_time_cook": meal.total_time_cook,
            "total_kcal": meal.total_kcal,
            "creator": self._creator(session, meal.creator_id),
            "recipes": recipes,
        }

    def get_user_wallet(self, session: Session, user_id: int, buying_list_only: bool = False) -> List[dict]:
        """The user's UserGroceryMap rows flattened with their grocery."""
        user = BaseRepository(User, session).get_or_404(user_id)
        entries = []
        for link, grocery in self._joined(session, user, "grocery_links", UserGroceryMap, Grocery, "grocery_id"):
            if buying_list_only and not link.is_in_buying_list:
                continue
            entries.append({
                "id": link.id,
                "grocery_id": grocery.id,
                "name": grocery.name,
                "unit": grocery.unit,
                "kcal_per_unit": grocery.kcal_per_unit,
                "image_path": grocery.image_path,
                "amount": link.amount,
                "expires_date": link.expires_date,
                "is_in_buying_list": link.is_in_buying_list,
            })
        return entries

    def get_user_schedule(self, session: Session, user_id: int) -> List[dict]:
        """Meals added by the user, each with its schedule."""
        user = BaseRepository(User, session).get_or_404(user_id)
        return [
            {
                "id": link.id,
                "meal_id": meal.id,
                "name": meal.name,
                "total_time_cook": meal.total_time_cook,
                "total_kcal": meal.total_kcal,
                "schedules": list(link.schedules or []),
            }
            for link, meal in self._joined(session, user, "meal_links", UserMealMap, Meal, "meal_id")
        ]


query_service = QueryService()
__all__ = ["QueryService", "query_service", "ListFilters", "Page", "paginate", "parse_direction", "resolve_sort"]
