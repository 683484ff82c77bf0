"""Meals, the recipes they combine (MealRecipeMap) and the meals users add
to their own plan (UserMealMap), including scheduled time slots."""

from typing import List

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from core.logger import get_logger
from core.repository import atomic, BaseRepository
from database.models import Meal, MealRecipeMap, Recipe, UserMealMap
from schemas.common_schema import as_naive_utc
from services.backrefs import MEAL_RECIPE, USER_MEAL
from services.cascade import cascade_engine
from services.permissions import require_owner_or_admin
from services.relationships import relationship_manager

logger = get_logger("services.meal_service")

_MEAL_FIELDS = ("name", "total_time_cook", "total_kcal")
NOT_ADDED = "You don't add this meal"


class MealService:
    def _link_recipes(self, session: Session, meal: Meal, recipe_ids: List[int]) -> List[MealRecipeMap]:
        BaseRepository(Recipe, session).get_all_or_404(recipe_ids)
        return [relationship_manager.link(session, MEAL_RECIPE, meal.id, recipe_id) for recipe_id in recipe_ids]

    def create(self, session: Session, requesting_user, data: dict) -> Meal:
        """Create a meal and link its recipes; a missing recipe aborts the whole create."""
        with atomic(session, operation="create meal", conflict_message=MEAL_RECIPE.conflict_message):
            meal = Meal(creator_id=requesting_user.id)
            for key in _MEAL_FIELDS:
                if data.get(key) is not None:
                    setattr(meal, key, data[key])
            BaseRepository(Meal, session).add(meal)
            self._link_recipes(session, meal, data.get("recipes") or [])
        logger.info("Meal %s id=%s created by %s", meal.name, meal.id, requesting_user.id)
        return meal

    def update(self, session: Session, meal_id: int, requesting_user, changes: dict) -> Meal:
        repo = BaseRepository(Meal, session)
        meal = repo.get_or_404(meal_id)
        require_owner_or_admin(requesting_user, meal, "update this meal")
        with atomic(session, operation="update meal"):
            meal = repo.get_or_404(meal_id, lock=True)
            for key in _MEAL_FIELDS:
                if changes.get(key) is not None:
                    setattr(meal, key, changes[key])
            session.flush()
        return meal

    def add_recipes(self, session: Session, meal_id: int, requesting_user, recipe_ids: List[int]) -> Meal:
        """Link recipes to the meal. Already linked recipes are left as they are."""
        meal = BaseRepository(Meal, session).get_or_404(meal_id)
        require_owner_or_admin(requesting_user, meal, "change this meal")
        with atomic(session, operation="add meal recipes", conflict_message=MEAL_RECIPE.conflict_message):
            self._link_recipes(session, meal, recipe_ids)
        return meal

    def remove_recipes(self, session: Session, meal_id: int, requesting_user, recipe_ids: List[int]) -> Meal:
        meal = BaseRepository(Meal, session).get_or_404(meal_id)
        require_owner_or_admin(requesting_user, meal, "change this meal")
        with atomic(session, operation="remove meal recipes"):
            rows = (
                session.query(MealRecipeMap)
                .filter(MealRecipeMap.meal_id == meal_id, MealRecipeMap.recipe_id.in_(recipe_ids))
                .all()
            )
            missing = sorted(set(recipe_ids) - {row.recipe_id for row in rows})
            if missing:
                raise NotFoundError("MealRecipeMap", missing, message=f"Recipes {missing} are not part of meal {meal_id}")
            for row in rows:
                relationship_manager.unlink(session, MEAL_RECIPE, row)
        return meal

    def delete(self, session: Session, meal_id: int, requesting_user) -> dict:
        return cascade_engine.delete_primary(session, "meal", meal_id, requesting_user)

    # user plan

    def add_to_user(self, session: Session, requesting_user, meal_id: int) -> UserMealMap:
        """Add the meal to the caller's plan.

        Raises:
            NotFoundError: If the meal does not exist.
            ConflictError: If the caller already added it.
        """
        with atomic(session, operation="add meal to user", conflict_message=USER_MEAL.conflict_message):
            link = relationship_manager.link(session, USER_MEAL, requesting_user.id, meal_id, schedules=[])
        return link

    def remove_from_user(self, session: Session, requesting_user, meal_id: int) -> None:
        with atomic(session, operation="remove meal from user"):
            link = relationship_manager.find_link_by_pair(session, USER_MEAL, requesting_user.id, meal_id, message=NOT_ADDED)
            relationship_manager.unlink(session, USER_MEAL, link)

    def set_schedule(self, session: Session, requesting_user, meal_id: int, slots: List[dict]) -> UserMealMap:
        """Replace the time slots of a meal in the caller's plan.

        Args:
            slots: [{"start": datetime, "end": datetime}, ...], already
                validated to have end after start. Stored as naive UTC.
        """
        BaseRepository(Meal, session).get_or_404(meal_id)
        with atomic(session, operation="schedule meal"):
            link = relationship_manager.find_link_by_pair(session, USER_MEAL, requesting_user.id, meal_id, message=NOT_ADDED)
            link.schedules = [
                {"start": as_naive_utc(slot["start"]).isoformat(), "end": as_naive_utc(slot["end"]).isoformat()}
                for slot in slots
            ]
            session.flush()
        logger.info("User %s scheduled meal %s in %s slot(s)", requesting_user.id, meal_id, len(slots))
        return link


meal_service = MealService()
__all__ = ["MealService", "meal_service", "NOT_ADDED"]
