"""Recipes and the groceries they use (RecipeGroceryMap)."""

from typing import Iterable, List

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError
from core.logger import get_logger
from core.repository import atomic, BaseRepository
from database.models import Grocery, Recipe, RecipeGroceryMap
from services.backrefs import RECIPE_GROCERY
from services.cascade import cascade_engine
from services.permissions import require_owner_or_admin
from services.relationships import relationship_manager

logger = get_logger("services.recipe_service")

_RECIPE_FIELDS = ("name", "difficulty", "time_to_cook", "time_to_prepare", "kcal_per_serving", "recipe_in_text")


class RecipeService:
    def _link_groceries(self, session: Session, recipe: Recipe, items: Iterable[dict]) -> List[RecipeGroceryMap]:
        items = list(items)
        BaseRepository(Grocery, session).get_all_or_404([item["id"] for item in items])
        return [
            relationship_manager.link(session, RECIPE_GROCERY, recipe.id, item["id"], amount=item["amount"])
            for item in items
        ]

    def create(self, session: Session, requesting_user, data: dict) -> Recipe:
        """Create a recipe and link its groceries in one transaction.

        `data["groceries"]` is a list of {"id", "amount"}. If any grocery is
        missing nothing is created.
        """
        with atomic(session, operation="create recipe", conflict_message=RECIPE_GROCERY.conflict_message):
            recipe = Recipe(creator_id=requesting_user.id)
            for key in _RECIPE_FIELDS:
                if data.get(key) is not None:
                    setattr(recipe, key, data[key])
            BaseRepository(Recipe, session).add(recipe)
            self._link_groceries(session, recipe, data.get("groceries") or [])
        logger.info("Recipe %s id=%s created by %s", recipe.name, recipe.id, requesting_user.id)
        return recipe

    def update(self, session: Session, recipe_id: int, requesting_user, changes: dict) -> Recipe:
        repo = BaseRepository(Recipe, session)
        recipe = repo.get_or_404(recipe_id)
        require_owner_or_admin(requesting_user, recipe, "update this recipe")
        with atomic(session, operation="update recipe"):
            recipe = repo.get_or_404(recipe_id, lock=True)
            for key in _RECIPE_FIELDS:
                if changes.get(key) is not None:
                    setattr(recipe, key, changes[key])
            session.flush()
        return recipe

    def add_groceries(self, session: Session, recipe_id: int, requesting_user, items: List[dict]) -> Recipe:
        """Link groceries to the recipe; an already linked grocery gets the new amount."""
        recipe = BaseRepository(Recipe, session).get_or_404(recipe_id)
        require_owner_or_admin(requesting_user, recipe, "change this recipe")
        with atomic(session, operation="add recipe groceries", conflict_message=RECIPE_GROCERY.conflict_message):
            self._link_groceries(session, recipe, items)
        return recipe

    def remove_groceries(self, session: Session, recipe_id: int, requesting_user, grocery_ids: List[int]) -> Recipe:
        """Unlink groceries from the recipe.

        Raises:
            NotFoundError: If any of the groceries is not linked to the
                recipe; in that case nothing is removed.
        """
        recipe = BaseRepository(Recipe, session).get_or_404(recipe_id)
        require_owner_or_admin(requesting_user, recipe, "change this recipe")
        with atomic(session, operation="remove recipe groceries"):
            rows = (
                session.query(RecipeGroceryMap)
                .filter(RecipeGroceryMap.recipe_id == recipe_id, RecipeGroceryMap.grocery_id.in_(grocery_ids))
                .all()
            )
            missing = sorted(set(grocery_ids) - {row.grocery_id for row in rows})
            if missing:
                raise NotFoundError(
                    "RecipeGroceryMap", missing,
                    message=f"Groceries {missing} are not part of recipe {recipe_id}",
                )
            for row in rows:
                relationship_manager.unlink(session, RECIPE_GROCERY, row)
        return recipe

    def delete(self, session: Session, recipe_id: int, requesting_user) -> dict:
        return cascade_engine.delete_primary(session, "recipe", recipe_id, requesting_user)


recipe_service = RecipeService()
__all__ = ["RecipeService", "recipe_service"]
