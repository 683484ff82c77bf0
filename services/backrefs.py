"""Back-reference index over the join tables.

Each relation between two primary models is described once by a `Relation`:
which join model holds the rows, which foreign key points at each side, and
which JSON column on each side lists the join-row ids. The relationship
manager and the cascade engine are written against these descriptors, and
this module can rebuild or audit every back-reference list from the join
tables, which remain the source of truth.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from core.logger import get_logger
from database.models import (
    User, Grocery, Recipe, Meal,
    UserGroceryMap, RecipeGroceryMap, MealRecipeMap, UserMealMap,
)

logger = get_logger("services.backrefs")


@dataclass(frozen=True)
class Side:
    """One end of a relation."""

    model: type
    fk: str  # column on the join model pointing at `model`
    backref: str  # JSON column on `model` listing join-row ids


@dataclass(frozen=True)
class Relation:
    """A many-to-many relation materialized as a join model.

    Attributes:
        name: Registry key.
        join_model: ORM class of the join rows.
        left: Subject side (owner for ownership checks).
        right: Object side.
        on_duplicate: "reject" raises Conflict for an existing pair,
            "upsert" reuses the existing row (updating attributes if given).
        unique_when: (attribute, value) restricting the uniqueness rule to
            rows carrying that value; None means unique per pair.
        conflict_message: Message used when a duplicate is rejected.
    """

    name: str
    join_model: type
    left: Side
    right: Side
    on_duplicate: str = "reject"
    unique_when: Optional[Tuple[str, object]] = None
    conflict_message: str = "Link already exists"

    def sides(self) -> Tuple[Side, Side]:
        return self.left, self.right

    def side_for(self, model: type) -> Side:
        if self.left.model is model:
            return self.left
        if self.right.model is model:
            return self.right
        raise KeyError(f"{model.__name__} is not part of relation {self.name}")

    def other_side(self, model: type) -> Side:
        return self.right if self.side_for(model) is self.left else self.left


USER_GROCERY = Relation(
    name="user_grocery",
    join_model=UserGroceryMap,
    left=Side(User, "user_id", "grocery_links"),
    right=Side(Grocery, "grocery_id", "user_links"),
    on_duplicate="reject",
    unique_when=("is_in_buying_list", True),
    conflict_message="Grocery already in buying list",
)

RECIPE_GROCERY = Relation(
    name="recipe_grocery",
    join_model=RecipeGroceryMap,
    left=Side(Recipe, "recipe_id", "grocery_links"),
    right=Side(Grocery, "grocery_id", "recipe_links"),
    on_duplicate="upsert",
    conflict_message="Grocery already in recipe",
)

MEAL_RECIPE = Relation(
    name="meal_recipe",
    join_model=MealRecipeMap,
    left=Side(Meal, "meal_id", "recipe_links"),
    right=Side(Recipe, "recipe_id", "meal_links"),
    on_duplicate="upsert",
    conflict_message="Recipe already in meal",
)

USER_MEAL = Relation(
    name="user_meal",
    join_model=UserMealMap,
    left=Side(User, "user_id", "meal_links"),
    right=Side(Meal, "meal_id", "user_links"),
    on_duplicate="reject",
    conflict_message="Meal already added",
)

RELATIONS: Dict[str, Relation] = {r.name: r for r in (USER_GROCERY, RECIPE_GROCERY, MEAL_RECIPE, USER_MEAL)}


def relations_for(model: type) -> List[Relation]:
    """Every relation that has `model` on one of its sides."""
    return [r for r in RELATIONS.values() if model in (r.left.model, r.right.model)]


def add_link(entity, attr: str, link_id: int) -> bool:
    """Add `link_id` to the list in `entity.attr` unless already present.

    Returns True when the list changed.
    """
    links = list(getattr(entity, attr) or [])
    if link_id in links:
        return False
    links.append(link_id)
    setattr(entity, attr, links)
    return True


def remove_links(entity, attr: str, link_ids: Iterable[int]) -> int:
    """Remove every id in `link_ids` from `entity.attr`; returns how many were removed."""
    drop = set(link_ids)
    links = list(getattr(entity, attr) or [])
    kept = [i for i in links if i not in drop]
    if len(kept) != len(links):
        setattr(entity, attr, kept)
    return len(links) - len(kept)


def _expected_index(session: Session) -> Dict[Tuple[type, str], Dict[int, List[int]]]:
    expected: Dict[Tuple[type, str], Dict[int, List[int]]] = {}
    for relation in RELATIONS.values():
        rows = session.query(relation.join_model).order_by(relation.join_model.id).all()
        for side in relation.sides():
            bucket = expected.setdefault((side.model, side.backref), {})
            for row in rows:
                bucket.setdefault(getattr(row, side.fk), []).append(row.id)
    return expected


def find_inconsistencies(session: Session) -> List[dict]:
    """Compare every back-reference list against the join tables.

    Returns one entry per entity whose list has dangling ids (no such join
    row) or missing ids (a join row not listed). An empty list means the
    index is consistent.
    """
    problems = []
    for (model, attr), by_owner in _expected_index(session).items():
        for entity in session.query(model).order_by(model.id).all():
            actual = set(getattr(entity, attr) or [])
            wanted = set(by_owner.get(entity.id, []))
            if actual != wanted:
                problems.append({
                    "entity": model.__name__,
                    "id": entity.id,
                    "field": attr,
                    "dangling": sorted(actual - wanted),
                    "missing": sorted(wanted - actual),
                })
    return problems


def rebuild_backrefs(session: Session) -> int:
    """Recompute every back-reference list from the join tables.

    Runs inside the caller's transaction and returns the number of entities
    whose list changed.
    """
    changed = 0
    for (model, attr), by_owner in _expected_index(session).items():
        for entity in session.query(model).all():
            wanted = by_owner.get(entity.id, [])
            if list(getattr(entity, attr) or []) != wanted:
                setattr(entity, attr, wanted)
                changed += 1
    if changed:
        logger.warning("Rebuilt %s back-reference lists", changed)
    return changed
