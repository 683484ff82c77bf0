"""SQLAlchemy ORM models for the grocery and meal planner.

Primary entities (User, Grocery, Recipe, Meal) each carry back-reference
columns: JSON lists holding the ids of the join rows that point at them.
The join tables (UserGroceryMap, RecipeGroceryMap, MealRecipeMap,
UserMealMap) are the source of truth; the lists are an index kept in step
by `services.relationships` and rebuildable by `services.backrefs`.

Back-reference lists must be replaced, never mutated in place, so the ORM
notices the change.
"""

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Date, Boolean, ForeignKey, Text, JSON,
    Index, UniqueConstraint, true,
)
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()

# permission levels, lower is more privileged
ADMIN = 0
TRUSTED = 1
STANDARD = 2


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class User(TimestampMixin, Base):
    """ORM model representing an application user and their profile.

    `permission_level`: 0 admin, 1 trusted, 2 standard. Lower is more
    privileged.
    """

    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(80), nullable=False, unique=True)
    password_hash = Column(String(256), nullable=False)
    height = Column(Float, nullable=False, default=160)  # cm
    weight = Column(Float, nullable=False, default=60)  # kg
    gender = Column(String(16), nullable=False, default="female")
    date_of_birth = Column(Date, nullable=True)
    daily_kcal_goal = Column(Float, nullable=True)
    permission_level = Column(Integer, nullable=False, default=STANDARD)
    grocery_links = Column(JSON, nullable=False, default=list)  # UserGroceryMap ids
    meal_links = Column(JSON, nullable=False, default=list)  # UserMealMap ids


class Grocery(TimestampMixin, Base):
    """ORM model representing a grocery item that recipes and wallets refer to."""

    __tablename__ = "groceries"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False, unique=True)
    unit = Column(String(16), nullable=False, default="grams")
    kcal_per_unit = Column(Float, nullable=False)
    image_path = Column(String(255), nullable=False, default="")
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_links = Column(JSON, nullable=False, default=list)  # UserGroceryMap ids
    recipe_links = Column(JSON, nullable=False, default=list)  # RecipeGroceryMap ids


class Recipe(TimestampMixin, Base):
    """ORM model representing a recipe composed of groceries."""

    __tablename__ = "recipes"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    difficulty = Column(Integer, nullable=False, default=5)
    time_to_cook = Column(Integer, nullable=False, default=60)  # minutes
    time_to_prepare = Column(Integer, nullable=False, default=60)  # minutes
    kcal_per_serving = Column(Float, nullable=False, default=0)
    recipe_in_text = Column(Text, nullable=False, default="You didn't upload this recipe detail")
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    grocery_links = Column(JSON, nullable=False, default=list)  # RecipeGroceryMap ids
    meal_links = Column(JSON, nullable=False, default=list)  # MealRecipeMap ids


class Meal(TimestampMixin, Base):
    """ORM model representing a meal assembled from recipes."""

    __tablename__ = "meals"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    total_time_cook = Column(Float, nullable=False)  # minutes
    total_kcal = Column(Float, nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipe_links = Column(JSON, nullable=False, default=list)  # MealRecipeMap ids
    user_links = Column(JSON, nullable=False, default=list)  # UserMealMap ids


class UserGroceryMap(Base):
    """A grocery held in a user's wallet, or flagged for purchase.

    Only one buying-list row may exist per (user, grocery); wallet rows for
    the same pair may coexist.
    """

    __tablename__ = "user_grocery_maps"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    grocery_id = Column(Integer, ForeignKey("groceries.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False, default=0)
    expires_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    is_in_buying_list = Column(Boolean, nullable=False, default=False)


class RecipeGroceryMap(Base):
    """Amount of a grocery consumed by a recipe."""

    __tablename__ = "recipe_grocery_maps"
    __table_args__ = (UniqueConstraint("recipe_id", "grocery_id", name="uq_recipe_grocery"),)
    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=False, index=True)
    grocery_id = Column(Integer, ForeignKey("groceries.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False, default=0)


class MealRecipeMap(Base):
    __tablename__ = "meal_recipe_maps"
    __table_args__ = (UniqueConstraint("meal_id", "recipe_id", name="uq_meal_recipe"),)
    id = Column(Integer, primary_key=True, index=True)
    meal_id = Column(Integer, ForeignKey("meals.id"), nullable=False, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=False, index=True)


class UserMealMap(Base):
    """A meal added to a user, with the user's schedule for it.

    `schedules` is a list of {"start": iso, "end": iso} with end > start.
    """

    __tablename__ = "user_meal_maps"
    __table_args__ = (UniqueConstraint("user_id", "meal_id", name="uq_user_meal"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    meal_id = Column(Integer, ForeignKey("meals.id"), nullable=False, index=True)
    schedules = Column(JSON, nullable=False, default=list)


Index(
    "uq_user_grocery_buying",
    UserGroceryMap.user_id,
    UserGroceryMap.grocery_id,
    unique=True,
    sqlite_where=UserGroceryMap.is_in_buying_list == true(),
    postgresql_where=UserGroceryMap.is_in_buying_list == true(),
)
