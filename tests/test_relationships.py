"""Tests for link/unlink: back-reference symmetry, duplicate policies and rollback."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from core.exceptions import ConflictError, NotFoundError, TransactionAbortedError
from core.repository import atomic
from database.models import Grocery, RecipeGroceryMap, User, UserGroceryMap
from services import backrefs
from services.backrefs import MEAL_RECIPE, RECIPE_GROCERY, USER_MEAL
from services.grocery_service import grocery_service
from services.relationships import relationship_manager


def _expiry():
    return datetime.utcnow() + timedelta(days=7)


def test_link_records_id_on_both_sides(db, standard, trusted, make_grocery):
    grocery = make_grocery(trusted, "Tomato")
    link = grocery_service.add_to_wallet(db, standard, grocery.id, amount=2, expires_date=_expiry())

    db.expire_all()
    assert db.get(User, standard.id).grocery_links == [link.id]
    assert db.get(Grocery, grocery.id).user_links == [link.id]
    assert backrefs.find_inconsistencies(db) == []


def test_duplicate_buying_list_entry_conflicts(db, standard, trusted, make_grocery):
    grocery = make_grocery(trusted, "Tomato")
    grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry(), is_in_buying_list=True)

    with pytest.raises(ConflictError) as exc_info:
        grocery_service.add_to_wallet(db, standard, grocery.id, amount=3, expires_date=_expiry(), is_in_buying_list=True)
    assert exc_info.value.message == "Grocery already in buying list"
    assert exc_info.value.status_code == 409

    assert db.query(UserGroceryMap).count() == 1
    db.expire_all()
    assert len(db.get(User, standard.id).grocery_links) == 1


def test_wallet_rows_may_repeat_outside_buying_list(db, standard, trusted, make_grocery):
    grocery = make_grocery(trusted, "Rice")
    first = grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry())
    second = grocery_service.add_to_wallet(db, standard, grocery.id, amount=2, expires_date=_expiry())
    buying = grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry(), is_in_buying_list=True)

    db.expire_all()
    assert db.get(User, standard.id).grocery_links == [first.id, second.id, buying.id]


def test_turning_on_buying_flag_respects_uniqueness(db, standard, trusted, make_grocery):
    grocery = make_grocery(trusted, "Milk")
    grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry(), is_in_buying_list=True)
    stock = grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry())

    with pytest.raises(ConflictError):
        grocery_service.update_wallet_entry(db, standard, stock.id, {"is_in_buying_list": True})
    db.expire_all()
    assert db.get(UserGroceryMap, stock.id).is_in_buying_list is False


def test_link_to_missing_entity_is_not_found(db, standard):
    with pytest.raises(NotFoundError):
        grocery_service.add_to_wallet(db, standard, 999, amount=1, expires_date=_expiry())
    assert db.query(UserGroceryMap).count() == 0


def test_failure_between_backref_writes_rolls_back(db, standard, trusted, make_grocery, monkeypatch):
    grocery = make_grocery(trusted, "Egg")
    original = backrefs.add_link
    calls = []

    def failing_add_link(entity, attr, link_id):
        calls.append(attr)
        if len(calls) == 2:
            raise OperationalError("UPDATE groceries", {}, Exception("storage failure"))
        return original(entity, attr, link_id)

    monkeypatch.setattr(backrefs, "add_link", failing_add_link)

    with pytest.raises(TransactionAbortedError) as exc_info:
        grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry())
    assert exc_info.value.status_code == 503
    assert exc_info.value.details["retryable"] is True

    db.expire_all()
    assert db.query(UserGroceryMap).count() == 0
    assert db.get(User, standard.id).grocery_links == []
    assert db.get(Grocery, grocery.id).user_links == []


def test_unlink_twice_is_not_found(db, standard, trusted, make_grocery):
    grocery = make_grocery(trusted, "Bread")
    link = grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry())
    link_id = link.id

    grocery_service.remove_from_wallet(db, standard, link_id)
    db.expire_all()
    assert db.get(User, standard.id).grocery_links == []
    assert db.get(Grocery, grocery.id).user_links == []

    with pytest.raises(NotFoundError):
        grocery_service.remove_from_wallet(db, standard, link_id)


def test_wallet_entry_of_another_user_is_not_found(db, standard, trusted, make_grocery):
    grocery = make_grocery(trusted, "Butter")
    link = grocery_service.add_to_wallet(db, trusted, grocery.id, amount=1, expires_date=_expiry())

    with pytest.raises(NotFoundError):
        grocery_service.remove_from_wallet(db, standard, link.id)
    assert db.query(UserGroceryMap).count() == 1


def test_recipe_grocery_link_upserts_amount(db, trusted, make_grocery, make_recipe):
    grocery = make_grocery(trusted, "Flour")
    recipe = make_recipe(trusted, "Bread")
    with atomic(db):
        first = relationship_manager.link(db, RECIPE_GROCERY, recipe.id, grocery.id, amount=100)
    first_id = first.id
    with atomic(db):
        second = relationship_manager.link(db, RECIPE_GROCERY, recipe.id, grocery.id, amount=250)

    assert second.id == first_id
    assert db.query(RecipeGroceryMap).count() == 1
    assert db.get(RecipeGroceryMap, first_id).amount == 250
    db.expire_all()
    assert db.get(Grocery, grocery.id).recipe_links == [first_id]


def test_meal_recipe_link_is_idempotent(db, trusted, make_recipe, make_meal):
    recipe = make_recipe(trusted, "Soup")
    meal = make_meal(trusted, "Dinner")
    with atomic(db):
        first = relationship_manager.link(db, MEAL_RECIPE, meal.id, recipe.id)
    with atomic(db):
        again = relationship_manager.link(db, MEAL_RECIPE, meal.id, recipe.id)
    assert again.id == first.id
    db.expire_all()
    assert backrefs.find_inconsistencies(db) == []


def test_user_meal_duplicate_is_rejected(db, standard, trusted, make_meal):
    meal = make_meal(trusted, "Lunch")
    with atomic(db):
        relationship_manager.link(db, USER_MEAL, standard.id, meal.id, schedules=[])
    with pytest.raises(ConflictError) as exc_info:
        with atomic(db):
            relationship_manager.link(db, USER_MEAL, standard.id, meal.id, schedules=[])
    assert exc_info.value.message == "Meal already added"


def test_buying_list_unique_index_backs_the_precheck(db, standard, trusted, make_grocery, monkeypatch):
    grocery = make_grocery(trusted, "Salt")
    grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry(), is_in_buying_list=True)

    # simulate a concurrent request that passed the duplicate check
    monkeypatch.setattr(relationship_manager, "find_existing", lambda *args, **kwargs: None)
    with pytest.raises(ConflictError):
        grocery_service.add_to_wallet(db, standard, grocery.id, amount=1, expires_date=_expiry(), is_in_buying_list=True)
    assert db.query(UserGroceryMap).count() == 1
