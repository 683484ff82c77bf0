"""Tests for the back-reference audit and rebuild."""
from database.models import Grocery, Recipe
from services import backrefs
from services.recipe_service import recipe_service


def test_audit_reports_and_rebuild_repairs(db, trusted, make_grocery):
    grocery = make_grocery(trusted, "Garlic")
    recipe = recipe_service.create(db, trusted, {
        "name": "Aioli", "recipe_in_text": "Crush", "groceries": [{"id": grocery.id, "amount": 2}],
    })
    link_id = db.get(Recipe, recipe.id).grocery_links[0]

    # corrupt the index: drop the real id, add a dangling one
    grocery.recipe_links = [999]
    db.commit()

    issues = backrefs.find_inconsistencies(db)
    assert issues == [{
        "entity": "Grocery", "id": grocery.id, "field": "recipe_links", "dangling": [999], "missing": [link_id],
    }]

    changed = backrefs.rebuild_backrefs(db)
    db.commit()
    assert changed == 1
    db.expire_all()
    assert db.get(Grocery, grocery.id).recipe_links == [link_id]
    assert backrefs.find_inconsistencies(db) == []


def test_rebuild_on_consistent_index_changes_nothing(db, trusted, make_grocery):
    make_grocery(trusted, "Leek")
    assert backrefs.rebuild_backrefs(db) == 0


def test_add_and_remove_link_helpers():
    grocery = Grocery(name="x", kcal_per_unit=1, recipe_links=[1, 2])
    assert backrefs.add_link(grocery, "recipe_links", 2) is False
    assert backrefs.add_link(grocery, "recipe_links", 3) is True
    assert grocery.recipe_links == [1, 2, 3]
    assert backrefs.remove_links(grocery, "recipe_links", [1, 3, 7]) == 2
    assert grocery.recipe_links == [2]
