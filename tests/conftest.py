"""Shared fixtures.

The engines are created at import time from environment variables, so the
test database, media root and log directory are configured here before any
application module is imported.
"""
import itertools
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="grocery-tests-")
os.environ["WRITE_DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP_DIR, "test.db")
os.environ.pop("READ_DATABASE_URL", None)
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["MEDIA_ROOT"] = os.path.join(_TMP_DIR, "media")
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ.pop("ADMIN_USERNAME", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient

from core.security import create_access_token, hash_password
from database import reset_db
from database.database import WriteSessionLocal
from database.models import ADMIN, STANDARD, TRUSTED, Grocery, Meal, Recipe, User


@pytest.fixture(autouse=True)
def fresh_db():
    """Recreate the schema so every test starts from an empty database."""
    reset_db()
    yield


@pytest.fixture
def db():
    session = WriteSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(level=STANDARD, username=None, password="password1"):
        user = User(
            username=username or "user%d" % next(counter),
            password_hash=hash_password(password),
            permission_level=level,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(ADMIN, username="admin")


@pytest.fixture
def trusted(make_user):
    return make_user(TRUSTED, username="trusted")


@pytest.fixture
def standard(make_user):
    return make_user(STANDARD, username="standard")


@pytest.fixture
def make_grocery(db):
    def _make(creator, name, kcal_per_unit=1.0, unit="grams"):
        grocery = Grocery(name=name, unit=unit, kcal_per_unit=kcal_per_unit, creator_id=creator.id)
        db.add(grocery)
        db.commit()
        return grocery

    return _make


@pytest.fixture
def make_recipe(db):
    def _make(creator, name, kcal_per_serving=100, time_to_cook=10):
        recipe = Recipe(name=name, kcal_per_serving=kcal_per_serving, time_to_cook=time_to_cook, creator_id=creator.id)
        db.add(recipe)
        db.commit()
        return recipe

    return _make


@pytest.fixture
def make_meal(db):
    def _make(creator, name, total_kcal=500, total_time_cook=30):
        meal = Meal(name=name, total_kcal=total_kcal, total_time_cook=total_time_cook, creator_id=creator.id)
        db.add(meal)
        db.commit()
        return meal

    return _make


@pytest.fixture
def client():
    from main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": "Bearer %s" % create_access_token(user.id)}

    return _headers
