"""Test error handling functionality.

Verifies that custom exceptions are properly raised and handled,
returning appropriate error responses.
"""
import pytest
from sqlalchemy.exc import OperationalError

from api.groceries import get_grocery
from api.meals import get_meal
from core.exceptions import (
    AuthenticationError, ConflictError, NotFoundError, TransactionAbortedError, ValidationError,
)
from core.repository import atomic
from core.security import decode_access_token
from database.database import ReadSessionLocal, WriteSessionLocal
from database.models import User
from services.storage import LocalStorage


def test_grocery_not_found_raises_404():
    """Test that requesting a non-existent grocery raises NotFoundError."""
    db = ReadSessionLocal()
    try:
        with pytest.raises(NotFoundError) as exc_info:
            get_grocery(grocery_id=99999, db=db)
        assert "Grocery" in str(exc_info.value.message)
        assert exc_info.value.status_code == 404
    finally:
        db.close()


def test_meal_not_found_raises_404():
    """Test that requesting a non-existent meal raises NotFoundError."""
    db = ReadSessionLocal()
    try:
        with pytest.raises(NotFoundError) as exc_info:
            get_meal(meal_id=99999, db=db)
        assert "Meal" in str(exc_info.value.message)
    finally:
        db.close()


def test_atomic_rolls_back_and_maps_integrity_error():
    db = WriteSessionLocal()
    try:
        with pytest.raises(ConflictError) as exc_info:
            with atomic(db, conflict_message="Username already exists"):
                db.add(User(username="dup", password_hash="x"))
                db.flush()
                db.add(User(username="dup", password_hash="y"))
                db.flush()
        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Username already exists"
        assert db.query(User).count() == 0
    finally:
        db.close()


def test_atomic_maps_storage_failure_to_retryable_error():
    db = WriteSessionLocal()
    try:
        with pytest.raises(TransactionAbortedError) as exc_info:
            with atomic(db, operation="link"):
                db.add(User(username="eve", password_hash="x"))
                db.flush()
                raise OperationalError("UPDATE users", {}, Exception("database is locked"))
        assert exc_info.value.details == {"retryable": True, "operation": "link"}
        assert db.query(User).count() == 0
    finally:
        db.close()


def test_atomic_reraises_application_errors_unchanged():
    db = WriteSessionLocal()
    try:
        with pytest.raises(NotFoundError):
            with atomic(db):
                db.add(User(username="frank", password_hash="x"))
                db.flush()
                raise NotFoundError("Grocery", 1)
        assert db.query(User).count() == 0
    finally:
        db.close()


def test_tampered_token_is_rejected():
    with pytest.raises(AuthenticationError) as exc_info:
        decode_access_token("definitely.not.signed")
    assert exc_info.value.status_code == 401


def test_storage_rejects_non_images_and_unsafe_references(tmp_path):
    store = LocalStorage(root=str(tmp_path))
    with pytest.raises(ValidationError) as exc_info:
        store.save("script.sh", b"echo")
    assert exc_info.value.details == {"field": "image"}

    ref = store.save("photo.JPG", b"data")
    assert store.exists(ref)
    assert store.delete("../" + ref) is False
    assert store.delete(ref) is True
    assert not store.exists(ref)


def test_storage_same_filename_in_same_second_keeps_both(tmp_path, monkeypatch):
    monkeypatch.setattr("services.storage.time.time", lambda: 1792437244.0)
    store = LocalStorage(root=str(tmp_path))

    first = store.save("pic.png", b"APPLE")
    second = store.save("pic.png", b"OTHER")

    assert first != second
    assert (tmp_path / first).read_bytes() == b"APPLE"
    assert (tmp_path / second).read_bytes() == b"OTHER"


def test_exception_classes_have_proper_attributes():
    """Test that custom exception classes have expected attributes."""
    exc = NotFoundError("Recipe", 123)
    assert exc.status_code == 404
    assert "Recipe" in exc.message
    assert "123" in exc.message

    exc = NotFoundError("UserMealMap", [1, 2], message="You don't add this meal")
    assert exc.message == "You don't add this meal"

    exc = ValidationError("Invalid input", field="page")
    assert exc.status_code == 400
    assert exc.message == "Invalid input"
    assert exc.details == {"field": "page"}

    exc = ConflictError("Meal already added", resource="UserMealMap")
    assert exc.status_code == 409
    assert exc.details == {"resource": "UserMealMap"}

    exc = TransactionAbortedError()
    assert exc.status_code == 503
    assert exc.details["retryable"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
