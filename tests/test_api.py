"""HTTP-level tests through the FastAPI app."""
from datetime import datetime, timedelta


def _future():
    return (datetime.utcnow() + timedelta(days=5)).isoformat()


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


def test_register_login_and_me(client):
    res = client.post("/api/auth/register", json={"username": "dana", "password": "secret123"})
    assert res.status_code == 201
    body = res.json()
    assert body["request_status"] == "success"
    assert body["user"]["username"] == "dana"
    assert "password_hash" not in body["user"]

    res = client.post("/api/auth/login", json={"username": "dana", "password": "secret123"})
    assert res.status_code == 200
    token = res.json()["login_token"]

    res = client.get("/api/auth/me", headers={"Authorization": "Bearer %s" % token})
    assert res.status_code == 200
    assert res.json()["user"]["permission_level"] == 2


def test_missing_or_bad_token_is_401(client):
    assert client.get("/api/auth/me").status_code == 401
    res = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert res.status_code == 401
    assert res.json()["request_status"] == "failed"
    assert res.headers["www-authenticate"] == "Bearer"


def test_validation_error_envelope(client, trusted, auth_headers):
    res = client.post("/api/recipes", json={"name": "No text"}, headers=auth_headers(trusted))
    assert res.status_code == 400
    body = res.json()
    assert body["request_status"] == "failed"
    assert "recipe_in_text" in body["error"]["message"]


def test_grocery_create_with_image_and_delete(client, trusted, auth_headers):
    res = client.post(
        "/api/groceries",
        data={"name": "Tomato", "unit": "grams", "kcal_per_unit": "0.2"},
        files={"image": ("tomato.png", b"\x89PNG fake", "image/png")},
        headers=auth_headers(trusted),
    )
    assert res.status_code == 201
    grocery = res.json()["grocery"]
    assert grocery["image_path"].endswith("_tomato.png")

    from services.storage import storage
    assert storage.exists(grocery["image_path"])

    res = client.delete("/api/groceries/%d" % grocery["id"], headers=auth_headers(trusted))
    assert res.status_code == 200
    assert res.json()["deleted_id"] == grocery["id"]
    assert not storage.exists(grocery["image_path"])
    assert client.get("/api/groceries/%d" % grocery["id"]).status_code == 404


def test_grocery_create_rejects_non_image(client, trusted, auth_headers):
    res = client.post(
        "/api/groceries",
        data={"name": "Tomato", "kcal_per_unit": "0.2"},
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers(trusted),
    )
    assert res.status_code == 400
    assert res.json()["error"]["message"] == "Only image files are allowed"


def test_standard_user_cannot_create_grocery(client, standard, auth_headers):
    res = client.post("/api/groceries", data={"name": "Kale", "kcal_per_unit": "1"}, headers=auth_headers(standard))
    assert res.status_code == 403


def test_listing_pagination_and_sort(client, trusted, make_grocery):
    for i in range(12):
        make_grocery(trusted, "Item %02d" % i, kcal_per_unit=float(i + 1))

    body = client.get("/api/groceries", params={"page": 3, "limit": 5, "by_kcal": "-1"}).json()
    assert (body["total"], body["prevPage"], body["nextPage"]) == (12, 2, None)
    assert [g["kcal_per_unit"] for g in body["groceries"]] == [2.0, 1.0]

    res = client.get("/api/groceries", params={"by_kcal": "asc", "by_name": "asc"})
    assert res.status_code == 400

    assert client.get("/api/groceries", params={"page": 0}).status_code == 400
    assert client.get("/api/groceries", params={"page": "abc"}).status_code == 400


def test_wallet_flow(client, standard, trusted, make_grocery, auth_headers):
    grocery = make_grocery(trusted, "Milk")
    headers = auth_headers(standard)
    payload = {"amount": 1, "expires_date": _future(), "is_in_buying_list": True}

    res = client.post("/api/groceries/%d/wallet" % grocery.id, json=payload, headers=headers)
    assert res.status_code == 201
    link_id = res.json()["user_grocery_map"]["id"]

    res = client.post("/api/groceries/%d/wallet" % grocery.id, json=payload, headers=headers)
    assert res.status_code == 409
    assert res.json()["error"]["message"] == "Grocery already in buying list"

    wallet = client.get("/api/groceries/wallet", params={"buying_list": True}, headers=headers).json()
    assert [e["id"] for e in wallet["groceries"]] == [link_id]

    res = client.put("/api/groceries/wallet/%d" % link_id, json={"amount": 4}, headers=headers)
    assert res.json()["user_grocery_map"]["amount"] == 4

    assert client.delete("/api/groceries/wallet/%d" % link_id, headers=headers).status_code == 200
    assert client.delete("/api/groceries/wallet/%d" % link_id, headers=headers).status_code == 404


def test_wallet_rejects_past_expiry(client, standard, trusted, make_grocery, auth_headers):
    grocery = make_grocery(trusted, "Yogurt")
    payload = {"amount": 1, "expires_date": "2000-01-01T00:00:00"}
    res = client.post("/api/groceries/%d/wallet" % grocery.id, json=payload, headers=auth_headers(standard))
    assert res.status_code == 400


def test_recipe_flow(client, trusted, standard, make_grocery, auth_headers):
    egg = make_grocery(trusted, "Egg")
    headers = auth_headers(trusted)
    res = client.post("/api/recipes", json={
        "name": "Boiled egg", "recipe_in_text": "Boil", "groceries": [{"id": egg.id, "amount": 2}],
    }, headers=headers)
    assert res.status_code == 201
    recipe = res.json()["recipe"]
    assert recipe["groceries"][0]["amount"] == 2
    assert recipe["creator"]["username"] == "trusted"

    res = client.put("/api/recipes/%d" % recipe["id"], json={"name": "Hacked"}, headers=auth_headers(standard))
    assert res.status_code == 403

    res = client.put("/api/recipes/%d/groceries/remove" % recipe["id"], json={"groceries": [egg.id]}, headers=headers)
    assert res.json()["recipe"]["groceries"] == []

    res = client.get("/api/groceries/%d" % egg.id)
    assert res.json()["grocery"]["recipes"] == []


def test_meal_flow(client, admin, trusted, standard, make_recipe, auth_headers):
    recipe = make_recipe(trusted, "Pasta")
    res = client.post("/api/meals", json={
        "name": "Dinner", "total_time_cook": 30, "total_kcal": 800, "recipes": [recipe.id],
    }, headers=auth_headers(trusted))
    assert res.status_code == 201
    meal_id = res.json()["meal"]["id"]

    user_headers = auth_headers(standard)
    assert client.post("/api/meals/%d/user" % meal_id, headers=user_headers).status_code == 201
    assert client.post("/api/meals/%d/user" % meal_id, headers=user_headers).status_code == 409

    slot = {"start": "2031-01-01T18:00:00", "end": "2031-01-01T19:00:00"}
    res = client.put("/api/meals/%d/schedule" % meal_id, json={"schedules": [slot]}, headers=user_headers)
    assert res.status_code == 200

    bad_slot = {"start": "2031-01-01T19:00:00", "end": "2031-01-01T18:00:00"}
    res = client.put("/api/meals/%d/schedule" % meal_id, json={"schedules": [bad_slot]}, headers=user_headers)
    assert res.status_code == 400

    plan = client.get("/api/meals/schedule", headers=user_headers).json()
    assert plan["meals"][0]["meal_id"] == meal_id

    mine = client.get("/api/meals", params={"linked_user": standard.id}).json()
    assert [m["id"] for m in mine["meals"]] == [meal_id]

    assert client.delete("/api/meals/%d" % meal_id, headers=auth_headers(trusted)).status_code == 403
    assert client.delete("/api/meals/%d" % meal_id, headers=auth_headers(admin)).status_code == 200
    assert client.get("/api/meals/schedule", headers=user_headers).json()["meals"] == []


def test_admin_consistency_endpoints(client, admin, standard, auth_headers):
    res = client.get("/api/admin/consistency", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.json()["consistent"] is True

    assert client.post("/api/admin/backrefs/rebuild", headers=auth_headers(standard)).status_code == 403
    res = client.post("/api/admin/backrefs/rebuild", headers=auth_headers(admin))
    assert res.json()["changed"] == 0


def test_schedule_mixing_aware_and_naive_bounds(client, trusted, standard, make_meal, auth_headers):
    meal = make_meal(trusted, "Brunch")
    headers = auth_headers(standard)
    assert client.post("/api/meals/%d/user" % meal.id, headers=headers).status_code == 201

    slot = {"start": "2030-01-01T10:00:00Z", "end": "2030-01-01T11:00:00"}
    res = client.put("/api/meals/%d/schedule" % meal.id, json={"schedules": [slot]}, headers=headers)
    assert res.status_code == 200

    plan = client.get("/api/meals/schedule", headers=headers).json()
    assert plan["meals"][0]["schedules"] == [{"start": "2030-01-01T10:00:00", "end": "2030-01-01T11:00:00"}]

    # 12:00+02:00 is 10:00 UTC, so this slot ends before it starts
    slot = {"start": "2030-01-01T12:00:00+02:00", "end": "2030-01-01T09:30:00"}
    res = client.put("/api/meals/%d/schedule" % meal.id, json={"schedules": [slot]}, headers=headers)
    assert res.status_code == 400
    assert res.json()["request_status"] == "failed"
