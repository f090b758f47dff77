import pytest

from app.models.catalogue import Activity, DiyKit


def _token(client, email):
    response = client.post("/api/auth/register", json={
        "name": "Someone",
        "email": email,
        "password": "secret123",
    })
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin(client):
    return _token(client, "admin@example.com")


# ---------------------------------------------------------------------
# ACTIVITIES
# ---------------------------------------------------------------------
def test_activity_crud(client, db, admin):
    response = client.post("/api/addons/activities", headers=admin, json={
        "name": "Tufting Experience",
        "description": "Make a rug",
        "image_url": "  ",
    })
    assert response.status_code == 200, response.text
    activity = response.json()["activity"]
    assert activity["image_url"] is None

    response = client.put(f"/api/addons/activities/{activity['id']}", headers=admin, json={
        "name": "Tufting Experience",
        "description": "Make a rug or a mirror",
        "image_url": "https://cdn.example.com/tufting.jpg",
    })
    assert response.status_code == 200
    assert response.json()["activity"]["description"] == "Make a rug or a mirror"

    listed = client.get("/api/addons/activities").json()
    assert [a["name"] for a in listed["activities"]] == ["Tufting Experience"]

    response = client.delete(f"/api/addons/activities/{activity['id']}", headers=admin)
    assert response.json() == {"success": True, "message": "Activity deleted successfully"}
    assert db.query(Activity).count() == 0


def test_activity_validation(client, admin):
    response = client.post("/api/addons/activities", headers=admin, json={"name": "Resin Art"})
    assert response.status_code == 400
    assert response.json()["message"] == "Name and description are required"

    client.post("/api/addons/activities", headers=admin, json={"name": "Resin Art", "description": "Pour"})
    response = client.post("/api/addons/activities", headers=admin, json={"name": "resin art", "description": "Again"})
    assert response.status_code == 400
    assert response.json()["message"] == "Activity with this name already exists"

    response = client.put("/api/addons/activities/999", headers=admin, json={"name": "X", "description": "Y"})
    assert response.status_code == 404


def test_catalogue_writes_are_admin_only(client, db):
    user = _token(client, "user@example.com")
    payload = {"name": "Resin Art", "description": "Pour", "price": "499"}

    for path in ("/api/addons/activities", "/api/addons/diy-kits"):
        assert client.post(path, json=payload).status_code == 401
        assert client.post(path, headers=user, json=payload).status_code == 403
        # reads are public
        assert client.get(path).status_code == 200

    assert db.query(Activity).count() == 0
    assert db.query(DiyKit).count() == 0


# ---------------------------------------------------------------------
# DIY KITS
# ---------------------------------------------------------------------
def test_kit_crud_stores_price_in_minor_units(client, db, admin):
    response = client.post("/api/addons/diy-kits", headers=admin, json={
        "name": "Resin Kit",
        "price": "499.50",
        "description": "Everything for a coaster set",
    })
    assert response.status_code == 200, response.text
    kit = response.json()["kit"]
    assert kit["price"] == 49950

    response = client.get("/api/addons/diy-kits/name/Resin Kit")
    assert response.json()["kit"]["id"] == kit["id"]

    response = client.put(f"/api/addons/diy-kits/{kit['id']}", headers=admin, json={
        "name": "Resin Kit",
        "price": 599,
        "description": "Now with pigments",
    })
    assert response.json()["kit"]["price"] == 59900

    assert len(client.get("/api/addons/diy-kits").json()["kits"]) == 1
    assert client.delete(f"/api/addons/diy-kits/{kit['id']}", headers=admin).status_code == 200
    assert db.query(DiyKit).count() == 0


@pytest.mark.parametrize("payload, message", [
    ({"name": "Kit", "description": "d"}, "Name, price, and description are required"),
    ({"name": "Kit", "price": "0", "description": "d"}, "Price must be a positive number"),
    ({"name": "Kit", "price": "abc", "description": "d"}, "Price must be a positive number"),
])
def test_kit_validation(client, admin, payload, message):
    response = client.post("/api/addons/diy-kits", headers=admin, json=payload)
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": message}


def test_duplicate_and_missing_kits(client, admin):
    kit = {"name": "Candle Kit", "price": "299", "description": "Soy wax"}
    client.post("/api/addons/diy-kits", headers=admin, json=kit)

    response = client.post("/api/addons/diy-kits", headers=admin, json=kit)
    assert response.json()["message"] == "DIY kit with this name already exists"

    response = client.get("/api/addons/diy-kits/name/Nope")
    assert response.status_code == 404
    assert response.json()["message"] == "DIY kit not found"
