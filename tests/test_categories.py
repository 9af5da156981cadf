from sqlalchemy import func, select

from fitmate.crud.crud_category import category as crud_category
from fitmate.models import ClassCategory, FitnessClass

API = "/api/v1/categories"


class TestReadCategories:
    def test_list(self, client, make_category):
        make_category("Yoga", "Stretch and breathe")
        make_category("Boxing")

        response = client.get(API)
        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Yoga", "Boxing"]
        assert response.json()[0]["description"] == "Stretch and breathe"

    def test_get_one(self, client, make_category):
        category = make_category("HIIT")
        response = client.get(f"{API}/{category.id}")
        assert response.status_code == 200
        assert response.json()["name"] == "HIIT"

    def test_invalid_id(self, client):
        response = client.get(f"{API}/yoga")
        assert response.status_code == 400
        assert "valid number" in response.json()["message"]

    def test_not_found(self, client):
        response = client.get(f"{API}/999999")
        assert response.status_code == 404
        assert response.json()["message"] == "Category not found"


class TestCreateCategory:
    def test_create(self, client, admin, auth_headers):
        response = client.post(API, json={"name": "Pilates", "description": "Core"}, headers=auth_headers(admin))
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Pilates"
        assert "id" in body

    def test_requires_admin(self, client, member, trainer, auth_headers):
        for user in (member, trainer):
            response = client.post(API, json={"name": "Pilates"}, headers=auth_headers(user))
            assert response.status_code == 403
            assert "Only admins" in response.json()["message"]

    def test_requires_token(self, client):
        assert client.post(API, json={"name": "Pilates"}).status_code == 401

    def test_name_required(self, client, admin, auth_headers):
        response = client.post(API, json={"description": "nameless"}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "name is required" in response.json()["message"]

    def test_blank_name(self, client, admin, auth_headers):
        response = client.post(API, json={"name": "   "}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "name is required" in response.json()["message"]

    def test_duplicate_name(self, client, admin, make_category, auth_headers):
        make_category("Yoga")
        response = client.post(API, json={"name": "Yoga"}, headers=auth_headers(admin))
        assert response.status_code == 409
        assert "already exists" in response.json()["message"]


class TestUpdateCategory:
    def test_rename(self, client, admin, make_category, auth_headers):
        category = make_category("Yoga")
        response = client.put(f"{API}/{category.id}", json={"name": "Hot Yoga"}, headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["name"] == "Hot Yoga"

    def test_keep_own_name(self, client, admin, make_category, auth_headers):
        category = make_category("Yoga")
        response = client.put(
            f"{API}/{category.id}", json={"name": "Yoga", "description": "Same name"}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Same name"

    def test_rename_to_taken_name(self, client, admin, make_category, auth_headers):
        make_category("Yoga")
        boxing = make_category("Boxing")
        response = client.put(f"{API}/{boxing.id}", json={"name": "Yoga"}, headers=auth_headers(admin))
        assert response.status_code == 409

    def test_empty_update(self, client, admin, make_category, auth_headers):
        category = make_category("Yoga")
        response = client.put(f"{API}/{category.id}", json={}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "No fields" in response.json()["message"]

    def test_not_found(self, client, admin, auth_headers):
        response = client.put(f"{API}/999999", json={"name": "x"}, headers=auth_headers(admin))
        assert response.status_code == 404


class TestDeleteCategory:
    def test_delete_unused(self, client, db, admin, make_category, auth_headers):
        category = make_category("Yoga")
        response = client.delete(f"{API}/{category.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "Category deleted successfully"
        assert db.scalars(select(ClassCategory)).all() == []

    def test_delete_in_use(self, client, db, admin, trainer, make_category, make_class, auth_headers):
        category = make_category("Yoga")
        make_class(trainer, admin, category=category)
        make_class(trainer, admin, category=category)

        response = client.delete(f"{API}/{category.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert "in use by 2 class(es)" in response.json()["message"]
        db.expire_all()
        assert db.get(ClassCategory, category.id) is not None
        remaining = db.scalars(select(FitnessClass).where(FitnessClass.category_id == category.id)).all()
        assert len(remaining) == 2

    def test_not_found(self, client, admin, auth_headers):
        response = client.delete(f"{API}/999999", headers=auth_headers(admin))
        assert response.status_code == 404


async def no_existing_name(db, *, name):
    return None


class TestNameRace:
    """The unique index still answers 409 when the pre-check misses a concurrent write."""

    def test_create_duplicate_reaches_unique_index(self, client, db, admin, make_category, auth_headers, monkeypatch):
        make_category("Yoga")
        monkeypatch.setattr(crud_category, "get_by_name", no_existing_name)

        response = client.post(API, json={"name": "Yoga"}, headers=auth_headers(admin))
        assert response.status_code == 409
        assert "already exists" in response.json()["message"]
        assert db.scalar(select(func.count()).select_from(ClassCategory)) == 1

    def test_rename_duplicate_reaches_unique_index(self, client, admin, make_category, auth_headers, monkeypatch):
        make_category("Yoga")
        boxing = make_category("Boxing")
        monkeypatch.setattr(crud_category, "get_by_name", no_existing_name)

        response = client.put(f"{API}/{boxing.id}", json={"name": "Yoga"}, headers=auth_headers(admin))
        assert response.status_code == 409
        assert "already exists" in response.json()["message"]
