from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy import func, select

from fitmate.core.admission import utc_now
from fitmate.crud.crud_class import fitness_class as crud_class
from fitmate.main import app
from fitmate.models import ClassEnrollment, FitnessClass
from fitmate.schemas.enums import Role

API = "/api/v1/classes"


def enrollment_count(db, class_id: int) -> int:
    return db.scalar(select(func.count()).select_from(ClassEnrollment).where(ClassEnrollment.class_id == class_id))


def class_payload(trainer, **overrides):
    start = utc_now() + timedelta(days=2)
    payload = {
        "trainerId": trainer.id,
        "title": "Power Hour",
        "description": "Full body",
        "startTime": start.isoformat(),
        "endTime": (start + timedelta(hours=1)).isoformat(),
        "capacity": 12,
    }
    payload.update(overrides)
    return payload


class TestListClasses:
    def test_list_has_derived_fields(self, client, admin, trainer, member, make_class, enroll):
        limited = make_class(trainer, admin, capacity=5)
        enroll(member, limited)
        make_class(trainer, admin, title="Open Gym")

        response = client.get(API)
        assert response.status_code == 200
        body = {c["title"]: c for c in response.json()}
        assert body["Morning Flow"]["enrollmentCount"] == 1
        assert body["Morning Flow"]["availableSpots"] == 4
        assert body["Morning Flow"]["status"] == "UPCOMING"
        assert body["Morning Flow"]["hasStarted"] is False
        assert body["Morning Flow"]["trainer"]["id"] == trainer.id
        assert body["Open Gym"]["availableSpots"] is None

    def test_status_follows_the_clock(self, client, admin, trainer, make_class):
        make_class(trainer, admin, title="Running", starts_in=-timedelta(minutes=30))
        make_class(trainer, admin, title="Done", starts_in=-timedelta(hours=3))

        body = {c["title"]: c for c in client.get(API).json()}
        assert body["Running"]["status"] == "ONGOING"
        assert body["Running"]["hasStarted"] is True
        assert body["Done"]["status"] == "ENDED"

    def test_upcoming_excludes_started_classes(self, client, admin, trainer, make_class):
        make_class(trainer, admin, title="Later")
        make_class(trainer, admin, title="Running", starts_in=-timedelta(minutes=10))

        response = client.get(f"{API}/listclassupcoming")
        assert response.status_code == 200
        titles = [c["title"] for c in response.json()]
        assert titles == ["Later"]

    def test_ordered_by_start_time(self, client, admin, trainer, make_class):
        make_class(trainer, admin, title="Second", starts_in=timedelta(days=2))
        make_class(trainer, admin, title="First", starts_in=timedelta(days=1))

        titles = [c["title"] for c in client.get(API).json()]
        assert titles == ["First", "Second"]


class TestReadClass:
    def test_invalid_id(self, client):
        response = client.get(f"{API}/abc")
        assert response.status_code == 400
        assert "valid number" in response.json()["message"]

    def test_not_found(self, client):
        response = client.get(f"{API}/999999")
        assert response.status_code == 404
        assert "not found" in response.json()["message"]

    def test_detail_includes_enrollments(self, client, admin, trainer, member, make_class, enroll):
        db_class = make_class(trainer, admin, capacity=3)
        enroll(member, db_class)

        response = client.get(f"{API}/{db_class.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == db_class.id
        assert body["availableSpots"] == 2
        assert [e["user"]["email"] for e in body["enrollments"]] == [member.email]

    def test_enrollments_endpoint(self, client, admin, trainer, member, make_class, enroll):
        db_class = make_class(trainer, admin)
        enroll(member, db_class)

        response = client.get(f"{API}/{db_class.id}/enrollments")
        assert response.status_code == 200
        body = response.json()
        assert body["class"]["id"] == db_class.id
        assert body["class"]["enrollmentCount"] == 1
        assert body["enrollments"][0]["userId"] == member.id

    def test_times_are_sent_as_utc(self, client, admin, trainer, make_class):
        db_class = make_class(trainer, admin)

        body = client.get(f"{API}/{db_class.id}").json()
        assert body["startTime"].endswith("Z")
        assert body["endTime"].endswith("Z")
        assert body["createdAt"].endswith("Z")
        assert body["trainer"]["createdAt"].endswith("Z")
        assert body["startTime"].startswith(db_class.start_time.isoformat()[:19])

    def test_enrollments_of_missing_class(self, client):
        response = client.get(f"{API}/999999/enrollments")
        assert response.status_code == 404


class TestCreateClass:
    def test_requires_token(self, client, trainer):
        response = client.post(API, json=class_payload(trainer))
        assert response.status_code == 401
        assert "Missing authorization token" in response.json()["message"]

    def test_requires_admin(self, client, trainer, member, auth_headers):
        response = client.post(API, json=class_payload(trainer), headers=auth_headers(member))
        assert response.status_code == 403
        assert "Only admins" in response.json()["message"]

    def test_missing_fields(self, client, admin, auth_headers):
        response = client.post(API, json={"description": "no title"}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "required" in response.json()["message"]

    def test_trainer_must_have_trainer_role(self, client, admin, member, auth_headers):
        response = client.post(API, json=class_payload(member), headers=auth_headers(admin))
        assert response.status_code == 400
        assert "trainer" in response.json()["message"]

    def test_end_must_follow_start(self, client, admin, trainer, auth_headers):
        start = (utc_now() + timedelta(days=1)).isoformat()
        payload = class_payload(trainer, startTime=start, endTime=start)
        response = client.post(API, json=payload, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "after startTime" in response.json()["message"]

    def test_capacity_must_be_positive(self, client, admin, trainer, auth_headers):
        response = client.post(API, json=class_payload(trainer, capacity=0), headers=auth_headers(admin))
        assert response.status_code == 400
        assert "greater than zero" in response.json()["message"]

    def test_required_role_must_be_a_tier(self, client, admin, trainer, auth_headers):
        response = client.post(API, json=class_payload(trainer, requiredRole="ADMIN"), headers=auth_headers(admin))
        assert response.status_code == 400
        assert "must be one of" in response.json()["message"]

    def test_unknown_category(self, client, admin, trainer, auth_headers):
        response = client.post(API, json=class_payload(trainer, categoryId=424242), headers=auth_headers(admin))
        assert response.status_code == 404
        assert "Category not found" in response.json()["message"]

    def test_create_success(self, client, admin, trainer, make_category, auth_headers):
        category = make_category("HIIT")
        payload = class_payload(trainer, categoryId=category.id, requiredRole="USER_GOLD")

        response = client.post(API, json=payload, headers=auth_headers(admin))
        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Power Hour"
        assert body["trainer"]["id"] == trainer.id
        assert body["category"]["name"] == "HIIT"
        assert body["createdById"] == admin.id
        assert body["requiredRole"] == "USER_GOLD"
        assert body["enrollmentCount"] == 0
        assert body["availableSpots"] == 12

    def test_timezone_aware_times_are_stored_as_utc(self, client, admin, trainer, auth_headers):
        payload = class_payload(
            trainer,
            startTime="2030-01-01T10:00:00+07:00",
            endTime="2030-01-01T11:00:00+07:00",
        )
        response = client.post(API, json=payload, headers=auth_headers(admin))
        assert response.status_code == 201
        assert response.json()["startTime"] == "2030-01-01T03:00:00Z"


class TestUpdateClass:
    def test_not_found(self, client, admin, auth_headers):
        response = client.put(f"{API}/999999", json={"title": "x"}, headers=auth_headers(admin))
        assert response.status_code == 404

    def test_update_fields(self, client, admin, trainer, make_class, auth_headers):
        db_class = make_class(trainer, admin, capacity=10)
        response = client.put(
            f"{API}/{db_class.id}",
            json={"title": "Updated Class Title", "description": "Updated description", "capacity": 30},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Updated Class Title"
        assert body["description"] == "Updated description"
        assert body["capacity"] == 30
        assert body["trainer"]["id"] == trainer.id

    def test_capacity_must_be_positive(self, client, admin, trainer, make_class, auth_headers):
        db_class = make_class(trainer, admin)
        response = client.put(f"{API}/{db_class.id}", json={"capacity": -1}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "greater than zero" in response.json()["message"]

    def test_time_window_checked_against_stored_values(self, client, admin, trainer, make_class, auth_headers):
        db_class = make_class(trainer, admin)
        late_start = (db_class.end_time + timedelta(hours=1)).isoformat()
        response = client.put(f"{API}/{db_class.id}", json={"startTime": late_start}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "after startTime" in response.json()["message"]

    def test_capacity_below_enrollments(self, client, admin, trainer, make_user, make_class, enroll, auth_headers):
        db_class = make_class(trainer, admin, capacity=5)
        enroll(make_user(), db_class)
        enroll(make_user(), db_class)

        response = client.put(f"{API}/{db_class.id}", json={"capacity": 1}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "capacity" in response.json()["message"]

    def test_update_locks_class_row(self, client, admin, trainer, make_class, auth_headers, monkeypatch):
        db_class = make_class(trainer, admin, capacity=5)
        locked = []
        get_for_update = crud_class.get_for_update

        async def recording_get_for_update(db, *, id):
            locked.append(id)
            return await get_for_update(db, id=id)

        monkeypatch.setattr(crud_class, "get_for_update", recording_get_for_update)
        response = client.put(f"{API}/{db_class.id}", json={"capacity": 8}, headers=auth_headers(admin))
        assert response.status_code == 200
        assert locked == [db_class.id]

    def test_empty_update(self, client, admin, trainer, make_class, auth_headers):
        db_class = make_class(trainer, admin)
        response = client.put(f"{API}/{db_class.id}", json={}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "No fields" in response.json()["message"]

    def test_clear_required_role(self, client, admin, trainer, make_class, auth_headers):
        db_class = make_class(trainer, admin, required_role=Role.USER_GOLD)
        response = client.put(f"{API}/{db_class.id}", json={"requiredRole": None}, headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["requiredRole"] is None


class TestDeleteClass:
    def test_requires_admin(self, client, admin, trainer, member, make_class, auth_headers):
        db_class = make_class(trainer, admin)
        assert client.delete(f"{API}/{db_class.id}").status_code == 401
        assert client.delete(f"{API}/{db_class.id}", headers=auth_headers(member)).status_code == 403

    def test_not_found(self, client, admin, auth_headers):
        response = client.delete(f"{API}/999999", headers=auth_headers(admin))
        assert response.status_code == 404

    def test_delete_with_enrollments(self, client, db, admin, trainer, member, make_class, enroll, auth_headers):
        db_class = make_class(trainer, admin)
        enroll(member, db_class)

        response = client.delete(f"{API}/{db_class.id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert "deleted successfully" in response.json()["message"]
        assert enrollment_count(db, db_class.id) == 0
        assert db.scalar(select(func.count()).select_from(FitnessClass)) == 0


class TestEnroll:
    def test_requires_token(self, client, admin, trainer, make_class):
        db_class = make_class(trainer, admin)
        response = client.post(f"{API}/{db_class.id}/enroll")
        assert response.status_code == 401
        assert "Missing authorization token" in response.json()["message"]

    def test_invalid_token(self, client, admin, trainer, make_class):
        db_class = make_class(trainer, admin)
        response = client.post(f"{API}/{db_class.id}/enroll", headers={"Authorization": "Bearer broken"})
        assert response.status_code == 401
        assert "Invalid" in response.json()["message"]

    def test_class_not_found(self, client, member, auth_headers):
        response = client.post(f"{API}/999999/enroll", headers=auth_headers(member))
        assert response.status_code == 404
        assert "not found" in response.json()["message"]

    def test_invalid_class_id(self, client, member, auth_headers):
        response = client.post(f"{API}/x1/enroll", headers=auth_headers(member))
        assert response.status_code == 400
        assert "valid number" in response.json()["message"]

    def test_started_class(self, client, db, admin, trainer, member, make_class, auth_headers):
        db_class = make_class(trainer, admin, starts_in=-timedelta(minutes=1))
        response = client.post(f"{API}/{db_class.id}/enroll", headers=auth_headers(member))
        assert response.status_code == 400
        assert "started or finished" in response.json()["message"]
        assert enrollment_count(db, db_class.id) == 0

    def test_full_class(self, client, admin, trainer, member, make_user, make_class, enroll, auth_headers):
        db_class = make_class(trainer, admin, capacity=1)
        enroll(make_user(), db_class)

        response = client.post(f"{API}/{db_class.id}/enroll", headers=auth_headers(member))
        assert response.status_code == 400
        assert "already full" in response.json()["message"]

    def test_tier_requirement(self, client, admin, trainer, member, make_class, auth_headers):
        db_class = make_class(trainer, admin, required_role=Role.USER_GOLD)
        response = client.post(f"{API}/{db_class.id}/enroll", headers=auth_headers(member))
        assert response.status_code == 403
        assert "only available" in response.json()["message"]
        assert "USER_GOLD" in response.json()["message"]

    def test_higher_tier_allowed(self, client, admin, trainer, make_user, make_class, auth_headers):
        platinum = make_user(Role.USER_PLATINUM)
        db_class = make_class(trainer, admin, required_role=Role.USER_GOLD)
        response = client.post(f"{API}/{db_class.id}/enroll", headers=auth_headers(platinum))
        assert response.status_code == 201

    def test_role_is_read_from_database(self, client, db, admin, trainer, member, make_class, auth_headers):
        headers = auth_headers(member)
        member.role = Role.USER_GOLD
        db.commit()
        db_class = make_class(trainer, admin, required_role=Role.USER_GOLD)

        response = client.post(f"{API}/{db_class.id}/enroll", headers=headers)
        assert response.status_code == 201

    def test_enroll_success(self, client, db, admin, trainer, member, make_class, auth_headers):
        db_class = make_class(trainer, admin, capacity=3)

        response = client.post(f"{API}/{db_class.id}/enroll", headers=auth_headers(member))
        assert response.status_code == 201
        body = response.json()
        assert "id" in body
        assert body["classId"] == db_class.id
        assert body["userId"] == member.id
        assert body["user"]["email"] == member.email
        assert body["class"]["enrollmentCount"] == 1
        assert body["class"]["availableSpots"] == 2
        assert body["class"]["trainer"]["id"] == trainer.id
        assert enrollment_count(db, db_class.id) == 1

    def test_already_enrolled(self, client, db, admin, trainer, member, make_class, auth_headers):
        db_class = make_class(trainer, admin)
        headers = auth_headers(member)
        assert client.post(f"{API}/{db_class.id}/enroll", headers=headers).status_code == 201

        response = client.post(f"{API}/{db_class.id}/enroll", headers=headers)
        assert response.status_code == 409
        assert "already enrolled" in response.json()["message"]
        assert enrollment_count(db, db_class.id) == 1

    def test_single_seat_is_freed_by_unenroll(self, client, db, admin, trainer, make_user, make_class, auth_headers):
        db_class = make_class(trainer, admin, capacity=1)
        first = auth_headers(make_user())
        second = auth_headers(make_user())

        assert client.post(f"{API}/{db_class.id}/enroll", headers=first).status_code == 201
        blocked = client.post(f"{API}/{db_class.id}/enroll", headers=second)
        assert blocked.status_code == 400
        assert "already full" in blocked.json()["message"]

        assert client.delete(f"{API}/{db_class.id}/enroll", headers=first).status_code == 200
        assert client.post(f"{API}/{db_class.id}/enroll", headers=second).status_code == 201
        assert enrollment_count(db, db_class.id) == 1

    def test_capacity_never_exceeded(self, client, db, admin, trainer, make_user, make_class, auth_headers):
        db_class = make_class(trainer, admin, capacity=3)
        statuses = [
            client.post(f"{API}/{db_class.id}/enroll", headers=auth_headers(make_user())).status_code
            for _ in range(5)
        ]
        assert statuses == [201, 201, 201, 400, 400]
        assert enrollment_count(db, db_class.id) == 3


    def test_parallel_requests_never_overfill(self, client, db, admin, trainer, make_user, make_class, auth_headers):
        capacity = 3
        db_class = make_class(trainer, admin, capacity=capacity)
        headers = [auth_headers(make_user()) for _ in range(8)]

        def attempt(user_headers):
            return TestClient(app).post(f"{API}/{db_class.id}/enroll", headers=user_headers).status_code

        with ThreadPoolExecutor(max_workers=len(headers)) as pool:
            statuses = list(pool.map(attempt, headers))

        assert enrollment_count(db, db_class.id) <= capacity
        assert statuses.count(201) == enrollment_count(db, db_class.id)
        assert set(statuses) <= {201, 400}

    def test_parallel_duplicates_enroll_once(self, client, db, admin, trainer, member, make_class, auth_headers):
        db_class = make_class(trainer, admin)
        headers = auth_headers(member)

        def attempt(_):
            return TestClient(app).post(f"{API}/{db_class.id}/enroll", headers=headers).status_code

        with ThreadPoolExecutor(max_workers=4) as pool:
            statuses = list(pool.map(attempt, range(4)))

        assert statuses.count(201) == 1
        assert statuses.count(409) == 3
        assert enrollment_count(db, db_class.id) == 1


class TestUnenroll:
    def test_not_enrolled(self, client, admin, trainer, member, make_class, auth_headers):
        db_class = make_class(trainer, admin)
        response = client.delete(f"{API}/{db_class.id}/enroll", headers=auth_headers(member))
        assert response.status_code == 404
        assert response.json()["message"] == "Enrollment not found"

    def test_class_not_found(self, client, member, auth_headers):
        response = client.delete(f"{API}/999999/enroll", headers=auth_headers(member))
        assert response.status_code == 404
        assert "Class not found" in response.json()["message"]

    def test_unenroll_after_start_is_allowed(self, client, db, admin, trainer, member, make_class, enroll, auth_headers):
        db_class = make_class(trainer, admin, starts_in=-timedelta(minutes=10))
        enroll(member, db_class)

        response = client.delete(f"{API}/{db_class.id}/enroll", headers=auth_headers(member))
        assert response.status_code == 200
        assert enrollment_count(db, db_class.id) == 0


class TestTrainerClasses:
    def test_my_classes_requires_token(self, client):
        assert client.get(f"{API}/my-classes").status_code == 401

    def test_my_classes_only_for_trainers(self, client, member, auth_headers):
        response = client.get(f"{API}/my-classes", headers=auth_headers(member))
        assert response.status_code == 403
        assert "Only trainers" in response.json()["message"]

    def test_my_classes(self, client, admin, trainer, make_user, make_class, auth_headers):
        other = make_user(Role.TRAINER)
        make_class(trainer, admin, title="Mine")
        make_class(other, admin, title="Theirs")

        response = client.get(f"{API}/my-classes", headers=auth_headers(trainer))
        assert response.status_code == 200
        body = response.json()
        assert body["trainer"]["id"] == trainer.id
        assert [c["title"] for c in body["classes"]] == ["Mine"]

    def test_trainer_classes_public(self, client, admin, trainer, make_class):
        make_class(trainer, admin)
        response = client.get(f"{API}/trainer/{trainer.id}")
        assert response.status_code == 200
        assert len(response.json()["classes"]) == 1

    def test_invalid_trainer_id(self, client):
        response = client.get(f"{API}/trainer/invalid")
        assert response.status_code == 400
        assert "valid number" in response.json()["message"]

    def test_unknown_trainer(self, client):
        response = client.get(f"{API}/trainer/999999")
        assert response.status_code == 404
        assert "not found" in response.json()["message"]

    def test_member_is_not_a_trainer(self, client, member):
        response = client.get(f"{API}/trainer/{member.id}")
        assert response.status_code == 404

    def test_trainer_cannot_view_other_trainer(self, client, trainer, make_user, auth_headers):
        other = make_user(Role.TRAINER)
        response = client.get(f"{API}/trainer/{other.id}", headers=auth_headers(trainer))
        assert response.status_code == 403
        assert "your own classes" in response.json()["message"]
