import pytest
from httpx import AsyncClient
from sqlmodel import Session

from school_attendance.errors import ConstraintViolation, ValidationError
from school_attendance.models import User, UserRole, UserStatus
from school_attendance.services import user_service

NEW_TEACHER = {
    "firstName": "Lucía",
    "lastName": "Mendoza",
    "dni": "45678912",
    "email": "LMendoza@Escuela.com",
    "password": "clave123",
    "role": "teacher",
}


def test_create_user_normalises_and_hashes(session: Session):
    user = user_service.create_user(session, {
        "first_name": " Lucía ", "last_name": "Mendoza", "dni": "45678912",
        "email": " LMendoza@Escuela.com", "password": "clave123", "role": UserRole.TEACHER,
    })

    assert (user.first_name, user.email) == ("Lucía", "lmendoza@escuela.com")
    assert user.password_hash != "clave123"
    assert user.check_password("clave123")


def test_create_user_with_taken_dni(session: Session, student):
    with pytest.raises(ConstraintViolation):
        user_service.create_user(session, {
            "first_name": "Otro", "last_name": "Alumno", "dni": student.dni, "email": "otro@escuela.com",
        })


def test_update_user_refuses_empty_required_field(session: Session, student):
    with pytest.raises(ValidationError) as excinfo:
        user_service.update_user(session, student, {"last_name": None})
    assert excinfo.value.field == "last_name"


def test_delete_user_with_history_is_refused(session: Session, teacher, attendance):
    with pytest.raises(ConstraintViolation):
        user_service.delete_user(session, teacher)
    assert session.get(User, teacher.id) is not None


@pytest.mark.asyncio
async def test_users_are_admin_only(client: AsyncClient, teacher, auth_headers):
    response = await client.get("/users", headers=auth_headers(teacher))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_users_filters_and_searches(client: AsyncClient, admin, teacher, make_user, auth_headers):
    make_user(first_name="Sofia", last_name="Alvarez")
    make_user(first_name="Bruno", last_name="Zavala", status=UserStatus.INACTIVE)
    headers = auth_headers(admin)

    students = await client.get("/users", params={"role": "student"}, headers=headers)
    assert [u["lastName"] for u in students.json()["data"]] == ["Alvarez", "Zavala"]
    assert students.json()["total"] == 2

    active = await client.get("/users", params={"role": "student", "status": "active"}, headers=headers)
    assert [u["lastName"] for u in active.json()["data"]] == ["Alvarez"]

    found = await client.get("/users", params={"search": "teach"}, headers=headers)
    assert [u["id"] for u in found.json()["data"]] == [teacher.id]

    page = await client.get("/users", params={"limit": 2, "page": 2}, headers=headers)
    assert page.json()["count"] == 2
    assert page.json()["pagination"] == {"page": 2, "limit": 2, "totalPages": 2}


@pytest.mark.asyncio
async def test_create_and_fetch_user(client: AsyncClient, admin, auth_headers):
    headers = auth_headers(admin)

    created = await client.post("/users", json=NEW_TEACHER, headers=headers)
    assert created.status_code == 201
    body = created.json()["data"]
    assert (body["email"], body["role"], body["status"]) == ("lmendoza@escuela.com", "teacher", "active")
    assert "passwordHash" not in body

    fetched = await client.get(f"/users/{body['id']}", headers=headers)
    assert fetched.json()["data"]["dni"] == "45678912"

    again = await client.post("/users", json=NEW_TEACHER, headers=headers)
    assert again.status_code == 409
    assert again.json()["code"] == "constraint_violation"

    login = await client.post("/auth/login", json={"dni": "45678912", "password": "clave123"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_create_user_requires_password(client: AsyncClient, admin, auth_headers):
    body = {k: v for k, v in NEW_TEACHER.items() if k != "password"}
    response = await client.post("/users", json=body, headers=auth_headers(admin))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_missing_user(client: AsyncClient, admin, auth_headers):
    response = await client.get("/users/999", headers=auth_headers(admin))
    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_deactivated_user_cannot_log_in(client: AsyncClient, admin, make_user, auth_headers):
    student = make_user(password="alumno1")

    updated = await client.put(f"/users/{student.id}", json={"status": "inactive"}, headers=auth_headers(admin))
    assert updated.status_code == 200
    assert updated.json()["data"]["status"] == "inactive"

    login = await client.post("/auth/login", json={"dni": student.dni, "password": "alumno1"})
    assert login.status_code == 401


@pytest.mark.asyncio
async def test_update_user_to_taken_email(client: AsyncClient, admin, teacher, student, auth_headers):
    response = await client.put(f"/users/{student.id}", json={"email": teacher.email}, headers=auth_headers(admin))
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_admin_cannot_deactivate_or_demote_self(client: AsyncClient, admin, auth_headers):
    headers = auth_headers(admin)

    deactivate = await client.put(f"/users/{admin.id}", json={"status": "inactive"}, headers=headers)
    assert deactivate.status_code == 400

    demote = await client.put(f"/users/{admin.id}", json={"role": "teacher"}, headers=headers)
    assert demote.status_code == 400

    rename = await client.put(f"/users/{admin.id}", json={"firstName": "Adela"}, headers=headers)
    assert rename.json()["data"]["firstName"] == "Adela"


@pytest.mark.asyncio
async def test_delete_user(client: AsyncClient, admin, student, auth_headers):
    headers = auth_headers(admin)

    deleted = await client.delete(f"/users/{student.id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "User deleted"

    missing = await client.get(f"/users/{student.id}", headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_user_with_attendance_history(client: AsyncClient, admin, teacher, attendance, auth_headers):
    response = await client.delete(f"/users/{teacher.id}", headers=auth_headers(admin))
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client: AsyncClient, admin, auth_headers):
    response = await client.delete(f"/users/{admin.id}", headers=auth_headers(admin))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_resets_password(client: AsyncClient, admin, make_user, auth_headers):
    teacher = make_user(role=UserRole.TEACHER, password="vieja123")

    reset = await client.put(
        f"/users/{teacher.id}/change-password", json={"newPassword": "nueva456"}, headers=auth_headers(admin),
    )
    assert reset.status_code == 200

    old = await client.post("/auth/login", json={"dni": teacher.dni, "password": "vieja123"})
    assert old.status_code == 401
    new = await client.post("/auth/login", json={"dni": teacher.dni, "password": "nueva456"})
    assert new.status_code == 200

    short = await client.put(
        f"/users/{teacher.id}/change-password", json={"newPassword": "abc"}, headers=auth_headers(admin),
    )
    assert short.status_code == 400
