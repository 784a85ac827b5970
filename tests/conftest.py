from datetime import date

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from school_attendance.main import app
from school_attendance.db import get_session
from school_attendance.models import Attendance, Course, EducationalLevel, User, UserRole
from school_attendance.security import issue_token

DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        yield session

    app.dependency_overrides[get_session] = get_session_override
    client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test/api")
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="make_user")
def make_user_fixture(session: Session):
    counter = {"n": 0}

    def make_user(role=UserRole.STUDENT, password=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            first_name=fields.pop("first_name", f"First{n}"),
            last_name=fields.pop("last_name", f"Last{n}"),
            dni=fields.pop("dni", f"{10000000 + n}"),
            email=fields.pop("email", f"user{n}@escuela.com"),
            role=role,
            **fields,
        )
        if password:
            user.set_password(password)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return make_user


@pytest.fixture(name="auth_headers")
def auth_headers_fixture():
    def auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_token(user)}"}

    return auth_headers


@pytest.fixture(name="admin")
def admin_fixture(make_user):
    return make_user(role=UserRole.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture(name="teacher")
def teacher_fixture(make_user):
    return make_user(role=UserRole.TEACHER, first_name="Tomas", last_name="Teacher")


@pytest.fixture(name="student")
def student_fixture(make_user):
    return make_user(first_name="Sofia", last_name="Student")


@pytest.fixture(name="course")
def course_fixture(session: Session):
    course = Course(name="Matemática", description="Aritmética básica", level=EducationalLevel.PRIMARIA)
    session.add(course)
    session.commit()
    session.refresh(course)
    return course


@pytest.fixture(name="attendance")
def attendance_fixture(session: Session, course: Course, teacher: User):
    attendance = Attendance(session_date=date(2025, 3, 10), course_id=course.id, teacher_id=teacher.id)
    session.add(attendance)
    session.commit()
    session.refresh(attendance)
    return attendance
