import io
from datetime import date

import pytest
from httpx import AsyncClient
from openpyxl import Workbook
from sqlmodel import Session, select

from school_attendance.errors import ApiError, ConstraintViolation, ValidationError
from school_attendance.models import EducationalLevel, Enrollment, SchoolYear, Section, User, UserRole
from school_attendance.services import enrollment_service

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def class_list_xlsx(rows) -> bytes:
    """A class list in the office export layout: title block, header on row 11, students from row 12."""
    wb = Workbook()
    ws = wb.active
    ws["A1"] = "LISTA DE ESTUDIANTES"
    ws.cell(row=11, column=1, value="NOMBRES")
    ws.cell(row=11, column=2, value="APELLIDOS")
    ws.cell(row=11, column=3, value="DNI")
    ws.cell(row=11, column=4, value="GENERO")
    ws.cell(row=11, column=5, value="FECHA_NAC")
    for offset, row in enumerate(rows):
        for column, value in enumerate(row, start=1):
            ws.cell(row=12 + offset, column=column, value=value)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture(name="school_year")
def school_year_fixture(session: Session):
    year = SchoolYear(name="2025", start_date=date(2025, 3, 1), end_date=date(2025, 12, 19))
    session.add(year)
    session.commit()
    session.refresh(year)
    return year


@pytest.fixture(name="section")
def section_fixture(session: Session, school_year):
    section = Section(name="1A", level=EducationalLevel.PRIMARIA, grade=1, max_students=3, school_year_id=school_year.id)
    session.add(section)
    session.commit()
    session.refresh(section)
    return section


def test_generated_email():
    assert enrollment_service.generated_email("Valeria", "Torres Huamán", "70112233") == "vatorres70112233@escuela.com"


def test_parse_xlsx_starts_at_first_data_row():
    content = class_list_xlsx([
        ["Valeria", "Torres Huamán", 70112233, "f", date(2017, 5, 2)],
        [None, None, None, None, None],
        ["Diego", "Ramos", "70445566", "Masculino", None],
    ])

    rows = enrollment_service.parse_student_rows(content, "lista.xlsx")

    assert [r.dni for r in rows] == ["70112233", "70445566"]
    assert rows[0].gender == "F"
    assert rows[0].birthdate == date(2017, 5, 2)
    assert rows[1].gender == "M"
    assert rows[1].birthdate is None


def test_parse_csv():
    lines = ["titulo"] * 11 + ["Ana,Quispe Mamani,71234567,F,15/08/2016"]
    rows = enrollment_service.parse_student_rows("\n".join(lines).encode(), "LISTA.CSV")

    assert len(rows) == 1
    assert rows[0].last_name == "Quispe Mamani"
    assert rows[0].birthdate == date(2016, 8, 15)


def test_parse_csv_in_another_encoding_is_a_validation_error():
    lines = ["titulo"] * 11 + ["José,Pérez Núñez,71234567,M,"]

    with pytest.raises(ValidationError) as excinfo:
        enrollment_service.parse_student_rows("\n".join(lines).encode("latin-1"), "lista.csv")
    assert excinfo.value.field == "file"


def test_parse_xlsx_closes_the_workbook(monkeypatch):
    opened = []
    real_load = enrollment_service.load_workbook

    def tracking_load(*args, **kwargs):
        workbook = real_load(*args, **kwargs)
        real_close = workbook.close
        workbook.was_closed = False

        def close():
            workbook.was_closed = True
            real_close()

        workbook.close = close
        opened.append(workbook)
        return workbook

    monkeypatch.setattr(enrollment_service, "load_workbook", tracking_load)

    enrollment_service.parse_student_rows(class_list_xlsx([["Ana", "Quispe", "71234567", "F", None]]), "lista.xlsx")

    assert [wb.was_closed for wb in opened] == [True]


def test_parse_rejects_other_formats():
    with pytest.raises(ValidationError):
        enrollment_service.parse_student_rows(b"%PDF", "lista.pdf")


def test_create_enrollment_updates_section_count(session: Session, student, section, school_year):
    enrollment = enrollment_service.create_enrollment(session, student.id, section.id, school_year.id)

    assert enrollment.id is not None
    session.refresh(section)
    assert section.current_students == 1
    assert [s.id for s in enrollment_service.students_by_section(session, section.id)] == [student.id]


def test_enrolling_twice_is_a_constraint_violation(session: Session, student, section, school_year):
    enrollment_service.create_enrollment(session, student.id, section.id, school_year.id)

    with pytest.raises(ConstraintViolation):
        enrollment_service.create_enrollment(session, student.id, section.id, school_year.id)


def test_full_section_refuses_enrollment(session: Session, make_user, section, school_year):
    for _ in range(section.max_students):
        enrollment_service.create_enrollment(session, make_user().id, section.id, school_year.id)

    with pytest.raises(ConstraintViolation):
        enrollment_service.create_enrollment(session, make_user().id, section.id, school_year.id)


def test_bulk_enroll_creates_students(session: Session, section, school_year):
    rows = [
        enrollment_service.StudentRow("Valeria", "Torres Huamán", "70112233", "F"),
        enrollment_service.StudentRow("Diego", "Ramos", "70445566", "M"),
    ]

    outcome = enrollment_service.bulk_enroll(session, rows, "1A", "2025")

    assert outcome.total_processed == 2
    assert outcome.success_count == 2
    valeria = session.exec(select(User).where(User.dni == "70112233")).one()
    assert valeria.role == UserRole.STUDENT
    assert valeria.email == "vatorres70112233@escuela.com"
    assert valeria.check_password("70112233")
    session.refresh(section)
    assert section.current_students == 2


def test_bulk_enroll_skips_students_already_enrolled(session: Session, student, section, school_year):
    enrollment_service.create_enrollment(session, student.id, section.id, school_year.id)
    rows = [
        enrollment_service.StudentRow(student.first_name, student.last_name, student.dni),
        enrollment_service.StudentRow("Diego", "Ramos", "70445566"),
    ]

    outcome = enrollment_service.bulk_enroll(session, rows, "1A", "2025")

    assert outcome.skipped == [student.dni]
    assert outcome.success_count == 1


def test_bulk_enroll_is_all_or_nothing(session: Session, teacher, section, school_year):
    rows = [
        enrollment_service.StudentRow("Diego", "Ramos", "70445566"),
        enrollment_service.StudentRow("Tomas", "Teacher", teacher.dni),
        enrollment_service.StudentRow("", "SinNombre", "70999999"),
    ]

    with pytest.raises(ValidationError) as excinfo:
        enrollment_service.bulk_enroll(session, rows, "1A", "2025")

    assert len(excinfo.value.errors) == 2
    assert session.exec(select(User).where(User.dni == "70445566")).first() is None
    assert session.exec(select(Enrollment)).all() == []
    session.refresh(section)
    assert section.current_students == 0


def test_bulk_enroll_unknown_section(session: Session, school_year):
    with pytest.raises(ApiError) as excinfo:
        enrollment_service.bulk_enroll(session, [], "9Z", "2025")
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_bulk_upload_endpoint(client: AsyncClient, admin, section, school_year, auth_headers):
    content = class_list_xlsx([["Valeria", "Torres", "70112233", "F", None]])

    response = await client.post(
        "/enrollments/bulk",
        files={"file": ("lista.xlsx", content, XLSX)},
        data={"schoolYearName": "2025", "sectionName": "1A"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["totalProcessed"] == 1
    assert body["data"]["successCount"] == 1
    assert body["data"]["createdEnrollments"][0]["sectionId"] == section.id


@pytest.mark.asyncio
async def test_bulk_upload_rejects_unsupported_file(client: AsyncClient, admin, section, school_year, auth_headers):
    response = await client.post(
        "/enrollments/bulk",
        files={"file": ("lista.txt", b"hola", "text/plain")},
        data={"schoolYearName": "2025", "sectionName": "1A"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_bulk_upload_of_latin1_csv_is_rejected(client: AsyncClient, admin, section, school_year, auth_headers):
    content = "\n".join(["titulo"] * 11 + ["José,Pérez,71234567,M,"]).encode("latin-1")

    response = await client.post(
        "/enrollments/bulk",
        files={"file": ("lista.csv", content, "text/csv")},
        data={"schoolYearName": "2025", "sectionName": "1A"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"
    assert response.json()["errors"][0]["field"] == "file"


@pytest.mark.asyncio
async def test_enroll_endpoint_and_section_listing(client: AsyncClient, admin, student, section, school_year, auth_headers):
    headers = auth_headers(admin)
    payload = {"studentId": student.id, "sectionId": section.id, "schoolYearId": school_year.id}

    created = await client.post("/enrollments", json=payload, headers=headers)
    assert created.status_code == 201
    assert created.json()["data"]["status"] == "active"

    again = await client.post("/enrollments", json=payload, headers=headers)
    assert again.status_code == 409

    listing = await client.get(f"/enrollments/section/{section.id}", headers=headers)
    assert listing.json()["data"] == [
        {"id": student.id, "firstName": "Sofia", "lastName": "Student", "dni": student.dni}
    ]


@pytest.mark.asyncio
async def test_school_years_and_sections(client: AsyncClient, admin, auth_headers):
    headers = auth_headers(admin)

    year = await client.post(
        "/school-years", json={"name": "2026", "startDate": "2026-03-01", "endDate": "2026-12-18"}, headers=headers,
    )
    assert year.status_code == 201
    year_id = year.json()["data"]["id"]

    bad = await client.post(
        "/school-years", json={"name": "2027", "startDate": "2027-12-01", "endDate": "2027-03-01"}, headers=headers,
    )
    assert bad.status_code == 400

    section = await client.post(
        "/sections", json={"name": "2B", "level": "Primaria", "grade": 2, "schoolYearId": year_id}, headers=headers,
    )
    assert section.status_code == 201
    assert section.json()["data"]["currentStudents"] == 0

    dup = await client.post("/sections", json={"name": "2B", "level": "Primaria", "grade": 2}, headers=headers)
    assert dup.status_code == 409

    listing = await client.get("/sections", headers=headers)
    assert [s["name"] for s in listing.json()["data"]] == ["2B"]
