"""
Student enrollment, one at a time or in bulk from a class-list spreadsheet.

The spreadsheet layout is the one exported by the school office: a title
block, then one student per row from ``BULK_ENROLLMENT_FIRST_ROW`` with the
columns NOMBRES, APELLIDOS, DNI, GENERO, FECHA_NAC.
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional

from openpyxl import load_workbook
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..config import settings
from ..errors import ApiError, ConstraintViolation, ValidationError
from ..models import Enrollment, SchoolYear, Section, User, UserRole

log = logging.getLogger(__name__)


@dataclass
class StudentRow:
    first_name: str
    last_name: str
    dni: str
    gender: Optional[str] = None
    birthdate: Optional[date] = None


@dataclass
class BulkEnrollmentOutcome:
    total_processed: int = 0
    created: List[Enrollment] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.created)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # Excel stores DNIs typed as numbers as floats
        value = int(value)
    return str(value).strip()


def _cell_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _row_to_student(values: List[Any]) -> Optional[StudentRow]:
    values = list(values) + [None] * (5 - len(values))
    first_name, last_name, dni = (_cell_text(v) for v in values[:3])
    if not (first_name or last_name or dni):
        return None
    gender = _cell_text(values[3]).upper()[:1] or None
    return StudentRow(first_name, last_name, dni, gender, _cell_date(values[4]))


def parse_student_rows(content: bytes, filename: str) -> List[StudentRow]:
    """Read student rows from an .xlsx or .csv class list, skipping the title block and blank rows."""
    first_row = settings.BULK_ENROLLMENT_FIRST_ROW
    name = (filename or "").lower()
    if name.endswith(".xlsx"):
        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except Exception as exc:
            raise ValidationError(f"Could not read spreadsheet: {exc}", field="file")
        try:
            raw_rows = list(workbook.worksheets[0].iter_rows(min_row=first_row, values_only=True))
        finally:
            workbook.close()
    elif name.endswith(".csv"):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("CSV class lists must be saved as UTF-8", field="file")
        reader = csv.reader(io.StringIO(text))
        raw_rows = [row for index, row in enumerate(reader, start=1) if index >= first_row]
    else:
        raise ValidationError("Upload an .xlsx or .csv file", field="file")

    rows = []
    for values in raw_rows:
        student = _row_to_student(list(values))
        if student:
            rows.append(student)
    return rows


def generated_email(first_name: str, last_name: str, dni: str) -> str:
    first_surname = last_name.split(" ")[0]
    return f"{first_name[:2]}{first_surname}{dni}@{settings.STUDENT_EMAIL_DOMAIN}".lower()


def _check_enrollable(session: Session, student: User, section: Section, school_year: SchoolYear) -> Optional[Enrollment]:
    """Return the existing enrollment, or None if the student can be enrolled."""
    if student.role != UserRole.STUDENT:
        raise ValidationError(f"User with DNI {student.dni} exists but is not a student", field="studentId")
    existing = session.exec(
        select(Enrollment).where(
            Enrollment.student_id == student.id,
            Enrollment.section_id == section.id,
            Enrollment.school_year_id == school_year.id,
        )
    ).first()
    if existing:
        return existing
    if section.is_full:
        raise ConstraintViolation(f"Section '{section.name}' has reached its maximum number of students")
    return None


def _enroll(session: Session, student: User, section: Section, school_year: SchoolYear) -> Enrollment:
    enrollment = Enrollment(student_id=student.id, section_id=section.id, school_year_id=school_year.id)
    session.add(enrollment)
    section.current_students += 1
    session.add(section)
    return enrollment


def create_enrollment(session: Session, student_id: int, section_id: int, school_year_id: int) -> Enrollment:
    student = session.get(User, student_id)
    if not student:
        raise ApiError.not_found("Student not found")
    section = session.get(Section, section_id)
    if not section:
        raise ApiError.not_found("Section not found")
    school_year = session.get(SchoolYear, school_year_id)
    if not school_year:
        raise ApiError.not_found("School year not found")

    if _check_enrollable(session, student, section, school_year):
        raise ConstraintViolation("Student is already enrolled in this section for this school year")

    enrollment = _enroll(session, student, section, school_year)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConstraintViolation("Student is already enrolled in this section for this school year")
    session.refresh(enrollment)
    log.info("Enrolled student %s in section %s (%s)", student.id, section.name, school_year.name)
    return enrollment


def bulk_enroll(
    session: Session,
    rows: List[StudentRow],
    section_name: str,
    school_year_name: str,
) -> BulkEnrollmentOutcome:
    """
    Enroll every row into `section_name` for `school_year_name`.

    Unknown DNIs become new students (generated email, DNI as temporary
    password). Students already enrolled are skipped. Any other problem
    aborts the batch: errors are collected for all rows, then raised
    together and nothing is committed.
    """
    section = session.exec(select(Section).where(Section.name == section_name)).first()
    if not section:
        raise ApiError.not_found(f"Section '{section_name}' not found")
    school_year = session.exec(select(SchoolYear).where(SchoolYear.name == school_year_name)).first()
    if not school_year:
        raise ApiError.not_found(f"School year '{school_year_name}' not found")

    outcome = BulkEnrollmentOutcome(total_processed=len(rows))
    errors: List[str] = []

    for row in rows:
        if not (row.dni and row.first_name and row.last_name):
            errors.append(f"Incomplete student data: {row}")
            continue
        try:
            student = session.exec(select(User).where(User.dni == row.dni)).first()
            if not student:
                student = User(
                    dni=row.dni,
                    first_name=row.first_name,
                    last_name=row.last_name,
                    email=generated_email(row.first_name, row.last_name, row.dni),
                    gender=row.gender,
                    birthdate=row.birthdate,
                    role=UserRole.STUDENT,
                )
                student.set_password(row.dni)
                session.add(student)
                session.flush()

            if _check_enrollable(session, student, section, school_year):
                log.info("Student %s %s is already enrolled, skipping", student.first_name, student.last_name)
                outcome.skipped.append(row.dni)
                continue

            outcome.created.append(_enroll(session, student, section, school_year))
            session.flush()
        except (ApiError, IntegrityError) as exc:
            message = exc.message if isinstance(exc, ApiError) else str(exc.orig)
            errors.append(f"Error processing DNI {row.dni}: {message}")
            if isinstance(exc, IntegrityError):
                # The failed flush leaves the transaction unusable; the batch is lost either way.
                break

    if errors:
        session.rollback()
        log.warning("Bulk enrollment into %s aborted with %d errors", section_name, len(errors))
        raise ValidationError("Bulk enrollment failed: " + "; ".join(errors), errors=errors)

    session.commit()
    for enrollment in outcome.created:
        session.refresh(enrollment)
    log.info(
        "Bulk enrollment into %s (%s): %d created, %d skipped",
        section_name, school_year_name, outcome.success_count, len(outcome.skipped),
    )
    return outcome


def students_by_section(session: Session, section_id: int) -> List[User]:
    if not session.get(Section, section_id):
        raise ApiError.not_found("Section not found")
    return list(session.exec(
        select(User).join(Enrollment, Enrollment.student_id == User.id).where(Enrollment.section_id == section_id)
    ).all())
