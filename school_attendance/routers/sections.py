from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..db import get_session
from ..dependencies import get_current_user, require_role
from ..errors import ApiError, ConstraintViolation, ValidationError
from ..models import Attendance, EducationalLevel, Enrollment, SchoolYear, SchoolYearStatus, Section, UserRole
from ..responses import envelope, paginated
from ..schemas.enrollment import (
    SchoolYearCreate,
    SchoolYearRead,
    SchoolYearUpdate,
    SectionCreate,
    SectionRead,
    SectionUpdate,
)

router = APIRouter(tags=["sections"], dependencies=[Depends(get_current_user)])
require_admin = require_role(UserRole.ADMIN)


def _commit_unique(session: Session, message: str) -> None:
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConstraintViolation(message)


def _count(session: Session, model, *criteria) -> int:
    return session.exec(select(func.count()).select_from(model).where(*criteria)).one()


def _get_school_year(session: Session, year_id: int) -> SchoolYear:
    year = session.get(SchoolYear, year_id)
    if not year:
        raise ApiError.not_found("School year not found")
    return year


def _get_section(session: Session, section_id: int) -> Section:
    section = session.get(Section, section_id)
    if not section:
        raise ApiError.not_found("Section not found")
    return section


def _check_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ValidationError("endDate must be after startDate", field="endDate")


# School years

@router.get("/school-years")
def list_school_years(session: Session = Depends(get_session)):
    years = session.exec(select(SchoolYear).order_by(SchoolYear.start_date.desc())).all()
    return envelope([SchoolYearRead.model_validate(y) for y in years], count=len(years))


@router.get("/school-years/current")
def current_school_year(session: Session = Depends(get_session)):
    """The active year whose dates contain today, else the most recently started active year."""
    today = date.today()
    active = select(SchoolYear).where(SchoolYear.status == SchoolYearStatus.ACTIVE)
    year = session.exec(
        active.where(SchoolYear.start_date <= today, SchoolYear.end_date >= today)
    ).first() or session.exec(active.order_by(SchoolYear.start_date.desc())).first()
    if not year:
        raise ApiError.not_found("There is no active school year")
    return envelope(SchoolYearRead.model_validate(year))


@router.get("/school-years/{year_id}")
def get_school_year(year_id: int, session: Session = Depends(get_session)):
    return envelope(SchoolYearRead.model_validate(_get_school_year(session, year_id)))


@router.post("/school-years", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_school_year(body: SchoolYearCreate, session: Session = Depends(get_session)):
    _check_dates(body.start_date, body.end_date)
    year = SchoolYear(**body.model_dump())
    session.add(year)
    _commit_unique(session, "A school year with this name already exists")
    session.refresh(year)
    return envelope(SchoolYearRead.model_validate(year))


@router.put("/school-years/{year_id}", dependencies=[Depends(require_admin)])
def update_school_year(year_id: int, body: SchoolYearUpdate, session: Session = Depends(get_session)):
    year = _get_school_year(session, year_id)
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    _check_dates(changes.get("start_date", year.start_date), changes.get("end_date", year.end_date))
    for key, value in changes.items():
        setattr(year, key, value)
    session.add(year)
    _commit_unique(session, "A school year with this name already exists")
    session.refresh(year)
    return envelope(SchoolYearRead.model_validate(year))


@router.delete("/school-years/{year_id}", dependencies=[Depends(require_admin)])
def delete_school_year(year_id: int, session: Session = Depends(get_session)):
    year = _get_school_year(session, year_id)
    if _count(session, Section, Section.school_year_id == year.id) or \
            _count(session, Enrollment, Enrollment.school_year_id == year.id):
        raise ConstraintViolation("School year has sections or enrollments and cannot be deleted")
    session.delete(year)
    session.commit()
    return envelope({}, message="School year deleted")


# Sections

@router.get("/sections")
def list_sections(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    level: Optional[EducationalLevel] = None,
    grade: Optional[int] = None,
    school_year_id: Optional[int] = Query(None, alias="schoolYearId"),
    section_status: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    session: Session = Depends(get_session),
):
    query = select(Section)
    if level:
        query = query.where(Section.level == level)
    if grade is not None:
        query = query.where(Section.grade == grade)
    if school_year_id is not None:
        query = query.where(Section.school_year_id == school_year_id)
    if section_status:
        query = query.where(Section.status == section_status)
    if search:
        query = query.where(Section.name.ilike(f"%{search}%"))

    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    sections = session.exec(
        query.order_by(Section.grade, Section.name).offset((page - 1) * limit).limit(limit)
    ).all()
    return paginated([SectionRead.model_validate(s) for s in sections], total, page, limit)


@router.get("/sections/school-year/{year_id}")
def sections_by_school_year(
    year_id: int,
    level: Optional[EducationalLevel] = None,
    grade: Optional[int] = None,
    section_status: str = Query("active", alias="status"),
    session: Session = Depends(get_session),
):
    _get_school_year(session, year_id)
    query = select(Section).where(Section.school_year_id == year_id, Section.status == section_status)
    if level:
        query = query.where(Section.level == level)
    if grade is not None:
        query = query.where(Section.grade == grade)
    sections = session.exec(query.order_by(Section.grade, Section.name)).all()
    return envelope([SectionRead.model_validate(s) for s in sections], count=len(sections))


@router.get("/sections/{section_id}")
def get_section(section_id: int, session: Session = Depends(get_session)):
    return envelope(SectionRead.model_validate(_get_section(session, section_id)))


@router.post("/sections", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_section(body: SectionCreate, session: Session = Depends(get_session)):
    if body.school_year_id is not None:
        _get_school_year(session, body.school_year_id)
    section = Section(**body.model_dump())
    session.add(section)
    _commit_unique(session, "A section with this name already exists")
    session.refresh(section)
    return envelope(SectionRead.model_validate(section))


@router.put("/sections/{section_id}", dependencies=[Depends(require_admin)])
def update_section(section_id: int, body: SectionUpdate, session: Session = Depends(get_session)):
    section = _get_section(session, section_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("school_year_id") is not None:
        _get_school_year(session, changes["school_year_id"])
    if changes.get("max_students") is not None and changes["max_students"] < section.current_students:
        raise ValidationError(
            f"maxStudents cannot be lower than the {section.current_students} students already enrolled",
            field="maxStudents",
        )
    for key, value in changes.items():
        if value is not None or key == "school_year_id":
            setattr(section, key, value)
    session.add(section)
    _commit_unique(session, "A section with this name already exists")
    session.refresh(section)
    return envelope(SectionRead.model_validate(section))


@router.delete("/sections/{section_id}", dependencies=[Depends(require_admin)])
def delete_section(section_id: int, session: Session = Depends(get_session)):
    section = _get_section(session, section_id)
    if _count(session, Enrollment, Enrollment.section_id == section.id) or \
            _count(session, Attendance, Attendance.section_id == section.id):
        raise ConstraintViolation("Section has enrollments or attendance sessions; set its status to 'inactive' instead")
    session.delete(section)
    session.commit()
    return envelope({}, message="Section deleted")
