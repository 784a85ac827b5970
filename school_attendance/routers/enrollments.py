from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlmodel import Session

from ..db import get_session
from ..dependencies import get_current_user, require_role
from ..models import UserRole
from ..responses import envelope
from ..schemas.enrollment import BulkEnrollmentResult, EnrollmentCreate, EnrollmentRead, StudentSummary
from ..services import enrollment_service

router = APIRouter(prefix="/enrollments", tags=["enrollments"], dependencies=[Depends(get_current_user)])
require_admin = require_role(UserRole.ADMIN)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def enroll_student(body: EnrollmentCreate, session: Session = Depends(get_session)):
    enrollment = enrollment_service.create_enrollment(
        session, body.student_id, body.section_id, body.school_year_id,
    )
    return envelope(EnrollmentRead.model_validate(enrollment))


@router.post("/bulk", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def bulk_enroll_students(
    file: UploadFile = File(...),
    school_year_name: str = Form(..., alias="schoolYearName"),
    section_name: str = Form(..., alias="sectionName"),
    session: Session = Depends(get_session),
):
    """Enrolls every student listed in an uploaded class-list spreadsheet (.xlsx or .csv)."""
    content = await file.read()
    rows = enrollment_service.parse_student_rows(content, file.filename or "")
    outcome = enrollment_service.bulk_enroll(session, rows, section_name.strip(), school_year_name.strip())
    result = BulkEnrollmentResult(
        total_processed=outcome.total_processed,
        success_count=outcome.success_count,
        skipped=outcome.skipped,
        created_enrollments=[EnrollmentRead.model_validate(e) for e in outcome.created],
    )
    return envelope(result, message="Bulk enrollment completed")


@router.get("/section/{section_id}")
def students_by_section(section_id: int, session: Session = Depends(get_session)):
    students = enrollment_service.students_by_section(session, section_id)
    return envelope([StudentSummary.model_validate(s) for s in students], count=len(students))
