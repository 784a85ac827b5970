from .user import User, UserRole, UserStatus
from .course import Course, CourseStatus, EducationalLevel
from .enrollment import SchoolYear, SchoolYearStatus, Section, Enrollment, EnrollmentStatus
from .attendance import Attendance, AttendanceDetail, AttendanceStatus, SessionStatus, ATTENDED_STATUSES

__all__ = [
    "User", "UserRole", "UserStatus",
    "Course", "CourseStatus", "EducationalLevel",
    "SchoolYear", "SchoolYearStatus", "Section", "Enrollment", "EnrollmentStatus",
    "Attendance", "AttendanceDetail", "AttendanceStatus", "SessionStatus", "ATTENDED_STATUSES",
]
