from .base import ApiClient
from .services import AttendanceService, AuthService, CourseService, DashboardService, EnrollmentService

__all__ = [
    "ApiClient",
    "AuthService", "CourseService", "DashboardService", "AttendanceService", "EnrollmentService",
]
