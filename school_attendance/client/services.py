"""One wrapper class per API resource; each method is a single request."""
from typing import Any, BinaryIO, Dict, List, Optional

from .base import ApiClient


class AuthService:
    def __init__(self, api: ApiClient):
        self.api = api

    def login(self, dni: str, password: str) -> Dict[str, Any]:
        """Returns ``{"token": ..., "user": {"id", "name", "email", "role"}}``."""
        return self.api.post("/auth/login", json={"dni": dni, "password": password})

    def login_with_qr(self, qr_data: str) -> Dict[str, Any]:
        return self.api.post("/auth/qr-login", json={"qrData": qr_data})

    def get_current_user(self) -> Dict[str, Any]:
        return self.api.get("/auth/me")


class CourseService:
    def __init__(self, api: ApiClient):
        self.api = api

    def get_all(self) -> List[Dict[str, Any]]:
        return self.api.get("/courses")

    def get_by_id(self, course_id: int) -> Dict[str, Any]:
        return self.api.get(f"/courses/{course_id}")

    def create(self, course: Dict[str, Any]) -> Dict[str, Any]:
        return self.api.post("/courses", json=course)

    def update(self, course_id: int, course: Dict[str, Any]) -> Dict[str, Any]:
        return self.api.put(f"/courses/{course_id}", json=course)

    def delete(self, course_id: int) -> None:
        self.api.delete(f"/courses/{course_id}")


class DashboardService:
    def __init__(self, api: ApiClient):
        self.api = api

    def get_dashboard_stats(self) -> Any:
        return self.api.get("/dashboard/stats")


class AttendanceService:
    def __init__(self, api: ApiClient):
        self.api = api

    def get_by_date(self, date: str, course_id: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"date": date}
        if course_id is not None:
            params["courseId"] = course_id
        return self.api.get("/attendances", params=params)

    def create(self, attendance: Dict[str, Any]) -> Dict[str, Any]:
        return self.api.post("/attendances", json=attendance)

    def update(self, attendance_id: int, attendance: Dict[str, Any]) -> Dict[str, Any]:
        return self.api.put(f"/attendances/{attendance_id}", json=attendance)

    def record_details(self, attendance_id: int, details: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self.api.post(f"/attendances/{attendance_id}/details", json={"details": details})

    def update_detail(self, detail_id: int, patch: Dict[str, Any]) -> Dict[str, Any]:
        return self.api.put(f"/attendance-details/{detail_id}", json=patch)

    def get_details_by_status(self, status: str, attendance_id: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"status": status}
        if attendance_id is not None:
            params["attendanceId"] = attendance_id
        return self.api.get("/attendance-details", params=params)


class EnrollmentService:
    def __init__(self, api: ApiClient):
        self.api = api

    def create_enrollment(self, enrollment: Dict[str, Any]) -> Dict[str, Any]:
        return self.api.post("/enrollments", json=enrollment)

    def bulk_enroll_students(
        self, filename: str, file: BinaryIO, school_year_name: str, section_name: str,
    ) -> Dict[str, Any]:
        return self.api.post(
            "/enrollments/bulk",
            files={"file": (filename, file)},
            data={"schoolYearName": school_year_name, "sectionName": section_name},
        )
