"""Course registration endpoints (enrollment period, catalog, cart, enrollments).

All methods return the raw response envelope.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from services.api_client import ApiClient


class CourseApi:
    def __init__(self, client: ApiClient):
        self.client = client

    async def get_current_enrollment_period(self) -> Dict[str, Any]:
        return await self.client.get("/api/v1/enrollments/periods/current")

    async def get_courses(
        self,
        *,
        enrollment_period_id: Any,
        page: int = 0,
        size: int = 10,
        sort: str = "courseCode,asc",
        keyword: str = "",
        department_id: Optional[int] = None,
        course_type: Optional[str] = None,
        credits: Optional[int] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "size": size, "sort": sort}
        if enrollment_period_id:
            params["enrollmentPeriodId"] = enrollment_period_id
        if keyword:
            params["keyword"] = keyword
        if department_id is not None:
            params["departmentId"] = department_id
        if course_type:
            params["courseType"] = course_type
        if credits is not None:
            params["credits"] = credits
        return await self.client.get("/api/v1/enrollments/courses", params=params)

    async def get_course_detail(self, course_id: Any) -> Dict[str, Any]:
        return await self.client.get(f"/api/v1/courses/{course_id}")

    async def get_carts(self) -> Dict[str, Any]:
        return await self.client.get("/api/v1/carts")

    async def add_to_carts(self, course_ids: List[Any]) -> Dict[str, Any]:
        return await self.client.post("/api/v1/carts/bulk", json={"courseIds": list(course_ids)})

    async def remove_from_carts(self, cart_ids: List[Any]) -> Dict[str, Any]:
        return await self.client.delete("/api/v1/carts/bulk", json={"cartIds": list(cart_ids)})

    async def clear_carts(self) -> Dict[str, Any]:
        return await self.client.delete("/api/v1/carts")

    async def enroll_courses(self, course_ids: List[Any]) -> Dict[str, Any]:
        # -> {succeeded: [{courseId, enrollmentId}], failed: [{courseId, courseName, message}]}
        return await self.client.post("/api/v1/enrollments/bulk", json={"courseIds": list(course_ids)})

    async def get_my_enrollments(self, enrollment_period_id: Any = None) -> Dict[str, Any]:
        params = {"enrollmentPeriodId": enrollment_period_id} if enrollment_period_id else None
        return await self.client.get("/api/v1/enrollments/my", params=params)

    async def cancel_enrollments(self, enrollment_ids: List[Any]) -> Dict[str, Any]:
        # -> {cancelled: [...], failed: [...]}
        return await self.client.delete("/api/v1/enrollments/bulk", json={"enrollmentIds": list(enrollment_ids)})
