"""Google Classroom provider."""

from __future__ import annotations

from typing import Any

import structlog

from switchboard.config import GoogleClassroomConfig
from switchboard.gateway.models import ActionSpec, Provider, correlation_id
from switchboard.providers.base import ProviderHandler, nested

logger = structlog.get_logger()


class ClassroomHandler(ProviderHandler):
    provider = Provider.CLASSROOM
    label = "Google API"

    def __init__(self, config: GoogleClassroomConfig, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key and self.config.access_token)

    def action_table(self) -> list[ActionSpec]:
        return [
            ActionSpec("createCourse", self.create_course, ("data",)),
            ActionSpec("postAnnouncement", self.post_announcement, ("courseId", "data")),
            ActionSpec("createAssignment", self.create_assignment, ("courseId", "data")),
            ActionSpec("getCourses", self.get_courses),
            ActionSpec("getStudents", self.get_students, ("courseId",)),
        ]

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.access_token}"}

    async def create_course(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        data = nested(payload, "data")
        course = await self._request_json(
            "POST",
            f"{self.config.base_url}/courses",
            error_prefix="Failed to create course",
            headers=self._headers,
            json={
                "name": data.get("name"),
                "description": data.get("description"),
                "ownerId": "me",
                "courseState": "ACTIVE",
            },
        )
        return self._result(agent_id, "createCourse", course, courseId=course.get("id"))

    async def post_announcement(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        course_id = payload["courseId"]
        data = nested(payload, "data")
        announcement = await self._request_json(
            "POST",
            f"{self.config.base_url}/courses/{course_id}/announcements",
            error_prefix="Failed to post announcement",
            headers=self._headers,
            json={"text": data.get("text"), "state": "PUBLISHED"},
        )
        return self._result(
            agent_id,
            "postAnnouncement",
            announcement,
            courseId=course_id,
            announcementId=announcement.get("id"),
        )

    async def create_assignment(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        course_id = payload["courseId"]
        data = nested(payload, "data")
        assignment = await self._request_json(
            "POST",
            f"{self.config.base_url}/courses/{course_id}/courseWork",
            error_prefix="Failed to create assignment",
            headers=self._headers,
            json={
                "title": data.get("title"),
                "description": data.get("description"),
                "workType": "ASSIGNMENT",
                "state": "PUBLISHED",
                "maxPoints": data.get("maxPoints") or 100,
            },
        )
        return self._result(
            agent_id,
            "createAssignment",
            assignment,
            courseId=course_id,
            courseWorkId=assignment.get("id"),
        )

    async def get_courses(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        courses = await self._request_json(
            "GET",
            f"{self.config.base_url}/courses",
            error_prefix="Failed to get courses",
            headers=self._headers,
        )
        return self._result(agent_id, "getCourses", courses)

    async def get_students(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        course_id = payload["courseId"]
        students = await self._request_json(
            "GET",
            f"{self.config.base_url}/courses/{course_id}/students",
            error_prefix="Failed to get students",
            headers=self._headers,
        )
        return self._result(agent_id, "getStudents", students, courseId=course_id)

    def _result(self, agent_id: str, action: str, response: Any, **ids: Any) -> dict[str, Any]:
        logger.info("providers.classroom.completed", action=action)
        return {
            "agentId": agent_id,
            "action": action,
            **{key: value for key, value in ids.items() if value is not None},
            "result": response,
            "requestId": correlation_id("classroom"),
        }
