'''
API endpoints for meetings, attendee rosters, attendance and conclusions.
'''
from typing import Annotated
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..models import meetings as meeting_models
from ..services.security import verify_token_and_get_user
from ..services.meeting_service import MeetingService


class MeetingsAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/meetings",
            tags=["Meetings"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.create_meeting,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=meeting_models.MeetingRead)
        self.router.add_api_route(
                "/",
                self.list_meetings,
                methods=["GET"],
                response_model=list[meeting_models.MeetingRead])
        self.router.add_api_route(
                "/{meeting_id}",
                self.get_meeting,
                methods=["GET"],
                response_model=meeting_models.MeetingRead)
        self.router.add_api_route(
                "/{meeting_id}",
                self.update_meeting,
                methods=["PATCH"],
                response_model=meeting_models.MeetingRead)
        self.router.add_api_route(
                "/{meeting_id}",
                self.delete_meeting,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)
        self.router.add_api_route(
                "/{meeting_id}/attendees",
                self.list_attendees,
                methods=["GET"],
                response_model=list[meeting_models.MeetingAttendeeRead])
        self.router.add_api_route(
                "/{meeting_id}/attendees",
                self.relink_attendees,
                methods=["PUT"],
                response_model=list[meeting_models.MeetingAttendeeRead])
        self.router.add_api_route(
                "/{meeting_id}/attendance",
                self.record_attendance,
                methods=["POST"],
                response_model=list[meeting_models.MeetingAttendeeRead])
        self.router.add_api_route(
                "/{meeting_id}/conclusion",
                self.upsert_conclusion,
                methods=["PUT"],
                response_model=meeting_models.MeetingConclusionRead)

    async def create_meeting(
        self,
        meeting_data: meeting_models.MeetingCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        """
        Creates a meeting and invites the selected students' parents and/or teachers.
        """
        return await meeting_service.create_meeting(meeting_data, current_user)

    async def list_meetings(
        self,
        center_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        return await meeting_service.list_meetings(center_id, current_user)

    async def get_meeting(
        self,
        meeting_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        return await meeting_service.get_meeting(meeting_id, current_user)

    async def update_meeting(
        self,
        meeting_id: UUID,
        meeting_data: meeting_models.MeetingUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        return await meeting_service.update_meeting(meeting_id, meeting_data, current_user)

    async def delete_meeting(
        self,
        meeting_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        await meeting_service.delete_meeting(meeting_id, current_user)

    async def list_attendees(
        self,
        meeting_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        return await meeting_service.list_attendees(meeting_id, current_user)

    async def relink_attendees(
        self,
        meeting_id: UUID,
        relink_data: meeting_models.RelinkRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        """
        Replaces the whole roster. Recorded attendance on the old rows is discarded.
        """
        return await meeting_service.relink_meeting(meeting_id, relink_data, current_user)

    async def record_attendance(
        self,
        meeting_id: UUID,
        attendance_data: meeting_models.AttendanceRecordRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        return await meeting_service.record_attendance(meeting_id, attendance_data, current_user)

    async def upsert_conclusion(
        self,
        meeting_id: UUID,
        conclusion_data: meeting_models.ConclusionUpsert,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        meeting_service: Annotated[MeetingService, Depends(MeetingService)]
    ):
        return await meeting_service.upsert_conclusion(meeting_id, conclusion_data, current_user)


# Instantiate the class and export its router
meetings_api = MeetingsAPI()
router = meetings_api.router
