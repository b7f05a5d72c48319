'''

'''
from typing import Optional, Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, MeetingTypeEnum, AttendanceStatusEnum
from ..models import meetings as meeting_models
from ..common.logger import log

from .user_service import CenterScopedService


class MeetingService(CenterScopedService):
    """
    Meetings and their attendee rosters.
    A roster is always replaced wholesale: relinking deletes every attendee
    row and inserts fresh ones inside the request transaction.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        super().__init__(db)

    # --- Internal helpers ---

    async def _get_meeting_or_404(self, meeting_id: UUID) -> db_models.Meetings:
        meeting = await self.db.get(db_models.Meetings, meeting_id)
        if not meeting:
            log.warning(f"Tried to fetch non-existent meeting id: {meeting_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Meeting not found.")
        return meeting

    async def _resolve_parent_user_id(self, student_id: UUID, center_id: UUID) -> Optional[UUID]:
        """First linked parent of a student enrolled in `center_id`."""
        stmt = select(db_models.ParentStudents.parent_user_id).join(
            db_models.Students, db_models.Students.id == db_models.ParentStudents.student_id
        ).filter(
            db_models.ParentStudents.student_id == student_id,
            db_models.Students.center_id == center_id
        ).order_by(db_models.ParentStudents.parent_user_id).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def _resolve_teacher_user_id(self, teacher_id: UUID, center_id: UUID) -> Optional[UUID]:
        """Login account of a teacher employed by `center_id`."""
        stmt = select(db_models.Users.id).join(
            db_models.Teachers, db_models.Teachers.id == db_models.Users.teacher_id
        ).filter(
            db_models.Users.teacher_id == teacher_id,
            db_models.Users.role == UserRole.TEACHER.value,
            db_models.Teachers.center_id == center_id
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def _ids_outside_center(self, model, ids: list[UUID], center_id: UUID) -> set[UUID]:
        if not ids:
            return set()
        stmt = select(model.id).filter(model.id.in_(ids), model.center_id == center_id)
        inside = set((await self.db.execute(stmt)).scalars().all())
        return set(ids) - inside

    async def _get_roster(self, meeting_id: UUID) -> list[db_models.MeetingAttendees]:
        stmt = select(db_models.MeetingAttendees).filter(
            db_models.MeetingAttendees.meeting_id == meeting_id
        ).order_by(db_models.MeetingAttendees.student_id, db_models.MeetingAttendees.teacher_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # --- Attendee linking ---

    async def relink_attendees(
        self,
        meeting_id: UUID,
        meeting_type: MeetingTypeEnum,
        student_ids: list[UUID],
        teacher_ids: list[UUID]
    ) -> list[db_models.MeetingAttendees]:
        """
        Replaces the meeting's roster.

        Parent meetings invite each student's linked parent account; students
        without one are skipped. Teacher meetings invite each teacher's login
        account; teachers without one are skipped. 'both' does both.
        Students and teachers of other centers are never invited.
        """
        meeting = await self._get_meeting_or_404(meeting_id)
        center_id = meeting.center_id
        student_ids = list(dict.fromkeys(student_ids))
        teacher_ids = list(dict.fromkeys(teacher_ids))
        log.info(f"Relinking attendees for meeting {meeting_id} (type={meeting_type.value}, "
                 f"{len(student_ids)} student(s), {len(teacher_ids)} teacher(s))")

        foreign_students = await self._ids_outside_center(db_models.Students, student_ids, center_id)
        foreign_teachers = await self._ids_outside_center(db_models.Teachers, teacher_ids, center_id)
        if foreign_students or foreign_teachers:
            log.warning(f"SECURITY: Ignoring ids outside center {center_id} for meeting {meeting_id}: "
                        f"students={sorted(map(str, foreign_students))}, teachers={sorted(map(str, foreign_teachers))}")

        await self.db.execute(
            delete(db_models.MeetingAttendees).where(db_models.MeetingAttendees.meeting_id == meeting_id)
        )

        new_rows = []
        if meeting_type in (MeetingTypeEnum.PARENTS, MeetingTypeEnum.BOTH):
            for student_id in student_ids:
                if student_id in foreign_students:
                    continue
                parent_user_id = await self._resolve_parent_user_id(student_id, center_id)
                if parent_user_id is None:
                    log.warning(f"Student {student_id} has no linked parent account; not invited to meeting {meeting_id}.")
                    continue
                new_rows.append(db_models.MeetingAttendees(
                    meeting_id=meeting_id,
                    student_id=student_id,
                    user_id=parent_user_id,
                    attendance_status=AttendanceStatusEnum.INVITE.value,
                    attended=False
                ))

        if meeting_type in (MeetingTypeEnum.TEACHERS, MeetingTypeEnum.BOTH):
            for teacher_id in teacher_ids:
                if teacher_id in foreign_teachers:
                    continue
                teacher_user_id = await self._resolve_teacher_user_id(teacher_id, center_id)
                if teacher_user_id is None:
                    log.warning(f"Teacher {teacher_id} has no login account; not invited to meeting {meeting_id}.")
                    continue
                new_rows.append(db_models.MeetingAttendees(
                    meeting_id=meeting_id,
                    teacher_id=teacher_id,
                    user_id=teacher_user_id,
                    attendance_status=AttendanceStatusEnum.INVITE.value,
                    attended=False
                ))

        self.db.add_all(new_rows)
        await self.db.flush()
        log.info(f"Meeting {meeting_id} now has {len(new_rows)} attendee(s).")
        return await self._get_roster(meeting_id)

    async def relink_meeting(
        self,
        meeting_id: UUID,
        data: meeting_models.RelinkRequest,
        current_user: db_models.Users
    ) -> list[meeting_models.MeetingAttendeeRead]:
        meeting = await self._get_meeting_or_404(meeting_id)
        self._authorize_center(current_user, meeting.center_id)
        try:
            roster = await self.relink_attendees(meeting.id, data.meeting_type, data.student_ids, data.teacher_ids)
        except Exception as e:
            log.error(f"Error relinking attendees for meeting {meeting_id}: {e}", exc_info=True)
            raise
        return [meeting_models.MeetingAttendeeRead.model_validate(row) for row in roster]

    # --- Meeting CRUD ---

    async def create_meeting(self, data: meeting_models.MeetingCreate, current_user: db_models.Users) -> meeting_models.MeetingRead:
        log.info(f"User {current_user.id} creating meeting '{data.title}' for center {data.center_id}")
        await self._get_center_or_404(data.center_id)
        self._authorize_center(current_user, data.center_id)

        try:
            meeting = db_models.Meetings(
                center_id=data.center_id,
                title=data.title,
                agenda=data.agenda,
                meeting_date=data.meeting_date,
                meeting_time=data.meeting_time,
                meeting_type=data.meeting_type.value,
                status=data.status.value,
                created_by=current_user.id
            )
            self.db.add(meeting)
            await self.db.flush()
            await self.relink_attendees(meeting.id, data.meeting_type, data.student_ids, data.teacher_ids)
        except Exception as e:
            log.error(f"Error creating meeting for center {data.center_id}: {e}", exc_info=True)
            raise

        return meeting_models.MeetingRead.model_validate(meeting)

    async def list_meetings(self, center_id: UUID, current_user: db_models.Users) -> list[meeting_models.MeetingRead]:
        self._authorize_center(current_user, center_id)
        stmt = select(db_models.Meetings).filter(
            db_models.Meetings.center_id == center_id
        ).order_by(db_models.Meetings.meeting_date.desc())
        result = await self.db.execute(stmt)
        return [meeting_models.MeetingRead.model_validate(m) for m in result.scalars().all()]

    async def get_meeting(self, meeting_id: UUID, current_user: db_models.Users) -> meeting_models.MeetingRead:
        meeting = await self._get_meeting_or_404(meeting_id)
        self._authorize_center(current_user, meeting.center_id)
        return meeting_models.MeetingRead.model_validate(meeting)

    async def update_meeting(
        self,
        meeting_id: UUID,
        data: meeting_models.MeetingUpdate,
        current_user: db_models.Users
    ) -> meeting_models.MeetingRead:
        meeting = await self._get_meeting_or_404(meeting_id)
        self._authorize_center(current_user, meeting.center_id)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            if value is not None and hasattr(value, 'value'):
                value = value.value
            setattr(meeting, key, value)
        self.db.add(meeting)
        await self.db.flush()
        log.info(f"Meeting {meeting_id} updated fields: {list(update_data)}")
        return meeting_models.MeetingRead.model_validate(meeting)

    async def delete_meeting(self, meeting_id: UUID, current_user: db_models.Users) -> bool:
        """Removes the roster, the conclusion and then the meeting itself."""
        meeting = await self._get_meeting_or_404(meeting_id)
        self._authorize_center(current_user, meeting.center_id)
        log.info(f"User {current_user.id} deleting meeting {meeting_id}")

        await self.db.execute(
            delete(db_models.MeetingAttendees).where(db_models.MeetingAttendees.meeting_id == meeting_id)
        )
        await self.db.execute(
            delete(db_models.MeetingConclusions).where(db_models.MeetingConclusions.meeting_id == meeting_id)
        )
        await self.db.delete(meeting)
        await self.db.flush()
        return True

    # --- Attendance & Conclusions ---

    async def list_attendees(self, meeting_id: UUID, current_user: db_models.Users) -> list[meeting_models.MeetingAttendeeRead]:
        meeting = await self._get_meeting_or_404(meeting_id)
        self._authorize_center(current_user, meeting.center_id)
        return [meeting_models.MeetingAttendeeRead.model_validate(row) for row in await self._get_roster(meeting_id)]

    async def record_attendance(
        self,
        meeting_id: UUID,
        data: meeting_models.AttendanceRecordRequest,
        current_user: db_models.Users
    ) -> list[meeting_models.MeetingAttendeeRead]:
        meeting = await self._get_meeting_or_404(meeting_id)
        self._authorize_center(current_user, meeting.center_id)

        roster = {row.id: row for row in await self._get_roster(meeting_id)}
        for record in data.records:
            row = roster.get(record.attendee_id)
            if row is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Attendee {record.attendee_id} is not part of this meeting."
                )
            row.attendance_status = record.attendance_status.value
            row.attended = record.attendance_status == AttendanceStatusEnum.PRESENT
            if record.notes is not None:
                row.notes = record.notes
        await self.db.flush()
        log.info(f"Recorded attendance for {len(data.records)} attendee(s) of meeting {meeting_id}")
        return [meeting_models.MeetingAttendeeRead.model_validate(row) for row in roster.values()]

    async def upsert_conclusion(
        self,
        meeting_id: UUID,
        data: meeting_models.ConclusionUpsert,
        current_user: db_models.Users
    ) -> meeting_models.MeetingConclusionRead:
        meeting = await self._get_meeting_or_404(meeting_id)
        self._authorize_center(current_user, meeting.center_id)

        stmt = select(db_models.MeetingConclusions).filter(db_models.MeetingConclusions.meeting_id == meeting_id)
        conclusion = (await self.db.execute(stmt)).scalars().first()
        if conclusion:
            conclusion.conclusion_notes = data.conclusion_notes
            conclusion.recorded_by = current_user.id
        else:
            conclusion = db_models.MeetingConclusions(
                meeting_id=meeting_id,
                conclusion_notes=data.conclusion_notes,
                recorded_by=current_user.id
            )
            self.db.add(conclusion)
        await self.db.flush()
        return meeting_models.MeetingConclusionRead.model_validate(conclusion)
