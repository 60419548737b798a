from __future__ import annotations

import logging
import uuid

from meeting_tool.errors import InvalidInputError, MeetingNotFoundError, StorageError
from meeting_tool.models.meeting_model import Meeting, MeetingStatus
from meeting_tool.models.schemas import CreateMeetingRequest, SummaryRequest, UpdateMeetingRequest
from meeting_tool.services.bedrock_utils import BedrockGenerator
from meeting_tool.services.repository import MeetingPage, MeetingRepository
from meeting_tool.services.s3_storage import S3Storage
from meeting_tool.utils.text_utils import extract_action_items
from meeting_tool.utils.time_utils import now_iso

UNSAVED_WARNING = "Meeting was generated but could not be saved to database"


class MeetingController:
    def __init__(self, repository: MeetingRepository, generator: BedrockGenerator, storage: S3Storage):
        self.repository = repository
        self.generator = generator
        self.storage = storage
        self.logger = logging.getLogger(__name__)

    def create_meeting(self, payload: CreateMeetingRequest) -> tuple[Meeting, str | None]:
        """Generate an agenda for the topics and store the new meeting.

        A store failure does not discard the generated agenda; the meeting is
        handed back with a warning instead.
        """
        agenda = self.generator.generate_agenda(payload.topics)
        now = now_iso()
        meeting = Meeting(
            id=str(uuid.uuid4()),
            title=payload.title,
            description=payload.description,
            topics=payload.topics,
            agenda=agenda,
            status=MeetingStatus.IN_PROGRESS,
            created_at=now,
            updated_at=now,
        )
        try:
            return self.repository.create_meeting(meeting), None
        except StorageError:
            self.logger.exception("Saving meeting %s failed, returning unsaved copy", meeting.id)
            return meeting, UNSAVED_WARNING

    def get_meeting(self, meeting_id: str) -> Meeting:
        meeting = self.repository.get_meeting(meeting_id)
        if meeting is None:
            raise MeetingNotFoundError(meeting_id)
        return meeting

    def list_meetings(self, limit: int, cursor: str | None = None) -> MeetingPage:
        return self.repository.list_meetings(limit=limit, cursor=cursor)

    def update_meeting(self, meeting_id: str, payload: UpdateMeetingRequest) -> Meeting:
        changes = payload.changes()
        if "transcript_url" in changes and self.storage.key_from_url(changes["transcript_url"]) is None:
            raise InvalidInputError("transcriptUrl must point at the transcript bucket")
        return self.repository.update_meeting(meeting_id, **changes)

    def delete_meeting(self, meeting_id: str) -> None:
        self.repository.delete_meeting(meeting_id)

    def generate_summary(self, payload: SummaryRequest) -> Meeting:
        self.get_meeting(payload.meeting_id)
        summary = self.generator.generate_summary(payload.notes)
        action_items = extract_action_items(summary)
        return self.repository.update_meeting(
            payload.meeting_id,
            notes=payload.notes,
            summary=summary,
            action_items=action_items,
        )
