from __future__ import annotations

from meeting_tool.errors import InvalidInputError, MeetingNotFoundError
from meeting_tool.models.schemas import TranscriptConfirmRequest, TranscriptUploadRequest
from meeting_tool.services.repository import MeetingRepository
from meeting_tool.services.s3_storage import S3Storage
from meeting_tool.utils.upload_validation import transcript_key, validate_file_name


class TranscriptController:
    def __init__(self, repository: MeetingRepository, storage: S3Storage):
        self.repository = repository
        self.storage = storage

    def request_upload(self, payload: TranscriptUploadRequest) -> dict:
        file_name = validate_file_name(payload.file_name)
        if self.repository.get_meeting(payload.meeting_id) is None:
            raise MeetingNotFoundError(payload.meeting_id)

        # Re-uploads overwrite the existing object, but only inside this meeting's folder.
        if payload.replace_key:
            if not payload.replace_key.startswith(transcript_key(payload.meeting_id, "")):
                raise InvalidInputError("replaceKey does not belong to this meeting")
            key = payload.replace_key
        else:
            key = transcript_key(payload.meeting_id, file_name)

        return {
            "uploadUrl": self.storage.issue_upload_url(key),
            "transcriptUrl": self.storage.object_url(key),
        }

    def confirm_upload(self, payload: TranscriptConfirmRequest) -> None:
        transcript_url = str(payload.transcript_url)
        if self.storage.key_from_url(transcript_url) is None:
            raise InvalidInputError("transcriptUrl must point at the transcript bucket")
        self.repository.update_meeting(payload.meeting_id, transcript_url=transcript_url)

    def view_url(self, key: str | None) -> dict:
        if not key or not key.strip():
            raise InvalidInputError("Key parameter is required")
        return {"viewUrl": self.storage.issue_view_url(key)}
