from __future__ import annotations

from typing import Any

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field

TITLE_MAX_LENGTH = 200
CREATE_DESCRIPTION_MAX_LENGTH = 1000
UPDATE_DESCRIPTION_MAX_LENGTH = 500
TOPICS_MAX_LENGTH = 5000
NOTES_MAX_LENGTH = 10000


class CreateMeetingRequest(BaseModel):
    title: str = Field(default="Untitled Meeting", min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="", max_length=CREATE_DESCRIPTION_MAX_LENGTH)
    topics: str = Field(min_length=1, max_length=TOPICS_MAX_LENGTH)


class UpdateMeetingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=UPDATE_DESCRIPTION_MAX_LENGTH)
    topics: str | None = Field(default=None, min_length=1, max_length=TOPICS_MAX_LENGTH)
    agenda: str | None = None
    notes: str | None = None
    summary: str | None = None
    action_items: str | None = Field(default=None, alias="actionItems")
    transcript_url: AnyHttpUrl | None = Field(default=None, alias="transcriptUrl")

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually sent, keyed by python field name."""
        updates = self.model_dump(exclude_unset=True, exclude_none=True)
        if "transcript_url" in updates:
            updates["transcript_url"] = str(self.transcript_url)
        return updates


class SummaryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meeting_id: str = Field(alias="meetingId", min_length=1)
    notes: str = Field(min_length=1, max_length=NOTES_MAX_LENGTH)


class TranscriptUploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meeting_id: str = Field(alias="meetingId", min_length=1)
    file_name: str = Field(alias="fileName")
    replace_key: str | None = Field(default=None, alias="replaceKey")


class TranscriptConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    meeting_id: str = Field(alias="meetingId", min_length=1)
    transcript_url: AnyHttpUrl = Field(alias="transcriptUrl")
