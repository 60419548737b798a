from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from meeting_tool.utils.time_utils import now_iso


class MeetingStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


# in_progress meetings are listed ahead of complete ones
STATUS_ORDER = {MeetingStatus.IN_PROGRESS: 0, MeetingStatus.COMPLETE: 1}


def derive_status(notes: str | None) -> MeetingStatus:
    """A meeting is complete once it carries notes that are not just whitespace."""
    if notes is not None and notes.strip():
        return MeetingStatus.COMPLETE
    return MeetingStatus.IN_PROGRESS


class Meeting(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str | None = None
    topics: str
    agenda: str | None = None
    notes: str | None = None
    summary: str | None = None
    action_items: str | None = Field(default=None, alias="actionItems")
    transcript_url: str | None = Field(default=None, alias="transcriptUrl")
    status: MeetingStatus = MeetingStatus.IN_PROGRESS
    created_at: str = Field(default_factory=now_iso, alias="createdAt")
    updated_at: str = Field(default_factory=now_iso, alias="updatedAt")

    @model_validator(mode="after")
    def _sync_status(self) -> "Meeting":
        self.status = derive_status(self.notes)
        return self

    def to_item(self) -> dict[str, Any]:
        """Attribute map as persisted in the store and returned over HTTP."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def attribute_name(field_name: str) -> str:
    """Map a python field name (or an alias) to its persisted attribute name."""
    field = Meeting.model_fields.get(field_name)
    if field is not None:
        return field.alias or field_name
    for info in Meeting.model_fields.values():
        if info.alias == field_name:
            return field_name
    raise KeyError(field_name)
