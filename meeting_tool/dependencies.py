from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from meeting_tool.config import Settings
from meeting_tool.meetings.controller import MeetingController
from meeting_tool.services.bedrock_utils import BedrockGenerator
from meeting_tool.services.repository import MeetingRepository
from meeting_tool.services.s3_storage import S3Storage
from meeting_tool.transcripts.controller import TranscriptController
from meeting_tool.utils.auth_aws import get_session


@dataclass
class Services:
    repository: MeetingRepository
    generator: BedrockGenerator
    storage: S3Storage


def build_services(settings: Settings) -> Services:
    """Construct every AWS-backed service once, at startup."""
    session = get_session(settings)
    return Services(
        repository=MeetingRepository.from_settings(settings, session=session),
        generator=BedrockGenerator.from_settings(settings, session=session),
        storage=S3Storage.from_settings(settings, session=session),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_meeting_controller(request: Request) -> MeetingController:
    services = get_services(request)
    return MeetingController(services.repository, services.generator, services.storage)


def get_transcript_controller(request: Request) -> TranscriptController:
    services = get_services(request)
    return TranscriptController(services.repository, services.storage)
