from fastapi import APIRouter, Depends, HTTPException

from meeting_tool.dependencies import get_transcript_controller
from meeting_tool.errors import InvalidInputError, MeetingNotFoundError
from meeting_tool.models.schemas import TranscriptConfirmRequest, TranscriptUploadRequest

from .controller import TranscriptController

router = APIRouter()


@router.post("")
def request_upload_url(
    payload: TranscriptUploadRequest,
    controller: TranscriptController = Depends(get_transcript_controller),
):
    try:
        return controller.request_upload(payload)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except MeetingNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Meeting not found") from exc


@router.post("/confirm")
def confirm_upload(
    payload: TranscriptConfirmRequest,
    controller: TranscriptController = Depends(get_transcript_controller),
):
    try:
        controller.confirm_upload(payload)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except MeetingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"success": True}


@router.get("/view")
def view_url(key: str | None = None, controller: TranscriptController = Depends(get_transcript_controller)):
    try:
        return controller.view_url(key)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
