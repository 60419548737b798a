from fastapi import APIRouter, Depends, HTTPException, Query

from meeting_tool.dependencies import get_meeting_controller
from meeting_tool.errors import InvalidInputError, MeetingNotFoundError
from meeting_tool.models.schemas import CreateMeetingRequest, SummaryRequest, UpdateMeetingRequest

from .controller import MeetingController

router = APIRouter()


@router.post("/agenda")
def create_agenda(payload: CreateMeetingRequest, controller: MeetingController = Depends(get_meeting_controller)):
    meeting, warning = controller.create_meeting(payload)
    body = {"meeting": meeting.to_item()}
    if warning:
        body["warning"] = warning
    return body


@router.get("/meetings")
def list_meetings(
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = None,
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        page = controller.list_meetings(limit=limit, cursor=cursor)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "meetings": [meeting.to_item() for meeting in page.meetings],
        "cursor": page.cursor,
        "hasMore": page.has_more,
    }


@router.get("/meetings/{meeting_id}")
def get_meeting(meeting_id: str, controller: MeetingController = Depends(get_meeting_controller)):
    try:
        return {"meeting": controller.get_meeting(meeting_id).to_item()}
    except MeetingNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Meeting not found") from exc


@router.put("/meetings/{meeting_id}")
def update_meeting(
    meeting_id: str,
    payload: UpdateMeetingRequest,
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return {"meeting": controller.update_meeting(meeting_id, payload).to_item()}
    except MeetingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/meetings/{meeting_id}")
def delete_meeting(meeting_id: str, controller: MeetingController = Depends(get_meeting_controller)):
    try:
        controller.delete_meeting(meeting_id)
    except MeetingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"success": True}


@router.post("/summary")
def generate_summary(payload: SummaryRequest, controller: MeetingController = Depends(get_meeting_controller)):
    try:
        return {"meeting": controller.generate_summary(payload).to_item()}
    except MeetingNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Meeting not found") from exc
