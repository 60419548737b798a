import base64

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.stub import Stubber

from meeting_tool.errors import InvalidInputError, MeetingNotFoundError, StorageError, StorageUnavailableError
from meeting_tool.models.meeting_model import Meeting, MeetingStatus
from meeting_tool.services.repository import MeetingRepository


def _meeting(meeting_id, day, notes=None, **extra):
    stamp = f"2024-01-{day:02d}T09:00:00.000Z"
    return Meeting(
        id=meeting_id,
        title=f"Meeting {meeting_id}",
        topics="A\nB",
        agenda="agenda",
        notes=notes,
        created_at=stamp,
        updated_at=stamp,
        **extra,
    )


def test_create_defaults_to_in_progress(repository, fake_table):
    stored = repository.create_meeting(_meeting("123", 1))
    assert stored.status is MeetingStatus.IN_PROGRESS
    assert fake_table.items["123"]["status"] == "in_progress"
    assert repository.get_meeting("123") == stored


def test_get_missing_returns_none(repository):
    assert repository.get_meeting("missing") is None


def test_update_notes_recomputes_status(repository):
    repository.create_meeting(_meeting("123", 1))

    updated = repository.update_meeting("123", notes="We agreed on the plan", summary="s", action_items="- a")
    assert updated.status is MeetingStatus.COMPLETE
    assert updated.action_items == "- a"
    assert updated.updated_at != "2024-01-01T09:00:00.000Z"
    assert updated.created_at == "2024-01-01T09:00:00.000Z"


def test_whitespace_notes_keep_meeting_in_progress_without_touching_summary(repository):
    repository.create_meeting(_meeting("123", 1, summary="old summary", action_items="- old"))

    updated = repository.update_meeting("123", notes="  ")
    assert updated.status is MeetingStatus.IN_PROGRESS
    assert updated.summary == "old summary"
    assert updated.action_items == "- old"


def test_clearing_notes_moves_meeting_back_to_in_progress(repository, fake_table):
    repository.create_meeting(_meeting("123", 1, notes="done"))
    assert fake_table.items["123"]["status"] == "complete"

    updated = repository.update_meeting("123", notes=None)
    assert updated.notes is None
    assert updated.status is MeetingStatus.IN_PROGRESS
    assert "notes" not in fake_table.items["123"]


def test_update_ignores_managed_attributes(repository, fake_table):
    repository.create_meeting(_meeting("123", 1))
    updated = repository.update_meeting("123", id="999", created_at="1999-01-01", title="Renamed")
    assert updated.id == "123"
    assert updated.title == "Renamed"
    assert updated.created_at == "2024-01-01T09:00:00.000Z"
    assert "999" not in fake_table.items


def test_update_missing_meeting_raises_without_writing(repository, fake_table):
    with pytest.raises(MeetingNotFoundError) as excinfo:
        repository.update_meeting("nope", notes="hello")
    assert "nope" in str(excinfo.value)
    assert fake_table.items == {}


@pytest.mark.parametrize("updates", [{}, {"id": "x"}, {"status": "complete", "updated_at": "now"}])
def test_update_rejects_empty_payload(repository, updates):
    repository.create_meeting(_meeting("123", 1))
    with pytest.raises(InvalidInputError):
        repository.update_meeting("123", **updates)


def test_update_rejects_unknown_field_and_required_removal(repository):
    repository.create_meeting(_meeting("123", 1))
    with pytest.raises(InvalidInputError):
        repository.update_meeting("123", owner="me")
    with pytest.raises(InvalidInputError):
        repository.update_meeting("123", title=None)


def test_delete_then_get_reports_absence(repository):
    repository.create_meeting(_meeting("123", 1))
    repository.delete_meeting("123")
    assert repository.get_meeting("123") is None


def test_delete_missing_meeting_raises(repository):
    with pytest.raises(MeetingNotFoundError):
        repository.delete_meeting("nope")


def _seed(repository, in_progress, complete):
    for day in range(1, in_progress + 1):
        repository.create_meeting(_meeting(f"p{day}", day))
    for day in range(1, complete + 1):
        repository.create_meeting(_meeting(f"c{day}", day, notes="notes"))


def test_list_orders_in_progress_first_then_newest(repository):
    repository.create_meeting(_meeting("old-open", 1))
    repository.create_meeting(_meeting("new-done", 9, notes="done"))
    repository.create_meeting(_meeting("new-open", 5))
    repository.create_meeting(_meeting("old-done", 2, notes="done"))

    page = repository.list_meetings(limit=10)
    assert [m.id for m in page.meetings] == ["new-open", "old-open", "new-done", "old-done"]
    assert page.has_more is False
    assert page.cursor is None


@pytest.mark.parametrize(
    ("in_progress", "complete", "limit"),
    [(3, 2, 10), (3, 2, 5), (3, 2, 4), (6, 1, 3), (0, 4, 2), (2, 0, 2), (0, 0, 5)],
)
def test_list_truncates_and_reports_remaining(repository, in_progress, complete, limit):
    _seed(repository, in_progress, complete)
    page = repository.list_meetings(limit=limit)

    expected = [f"p{day}" for day in range(in_progress, 0, -1)] + [f"c{day}" for day in range(complete, 0, -1)]
    assert [m.id for m in page.meetings] == expected[:limit]
    assert page.has_more is (in_progress + complete > limit)


@pytest.mark.parametrize(("in_progress", "complete", "limit"), [(5, 4, 2), (3, 3, 4), (1, 6, 3)])
def test_list_cursor_walks_every_meeting_once(repository, in_progress, complete, limit):
    _seed(repository, in_progress, complete)
    expected = [f"p{day}" for day in range(in_progress, 0, -1)] + [f"c{day}" for day in range(complete, 0, -1)]

    seen = []
    cursor = None
    while True:
        page = repository.list_meetings(limit=limit, cursor=cursor)
        seen.extend(m.id for m in page.meetings)
        if not page.has_more:
            break
        cursor = page.cursor
    assert seen == expected


def test_list_queries_both_status_partitions_on_the_index(repository, fake_table):
    repository.list_meetings(limit=4)
    queries = [params for name, params in fake_table.calls if name == "query"]
    assert len(queries) == 2
    assert all(params["IndexName"] == "status-createdAt-index" for params in queries)


@pytest.mark.parametrize("cursor", ["not-base64!", base64.urlsafe_b64encode(b'{"x": 1}').decode()])
def test_list_rejects_malformed_cursor(repository, cursor):
    with pytest.raises(InvalidInputError):
        repository.list_meetings(limit=5, cursor=cursor)


def test_list_rejects_non_positive_limit(repository):
    with pytest.raises(InvalidInputError):
        repository.list_meetings(limit=0)


class _RaisingTable:
    name = "test-table"

    def __init__(self, error):
        self.error = error

    def put_item(self, **kwargs):
        raise self.error

    def get_item(self, **kwargs):
        raise self.error


def test_connectivity_failure_is_reported_as_unavailable():
    repository = MeetingRepository(_RaisingTable(EndpointConnectionError(endpoint_url="https://dynamodb")))
    with pytest.raises(StorageUnavailableError):
        repository.create_meeting(_meeting("1", 1))


def test_missing_table_is_reported_as_unavailable():
    error = ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "no table"}}, "GetItem")
    repository = MeetingRepository(_RaisingTable(error))
    with pytest.raises(StorageUnavailableError):
        repository.get_meeting("1")


def test_other_store_errors_are_storage_errors():
    error = ClientError({"Error": {"Code": "InternalServerError", "Message": "boom"}}, "GetItem")
    repository = MeetingRepository(_RaisingTable(error))
    with pytest.raises(StorageError) as excinfo:
        repository.get_meeting("1")
    assert not isinstance(excinfo.value, StorageUnavailableError)


def _stubbed_table():
    table = boto3.resource("dynamodb", region_name="us-east-1").Table("test-table")
    return table, Stubber(table.meta.client)


def test_create_puts_item_on_table():
    table, stubber = _stubbed_table()
    stubber.add_response(
        "put_item",
        {},
        {
            "TableName": "test-table",
            "Item": {
                "id": {"S": "123"},
                "title": {"S": "Meeting 123"},
                "topics": {"S": "A\nB"},
                "agenda": {"S": "agenda"},
                "status": {"S": "in_progress"},
                "createdAt": {"S": "2024-01-01T09:00:00.000Z"},
                "updatedAt": {"S": "2024-01-01T09:00:00.000Z"},
            },
        },
    )
    stubber.activate()

    MeetingRepository(table).create_meeting(_meeting("123", 1))
    stubber.assert_no_pending_responses()


def test_conditional_delete_failure_maps_to_not_found():
    table, stubber = _stubbed_table()
    stubber.add_client_error(
        "delete_item",
        service_error_code="ConditionalCheckFailedException",
        http_status_code=400,
        expected_params={
            "TableName": "test-table",
            "Key": {"id": {"S": "missing"}},
            "ConditionExpression": "attribute_exists(id)",
        },
    )
    stubber.activate()

    with pytest.raises(MeetingNotFoundError):
        MeetingRepository(table).delete_meeting("missing")
    stubber.assert_no_pending_responses()
