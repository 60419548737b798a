from __future__ import annotations

import base64
import binascii
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from boto3.dynamodb.conditions import Key
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
)

from meeting_tool.config import Settings
from meeting_tool.errors import (
    InvalidInputError,
    MeetingNotFoundError,
    StorageError,
    StorageUnavailableError,
)
from meeting_tool.models.meeting_model import (
    STATUS_ORDER,
    Meeting,
    MeetingStatus,
    attribute_name,
    derive_status,
)
from meeting_tool.utils.auth_aws import client_config, get_session
from meeting_tool.utils.time_utils import now_iso, parse_iso

logger = logging.getLogger(__name__)

# Managed by the repository itself, never by callers.
PROTECTED_ATTRIBUTES = {"id", "createdAt", "updatedAt", "status"}
REQUIRED_ATTRIBUTES = {"title", "topics"}

UNAVAILABLE_ERROR_CODES = {
    "ResourceNotFoundException",
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidSignatureException",
    "ExpiredTokenException",
    "MissingAuthenticationTokenException",
}
UNAVAILABLE_EXCEPTIONS = (
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
)


@dataclass
class MeetingPage:
    meetings: list[Meeting]
    cursor: str | None
    has_more: bool


@dataclass
class _Branch:
    """Continuation state of one per-status query."""

    key: dict[str, Any] | None = None
    done: bool = False
    fetched: list[Meeting] = field(default_factory=list)
    last_evaluated_key: dict[str, Any] | None = None


def encode_cursor(branches: dict[MeetingStatus, _Branch]) -> str:
    payload = {status.value: {"key": branch.key, "done": branch.done} for status, branch in branches.items()}
    return base64.urlsafe_b64encode(json.dumps(payload, sort_keys=True).encode("utf-8")).decode("ascii")


def decode_cursor(cursor: str | None) -> dict[MeetingStatus, _Branch]:
    if not cursor:
        return {status: _Branch() for status in MeetingStatus}
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
        branches = {}
        for status in MeetingStatus:
            state = payload[status.value]
            key = state.get("key")
            if key is not None and not isinstance(key, dict):
                raise ValueError("cursor key must be an object")
            branches[status] = _Branch(key=key, done=bool(state.get("done")))
        return branches
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError, AttributeError) as exc:
        raise InvalidInputError("Invalid pagination cursor") from exc


class MeetingRepository:
    """DynamoDB-backed store for meeting records."""

    def __init__(self, table: Any, status_index: str = "status-createdAt-index"):
        self.table = table
        self.status_index = status_index

    @classmethod
    def from_settings(cls, settings: Settings, session: Any | None = None) -> "MeetingRepository":
        if not settings.dynamodb_table_name:
            raise StorageUnavailableError("Missing DynamoDB configuration: set DYNAMODB_TABLE_NAME")
        session = session or get_session(settings)
        resource = session.resource("dynamodb", config=client_config(settings))
        return cls(resource.Table(settings.dynamodb_table_name), status_index=settings.dynamodb_status_index)

    @contextmanager
    def _store_errors(self, operation: str, meeting_id: str | None = None) -> Iterator[None]:
        try:
            yield
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code == "ConditionalCheckFailedException" and meeting_id is not None:
                raise MeetingNotFoundError(meeting_id) from exc
            logger.exception("DynamoDB %s failed table=%s id=%s code=%s", operation, self.table.name, meeting_id, code)
            if code in UNAVAILABLE_ERROR_CODES:
                raise StorageUnavailableError(f"Meeting store unavailable during {operation}: {code}") from exc
            raise StorageError(f"Meeting store error during {operation}: {code}") from exc
        except UNAVAILABLE_EXCEPTIONS as exc:
            logger.exception("DynamoDB %s could not reach the store table=%s id=%s", operation, self.table.name, meeting_id)
            raise StorageUnavailableError(f"Meeting store unavailable during {operation}") from exc
        except BotoCoreError as exc:
            logger.exception("DynamoDB %s failed table=%s id=%s", operation, self.table.name, meeting_id)
            raise StorageError(f"Meeting store error during {operation}") from exc

    def create_meeting(self, meeting: Meeting) -> Meeting:
        item = meeting.to_item()
        with self._store_errors("create"):
            self.table.put_item(Item=item)
        logger.info("Created meeting id=%s status=%s", meeting.id, meeting.status.value)
        return meeting

    def get_meeting(self, meeting_id: str) -> Meeting | None:
        with self._store_errors("get"):
            response = self.table.get_item(Key={"id": meeting_id})
        item = response.get("Item")
        if item is None:
            return None
        return Meeting.model_validate(item)

    def list_meetings(self, limit: int = 20, cursor: str | None = None) -> MeetingPage:
        """Page through meetings, in-progress first, newest first within each status.

        The GSI cannot order across both status partitions, so each status is
        queried separately and the two result sets are merged here. Each
        branch keeps its own continuation key inside the returned cursor.
        """
        if limit < 1:
            raise InvalidInputError("limit must be at least 1")
        branches = decode_cursor(cursor)

        for status, branch in branches.items():
            if not branch.done:
                branch.fetched, branch.last_evaluated_key = self._query_status(status, limit, branch.key)

        ordered = sorted(
            ((status, meeting) for status, branch in branches.items() for meeting in branch.fetched),
            key=lambda pair: (STATUS_ORDER[pair[0]], -parse_iso(pair[1].created_at).timestamp()),
        )
        page = ordered[:limit]

        for status, branch in branches.items():
            if branch.done:
                continue
            included = sum(1 for page_status, _ in page if page_status == status)
            if included < len(branch.fetched):
                if included:
                    branch.key = self._index_key(branch.fetched[included - 1])
                branch.done = False
            else:
                branch.key = branch.last_evaluated_key
                branch.done = branch.last_evaluated_key is None

        has_more = not all(branch.done for branch in branches.values())
        return MeetingPage(
            meetings=[meeting for _, meeting in page],
            cursor=encode_cursor(branches) if has_more else None,
            has_more=has_more,
        )

    def _query_status(
        self, status: MeetingStatus, limit: int, start_key: dict[str, Any] | None
    ) -> tuple[list[Meeting], dict[str, Any] | None]:
        kwargs: dict[str, Any] = {
            "IndexName": self.status_index,
            "KeyConditionExpression": Key("status").eq(status.value),
            "ScanIndexForward": False,
            "Limit": limit,
        }
        if start_key:
            kwargs["ExclusiveStartKey"] = start_key
        with self._store_errors(f"list[{status.value}]"):
            response = self.table.query(**kwargs)
        meetings = [Meeting.model_validate(item) for item in response.get("Items", [])]
        return meetings, response.get("LastEvaluatedKey")

    @staticmethod
    def _index_key(meeting: Meeting) -> dict[str, Any]:
        item = meeting.to_item()
        return {"id": item["id"], "status": item["status"], "createdAt": item["createdAt"]}

    def update_meeting(self, meeting_id: str, **updates) -> Meeting:
        changes: dict[str, Any] = {}
        for name, value in updates.items():
            try:
                attribute = attribute_name(name)
            except KeyError as exc:
                raise InvalidInputError(f"Unknown meeting field: {name}") from exc
            if attribute in PROTECTED_ATTRIBUTES:
                continue
            if value is None and attribute in REQUIRED_ATTRIBUTES:
                raise InvalidInputError(f"{attribute} cannot be removed")
            changes[attribute] = value
        if not changes:
            raise InvalidInputError("No updates provided")

        if "notes" in changes:
            changes["status"] = derive_status(changes["notes"]).value
        changes["updatedAt"] = now_iso()

        set_clauses: list[str] = []
        remove_clauses: list[str] = []
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        for index, (attribute, value) in enumerate(changes.items()):
            name_key = f"#attr{index}"
            names[name_key] = attribute
            if value is None:
                remove_clauses.append(name_key)
            else:
                value_key = f":val{index}"
                values[value_key] = value
                set_clauses.append(f"{name_key} = {value_key}")

        expression = f"SET {', '.join(set_clauses)}"
        if remove_clauses:
            expression += f" REMOVE {', '.join(remove_clauses)}"

        with self._store_errors("update", meeting_id=meeting_id):
            response = self.table.update_item(
                Key={"id": meeting_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        logger.info("Updated meeting id=%s fields=%s", meeting_id, sorted(changes))
        return Meeting.model_validate(response["Attributes"])

    def delete_meeting(self, meeting_id: str) -> None:
        with self._store_errors("delete", meeting_id=meeting_id):
            self.table.delete_item(Key={"id": meeting_id}, ConditionExpression="attribute_exists(id)")
        logger.info("Deleted meeting id=%s", meeting_id)
