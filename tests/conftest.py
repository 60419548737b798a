import copy
import json
from io import BytesIO

import pytest
from botocore.exceptions import ClientError

from meeting_tool.config import Settings
from meeting_tool.dependencies import Services
from meeting_tool.main import create_app
from meeting_tool.services.bedrock_utils import BedrockGenerator
from meeting_tool.services.cache import TTLCache
from meeting_tool.services.repository import MeetingRepository
from meeting_tool.services.s3_storage import S3Storage


@pytest.fixture(autouse=True)
def _aws_env(monkeypatch):
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test")
    monkeypatch.setenv("DYNAMODB_TABLE_NAME", "test-table")
    monkeypatch.setenv("S3_BUCKET_NAME", "test-bucket")
    monkeypatch.setenv("BEDROCK_MODEL_ID", "anthropic.claude-3-haiku-20240307-v1:0")


def _conditional_check_failed(operation):
    return ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
        operation,
    )


class FakeTable:
    """In-memory stand-in for a DynamoDB Table with the status/createdAt index."""

    name = "test-table"

    def __init__(self):
        self.items = {}
        self.calls = []

    def put_item(self, Item):
        self.calls.append(("put_item", Item))
        self.items[Item["id"]] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        self.calls.append(("get_item", Key))
        item = self.items.get(Key["id"])
        return {"Item": copy.deepcopy(item)} if item else {}

    def query(self, IndexName, KeyConditionExpression, ScanIndexForward=True, Limit=None, ExclusiveStartKey=None):
        self.calls.append(("query", {"IndexName": IndexName, "Limit": Limit, "ExclusiveStartKey": ExclusiveStartKey}))
        status = KeyConditionExpression.get_expression()["values"][1]
        matching = sorted(
            (item for item in self.items.values() if item.get("status") == status),
            key=lambda item: (item["createdAt"], item["id"]),
            reverse=not ScanIndexForward,
        )
        if ExclusiveStartKey:
            ids = [item["id"] for item in matching]
            matching = matching[ids.index(ExclusiveStartKey["id"]) + 1:]
        page = matching[:Limit] if Limit else matching
        response = {"Items": copy.deepcopy(page)}
        if len(matching) > len(page):
            last = page[-1]
            response["LastEvaluatedKey"] = {"id": last["id"], "status": last["status"], "createdAt": last["createdAt"]}
        return response

    def update_item(
        self,
        Key,
        UpdateExpression,
        ConditionExpression,
        ExpressionAttributeNames,
        ExpressionAttributeValues,
        ReturnValues,
    ):
        self.calls.append(("update_item", {"Key": Key, "UpdateExpression": UpdateExpression}))
        if Key["id"] not in self.items:
            raise _conditional_check_failed("UpdateItem")
        item = self.items[Key["id"]]
        set_part, _, remove_part = UpdateExpression.partition(" REMOVE ")
        for clause in set_part.removeprefix("SET ").split(", "):
            name_key, value_key = clause.split(" = ")
            item[ExpressionAttributeNames[name_key]] = ExpressionAttributeValues[value_key]
        if remove_part:
            for name_key in remove_part.split(", "):
                item.pop(ExpressionAttributeNames[name_key], None)
        return {"Attributes": copy.deepcopy(item)}

    def delete_item(self, Key, ConditionExpression):
        self.calls.append(("delete_item", Key))
        if Key["id"] not in self.items:
            raise _conditional_check_failed("DeleteItem")
        del self.items[Key["id"]]
        return {}


class FakeBedrockClient:
    def __init__(self, text="Generated text"):
        self.text = text
        self.calls = []

    def invoke_model(self, **kwargs):
        self.calls.append(kwargs)
        body = {"content": [{"type": "text", "text": self.text}]}
        return {"body": BytesIO(json.dumps(body).encode("utf-8"))}


class ErrorBedrockClient:
    def __init__(self):
        self.calls = 0

    def invoke_model(self, **kwargs):
        self.calls += 1
        raise ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "InvokeModel")


class FakeS3Client:
    def __init__(self):
        self.calls = []

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.calls.append((operation, Params, ExpiresIn))
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?op={operation}&expires={ExpiresIn}"


@pytest.fixture
def fake_table():
    return FakeTable()


@pytest.fixture
def repository(fake_table):
    return MeetingRepository(fake_table)


@pytest.fixture
def bedrock_client():
    return FakeBedrockClient()


@pytest.fixture
def generator(bedrock_client):
    return BedrockGenerator(bedrock_client, "anthropic.claude-3-haiku-20240307-v1:0", TTLCache(ttl_seconds=60))


@pytest.fixture
def failing_generator():
    return BedrockGenerator(ErrorBedrockClient(), "anthropic.claude-3-haiku-20240307-v1:0", TTLCache(ttl_seconds=60))


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def storage(s3_client):
    return S3Storage(s3_client, bucket="test-bucket", region="us-east-1")


@pytest.fixture
def make_client(repository, storage):
    from fastapi.testclient import TestClient

    def _make(generator):
        services = Services(repository=repository, generator=generator, storage=storage)
        return TestClient(create_app(settings=Settings(), services=services))

    return _make


@pytest.fixture
def client(make_client, failing_generator):
    return make_client(failing_generator)
