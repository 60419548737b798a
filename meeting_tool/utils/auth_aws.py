import boto3
from botocore.config import Config

from meeting_tool.config import Settings
from meeting_tool.errors import StorageUnavailableError


def get_session(settings: Settings) -> boto3.Session:
    """Build a session, failing fast when region or credentials are missing.

    No network call is made here; a misconfigured deployment is reported as
    StorageUnavailableError instead of surfacing later as a connection error.
    """
    if not settings.aws_region:
        raise StorageUnavailableError("Missing AWS configuration: set AWS_REGION")

    session_kwargs = {
        "region_name": settings.aws_region,
    }
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        session_kwargs.update(
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )
        if settings.aws_session_token:
            session_kwargs["aws_session_token"] = settings.aws_session_token

    session = boto3.Session(**session_kwargs)
    if session.get_credentials() is None:
        raise StorageUnavailableError(
            "Missing AWS credentials: set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY"
        )
    return session


def client_config(settings: Settings) -> Config:
    return Config(
        region_name=settings.aws_region,
        retries={"max_attempts": settings.aws_max_attempts, "mode": settings.aws_retry_mode},
    )
