from __future__ import annotations


class InvalidInputError(ValueError):
    """Caller supplied malformed or out-of-range input."""


class MeetingNotFoundError(KeyError):
    def __init__(self, meeting_id: str):
        super().__init__(meeting_id)
        self.meeting_id = meeting_id

    def __str__(self) -> str:
        return f"Meeting with ID {self.meeting_id} not found"


class GenerationError(RuntimeError):
    """Text model call failed; always recovered inside the generator."""


class StorageError(RuntimeError):
    """Meeting store rejected or failed an operation."""


class StorageUnavailableError(StorageError):
    """Meeting store is misconfigured or unreachable."""


class TransferError(RuntimeError):
    """Object store could not issue a presigned URL."""
