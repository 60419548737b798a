from meeting_tool.errors import InvalidInputError

FILE_NAME_MAX_LENGTH = 255


def validate_file_name(file_name: str | None) -> str:
    if not file_name or not file_name.strip():
        raise InvalidInputError("File name cannot be empty")
    if len(file_name) > FILE_NAME_MAX_LENGTH:
        raise InvalidInputError(f"File name too long (max {FILE_NAME_MAX_LENGTH} characters)")
    return file_name


def transcript_key(meeting_id: str, file_name: str) -> str:
    return f"transcripts/{meeting_id}/{file_name}"
