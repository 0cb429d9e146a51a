# src/playwright_server/api/schemas.py
"""
HTTP request and response payloads.
"""

from typing import Any, List, Optional, Tuple

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationException
from ..models.base import WireModel
from ..models.command import CommandRequest
from ..models.proxy import ProxyRequest
from ..models.recording import VideoSize


class CreateSessionRequest(WireModel):
    # Checked against the configured bounds by the registry
    ttl: Any = None
    recording: bool = False
    video_size: Optional[VideoSize] = None
    proxy: Optional[ProxyRequest] = None


class CreateSessionResponse(WireModel):
    session_id: str
    session_url: str
    stop_url: str
    created_at: str
    expires_at: str
    playback_url: Optional[str] = None


class SessionSummary(WireModel):
    session_id: str
    created_at: str
    expires_at: str
    ttl: int
    remaining_ttl: int = Field(alias="remainingTTL")


class SessionListResponse(WireModel):
    sessions: List[SessionSummary] = Field(default_factory=list)


class HealthResponse(WireModel):
    status: str = "ok"
    active_sessions: int = 0


class TerminateResponse(WireModel):
    message: str = "Session terminated successfully"


def _validation_details(error: PydanticValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in item['loc']) or 'body'}: {item['msg']}"
        for item in error.errors()
    ]


def _parse_command(item: Any, message: str) -> CommandRequest:
    if not isinstance(item, dict):
        raise ValidationException(message)
    command = item.get("command")
    if not isinstance(command, str) or not command:
        raise ValidationException(message, field="command")
    try:
        return CommandRequest.model_validate(item)
    except PydanticValidationError as e:
        raise ValidationException(message, details=_validation_details(e), original_exception=e) from e


def parse_command_payload(payload: Any) -> Tuple[bool, List[CommandRequest]]:
    """
    Split a command body into requests.

    An object is a single command; an array is a sequence.

    Returns:
        (is_sequence, requests)

    Raises:
        ValidationException: empty array, or an entry without a string ``command``
    """
    if isinstance(payload, list):
        if not payload:
            raise ValidationException("Command array cannot be empty")
        return True, [
            _parse_command(item, f"Command at index {index} is missing or invalid")
            for index, item in enumerate(payload)
        ]

    return False, [_parse_command(payload, "Command is required and must be a string")]
