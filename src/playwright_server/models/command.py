# src/playwright_server/models/command.py
"""
Command Request and Result Models

``CommandResult`` and ``SequenceResult`` are request-scoped value objects:
they are built by the sequence executor and serialized once into the
response.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, StrictStr

from .base import WireModel, to_iso, utc_now


class CommandStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class CommandRequest(WireModel):
    """One unit of work against a session."""

    command: StrictStr = Field(min_length=1)
    selector: Optional[str] = None
    options: Optional[Dict[str, Any]] = None

    def to_params(self) -> Dict[str, Any]:
        """Merge ``selector`` into the options bag handlers receive."""
        params: Dict[str, Any] = dict(self.options or {})
        if self.selector:
            params["selector"] = self.selector
        return params


class CommandResult(WireModel):
    """Outcome of one step of a sequence."""

    index: int = Field(ge=0)
    command: str
    status: CommandStatus
    result: Any = None
    duration_ms: float = Field(ge=0)
    error: Optional[str] = None
    error_type: Optional[str] = None
    selector: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == CommandStatus.SUCCESS

    def to_wire(self) -> Dict[str, Any]:
        # result stays in the payload even when null
        data = self.model_dump(mode="json", by_alias=True)
        for optional_key in ("error", "errorType", "selector"):
            if data.get(optional_key) is None:
                data.pop(optional_key, None)
        return data


class SequenceResult(WireModel):
    """
    Index-aligned results of a multi-command execution.

    ``results`` never extends past the first failed step, so
    ``completed_count + (1 if halted else 0) == len(results)``.
    """

    results: List[CommandResult] = Field(default_factory=list)
    total_count: int = Field(ge=0)
    executed_at: datetime = Field(default_factory=utc_now)

    @property
    def completed_count(self) -> int:
        return sum(1 for result in self.results if result.succeeded)

    @property
    def halted(self) -> bool:
        return any(not result.succeeded for result in self.results)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "results": [result.to_wire() for result in self.results],
            "completedCount": self.completed_count,
            "totalCount": self.total_count,
            "halted": self.halted,
            "executedAt": to_iso(self.executed_at),
        }
