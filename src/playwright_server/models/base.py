# src/playwright_server/models/base.py
"""
Base Models for Wire and Value Types

Every model that crosses the HTTP boundary uses camelCase aliases on the
wire and snake_case attributes in Python. Value objects that must not
change after they are resolved (proxy configuration, recording metadata)
derive from ``FrozenModel``.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """ISO-8601 rendering with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WireModel(BaseModel):
    """
    Base class for request and response payloads.

    Features:
    - camelCase aliases for JSON, snake_case attributes for Python
    - Population by either name
    - Enums serialized by value
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dictionary using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FrozenModel(WireModel):
    """Immutable value object; attempts to assign raise ``ValidationError``."""

    model_config = ConfigDict(frozen=True)
