from .base import FrozenModel, WireModel, to_iso, utc_now
from .command import CommandRequest, CommandResult, CommandStatus, SequenceResult
from .proxy import ProxyConfig, ProxyProtocol, ProxyRequest
from .recording import RecordingMetadata, VideoSize

__all__ = [
    "CommandRequest",
    "CommandResult",
    "CommandStatus",
    "FrozenModel",
    "ProxyConfig",
    "ProxyProtocol",
    "ProxyRequest",
    "RecordingMetadata",
    "SequenceResult",
    "VideoSize",
    "WireModel",
    "to_iso",
    "utc_now",
]
