# src/playwright_server/models/proxy.py
"""
Proxy Configuration Models
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import ConfigDict, Field

from .base import FrozenModel, WireModel


class ProxyProtocol(str, Enum):
    """Proxy protocols supported by Playwright contexts."""

    HTTP = "http"
    HTTPS = "https"
    SOCKS5 = "socks5"

    def default_port(self) -> int:
        return {
            ProxyProtocol.HTTP: 80,
            ProxyProtocol.HTTPS: 443,
            ProxyProtocol.SOCKS5: 1080,
        }[self]


class ProxyConfig(FrozenModel):
    """
    Effective proxy configuration of a session.

    Immutable once resolved. Credentials are excluded from ``repr`` so
    the object can never leak them through default string formatting.
    """

    model_config = ConfigDict(use_enum_values=False)

    protocol: ProxyProtocol
    hostname: str
    port: int
    username: Optional[str] = Field(default=None, repr=False)
    password: Optional[str] = Field(default=None, repr=False)
    bypass: Optional[str] = None

    @property
    def has_auth(self) -> bool:
        return bool(self.username) and bool(self.password)

    @property
    def server(self) -> str:
        """Credential-free server URL."""
        host = f"[{self.hostname}]" if ":" in self.hostname else self.hostname
        return f"{self.protocol.value}://{host}:{self.port}"

    def to_playwright_proxy(self) -> Dict[str, Any]:
        """Render in the shape Playwright's ``proxy`` launch option expects."""
        proxy: Dict[str, Any] = {"server": self.server}
        if self.username is not None:
            proxy["username"] = self.username
        if self.password is not None:
            proxy["password"] = self.password
        if self.bypass is not None:
            proxy["bypass"] = self.bypass
        return proxy


class ProxyRequest(WireModel):
    """
    Per-session proxy as sent by clients.

    Separate ``username``/``password`` override credentials embedded in
    ``server``; ``bypass`` overrides a ``?bypass=`` query parameter.
    """

    server: str
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    bypass: Optional[str] = None
