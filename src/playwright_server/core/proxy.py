# src/playwright_server/core/proxy.py
"""
Proxy Resolution

Parses and validates proxy configuration coming from the environment or
from a session creation request, and decides which proxy a session
actually uses.

Validation collects every violation before failing so that
``ProxyValidationException.details`` lists all of them at once.
"""

import os
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

from .exceptions import ProxyValidationException
from .logger import get_logger, mask_proxy_server_url
from ..models.proxy import ProxyConfig, ProxyProtocol, ProxyRequest

logger = get_logger("proxy")

SUPPORTED_PROTOCOLS = [protocol.value for protocol in ProxyProtocol]

GLOBAL_PROXY_VARIABLES = ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY")
NO_PROXY_VARIABLES = ("no_proxy", "NO_PROXY")
DEFAULT_NO_PROXY = "localhost,127.0.0.1,::1"

INCOMPLETE_AUTH_MESSAGE = (
    "Proxy authentication incomplete: username and password must both be "
    "provided or both be omitted"
)


def _raw_port(netloc: str) -> Optional[str]:
    host_port = netloc.rpartition("@")[2]
    if host_port.startswith("["):
        host_port = host_port.partition("]")[2]
    if ":" not in host_port:
        return None
    return host_port.rpartition(":")[2]


def _parse_proxy_fields(url: str) -> Tuple[Dict[str, Any], List[str]]:
    """Split a proxy URL into config fields plus the errors parsing alone can detect."""
    errors: List[str] = []

    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname or ""
    except ValueError as e:
        raise ProxyValidationException(
            f"Invalid proxy URL format: {mask_proxy_server_url(url)}",
            details=[f"URL parsing failed: {e}"],
            original_exception=e
        ) from e

    protocol = parts.scheme.lower()

    port: Optional[int] = None
    raw_port = _raw_port(parts.netloc)
    if raw_port:
        if raw_port.isdigit():
            port = int(raw_port)
        else:
            errors.append(f"Port must be between 1 and 65535, got: {raw_port}")
    elif protocol in SUPPORTED_PROTOCOLS:
        port = ProxyProtocol(protocol).default_port()

    bypass_values = parse_qs(parts.query).get("bypass")

    fields = {
        "protocol": protocol,
        "hostname": hostname,
        "port": port,
        "username": unquote(parts.username) if parts.username else None,
        "password": unquote(parts.password) if parts.password else None,
        "bypass": ",".join(bypass_values) if bypass_values else None,
    }
    return fields, errors


def _validate_proxy_fields(fields: Mapping[str, Any]) -> List[str]:
    errors: List[str] = []

    protocol = fields.get("protocol")
    if isinstance(protocol, ProxyProtocol):
        protocol = protocol.value
    if protocol not in SUPPORTED_PROTOCOLS:
        errors.append(
            f"Unsupported protocol: {protocol or '(none)'}. "
            f"Supported protocols: {', '.join(SUPPORTED_PROTOCOLS)}"
        )

    hostname = fields.get("hostname")
    if not hostname or not str(hostname).strip():
        errors.append("Hostname is required and cannot be empty")

    port = fields.get("port")
    if port is not None and (isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535):
        errors.append(f"Port must be between 1 and 65535, got: {port}")

    has_username = bool(fields.get("username"))
    has_password = bool(fields.get("password"))
    if has_username != has_password:
        errors.append(INCOMPLETE_AUTH_MESSAGE)

    return errors


def _build_proxy_config(fields: Dict[str, Any], errors: List[str]) -> ProxyConfig:
    errors = errors + _validate_proxy_fields(fields)
    if errors:
        raise ProxyValidationException("Invalid proxy configuration", details=errors)

    return ProxyConfig(
        protocol=ProxyProtocol(fields["protocol"]),
        hostname=fields["hostname"],
        port=fields["port"],
        username=fields.get("username") or None,
        password=fields.get("password") or None,
        bypass=fields.get("bypass") or None,
    )


def parse_proxy_url(url: str) -> ProxyConfig:
    """
    Parse ``scheme://[user:pass@]host[:port][?bypass=...]`` into a config.

    Missing ports default per protocol (http 80, https 443, socks5 1080).

    Raises:
        ProxyValidationException: unsupported scheme, missing host, bad
            port or half-supplied credentials; ``details`` lists each one
    """
    fields, errors = _parse_proxy_fields(url)
    return _build_proxy_config(fields, errors)


def parse_proxy_request(request: ProxyRequest) -> ProxyConfig:
    """
    Build a config from a per-session proxy request.

    Separate credentials replace URL credentials when either one is given,
    and an explicit ``bypass`` replaces the URL's.
    """
    fields, errors = _parse_proxy_fields(request.server)

    if request.username is not None or request.password is not None:
        fields["username"] = request.username
        fields["password"] = request.password

    if request.bypass is not None:
        fields["bypass"] = request.bypass

    return _build_proxy_config(fields, errors)


def validate_proxy_config(config: ProxyConfig) -> List[str]:
    """Return every violation found in ``config``; empty when valid."""
    return _validate_proxy_fields(config.model_dump())


def resolve_effective_proxy(
        override: Optional[ProxyConfig],
        global_default: Optional[ProxyConfig]
) -> Optional[ProxyConfig]:
    """
    Pick the proxy a session uses.

    A session-specific override wins whenever it is present, regardless of
    the global default.
    """
    if override is not None:
        return override
    return global_default


def proxy_log_view(config: ProxyConfig, source: Optional[str] = None) -> Dict[str, Any]:
    """Credential-free view of a proxy for log events."""
    view: Dict[str, Any] = {
        "protocol": config.protocol.value,
        "hostname": config.hostname,
        "port": config.port,
        "has_auth": config.has_auth,
    }
    if config.bypass:
        view["bypass"] = config.bypass
    if source:
        view["source"] = source
    return view


def _first_set(environ: Mapping[str, str], names) -> Optional[str]:
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return None


def load_global_proxy(environ: Optional[Mapping[str, str]] = None) -> Optional[ProxyConfig]:
    """
    Load the process-wide default proxy from environment variables.

    Reads ``http_proxy``/``HTTP_PROXY``/``https_proxy``/``HTTPS_PROXY`` in
    that order, with bypass rules from ``no_proxy``/``NO_PROXY``. Called
    once at startup; a failure must abort startup.

    Raises:
        ProxyValidationException: the configured proxy is invalid
    """
    environ = os.environ if environ is None else environ

    proxy_url = _first_set(environ, GLOBAL_PROXY_VARIABLES)
    if not proxy_url:
        logger.debug("No global proxy configured")
        return None

    try:
        config = parse_proxy_url(proxy_url)
    except ProxyValidationException as e:
        logger.error(
            "Failed to load global proxy configuration from environment variables",
            source="environment",
            details=e.details
        )
        raise ProxyValidationException(
            "Invalid global proxy configuration in environment variables",
            details=e.details,
            original_exception=e
        ) from e

    no_proxy = _first_set(environ, NO_PROXY_VARIABLES)
    config = config.model_copy(update={"bypass": no_proxy or config.bypass or DEFAULT_NO_PROXY})

    logger.info(
        "Global proxy configured from environment variables",
        proxy=proxy_log_view(config, source="environment")
    )
    return config
