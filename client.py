import logging
import re
from typing import NamedTuple, Optional, Iterable, Dict

import httpx

from config import KEEPALIVE_IDLE_TIMEOUT_SECONDS, REQUEST_TIMEOUT_SECONDS, SUPPORTED_PROXY_SCHEMES
from errors import ConfigError

logger = logging.getLogger(__name__)

# RFC 7230 token: the only characters allowed in a header name
HEADER_NAME_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
# Visible ASCII plus space and tab
HEADER_VALUE_RE = re.compile(r"[\t\x20-\x7e]*")


class ClientConfig(NamedTuple):
    keepalive: bool = False
    proxy: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    concurrency: int = 1  # sizes the idle-connection pool when keepalive is on
    timeout: Optional[float] = REQUEST_TIMEOUT_SECONDS


def parse_headers(raw_headers: Optional[Iterable[str]]) -> Dict[str, str]:
    """Turn repeated ``"Key: Value"`` arguments into a header mapping."""
    headers: Dict[str, str] = {}
    for raw in raw_headers or ():
        if ":" not in raw:
            raise ConfigError(f"Bad header format: {raw!r}. Use 'Key: Value'.")
        name, value = raw.split(":", 1)
        name = name.strip()
        value = value.strip()
        if not name:
            raise ConfigError(f"Bad header format: {raw!r}. Header name is empty.")
        if not HEADER_NAME_RE.fullmatch(name):
            raise ConfigError(f"Bad header name {name!r} in {raw!r}: only RFC 7230 token characters are allowed.")
        if not HEADER_VALUE_RE.fullmatch(value):
            raise ConfigError(f"Bad header value in {raw!r}: control or non-ASCII characters are not allowed.")
        headers[name] = value
    return headers


def validate_proxy_url(proxy_url: str):
    if not proxy_url.startswith(SUPPORTED_PROXY_SCHEMES):
        raise ConfigError(
            f"Malformed proxy URL {proxy_url!r}. Supported schemes: "
            f"{', '.join(SUPPORTED_PROXY_SCHEMES)}. Example: socks5://127.0.0.1:1080"
        )


def build_client(client_config: ClientConfig) -> httpx.AsyncClient:
    """Build the one AsyncClient shared read-only by every request of a run."""
    if client_config.keepalive:
        limits = httpx.Limits(
            max_connections=None,
            max_keepalive_connections=client_config.concurrency,
            keepalive_expiry=KEEPALIVE_IDLE_TIMEOUT_SECONDS,
        )
    else:
        limits = httpx.Limits(max_connections=None, max_keepalive_connections=0)

    if client_config.proxy:
        validate_proxy_url(client_config.proxy)

    try:
        default_headers = httpx.Headers(client_config.headers or {})
    except UnicodeEncodeError as e:
        raise ConfigError(f"Default headers must be ASCII: {e}") from e

    try:
        client = httpx.AsyncClient(
            headers=default_headers,
            proxy=client_config.proxy,
            limits=limits,
            timeout=httpx.Timeout(client_config.timeout),
            follow_redirects=True,
        )
    except ImportError as e:
        # httpx needs the optional socks extra for socks5:// proxies
        raise ConfigError(f"Proxy {client_config.proxy!r} needs an unavailable transport: {e}") from e
    except (ValueError, httpx.InvalidURL) as e:
        raise ConfigError(f"Cannot use proxy URL {client_config.proxy!r}: {e}") from e

    logger.debug(f"HTTP client ready: keepalive={client_config.keepalive}, proxy={client_config.proxy}, "
                 f"{len(default_headers)} default header(s)")
    return client
