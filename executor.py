import logging
import time
from typing import Optional

import httpx

from metrics import RequestResult

logger = logging.getLogger(__name__)


async def execute_request(client: httpx.AsyncClient, url: str,
                          body: Optional[bytes] = None,
                          content_type: Optional[str] = None) -> RequestResult:
    """Perform one exchange: POST ``body`` when given, otherwise GET.

    Transport failures (connect, timeout, TLS, protocol) come back as a failed
    result with ``status_code=None``; a completed non-2xx exchange keeps its
    status code and has no error message. Anything else propagates.
    """
    if body is not None:
        headers = {"Content-Type": content_type} if content_type else None
        request_args = {"method": "POST", "content": body, "headers": headers}
    else:
        request_args = {"method": "GET"}

    start_time = time.perf_counter()
    try:
        response = await client.request(url=url, **request_args)
    except httpx.HTTPError as e:
        duration = time.perf_counter() - start_time
        message = str(e) or type(e).__name__
        logger.debug(f"{request_args['method']} {url} failed after {duration * 1000:.2f}ms: {message}")
        return RequestResult(False, None, duration, message)
    duration = time.perf_counter() - start_time

    return RequestResult(response.is_success, response.status_code, duration, None)
