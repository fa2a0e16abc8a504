import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from core.config import settings

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/json, text/plain;q=0.8, */*;q=0.5"

# Characters encodeURIComponent leaves untouched besides alphanumerics and "-_.~"
_PATH_SAFE_CHARS = "!*'()"


class NeurosynthHTTPError(Exception):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "", body: str = ""):
        self.status_code = status_code
        self.reason = reason or ""
        self.body = body or ""
        super().__init__(f"HTTP {status_code} {self.reason}\n{self.body}")


class NeurosynthServerError(NeurosynthHTTPError):
    """Raised when the API answers with a 5xx status."""
    pass


def quote_path_segment(value: Any) -> str:
    """Percent-encode a value for use as a single URL path segment."""
    return quote(str(value), safe=_PATH_SAFE_CHARS)


def _raise_for_status(response: requests.Response) -> None:
    """Raise a typed error for any non-2xx response, carrying the raw body."""
    if 200 <= response.status_code < 300:
        return
    try:
        body = response.text
    except (UnicodeDecodeError, LookupError):
        body = ""
    if 500 <= response.status_code < 600:
        raise NeurosynthServerError(response.status_code, response.reason, body)
    raise NeurosynthHTTPError(response.status_code, response.reason, body)


def decode_json_response(response: requests.Response) -> Any:
    """
    Decode a response body as JSON.

    Bodies that are not valid JSON are wrapped as {"raw": text} instead of failing,
    whatever the declared content type.
    """
    content_type = response.headers.get("content-type", "") or ""
    text = response.text
    try:
        return json.loads(text)
    except ValueError:
        if "application/json" in content_type:
            logger.warning("Response declared JSON but could not be parsed (%d bytes)", len(text))
        else:
            logger.debug("Non-JSON response (%s); wrapping raw text", content_type or "no content-type")
        return {"raw": text}


@retry(
    retry=retry_if_exception_type((NeurosynthServerError, requests.Timeout, requests.ConnectionError)),
    stop=stop_after_attempt(settings.HTTP_MAX_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
def neurosynth_request(
    method: str,
    path: str,
    params: Optional[Dict[str, Any]] = None,
    timeout: tuple[float, float] | float | None = None,
    **kwargs
) -> requests.Response:
    """
    Wrapper for Neurosynth API requests.

    Automatically:
    - Cleans None values from params
    - Constructs the full API URL from settings.NEUROSYNTH_BASE_URL
    - Applies the configured (connect, read) timeout
    - Raises NeurosynthHTTPError / NeurosynthServerError for non-2xx responses
    - Retries timeouts, connection errors and 5xx up to settings.HTTP_MAX_ATTEMPTS

    Args:
        method: HTTP method (GET, POST, etc.)
        path: API path with any dynamic segments already escaped (e.g. '/terms/pain')
        params: Query parameters
        timeout: Float (total) or (connect, read) tuple. Defaults to the settings values.
        **kwargs: Additional arguments passed to requests.request()
    """
    if timeout is None:
        timeout = settings.request_timeout
    if params:
        params = {k: v for k, v in params.items() if v is not None}

    base_url = settings.NEUROSYNTH_BASE_URL.rstrip("/")
    url_path = path if path.startswith("/") else f"/{path}"
    url = f"{base_url}{url_path}"

    headers = {"Accept": ACCEPT_HEADER}
    headers.update(kwargs.pop("headers", None) or {})

    logger.debug("%s %s", method.upper(), url)
    response = requests.request(
        method,
        url,
        headers=headers,
        params=params,
        timeout=timeout,
        **kwargs
    )

    _raise_for_status(response)

    return response
