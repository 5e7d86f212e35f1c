from __future__ import annotations

import json
import logging
from typing import Any

import requests

from .constants import TAP_SYNC_URL
from .exceptions import TransportError, UpstreamHTTPError, UpstreamParseError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def perform_tap_query(
    query: str,
    fmt: str = "json",
    url: str = TAP_SYNC_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Run one synchronous TAP query and return the raw response body.

    Raises UpstreamHTTPError for non-2xx answers and TransportError for
    network failures and timeouts. Nothing is retried.
    """
    params = {
        "query": query,
        "format": fmt,
    }

    logger.info("Proxying request to %s", url, extra={"adql": query, "fmt": fmt})

    try:
        resp = requests.get(url, params=params, timeout=timeout)
    except requests.Timeout as exc:
        raise TransportError("Request timeout") from exc
    except requests.RequestException as exc:
        raise TransportError(str(exc)) from exc

    if not 200 <= resp.status_code < 300:
        body = resp.text or resp.reason or ""
        logger.error("NASA API Error %s: %s", resp.status_code, body)
        raise UpstreamHTTPError(resp.status_code, body)

    return resp.text


def parse_tap_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        logger.error("Non-JSON response from NASA API: %s", text[:500])
        raise UpstreamParseError(text) from exc
