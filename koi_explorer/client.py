from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from .exceptions import FetchError, TransportError, UnexpectedShape, UpstreamHTTPError, UpstreamParseError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def _error_message(resp: requests.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return resp.reason or ""
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return resp.reason or ""


def fetch_exoplanet_data(adql_query: str, api_url: str) -> List[Row]:
    """Send one query to the exoplanet proxy and return its rows untouched.

    Every failure surfaces as a FetchError subclass. There is no retry and
    no client-side timeout.
    """
    params = {
        "query": adql_query,
        "format": "json",
    }

    try:
        resp = requests.get(api_url, params=params)
    except requests.RequestException as exc:
        logger.error("Failed to fetch exoplanet data: %s", exc)
        raise TransportError(str(exc)) from exc

    if not resp.ok:
        message = f"API Error ({resp.status_code}): {_error_message(resp)}"
        logger.error("Failed to fetch exoplanet data: %s", message)
        raise UpstreamHTTPError(resp.status_code, resp.text, message=message)

    try:
        data = resp.json()
    except ValueError as exc:
        logger.error("Failed to fetch exoplanet data: response is not JSON")
        raise UpstreamParseError(resp.text, message="Invalid JSON response from API") from exc

    if isinstance(data, dict) and data.get("error"):
        message = f"API Error: {data['error']}"
        logger.error("Failed to fetch exoplanet data: %s", message)
        raise FetchError(message)

    # An empty array is a valid (zero-row) answer
    if not isinstance(data, list):
        logger.error("Failed to fetch exoplanet data: expected an array, got %s", type(data).__name__)
        raise UnexpectedShape("Unexpected API response format. Expected an array.")

    return data
