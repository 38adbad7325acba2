"""
HTTP helpers for upstream collaborators.

Every upstream call goes through ``request_json`` so that timeouts,
connection failures, HTTP errors and undecodable bodies all surface as
``UpstreamUnavailable``. No retries happen here.
"""

import logging
from typing import Any, Optional

import requests

from ..core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


def build_session(user_agent: str) -> requests.Session:
    """Session with the identifying User-Agent OSM services require."""
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    return session


def request_json(
    session: requests.Session,
    method: str,
    url: str,
    *,
    service: str,
    timeout: float,
    params: Optional[dict] = None,
    data: Optional[dict] = None,
) -> Any:
    """
    Perform a request and decode its JSON body.

    Raises:
        UpstreamUnavailable: On timeout, connection error, non-2xx status
            or a body that is not JSON
    """
    try:
        resp = session.request(method, url, params=params, data=data, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except requests.Timeout as e:
        logger.warning(f"{service} timed out after {timeout}s")
        raise UpstreamUnavailable(f"{service} timed out after {timeout}s", service=service) from e
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else "?"
        logger.warning(f"{service} returned HTTP {status}")
        raise UpstreamUnavailable(f"{service} returned HTTP {status}", service=service) from e
    except requests.RequestException as e:
        logger.warning(f"{service} request failed: {e}")
        raise UpstreamUnavailable(f"{service} unreachable: {e}", service=service) from e
    except ValueError as e:
        logger.warning(f"{service} returned a non-JSON body")
        raise UpstreamUnavailable(f"{service} returned an undecodable response", service=service) from e
