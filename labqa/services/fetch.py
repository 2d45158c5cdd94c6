from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from ..errors import FetchError

"""File acquisition by URL.

Files attached to a service record live in an external file store; the
dashboard reads them through a proxy endpoint. Either the file URL is fetched
directly, or it is passed as the ``url`` query parameter of the proxy.

The whole body is read before anything is returned, so an interrupted or
failed fetch never yields a partial grid.
"""

__all__ = [
    "DEFAULT_TIMEOUT",
    "FetchedFile",
    "fetch_file",
]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class FetchedFile:
    content: bytes
    url: str
    content_type: str | None = None


def _is_retryable_status(status: int) -> bool:
    return status >= 500 or status in (408, 429)


def fetch_file(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    proxy_endpoint: str | None = None,
    client: httpx.Client | None = None,
) -> FetchedFile:
    """Download a lab-data file.

    Raises:
        FetchError: on timeout, transport error or non-2xx status.
            ``retryable`` is False only for client errors (4xx except 408/429).
    """
    if proxy_endpoint:
        request_url, params = proxy_endpoint, {"url": url}
    else:
        request_url, params = url, None

    own_client = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        logger.debug(f"fetching {url}" + (f" via {proxy_endpoint}" if proxy_endpoint else ""))
        response = http.get(request_url, params=params, timeout=timeout)
        response.raise_for_status()
        content = response.content
    except httpx.TimeoutException as e:
        raise FetchError(f"timed out after {timeout}s fetching {url}", retryable=True) from e
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise FetchError(f"HTTP {status} fetching {url}", retryable=_is_retryable_status(status)) from e
    except httpx.HTTPError as e:
        raise FetchError(f"failed fetching {url}: {e}", retryable=True) from e
    finally:
        if own_client:
            http.close()

    return FetchedFile(content=content, url=url, content_type=response.headers.get("content-type"))
