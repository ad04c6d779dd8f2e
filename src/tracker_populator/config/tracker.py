"""Tracker (DHIS2) API connection settings."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .env import credential_pair
from .http_resilience import RateLimit, ResilienceConfig

if TYPE_CHECKING:
    import httpx

log = getLogger(__name__)

TRACKER_TIMEOUT_SECONDS = 30.0
TRACKER_USERNAME_ENV = "TRACKER_USERNAME"
TRACKER_PASSWORD_ENV = "TRACKER_PASSWORD"


async def log_response(response: httpx.Response) -> None:
    request = response.request
    log.debug("%s %s -> %s", request.method, request.url.path, response.status_code)


def ensure_trailing_slash(url: str) -> str:
    if url.endswith("/"):
        return url
    return url + "/"


def api_root(base_url: str, api_version: str | None = None) -> str:
    """Return the ``api/`` root below ``base_url``, versioned when requested."""

    root = ensure_trailing_slash(base_url) + "api/"
    if api_version:
        root += f"{api_version.strip('/')}/"
    return root


@dataclass(frozen=True)
class TrackerConfig:
    """Holds the tracker API location, credentials and client settings."""

    base_url: str
    api_version: str | None
    resilience: ResilienceConfig

    @property
    def api_url(self) -> str:
        return api_root(self.base_url, self.api_version)


def get_tracker_config(
    base_url: str,
    *,
    api_version: str | None = None,
    rate_limit: float | None = None,
    resilience: ResilienceConfig | None = None,
) -> TrackerConfig:
    """Build the tracker configuration for ``base_url``.

    Credentials come from ``TRACKER_USERNAME``/``TRACKER_PASSWORD`` when set;
    otherwise any ``user:password@`` part of the URL is used by httpx directly.
    ``rate_limit`` caps the number of requests per second.
    """

    base_url = ensure_trailing_slash(base_url)
    return TrackerConfig(
        base_url=base_url,
        api_version=api_version,
        resilience=resilience
        or ResilienceConfig(
            name="tracker",
            base_url=api_root(base_url, api_version),
            timeout_seconds=TRACKER_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=max(1, round(rate_limit)), per_seconds=1.0)
            if rate_limit
            else None,
            auth=credential_pair(TRACKER_USERNAME_ENV, TRACKER_PASSWORD_ENV),
            default_headers={"Accept": "application/json"},
            response_hooks=(log_response,),
        ),
    )
