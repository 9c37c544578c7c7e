"""
Stats provider clients.

The engine only depends on the ``StatsProvider`` protocol: given a user's folding
name and passkey, return all-time cumulative points and units. ``HttpStatsProvider``
talks to the Folding@Home REST API.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union

import httpx

from tcapi.config import Settings
from tcapi.core.exceptions import (
    StatsConnectionError,
    StatsNotFoundError,
    StatsProviderError,
)
from tcapi.schemas.stats import Stats
from tcapi.schemas.user import User, mask_passkey

logger = logging.getLogger(__name__)


class StatsProvider(Protocol):
    def fetch_totals(self, user: User) -> Stats:
        """Return cumulative totals or raise ``StatsProviderError``."""
        ...


class HttpStatsProvider:
    """Folding@Home stats client"""

    _POINTS_PATH = "/user/{user_name}/stats"
    _UNITS_PATH = "/bonus"

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self._base_url = settings.STATS_API_BASE_URL.rstrip("/")
        self._timeout = httpx.Timeout(settings.STATS_TIMEOUT_SECONDS, connect=5.0)
        self._transport = transport

    def fetch_totals(self, user: User) -> Stats:
        with httpx.Client(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        ) as client:
            points = self._get_points(client, user)
            units = self._get_units(client, user)
        return Stats(points=points, units=units)

    def _get(self, client: httpx.Client, path: str, params: Dict[str, str]) -> httpx.Response:
        try:
            response = client.get(path, params=params)
        except httpx.TimeoutException as exc:
            raise StatsConnectionError(f"Timed out requesting {path}", url=path) from exc
        except httpx.RequestError as exc:
            raise StatsConnectionError(f"Error requesting {path}: {exc}", url=path) from exc

        if response.status_code == 404:
            raise StatsNotFoundError(f"No stats found at {path}", url=str(response.url))
        if response.status_code >= 400:
            raise StatsConnectionError(
                f"Unexpected status {response.status_code} from {path}",
                url=str(response.url),
            )
        return response

    def _get_points(self, client: httpx.Client, user: User) -> int:
        path = self._POINTS_PATH.format(user_name=user.folding_user_name)
        logger.debug(
            f"Requesting points for {user.folding_user_name}/{mask_passkey(user.passkey)}"
        )
        response = self._get(client, path, {"passkey": user.passkey})
        try:
            return int(response.json().get("earned", 0))
        except (ValueError, AttributeError, TypeError) as exc:
            raise StatsConnectionError(
                f"Invalid points response: {response.text}", url=str(response.url)
            ) from exc

    def _get_units(self, client: httpx.Client, user: User) -> int:
        response = self._get(
            client,
            self._UNITS_PATH,
            {"user": user.folding_user_name, "passkey": user.passkey},
        )
        try:
            entries = response.json()
            finished = [int(entry.get("finished", 0)) for entry in entries]
        except (ValueError, AttributeError, TypeError) as exc:
            raise StatsConnectionError(
                f"Invalid units response: {response.text}", url=str(response.url)
            ) from exc

        if not finished:
            logger.warning(f"No units found for user '{user.folding_user_name}'")
            return 0
        if len(finished) > 1:
            # Same name/passkey folded for several teams; the lowest count is the fair one
            logger.warning(
                f"Multiple unit entries for user '{user.folding_user_name}', using the lowest"
            )
        return min(finished)


FetchResult = Union[Stats, StatsProviderError]


def fetch_totals_concurrently(
    provider: StatsProvider, users: Iterable[User], max_workers: int
) -> Dict[int, FetchResult]:
    """Fetch totals for many users on a bounded thread pool.

    Provider errors are returned per user instead of raised so one bad user never
    stops the others. Unexpected exceptions are wrapped the same way.
    """
    user_list: List[User] = list(users)
    if not user_list:
        return {}

    def _fetch(user: User) -> Tuple[int, FetchResult]:
        try:
            return user.id, provider.fetch_totals(user)
        except StatsProviderError as exc:
            return user.id, exc
        except Exception as exc:
            logger.exception(f"Unexpected error fetching stats for user {user.id}")
            return user.id, StatsConnectionError(str(exc))

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        return dict(pool.map(_fetch, user_list))
