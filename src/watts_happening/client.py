import asyncio
import json
import logging
from typing import Any, List, Optional

import aiohttp
from pydantic import TypeAdapter, ValidationError

from watts_happening.config import Settings, get_settings
from watts_happening.errors import ApiError, AuthError, DecodeError
from watts_happening.metrics import REQUEST_TIME
from watts_happening.models import Activity, ActivityStreams, TokenResponse
from watts_happening.streams import STREAM_KEYS, parse_streams

logger = logging.getLogger(__name__)

_ACTIVITY_LIST = TypeAdapter(List[Activity])


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class StravaClient:
    """Minimal async client for the three Strava endpoints the sync needs.

    Covers the refresh-token exchange, the paginated activity list and the
    per-activity streams endpoint. A single aiohttp session is created lazily
    and closed when the client is used as an async context manager:

        ```python
        async with StravaClient(settings) as client:
            token = await client.refresh_access_token(client_id, secret, refresh)
            page = await client.fetch_activities_page(token, page=1, per_page=50)
        ```

    Non-success responses are logged with their raw body before the
    corresponding error is raised. Nothing is retried.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    async def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def refresh_access_token(
        self, client_id: str, client_secret: str, refresh_token: str
    ) -> str:
        """Exchange a refresh token for a short-lived access token.

        Args:
            client_id (str): Strava application client id.
            client_secret (str): Strava application client secret.
            refresh_token (str): Long-lived refresh token of the athlete.

        Returns:
            str: The access token.

        Raises:
            AuthError: If the request fails, the status is not a success or
                the body does not carry an access token.
        """
        form = {
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        try:
            with REQUEST_TIME.labels("refresh_token").time():
                session = await self.session
                async with session.post(self.settings.STRAVA_TOKEN_URL, data=form) as response:
                    status = response.status
                    body = await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AuthError(f"Token exchange failed: {e}") from e

        if not _is_success(status):
            logger.error(f"Error fetching token ({status}): {body}")
            raise AuthError(f"Token exchange returned status {status}", status=status, body=body)

        try:
            token = TokenResponse.model_validate_json(body)
        except ValidationError as e:
            raise AuthError(f"Unexpected token response: {e}", status=status, body=body) from e
        return token.access_token

    async def _get(
        self, operation: str, path: str, access_token: str, params: dict[str, Any]
    ) -> tuple[int, str]:
        url = f"{self.settings.STRAVA_API_BASE_URL}{path}"
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            with REQUEST_TIME.labels(operation).time():
                session = await self.session
                async with session.get(url, headers=headers, params=params) as response:
                    status = response.status
                    body = await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Request to {url} failed: {e}")
            raise ApiError(None, "", f"Request to {url} failed: {e}") from e

        if not _is_success(status):
            logger.error(f"Strava API error ({status}) for {url}: {body}")
            raise ApiError(status, body)
        return status, body

    async def fetch_activities_page(
        self, access_token: str, page: int, per_page: int
    ) -> List[Activity]:
        """Fetch one page of the athlete's activities, newest first.

        An empty list means there are no more pages.

        Raises:
            ApiError: On a non-success status or a failed request.
            DecodeError: If the body is not a list of activities.
        """
        status, body = await self._get(
            "list_activities",
            "/athlete/activities",
            access_token,
            {"page": page, "per_page": per_page},
        )
        try:
            return _ACTIVITY_LIST.validate_json(body)
        except ValidationError as e:
            logger.error(f"Unexpected activities response ({status}): {body}")
            raise DecodeError(status, body, str(e)) from e

    async def fetch_activity_streams(self, access_token: str, activity_id: int) -> ActivityStreams:
        status, body = await self._get(
            "fetch_streams",
            f"/activities/{activity_id}/streams",
            access_token,
            {"keys": ",".join(STREAM_KEYS), "key_by_type": "true"},
        )
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise DecodeError(status, body, str(e)) from e
        if not isinstance(payload, dict):
            raise DecodeError(status, body, "expected a mapping of stream keys")
        return parse_streams(payload)
