from __future__ import annotations

import json
import logging
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from kidscurator.app.services.errors import SearchProviderError, SearchResponseFormatError

LOGGER = logging.getLogger("kids_curator.search_client")

DEFAULT_SEARCH_ENDPOINT_URL = "https://www.youtube.com/youtubei/v1/search"
DEFAULT_CLIENT_NAME = "WEB"
DEFAULT_CLIENT_VERSION = "2.20231219.01.00"
_USER_AGENT = "kids-curator/1.0"


class SearchClient(Protocol):
    def search(self, query: str) -> dict[str, Any]:
        ...

    def continue_search(self, continuation_token: str) -> dict[str, Any]:
        ...


class YouTubeSearchClient:
    """
    Posts fresh-query and continuation requests to the platform search endpoint.

    The request/response shapes belong to an undocumented, versioned
    protocol; nothing outside this class knows about the client context
    object or the endpoint URL.
    """

    def __init__(
        self,
        *,
        endpoint_url: str = DEFAULT_SEARCH_ENDPOINT_URL,
        api_key: str | None = None,
        client_name: str = DEFAULT_CLIENT_NAME,
        client_version: str = DEFAULT_CLIENT_VERSION,
        timeout_seconds: float | None = None,
    ) -> None:
        self._endpoint_url = endpoint_url.strip()
        self._api_key = api_key
        self._client_name = client_name
        self._client_version = client_version
        self._timeout_seconds = max(1.0, timeout_seconds) if timeout_seconds is not None else None

    @property
    def request_url(self) -> str:
        if not self._api_key:
            return self._endpoint_url
        separator = "&" if "?" in self._endpoint_url else "?"
        return f"{self._endpoint_url}{separator}{urlencode({'key': self._api_key})}"

    def search(self, query: str) -> dict[str, Any]:
        return self._post({"context": self._client_context(), "query": query})

    def continue_search(self, continuation_token: str) -> dict[str, Any]:
        return self._post({"context": self._client_context(), "continuation": continuation_token})

    def _client_context(self) -> dict[str, Any]:
        return {
            "client": {
                "clientName": self._client_name,
                "clientVersion": self._client_version,
            }
        }

    def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        request = Request(
            self.request_url,
            data=json.dumps(body).encode("utf-8"),
            headers={
                "content-type": "application/json",
                "accept": "application/json",
                "user-agent": _USER_AGENT,
            },
            method="POST",
        )

        try:
            if self._timeout_seconds is None:
                response_context = urlopen(request)
            else:
                response_context = urlopen(request, timeout=self._timeout_seconds)
            with response_context as response:
                status_code = int(response.getcode() or 0)
                raw_body = response.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            LOGGER.warning("search endpoint returned error status=%s", exc.code)
            raise SearchProviderError(
                f"Search endpoint returned HTTP {exc.code}.",
                status_code=int(exc.code),
            ) from exc
        except (URLError, TimeoutError, OSError) as exc:
            raise SearchProviderError(f"Search request failed: {exc}") from exc

        if status_code >= 400:
            raise SearchProviderError(
                f"Search endpoint returned HTTP {status_code}.",
                status_code=status_code,
            )
        return _parse_json_object(raw_body)


def _parse_json_object(raw_body: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw_body)
    except json.JSONDecodeError as exc:
        raise SearchProviderError(f"Search endpoint returned non-JSON body: {exc}") from exc
    if not isinstance(parsed, dict):
        raise SearchResponseFormatError(
            f"Search response must be a JSON object, got {type(parsed).__name__}."
        )
    return parsed
