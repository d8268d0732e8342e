from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any

from kidscurator.app.services.content_filter import (
    CHANNEL_POLICY,
    GENERAL_POLICY,
    ChannelNameMatcher,
    CuratedVideo,
    FilterPolicy,
    curate_items,
    filter_channel_items,
)
from kidscurator.app.services.errors import InvalidContinuationError, SearchProviderError
from kidscurator.app.services.pagination_cache import ContinuationCache
from kidscurator.app.services.search_client import SearchClient
from kidscurator.app.services.search_response_parser import (
    SearchResultsPage,
    parse_search_response,
)
from kidscurator.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("kids_curator.curation")

DEFAULT_SEARCH_QUERY_PREFIX = "رسوم متحركة للأطفال كرتون"
DEFAULT_SEARCH_QUERY_SUFFIX = "cartoon kids"
DEFAULT_CHANNEL_QUERY_TEMPLATE = '{channel} "cartoon" "kids"'


@dataclass(frozen=True)
class CurationPage:
    videos: list[CuratedVideo]
    next_page_token: str | None = None
    raw_item_count: int = 0

    @classmethod
    def empty(cls) -> CurationPage:
        return cls(videos=[])


def encode_page_token(continuation_token: str) -> str:
    return base64.urlsafe_b64encode(continuation_token.encode("utf-8")).decode("ascii")


def decode_page_token(page_token: str) -> str:
    normalized = page_token.strip()
    if not normalized:
        raise InvalidContinuationError("continuation must not be empty.")
    padded = normalized + "=" * (-len(normalized) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise InvalidContinuationError("continuation is not a valid page token.") from exc
    if not decoded.strip():
        raise InvalidContinuationError("continuation is not a valid page token.")
    return decoded


def search_query_key(query: str) -> str:
    return f"{query}_continuation"


def channel_query_key(channel_name: str) -> str:
    return f"{channel_name}_channel_continuation"


class VideoCurationService:
    def __init__(
        self,
        *,
        search_client: SearchClient,
        continuation_cache: ContinuationCache | None = None,
        search_policy: FilterPolicy = GENERAL_POLICY,
        channel_policy: FilterPolicy = CHANNEL_POLICY,
        channel_matcher: ChannelNameMatcher | None = None,
        search_query_prefix: str = DEFAULT_SEARCH_QUERY_PREFIX,
        search_query_suffix: str = DEFAULT_SEARCH_QUERY_SUFFIX,
        channel_query_template: str = DEFAULT_CHANNEL_QUERY_TEMPLATE,
        search_first_page_limit: int = 25,
        channel_first_page_limit: int = 50,
        continuation_page_limit: int = 50,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._search_client = search_client
        if continuation_cache is None:
            continuation_cache = ContinuationCache()
        self._continuation_cache = continuation_cache
        self._search_policy = search_policy
        self._channel_policy = channel_policy
        self._channel_matcher = (
            channel_matcher if channel_matcher is not None else ChannelNameMatcher()
        )
        self._search_query_prefix = search_query_prefix.strip()
        self._search_query_suffix = search_query_suffix.strip()
        self._channel_query_template = channel_query_template
        self._search_first_page_limit = max(1, search_first_page_limit)
        self._channel_first_page_limit = max(1, channel_first_page_limit)
        self._continuation_page_limit = max(1, continuation_page_limit)
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    @property
    def continuation_cache(self) -> ContinuationCache:
        return self._continuation_cache

    @property
    def search_policy(self) -> FilterPolicy:
        return self._search_policy

    @property
    def channel_policy(self) -> FilterPolicy:
        return self._channel_policy

    def build_search_query(self, query: str) -> str:
        parts = (self._search_query_prefix, query.strip(), self._search_query_suffix)
        return " ".join(part for part in parts if part)

    def build_channel_query(self, channel_name: str) -> str:
        return self._channel_query_template.format(channel=channel_name.strip())

    def search(
        self,
        query: str,
        *,
        page: int = 1,
        continuation: str | None = None,
    ) -> CurationPage:
        LOGGER.info("search requested query=%s page=%s", query, page)
        enhanced_query = self.build_search_query(query)
        LOGGER.debug("enhanced search query=%s", enhanced_query)
        results = self._fetch_page(
            query_key=search_query_key(query),
            fresh_query=enhanced_query,
            fresh_limit=self._search_first_page_limit,
            page=page,
            continuation=continuation,
            scope="search",
        )
        if results is None:
            return CurationPage.empty()

        videos = curate_items(results.items, self._search_policy)
        return self._finish_page(
            results,
            videos=videos,
            policy=self._search_policy,
            page=page,
            scope="search",
        )

    def channel_videos(
        self,
        channel_name: str,
        *,
        page: int = 1,
        continuation: str | None = None,
    ) -> CurationPage:
        LOGGER.info("channel videos requested channel=%s page=%s", channel_name, page)
        results = self._fetch_page(
            query_key=channel_query_key(channel_name),
            fresh_query=self.build_channel_query(channel_name),
            fresh_limit=self._channel_first_page_limit,
            page=page,
            continuation=continuation,
            scope="channel",
        )
        if results is None:
            return CurationPage.empty()

        channel_items = filter_channel_items(
            results.items,
            channel_name=channel_name,
            matcher=self._channel_matcher,
        )
        videos = curate_items(channel_items, self._channel_policy)
        return self._finish_page(
            results,
            videos=videos,
            policy=self._channel_policy,
            page=page,
            scope="channel",
        )

    def _fetch_page(
        self,
        *,
        query_key: str,
        fresh_query: str,
        fresh_limit: int,
        page: int,
        continuation: str | None,
        scope: str,
    ) -> SearchResultsPage | None:
        telemetry = self._telemetry.bind(scope=scope, page=page)
        supplied_token = decode_page_token(continuation) if continuation is not None else None

        if supplied_token is None and page <= 1:
            request_kind = "fresh"
            limit = fresh_limit
        else:
            request_kind = "continuation"
            limit = self._continuation_page_limit
            if supplied_token is None:
                state = self._continuation_cache.get_state(query_key)
                if state is None:
                    LOGGER.info(
                        "no continuation cached; returning empty page scope=%s page=%s",
                        scope,
                        page,
                    )
                    telemetry.emit("search.pagination.miss")
                    return None
                if state.expected_page_number != page:
                    LOGGER.debug(
                        "continuation cached for a different page expected=%s requested=%s",
                        state.expected_page_number,
                        page,
                    )
                supplied_token = state.continuation_token

        with telemetry.span("search.fetch", request_kind=request_kind) as outcome:
            try:
                payload = self._request(request_kind, fresh_query, supplied_token)
                results = parse_search_response(payload, limit=limit)
            except SearchProviderError as exc:
                LOGGER.warning(
                    "search fetch failed scope=%s kind=%s error=%s",
                    scope,
                    request_kind,
                    exc,
                )
                raise
            outcome.update(
                item_count=len(results.items),
                has_next=results.continuation_token is not None,
            )

        # Only a fully parsed response may advance the cached position.
        if results.continuation_token is not None:
            self._continuation_cache.set(
                query_key,
                results.continuation_token,
                expected_page_number=page + 1,
            )
        return results

    def _request(
        self,
        request_kind: str,
        fresh_query: str,
        continuation_token: str | None,
    ) -> dict[str, Any]:
        if request_kind == "fresh":
            return self._search_client.search(fresh_query)
        assert continuation_token is not None
        return self._search_client.continue_search(continuation_token)

    def _finish_page(
        self,
        results: SearchResultsPage,
        *,
        videos: list[CuratedVideo],
        policy: FilterPolicy,
        page: int,
        scope: str,
    ) -> CurationPage:
        LOGGER.info(
            "curated videos scope=%s policy=%s kept=%s total=%s page=%s",
            scope,
            policy.name,
            len(videos),
            len(results.items),
            page,
        )
        self._telemetry.emit(
            "curation.page.finish",
            scope=scope,
            policy=policy.name,
            page=page,
            raw_count=len(results.items),
            curated_count=len(videos),
        )
        next_page_token = (
            encode_page_token(results.continuation_token)
            if results.continuation_token is not None
            else None
        )
        return CurationPage(
            videos=videos,
            next_page_token=next_page_token,
            raw_item_count=len(results.items),
        )
