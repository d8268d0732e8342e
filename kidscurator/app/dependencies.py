from __future__ import annotations

from functools import lru_cache

from kidscurator.app.config import AppSettings, load_settings
from kidscurator.app.services.content_filter import ChannelNameMatcher, get_filter_policy
from kidscurator.app.services.curation_service import VideoCurationService
from kidscurator.app.services.pagination_cache import ContinuationCache
from kidscurator.app.services.search_client import SearchClient, YouTubeSearchClient
from kidscurator.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_search_client() -> SearchClient:
    settings = get_settings()
    return YouTubeSearchClient(
        endpoint_url=settings.search_endpoint_url,
        api_key=settings.search_api_key,
        client_name=settings.search_client_name,
        client_version=settings.search_client_version,
        timeout_seconds=settings.search_http_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_continuation_cache() -> ContinuationCache:
    settings = get_settings()
    return ContinuationCache(
        max_entries=settings.pagination_cache_max_entries,
        ttl_seconds=settings.pagination_cache_ttl_seconds,
    )


@lru_cache(maxsize=1)
def get_curation_service() -> VideoCurationService:
    settings = get_settings()
    return VideoCurationService(
        search_client=get_search_client(),
        continuation_cache=get_continuation_cache(),
        search_policy=get_filter_policy(settings.search_policy),
        channel_policy=get_filter_policy(settings.channel_policy),
        channel_matcher=ChannelNameMatcher(
            min_containment_length=settings.channel_match_min_containment_length,
            ascii_word_chars=settings.channel_match_ascii_word_chars,
        ),
        search_query_prefix=settings.search_query_prefix,
        search_query_suffix=settings.search_query_suffix,
        channel_query_template=settings.channel_query_template,
        search_first_page_limit=settings.search_first_page_limit,
        channel_first_page_limit=settings.channel_first_page_limit,
        continuation_page_limit=settings.continuation_page_limit,
        telemetry=get_telemetry(),
    )


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def reset_cached_dependencies() -> None:
    get_curation_service.cache_clear()
    get_continuation_cache.cache_clear()
    get_search_client.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
