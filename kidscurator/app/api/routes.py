from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from structlog.contextvars import bind_contextvars, reset_contextvars

from kidscurator.app.dependencies import get_curation_service
from kidscurator.app.models.video_contracts import ErrorResponse, VideoListResponse
from kidscurator.app.services.curation_service import CurationPage, VideoCurationService
from kidscurator.app.services.errors import InvalidContinuationError

router = APIRouter(prefix="/api")

LOGGER = logging.getLogger("kids_curator.api")

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, *, message: str | None = None) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.message = message

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.error, message=self.message)


def _normalize_required_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


@router.get(
    "/search",
    response_model=VideoListResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    tags=["videos"],
    operation_id="search_videos",
)
def search_videos(
    service: Annotated[VideoCurationService, Depends(get_curation_service)],
    q: Annotated[str | None, Query(max_length=500)] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    continuation: Annotated[str | None, Query(max_length=8192)] = None,
) -> VideoListResponse:
    query = _normalize_required_text(q)
    if query is None:
        raise ApiError(400, 'Query parameter "q" is required')

    context_tokens = bind_contextvars(search_query=query, search_page=page)
    try:
        result = _run_curation(
            lambda: service.search(query, page=page, continuation=continuation),
            failure_label="Failed to search videos",
        )
    finally:
        reset_contextvars(**context_tokens)
    return VideoListResponse.from_page(result)


@router.get(
    "/channel/{channel_name}",
    response_model=VideoListResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    tags=["videos"],
    operation_id="channel_videos",
)
def channel_videos(
    channel_name: str,
    service: Annotated[VideoCurationService, Depends(get_curation_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    continuation: Annotated[str | None, Query(max_length=8192)] = None,
) -> VideoListResponse:
    normalized_channel = _normalize_required_text(channel_name)
    if normalized_channel is None:
        raise ApiError(400, "Channel name is required")

    context_tokens = bind_contextvars(channel_name=normalized_channel, search_page=page)
    try:
        result = _run_curation(
            lambda: service.channel_videos(
                normalized_channel,
                page=page,
                continuation=continuation,
            ),
            failure_label="Failed to fetch channel videos",
        )
    finally:
        reset_contextvars(**context_tokens)
    return VideoListResponse.from_page(result)


def _run_curation(operation: Callable[[], CurationPage], *, failure_label: str) -> CurationPage:
    try:
        return operation()
    except InvalidContinuationError as exc:
        raise ApiError(400, str(exc)) from exc
    except Exception as exc:
        LOGGER.exception("%s", failure_label.lower())
        raise ApiError(500, failure_label, message=str(exc)) from exc
