from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kidscurator.app.services.content_filter import CuratedVideo
from kidscurator.app.services.curation_service import CurationPage


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CuratedVideoModel(_CamelModel):
    id: str = Field(min_length=1)
    title: str
    thumbnail_url: str
    channel_title: str
    published_at: str
    description: str
    category: str
    video_url: str
    duration: str
    duration_seconds: int = Field(ge=0)

    @classmethod
    def from_video(cls, video: CuratedVideo) -> CuratedVideoModel:
        return cls(
            id=video.id,
            title=video.title,
            thumbnail_url=video.thumbnail_url,
            channel_title=video.channel_title,
            published_at=video.published_at,
            description=video.description,
            category=video.category,
            video_url=video.video_url,
            duration=video.duration,
            duration_seconds=video.duration_seconds,
        )


class VideoListResponse(_CamelModel):
    videos: list[CuratedVideoModel] = Field(default_factory=lambda: [])
    next_page_token: str | None = None

    @classmethod
    def from_page(cls, page: CurationPage) -> VideoListResponse:
        return cls(
            videos=[CuratedVideoModel.from_video(video) for video in page.videos],
            next_page_token=page.next_page_token,
        )


class HealthResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error: str
    message: str | None = None
