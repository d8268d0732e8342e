from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, cast

from kidscurator.app.services.errors import SearchResponseFormatError


class RawItemKind(str, Enum):
    VIDEO = "video"
    NON_VIDEO = "non-video"


@dataclass(frozen=True)
class RawItem:
    kind: RawItemKind
    id: str
    title: str = ""
    thumbnail_url: str = ""
    channel_title: str = ""
    published_label: str = ""
    description: str = ""
    duration_label: str = ""


@dataclass(frozen=True)
class SearchResultsPage:
    items: tuple[RawItem, ...]
    continuation_token: str | None
    scanned_entries: int = 0


def parse_search_response(payload: Any, *, limit: int) -> SearchResultsPage:
    """
    Flatten a search document into raw items plus the trailing continuation.

    Both the fresh-search document (`contents.twoColumnSearchResultsRenderer...`)
    and the continuation document (`onResponseReceivedCommands[*]
    .appendContinuationItemsAction`) are accepted. Channel and playlist
    entries come back as `NON_VIDEO` items and count toward `limit` like
    videos; other renderers such as shelves are skipped. Item extraction
    stops at `limit`, but every remaining section is still scanned so the
    last continuation token in document order is returned.
    """
    if not isinstance(payload, dict):
        raise SearchResponseFormatError(
            f"Search response must be a JSON object, got {type(payload).__name__}."
        )
    document = _as_dict(payload)
    sections = _locate_result_sections(document)
    if sections is None:
        raise SearchResponseFormatError(
            "Search response carries neither search results nor continuation items."
        )

    items: list[RawItem] = []
    continuation_token: str | None = None
    scanned_entries = 0
    max_items = max(0, limit)

    for raw_section in sections:
        section = _as_dict(raw_section)
        item_section = _as_dict(section.get("itemSectionRenderer"))
        for raw_entry in _as_list(item_section.get("contents")):
            if len(items) >= max_items:
                break
            scanned_entries += 1
            item = _extract_item(_as_dict(raw_entry))
            if item is not None:
                items.append(item)

        token = _extract_continuation_token(section)
        if token is not None:
            continuation_token = token

    return SearchResultsPage(
        items=tuple(items),
        continuation_token=continuation_token,
        scanned_entries=scanned_entries,
    )


def _locate_result_sections(document: dict[str, Any]) -> list[Any] | None:
    fresh_contents = _dig(
        document,
        "contents",
        "twoColumnSearchResultsRenderer",
        "primaryContents",
        "sectionListRenderer",
        "contents",
    )
    if isinstance(fresh_contents, list):
        return cast(list[Any], fresh_contents)

    commands = document.get("onResponseReceivedCommands")
    if isinstance(commands, list):
        for raw_command in cast(list[Any], commands):
            continuation_items = _dig(
                raw_command,
                "appendContinuationItemsAction",
                "continuationItems",
            )
            if isinstance(continuation_items, list):
                return cast(list[Any], continuation_items)
    return None


_NON_VIDEO_RENDERERS = {
    "channelRenderer": "channelId",
    "playlistRenderer": "playlistId",
    "radioRenderer": "playlistId",
}


def _extract_item(entry: dict[str, Any]) -> RawItem | None:
    video = _extract_video_item(entry)
    if video is not None:
        return video
    for renderer_key, id_key in _NON_VIDEO_RENDERERS.items():
        renderer = entry.get(renderer_key)
        if not isinstance(renderer, dict):
            continue
        fields = _as_dict(renderer)
        item_id = fields.get(id_key)
        if not isinstance(item_id, str) or not item_id.strip():
            return None
        return RawItem(
            kind=RawItemKind.NON_VIDEO,
            id=item_id.strip(),
            title=_text_of(fields.get("title")),
        )
    return None


def _extract_video_item(entry: dict[str, Any]) -> RawItem | None:
    renderer = entry.get("videoRenderer")
    if not isinstance(renderer, dict):
        return None
    video = _as_dict(renderer)
    video_id = video.get("videoId")
    if not isinstance(video_id, str) or not video_id.strip():
        return None

    thumbnails = _as_list(_dig(video, "thumbnail", "thumbnails"))
    thumbnail_url = _coerce_text(_as_dict(thumbnails[0]).get("url")) if thumbnails else ""

    return RawItem(
        kind=RawItemKind.VIDEO,
        id=video_id.strip(),
        title=_text_of(video.get("title")),
        thumbnail_url=thumbnail_url,
        channel_title=_first_run_text(video.get("ownerText")),
        published_label=_text_of(video.get("publishedTimeText")),
        description=_joined_runs_text(video.get("descriptionSnippet")),
        duration_label=_text_of(video.get("lengthText")),
    )


def _extract_continuation_token(section: dict[str, Any]) -> str | None:
    token = _dig(
        section,
        "continuationItemRenderer",
        "continuationEndpoint",
        "continuationCommand",
        "token",
    )
    if isinstance(token, str) and token:
        return token
    return None


def _text_of(raw_value: Any) -> str:
    # Text nodes come either as {"simpleText": ...} or {"runs": [{"text": ...}]}.
    node = _as_dict(raw_value)
    simple_text = node.get("simpleText")
    if isinstance(simple_text, str):
        return simple_text
    return _joined_runs_text(node)


def _first_run_text(raw_value: Any) -> str:
    runs = _as_list(_as_dict(raw_value).get("runs"))
    if not runs:
        return ""
    return _coerce_text(_as_dict(runs[0]).get("text"))


def _joined_runs_text(raw_value: Any) -> str:
    runs = _as_list(_as_dict(raw_value).get("runs"))
    return "".join(_coerce_text(_as_dict(run).get("text")) for run in runs)


def _coerce_text(raw_value: Any) -> str:
    if isinstance(raw_value, str):
        return raw_value
    return ""


def _dig(value: Any, *path: str) -> Any:
    current = value
    for key in path:
        if not isinstance(current, dict):
            return None
        current = cast(dict[str, Any], current).get(key)
    return current


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        raw_dict = cast(dict[object, object], value)
        converted: dict[str, Any] = {}
        for key, item in raw_dict.items():
            if isinstance(key, str):
                converted[key] = item
        return converted
    return {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return list(cast(list[Any], value))
    return []
