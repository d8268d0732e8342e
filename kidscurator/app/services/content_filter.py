from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from kidscurator.app.services.durations import format_duration, parse_duration_seconds
from kidscurator.app.services.search_response_parser import RawItem, RawItemKind

THUMBNAIL_HOST = "i.ytimg.com"
WATCH_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"
DEFAULT_CATEGORY = "general"
UNKNOWN_CHANNEL_TITLE = "Unknown"
UNKNOWN_PUBLISHED_LABEL = "Recently"

KIDS_KEYWORDS: frozenset[str] = frozenset(
    {
        # English
        "kids",
        "children",
        "educational",
        "learning",
        "fun",
        "cartoon",
        "animation",
        "story",
        "tales",
        "nursery",
        "rhyme",
        "song",
        "craft",
        "art",
        "draw",
        "animal",
        "nature",
        "science",
        "math",
        "abc",
        "numbers",
        "colors",
        "shapes",
        "family",
        "friendly",
        "toddler",
        "preschool",
        "kindergarten",
        # Arabic
        "أطفال",
        "للأطفال",
        "رسوم",
        "متحركة",
        "كرتون",
        "تعليمي",
        "قصص",
        "أغاني",
        "حكايات",
        "تلوين",
        "حيوانات",
    }
)

BLOCKED_KEYWORDS: frozenset[str] = frozenset(
    {
        "horror",
        "scary",
        "gore",
        "violence",
        "violent",
        "blood",
        "killer",
        "murder",
        "18+",
        "nsfw",
        "explicit",
        "creepypasta",
        "jumpscare",
    }
)


def _lowered(keywords: Iterable[str]) -> frozenset[str]:
    return frozenset(keyword.lower() for keyword in keywords if keyword.strip())


@dataclass(frozen=True)
class FilterPolicy:
    """
    Named duration and keyword thresholds applied to raw search items.

    Bounds are inclusive. An empty `required_keywords` set means there is no
    positive keyword requirement; any `blocked_keywords` hit disqualifies.
    """

    name: str
    min_duration_seconds: int
    max_duration_seconds: int
    required_keywords: frozenset[str] = frozenset()
    blocked_keywords: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.min_duration_seconds < 0:
            raise ValueError("min_duration_seconds must not be negative.")
        if self.max_duration_seconds < self.min_duration_seconds:
            raise ValueError("max_duration_seconds must be >= min_duration_seconds.")
        object.__setattr__(self, "required_keywords", _lowered(self.required_keywords))
        object.__setattr__(self, "blocked_keywords", _lowered(self.blocked_keywords))


GENERAL_POLICY = FilterPolicy(
    name="general",
    min_duration_seconds=120,
    max_duration_seconds=1_200,
    required_keywords=KIDS_KEYWORDS,
    blocked_keywords=BLOCKED_KEYWORDS,
)
GENERAL_WIDE_POLICY = FilterPolicy(
    name="general_wide",
    min_duration_seconds=60,
    max_duration_seconds=1_800,
    required_keywords=KIDS_KEYWORDS,
    blocked_keywords=BLOCKED_KEYWORDS,
)
CHANNEL_POLICY = FilterPolicy(
    name="channel",
    min_duration_seconds=120,
    max_duration_seconds=1_200,
    blocked_keywords=BLOCKED_KEYWORDS,
)

FILTER_POLICIES: Mapping[str, FilterPolicy] = {
    policy.name: policy for policy in (GENERAL_POLICY, GENERAL_WIDE_POLICY, CHANNEL_POLICY)
}


def get_filter_policy(name: str) -> FilterPolicy:
    normalized = name.strip().lower()
    policy = FILTER_POLICIES.get(normalized)
    if policy is None:
        known = ", ".join(sorted(FILTER_POLICIES))
        raise KeyError(f"Unknown filter policy {name!r}; known policies: {known}.")
    return policy


@dataclass(frozen=True)
class CuratedVideo:
    id: str
    title: str
    thumbnail_url: str
    channel_title: str
    published_at: str
    description: str
    category: str
    video_url: str
    duration_seconds: int

    @property
    def duration(self) -> str:
        return format_duration(self.duration_seconds)


@dataclass(frozen=True)
class ChannelNameMatcher:
    """
    Loose channel-name comparison for channel-scoped lookups.

    Names are case-folded, trimmed and stripped of everything that is not a
    word character or whitespace. Two names match when their normalized forms
    are equal, or when the normalized target is longer than
    `min_containment_length` and one non-blank name contains the other. With
    `ascii_word_chars` only ASCII letters, digits and underscores count as word
    characters, so two non-Latin names that both normalize to nothing compare
    equal.
    """

    min_containment_length: int = 5
    ascii_word_chars: bool = True

    def normalize(self, name: str) -> str:
        flags = re.ASCII if self.ascii_word_chars else 0
        return re.sub(r"[^\w\s]", "", name.lower().strip(), flags=flags)

    def matches(self, item_channel: str, target_channel: str) -> bool:
        normalized_item = self.normalize(item_channel)
        normalized_target = self.normalize(target_channel)
        if normalized_item == normalized_target:
            return True
        if not normalized_item.strip() or not normalized_target.strip():
            return False
        if len(normalized_target) <= self.min_containment_length:
            return False
        return normalized_target in normalized_item or normalized_item in normalized_target


def passes_duration_gate(duration_seconds: int, policy: FilterPolicy) -> bool:
    return policy.min_duration_seconds <= duration_seconds <= policy.max_duration_seconds


def combined_text(item: RawItem) -> str:
    return f"{item.title} {item.description} {item.channel_title}".lower()


def passes_keyword_gate(item: RawItem, policy: FilterPolicy) -> bool:
    # Plain substring matching; "art" also matches "party".
    text = combined_text(item)
    if any(keyword in text for keyword in policy.blocked_keywords):
        return False
    if not policy.required_keywords:
        return True
    return any(keyword in text for keyword in policy.required_keywords)


def curate_items(items: Iterable[RawItem], policy: FilterPolicy) -> list[CuratedVideo]:
    """
    Apply the duration gate, then the keyword gate, keeping document order.
    """
    curated: list[CuratedVideo] = []
    for item in items:
        if item.kind is not RawItemKind.VIDEO or not item.id:
            continue
        duration_seconds = parse_duration_seconds(item.duration_label)
        if not passes_duration_gate(duration_seconds, policy):
            continue
        if not passes_keyword_gate(item, policy):
            continue
        curated.append(to_curated_video(item, duration_seconds=duration_seconds))
    return curated


def filter_channel_items(
    items: Iterable[RawItem],
    *,
    channel_name: str,
    matcher: ChannelNameMatcher,
) -> list[RawItem]:
    return [item for item in items if matcher.matches(item.channel_title, channel_name)]


def to_curated_video(item: RawItem, *, duration_seconds: int) -> CuratedVideo:
    return CuratedVideo(
        id=item.id,
        title=item.title,
        thumbnail_url=item.thumbnail_url or default_thumbnail_url(item.id),
        channel_title=item.channel_title or UNKNOWN_CHANNEL_TITLE,
        published_at=item.published_label or UNKNOWN_PUBLISHED_LABEL,
        description=item.description,
        category=DEFAULT_CATEGORY,
        video_url=WATCH_URL_TEMPLATE.format(video_id=item.id),
        duration_seconds=duration_seconds,
    )


def default_thumbnail_url(video_id: str) -> str:
    return f"https://{THUMBNAIL_HOST}/vi/{video_id}/hqdefault.jpg"
