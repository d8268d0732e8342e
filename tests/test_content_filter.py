from __future__ import annotations

import pytest

from kidscurator.app.services.content_filter import (
    CHANNEL_POLICY,
    FILTER_POLICIES,
    GENERAL_POLICY,
    ChannelNameMatcher,
    FilterPolicy,
    curate_items,
    filter_channel_items,
    get_filter_policy,
    passes_keyword_gate,
)
from kidscurator.app.services.search_response_parser import RawItem, RawItemKind


def _item(
    video_id: str = "vid_1",
    *,
    title: str = "fun animal cartoon for kids",
    duration: str = "5:00",
    channel: str = "Happy Kids TV",
    description: str = "",
    kind: RawItemKind = RawItemKind.VIDEO,
    thumbnail: str = "",
    published: str = "",
) -> RawItem:
    return RawItem(
        kind=kind,
        id=video_id,
        title=title,
        thumbnail_url=thumbnail,
        channel_title=channel,
        published_label=published,
        description=description,
        duration_label=duration,
    )


def test_kid_friendly_item_is_curated_with_defaults() -> None:
    curated = curate_items([_item("abc123", channel="")], GENERAL_POLICY)

    assert len(curated) == 1
    video = curated[0]
    assert video.id == "abc123"
    assert video.duration == "5:00"
    assert video.duration_seconds == 300
    assert video.category == "general"
    assert video.channel_title == "Unknown"
    assert video.published_at == "Recently"
    assert video.description == ""
    assert video.thumbnail_url == "https://i.ytimg.com/vi/abc123/hqdefault.jpg"
    assert video.video_url == "https://www.youtube.com/watch?v=abc123"


def test_supplied_thumbnail_and_published_label_are_kept() -> None:
    video = curate_items(
        [_item(thumbnail="https://img/x.jpg", published="3 weeks ago")],
        GENERAL_POLICY,
    )[0]

    assert video.thumbnail_url == "https://img/x.jpg"
    assert video.published_at == "3 weeks ago"


def test_short_item_is_rejected_regardless_of_keywords() -> None:
    policy = FilterPolicy(name="strict", min_duration_seconds=120, max_duration_seconds=1_200)

    assert curate_items([_item(duration="0:45")], policy) == []


@pytest.mark.parametrize(
    ("duration", "kept"),
    [
        ("1:59", False),
        ("2:00", True),
        ("20:00", True),
        ("20:01", False),
        ("", False),
    ],
)
def test_duration_bounds_are_inclusive(duration: str, kept: bool) -> None:
    assert bool(curate_items([_item(duration=duration)], GENERAL_POLICY)) is kept


def test_blocked_keyword_anywhere_disqualifies() -> None:
    items = [
        _item("in_title", title="SCARY cartoon for kids"),
        _item("in_description", description="a horror story for children"),
        _item("in_channel", channel="Killer Clips Kids"),
        _item("clean"),
    ]

    curated = curate_items(items, GENERAL_POLICY)

    assert [video.id for video in curated] == ["clean"]


def test_required_keywords_must_match_when_present() -> None:
    unrelated = _item(title="Stock market update", channel="Finance Daily")

    assert curate_items([unrelated], GENERAL_POLICY) == []
    assert len(curate_items([unrelated], CHANNEL_POLICY)) == 1


def test_keyword_gate_is_plain_substring_match() -> None:
    # "art" is a required keyword, so "party" satisfies it.
    assert passes_keyword_gate(_item(title="Birthday party", channel="Home"), GENERAL_POLICY)


def test_arabic_keywords_match() -> None:
    item = _item(title="حكايات قبل النوم", channel="قناة")

    assert len(curate_items([item], GENERAL_POLICY)) == 1


def test_filter_keeps_original_order_and_skips_non_video() -> None:
    items = [
        _item("b"),
        _item("skip", kind=RawItemKind.NON_VIDEO),
        _item("a"),
        _item("short", duration="0:30"),
        _item("c"),
    ]

    assert [video.id for video in curate_items(items, GENERAL_POLICY)] == ["b", "a", "c"]


def test_policy_keywords_are_case_folded() -> None:
    policy = FilterPolicy(
        name="custom",
        min_duration_seconds=0,
        max_duration_seconds=10_000,
        required_keywords=frozenset({"Dinosaur"}),
        blocked_keywords=frozenset({"T-REX ATTACK"}),
    )

    assert passes_keyword_gate(_item(title="dinosaur songs"), policy)
    assert not passes_keyword_gate(_item(title="Dinosaur t-rex attack"), policy)


def test_builtin_policies_hold_lowercase_keywords() -> None:
    for policy in (GENERAL_POLICY, CHANNEL_POLICY):
        assert policy.blocked_keywords
        assert all(keyword == keyword.lower() for keyword in policy.blocked_keywords)
    assert "kids" in GENERAL_POLICY.required_keywords
    assert not CHANNEL_POLICY.required_keywords


def test_invalid_policy_bounds_raise() -> None:
    with pytest.raises(ValueError):
        FilterPolicy(name="broken", min_duration_seconds=100, max_duration_seconds=10)


def test_named_policies_are_registered() -> None:
    assert set(FILTER_POLICIES) == {"general", "general_wide", "channel"}
    assert get_filter_policy(" General ") is GENERAL_POLICY
    wide = get_filter_policy("general_wide")
    assert (wide.min_duration_seconds, wide.max_duration_seconds) == (60, 1_800)
    with pytest.raises(KeyError):
        get_filter_policy("unknown")


@pytest.mark.parametrize(
    ("item_channel", "target", "expected"),
    [
        ("Super Simple Songs", "super simple songs", True),
        ("Super Simple Songs!", "Super Simple Songs", True),
        ("Super Simple Songs - Kids Songs", "Super Simple Songs", True),
        ("Cocomelon", "Cocomelon - Nursery Rhymes", True),
        ("Kids TV Land", "Kids", False),
        ("Bluey", "Blue", False),
        ("", "Cocomelon", False),
        ("Unrelated Channel", "Cocomelon", False),
    ],
)
def test_channel_name_matcher(item_channel: str, target: str, expected: bool) -> None:
    assert ChannelNameMatcher().matches(item_channel, target) is expected


def test_channel_name_matcher_ascii_mode_relies_on_exact_match_for_arabic() -> None:
    ascii_matcher = ChannelNameMatcher()
    unicode_matcher = ChannelNameMatcher(ascii_word_chars=False)

    assert ascii_matcher.matches("كرتون الأطفال", "كرتون الأطفال")
    assert not ascii_matcher.matches("قناة كرتون الأطفال", "كرتون الأطفال")
    assert unicode_matcher.matches("قناة كرتون الأطفال", "كرتون الأطفال")


def test_channel_names_that_normalize_to_nothing_compare_equal_in_ascii_mode() -> None:
    assert ChannelNameMatcher().normalize("كرتون") == ""
    assert ChannelNameMatcher().matches("كرتون", "سبيستون")
    assert not ChannelNameMatcher(ascii_word_chars=False).matches("كرتون", "سبيستون")


def test_channel_name_matcher_threshold_is_configurable() -> None:
    assert ChannelNameMatcher(min_containment_length=3).matches("Kids TV Land", "Kids")


def test_filter_channel_items_uses_matcher() -> None:
    items = [_item("a", channel="Cocomelon"), _item("b", channel="Other")]

    kept = filter_channel_items(items, channel_name="cocomelon", matcher=ChannelNameMatcher())

    assert [item.id for item in kept] == ["a"]
