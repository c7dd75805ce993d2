from datetime import timedelta

import pytest

from fakes import FIXED_NOW
from services.errors import NotFoundError, ValidationError
from services.store import ChannelStore


def test_start_and_end_stream() -> None:
    store = ChannelStore()
    session = store.start_stream("c1", now=FIXED_NOW)
    assert store.get_session("c1") is session
    assert session.last_segment_start == FIXED_NOW
    assert store.session_count() == 1

    ended = store.end_stream("c1", now=FIXED_NOW + timedelta(hours=1))
    assert ended.end_time == FIXED_NOW + timedelta(hours=1)
    assert ended.is_live is False


def test_unknown_channel_is_not_found() -> None:
    store = ChannelStore()
    with pytest.raises(NotFoundError):
        store.get_session("missing")
    with pytest.raises(NotFoundError):
        store.end_stream("missing")


def test_create_clip_appends_in_order_and_links_session() -> None:
    store = ChannelStore()
    store.start_stream("c1", now=FIXED_NOW)
    first = store.create_clip(
        "c1", category="A", title="a", start_time=FIXED_NOW, end_time=FIXED_NOW + timedelta(seconds=5)
    )
    second = store.create_clip(
        "c1", category="B", title="b", start_time=FIXED_NOW, end_time=FIXED_NOW + timedelta(seconds=9)
    )
    assert store.list_clips("c1") == [first, second]
    assert store.get_session("c1").clip_ids == [first.id, second.id]
    assert store.list_clips("other") == []


def test_create_clip_without_session_is_allowed() -> None:
    store = ChannelStore()
    clip = store.create_clip(
        "solo", category="A", title="a", start_time=FIXED_NOW, end_time=FIXED_NOW + timedelta(seconds=1)
    )
    assert store.list_clips("solo") == [clip]


def test_create_clip_rejects_inverted_bounds() -> None:
    store = ChannelStore()
    with pytest.raises(ValidationError):
        store.create_clip("c1", category="A", title="a", start_time=FIXED_NOW, end_time=FIXED_NOW)
    assert store.list_clips("c1") == []


def test_list_clips_returns_a_copy() -> None:
    store = ChannelStore()
    store.create_clip("c1", category="A", title="a", start_time=FIXED_NOW, end_time=FIXED_NOW + timedelta(seconds=1))
    store.list_clips("c1").clear()
    assert len(store.list_clips("c1")) == 1


def test_change_category_closes_segment_and_opens_next() -> None:
    store = ChannelStore()
    store.start_stream("c1", now=FIXED_NOW)
    changed_at = FIXED_NOW + timedelta(minutes=10)

    clip = store.change_category("c1", "Valorant", old_category="Just Chatting", now=changed_at)

    assert clip is not None
    assert clip.category == "Just Chatting"
    assert clip.title == "Just Chatting"
    assert clip.start_time == FIXED_NOW
    assert clip.end_time == changed_at
    session = store.get_session("c1")
    assert session.current_category == "Valorant"
    assert session.last_segment_start == changed_at

    later = changed_at + timedelta(minutes=5)
    second = store.change_category("c1", "Chess", now=later)
    assert second is not None
    assert second.category == "Valorant"
    assert second.start_time == changed_at


def test_change_category_unknown_channel_is_ignored() -> None:
    store = ChannelStore()
    assert store.change_category("ghost", "Chess", now=FIXED_NOW) is None
    assert store.list_clips("ghost") == []


def test_change_category_at_segment_start_creates_no_clip() -> None:
    store = ChannelStore()
    store.start_stream("c1", now=FIXED_NOW)
    assert store.change_category("c1", "Chess", now=FIXED_NOW) is None
    assert store.get_session("c1").current_category == "Chess"


def test_record_segment_moves_segment_start() -> None:
    store = ChannelStore()
    store.start_stream("c1", now=FIXED_NOW)
    end = FIXED_NOW + timedelta(minutes=2)
    clip = store.record_segment("c1", "IRL", FIXED_NOW, end)
    assert clip.title == "IRL"
    assert store.get_session("c1").last_segment_start == end
