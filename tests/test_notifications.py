import pytest

from smb_connect.core.errors import NotAuthenticated, NotificationNotFound
from smb_connect.modules.notifications.schemas import (
    ConnectionRequestNotification, GenericNotification, PostLikeNotification, parse_notification
)
from smb_connect.modules.notifications.service import NotificationFeed


def _notification(n: int, member_id: str = "m-a", is_read: bool = False, type_: str = "post_like", link="/posts/1") -> dict:
    return {
        "id": f"n-{n}",
        "member_id": member_id,
        "type": type_,
        "title": f"Notification {n}",
        "message": None,
        "link": link,
        "is_read": is_read,
        "created_at": f"2024-03-{n:02d}T08:00:00+00:00",
    }


@pytest.fixture
def feed(supabase) -> NotificationFeed:
    supabase.seed(
        "notifications",
        _notification(1),
        _notification(2, is_read=True),
        _notification(3, type_="connection_request", link=None),
        _notification(4, member_id="m-other"),
    )
    return NotificationFeed(supabase)


def test_list_is_newest_first_and_scoped_to_member(feed) -> None:
    notifications = feed.list("m-a")

    assert [n.id for n in notifications] == ["n-3", "n-2", "n-1"]
    assert isinstance(notifications[0], ConnectionRequestNotification)
    assert notifications[0].link == "/connections"
    assert isinstance(notifications[2], PostLikeNotification)


def test_list_pages_and_filters_unread(feed) -> None:
    assert [n.id for n in feed.list("m-a", limit=1, offset=1)] == ["n-2"]
    assert [n.id for n in feed.list("m-a", unread_only=True)] == ["n-3", "n-1"]


def test_mark_all_read_leaves_nothing_unread(feed) -> None:
    assert feed.get_unread_count("m-a") == 2

    assert feed.mark_all_read("m-a") == 2

    assert all(n.is_read for n in feed.list("m-a"))
    assert feed.get_unread_count("m-a") == 0
    assert feed.get_unread_count("m-other") == 1


def test_mark_read_is_idempotent(feed) -> None:
    assert feed.mark_read("n-1", "m-a") is True
    assert feed.mark_read("n-1", "m-a") is True

    assert feed.get_unread_count("m-a") == 1


def test_mark_read_is_scoped_to_owner(feed) -> None:
    with pytest.raises(NotificationNotFound):
        feed.mark_read("n-4", "m-a")
    assert feed.get_unread_count("m-other") == 1


def test_mark_without_member_is_refused(supabase, feed) -> None:
    with pytest.raises(NotAuthenticated):
        feed.mark_read("n-1", None)
    with pytest.raises(NotAuthenticated):
        feed.mark_all_read(None)
    assert ("update", "notifications") not in supabase.query_log


def test_unknown_or_malformed_types_fall_back_to_generic() -> None:
    unknown = parse_notification(_notification(5, type_="event_reminder", link=None))
    missing_link = parse_notification(_notification(6, type_="post_comment", link=None))

    assert isinstance(unknown, GenericNotification)
    assert unknown.type == "event_reminder"
    assert isinstance(missing_link, GenericNotification)
    assert missing_link.type == "post_comment"


def test_null_read_flag_and_timestamp_parse_as_unread() -> None:
    row = _notification(7, type_="connection_accepted", link=None)
    row.update(is_read=None, created_at=None)
    typed = parse_notification(row)

    broken = _notification(8, type_="post_like", link=None)
    broken.update(is_read=None, created_at=None)
    fallback = parse_notification(broken)

    assert typed.is_read is False
    assert typed.created_at is None
    assert typed.link == "/connections"
    assert isinstance(fallback, GenericNotification)
    assert fallback.is_read is False


def test_null_read_flag_counts_as_unread(supabase) -> None:
    row = _notification(9)
    row["is_read"] = None
    supabase.seed("notifications", row, _notification(10, is_read=True))
    feed = NotificationFeed(supabase)

    assert feed.get_unread_count("m-a") == 1
    assert [n.id for n in feed.list("m-a", unread_only=True)] == ["n-9"]
    assert feed.mark_all_read("m-a") == 1
    assert feed.get_unread_count("m-a") == 0
