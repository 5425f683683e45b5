import pytest

from errors import NotFoundError
from notifications import create_notification, get_unread_notifications, mark_notification_as_read


def test_unread_notifications_for_user_only(user, collector):
    create_notification(user.id, 'Hello', 'system')
    create_notification(collector.id, 'Not yours', 'system')

    unread = get_unread_notifications(user.id)

    assert [n.message for n in unread] == ['Hello']
    assert unread[0].is_read is False


def test_mark_notification_as_read(user):
    first = create_notification(user.id, 'First', 'reward')
    create_notification(user.id, 'Second', 'reward')

    mark_notification_as_read(first.id)

    assert [n.message for n in get_unread_notifications(user.id)] == ['Second']


def test_mark_unknown_notification(app):
    with pytest.raises(NotFoundError):
        mark_notification_as_read(77)


def test_mark_someone_elses_notification(user, collector):
    theirs = create_notification(collector.id, 'Not yours', 'system')

    with pytest.raises(NotFoundError):
        mark_notification_as_read(theirs.id, user.id)

    assert [n.message for n in get_unread_notifications(collector.id)] == ['Not yours']
