from errors import NotFoundError, atomic, data_access
from models import db, Notification


@data_access('Error creating notification')
def create_notification(user_id, message, type):
    with atomic():
        notification = Notification(user_id=user_id, message=message, type=type)
        db.session.add(notification)
        db.session.flush()
    return notification


@data_access('Error fetching unread notifications')
def get_unread_notifications(user_id):
    return (Notification.query
            .filter_by(user_id=user_id, is_read=False)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all())


@data_access('Error marking notification as read')
def mark_notification_as_read(notification_id, user_id=None):
    with atomic():
        notification = db.session.get(Notification, notification_id)
        # Someone else's notification looks the same as a missing one
        if notification is None or (user_id is not None and notification.user_id != user_id):
            raise NotFoundError(f'Notification {notification_id} not found')
        notification.is_read = True
    return notification
