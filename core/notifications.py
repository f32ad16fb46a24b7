import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .models import Notification

logger = logging.getLogger(__name__)


class NotificationSink:
    """Writes in-app notifications. Delivery is best effort and never raises."""

    def create_notification(
        self,
        user_id,
        type,
        title,
        message,
        data=None,
        action_url=None,
        priority="medium",
    ):
        try:
            ttl_days = getattr(settings, "NOTIFICATION_TTL_DAYS", 30)
            with transaction.atomic():
                return Notification.objects.create(
                    user_id=user_id,
                    type=type,
                    title=title[:200],
                    message=message[:1000],
                    data=_json_safe(data or {}),
                    action_url=action_url or "",
                    priority=priority,
                    expires_at=timezone.now() + timedelta(days=ttl_days),
                )
        except Exception:
            logger.exception("Failed to create %s notification for user %s", type, user_id)
            return None


def _json_safe(value):
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def get_user_notifications(user, *, unread_only=False, limit=50):
    queryset = Notification.objects.filter(user=user).exclude(expires_at__lt=timezone.now())
    if unread_only:
        queryset = queryset.filter(is_read=False)
    return queryset.order_by("-created_at", "-id")[:limit]


def unread_count(user) -> int:
    return (
        Notification.objects.filter(user=user, is_read=False)
        .exclude(expires_at__lt=timezone.now())
        .count()
    )


def mark_notifications_read(user, notification_ids=None) -> int:
    queryset = Notification.objects.filter(user=user, is_read=False)
    if notification_ids:
        queryset = queryset.filter(id__in=notification_ids)
    return queryset.update(is_read=True)
