from django.conf import settings
from django.db import models

from .moderation import PRIORITY_CHOICES


class Notification(models.Model):
    TYPE_CHOICES = [
        ("project_application", "Project Application"),
        ("application_status", "Application Status"),
        ("project_assigned", "Project Assigned"),
        ("project_completed", "Project Completed"),
        ("message_received", "Message Received"),
        ("mentorship_request", "Mentorship Request"),
        ("mentorship_accepted", "Mentorship Accepted"),
        ("session_scheduled", "Session Scheduled"),
        ("course_completed", "Course Completed"),
        ("certificate_issued", "Certificate Issued"),
        ("deadline_reminder", "Deadline Reminder"),
        ("system_announcement", "System Announcement"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications"
    )
    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.TextField(max_length=1000)
    data = models.JSONField(default=dict, blank=True)
    action_url = models.CharField(max_length=500, blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium")
    is_read = models.BooleanField(default=False)
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "is_read"], name="notification_user_read_idx"),
        ]

    def __str__(self) -> str:
        return f"Notification {self.id} for user {self.user_id}"
