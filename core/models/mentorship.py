from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q


OPEN_MENTORSHIP_STATUSES = ("pending", "active")


class Mentorship(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("active", "Active"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]

    mentor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="mentorships_as_mentor"
    )
    mentee = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="mentorships_as_mentee"
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    focus_areas = models.JSONField(default=list)
    learning_goals = models.TextField(max_length=1000, blank=True)
    request_message = models.TextField(max_length=500, blank=True)
    session_count = models.PositiveIntegerField(default=0)
    requested_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["mentor", "status"], name="mentorship_mentor_status_idx"),
            models.Index(fields=["mentee", "status"], name="mentorship_mentee_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["mentor", "mentee"],
                condition=Q(status__in=OPEN_MENTORSHIP_STATUSES),
                name="unique_open_mentorship_per_pair",
            ),
        ]

    def __str__(self) -> str:
        return f"Mentorship {self.id} ({self.mentee_id} -> {self.mentor_id}, {self.status})"

    def role_of(self, user_id):
        if str(self.mentor_id) == str(user_id):
            return "mentor"
        if str(self.mentee_id) == str(user_id):
            return "mentee"
        return None


class MentorshipSession(models.Model):
    STATUS_CHOICES = [
        ("scheduled", "Scheduled"),
        ("completed", "Completed"),
        ("cancelled", "Cancelled"),
    ]

    mentorship = models.ForeignKey(
        Mentorship, on_delete=models.CASCADE, related_name="sessions"
    )
    scheduled_date = models.DateTimeField()
    duration = models.PositiveSmallIntegerField(
        default=60, validators=[MinValueValidator(15), MaxValueValidator(180)]
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="scheduled")
    notes = models.TextField(max_length=1000, blank=True)
    mentor_feedback = models.TextField(max_length=500, blank=True)
    mentee_feedback = models.TextField(max_length=500, blank=True)
    mentor_rating = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    mentee_rating = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, null=True, blank=True)

    class Meta:
        ordering = ["-scheduled_date", "-id"]

    def __str__(self) -> str:
        return f"Session {self.id} of mentorship {self.mentorship_id}"
