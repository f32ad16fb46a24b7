from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


PRIORITY_CHOICES = [
    ("low", "Low"),
    ("medium", "Medium"),
    ("high", "High"),
    ("urgent", "Urgent"),
]
PRIORITY_RANK = {"low": 0, "medium": 1, "high": 2, "urgent": 3}

ACTIVE_FLAG_STATUSES = ("pending", "under_review")
OPEN_DISPUTE_STATUSES = ("open", "under_review", "mediation")


class ContentFlag(models.Model):
    CONTENT_TYPE_CHOICES = [
        ("message", "Message"),
        ("project", "Project"),
        ("profile", "Profile"),
        ("course", "Course"),
        ("comment", "Comment"),
        ("mentorship_session", "Mentorship Session"),
    ]
    REASON_CHOICES = [
        ("spam", "Spam"),
        ("harassment", "Harassment"),
        ("inappropriate_content", "Inappropriate Content"),
        ("hate_speech", "Hate Speech"),
        ("violence", "Violence"),
        ("copyright_violation", "Copyright Violation"),
        ("fraud", "Fraud"),
        ("impersonation", "Impersonation"),
        ("other", "Other"),
    ]
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("under_review", "Under Review"),
        ("resolved", "Resolved"),
        ("dismissed", "Dismissed"),
    ]
    RESOLUTION_CHOICES = [
        ("no_action", "No Action"),
        ("warning_issued", "Warning Issued"),
        ("content_removed", "Content Removed"),
        ("user_suspended", "User Suspended"),
        ("user_banned", "User Banned"),
        ("content_edited", "Content Edited"),
        ("escalated", "Escalated"),
    ]

    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="reported_flags"
    )
    content_type = models.CharField(max_length=30, choices=CONTENT_TYPE_CHOICES)
    content_id = models.CharField(max_length=64)
    target_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="received_flags"
    )
    reason = models.CharField(max_length=30, choices=REASON_CHOICES)
    description = models.TextField(max_length=1000)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium")
    severity = models.PositiveSmallIntegerField(
        default=5, validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    moderator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="moderated_flags",
    )
    moderator_notes = models.TextField(max_length=2000, blank=True)
    resolution = models.CharField(max_length=20, choices=RESOLUTION_CHOICES, blank=True)
    resolution_date = models.DateTimeField(null=True, blank=True)
    evidence = models.JSONField(default=list, blank=True)
    auto_detected = models.BooleanField(default=False)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "priority"], name="flag_status_priority_idx"),
            models.Index(fields=["content_type", "content_id"], name="flag_content_idx"),
            models.Index(fields=["target_user", "status"], name="flag_target_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reporter", "content_type", "content_id"],
                condition=Q(status__in=ACTIVE_FLAG_STATUSES),
                name="unique_active_flag_per_reporter_content",
            ),
        ]

    def __str__(self) -> str:
        return f"Flag {self.id} ({self.reason}) on {self.content_type}:{self.content_id}"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_FLAG_STATUSES

    def apply_reason_priority(self):
        if self.reason in {"hate_speech", "violence", "harassment"}:
            self.priority = "high"
            self.severity = 8
        elif self.reason in {"spam", "fraud"}:
            self.priority = "medium"
            self.severity = 6


def generate_dispute_id(now=None) -> str:
    now = now or timezone.now()
    sequence = Dispute.objects.count() + 1
    return f"DSP-{int(now.timestamp() * 1000)}-{sequence:04d}"


class Dispute(models.Model):
    TYPE_CHOICES = [
        ("project_payment", "Project Payment"),
        ("project_quality", "Project Quality"),
        ("project_deadline", "Project Deadline"),
        ("mentorship_session", "Mentorship Session"),
        ("course_content", "Course Content"),
        ("user_behavior", "User Behavior"),
        ("platform_issue", "Platform Issue"),
        ("other", "Other"),
    ]
    STATUS_CHOICES = [
        ("open", "Open"),
        ("under_review", "Under Review"),
        ("mediation", "Mediation"),
        ("resolved", "Resolved"),
        ("closed", "Closed"),
    ]
    ENTITY_TYPE_CHOICES = [
        ("project", "Project"),
        ("mentorship", "Mentorship"),
        ("course", "Course"),
        ("message", "Message"),
        ("user", "User"),
    ]
    RESOLUTION_TYPE_CHOICES = [
        ("favor_initiator", "Favor Initiator"),
        ("favor_respondent", "Favor Respondent"),
        ("compromise", "Compromise"),
        ("no_fault", "No Fault"),
        ("escalated", "Escalated"),
        ("withdrawn", "Withdrawn"),
    ]

    dispute_id = models.CharField(max_length=40, unique=True, editable=False)
    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="open")
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium")
    initiator = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="initiated_disputes"
    )
    respondent = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="responding_disputes"
    )
    mediator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="mediated_disputes",
    )
    related_entity_type = models.CharField(max_length=20, choices=ENTITY_TYPE_CHOICES)
    related_entity_id = models.CharField(max_length=64)
    title = models.CharField(max_length=200)
    description = models.TextField(max_length=2000)
    evidence = models.JSONField(default=list, blank=True)
    resolution_type = models.CharField(max_length=20, choices=RESOLUTION_TYPE_CHOICES, blank=True)
    resolution_description = models.TextField(blank=True)
    compensation_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    compensation_recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="dispute_compensations",
    )
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_disputes",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    response_deadline = models.DateTimeField(null=True, blank=True)
    mediation_deadline = models.DateTimeField(null=True, blank=True)
    resolution_deadline = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True, null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "priority"], name="dispute_status_priority_idx"),
            models.Index(fields=["type", "status"], name="dispute_type_status_idx"),
            models.Index(fields=["related_entity_type", "related_entity_id"], name="dispute_related_entity_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.dispute_id} ({self.status})"

    @classmethod
    def create_dispute(cls, *, now=None, **fields):
        """Create a dispute with its deadlines and the opening timeline entry."""
        now = now or timezone.now()
        dispute = cls(**fields)
        dispute.dispute_id = generate_dispute_id(now)
        dispute.response_deadline = now + timedelta(
            days=getattr(settings, "DISPUTE_RESPONSE_DAYS", 7)
        )
        dispute.mediation_deadline = now + timedelta(
            days=getattr(settings, "DISPUTE_MEDIATION_DAYS", 14)
        )
        dispute.resolution_deadline = now + timedelta(
            days=getattr(settings, "DISPUTE_RESOLUTION_DAYS", 30)
        )
        dispute.save()
        dispute.add_timeline_entry(
            "dispute_created",
            dispute.initiator_id,
            "Dispute was created",
            timestamp=now,
        )
        return dispute

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_DISPUTE_STATUSES

    def is_participant(self, user_id) -> bool:
        return str(user_id) in {
            str(self.initiator_id),
            str(self.respondent_id),
            str(self.mediator_id) if self.mediator_id else "",
        }

    def add_timeline_entry(self, action, performed_by_id, description, metadata=None, timestamp=None):
        return DisputeTimelineEntry.objects.create(
            dispute=self,
            action=action,
            performed_by_id=performed_by_id,
            description=description,
            metadata=metadata or {},
            timestamp=timestamp or timezone.now(),
        )


class DisputeTimelineEntry(models.Model):
    ACTION_CHOICES = [
        ("dispute_created", "Dispute Created"),
        ("response_submitted", "Response Submitted"),
        ("evidence_added", "Evidence Added"),
        ("mediator_assigned", "Mediator Assigned"),
        ("mediation_started", "Mediation Started"),
        ("resolution_proposed", "Resolution Proposed"),
        ("resolution_accepted", "Resolution Accepted"),
        ("resolution_rejected", "Resolution Rejected"),
        ("dispute_escalated", "Dispute Escalated"),
        ("dispute_resolved", "Dispute Resolved"),
        ("dispute_closed", "Dispute Closed"),
    ]

    dispute = models.ForeignKey(Dispute, on_delete=models.CASCADE, related_name="timeline")
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    description = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["timestamp", "id"]

    def __str__(self) -> str:
        return f"{self.action} on dispute {self.dispute_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Dispute timeline entries are append-only.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Dispute timeline entries are append-only.")


class DisputeCommunication(models.Model):
    dispute = models.ForeignKey(Dispute, on_delete=models.CASCADE, related_name="communications")
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="dispute_messages"
    )
    message = models.TextField(max_length=1000)
    is_private = models.BooleanField(default=False)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["timestamp", "id"]

    def __str__(self) -> str:
        return f"Message from {self.sender_id} on dispute {self.dispute_id}"


class DisputeActionItem(models.Model):
    dispute = models.ForeignKey(Dispute, on_delete=models.CASCADE, related_name="required_actions")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="dispute_action_items"
    )
    action = models.CharField(max_length=255)
    deadline = models.DateTimeField(null=True, blank=True)
    completed = models.BooleanField(default=False)

    class Meta:
        ordering = ["deadline", "id"]

    def __str__(self) -> str:
        return f"{self.action} for user {self.user_id} (dispute {self.dispute_id})"
