import django.core.validators
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


PRIORITY_CHOICES = [("low", "Low"), ("medium", "Medium"), ("high", "High"), ("urgent", "Urgent")]


def user_fk(related_name, on_delete=models.deletion.PROTECT, **kwargs):
    return models.ForeignKey(
        on_delete=on_delete,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
        **kwargs,
    )


def id_field():
    return models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", id_field()),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("freelancer", "Freelancer"),
                            ("mentor", "Mentor"),
                            ("client", "Client"),
                            ("admin", "Admin"),
                        ],
                        max_length=20,
                    ),
                ),
                ("full_name", models.CharField(blank=True, max_length=100)),
                ("bio", models.TextField(blank=True, max_length=500)),
                ("location", models.CharField(blank=True, max_length=100)),
                ("is_verified", models.BooleanField(default=False)),
                ("is_banned", models.BooleanField(default=False)),
                ("ban_reason", models.CharField(blank=True, max_length=255)),
                ("suspension_end", models.DateTimeField(blank=True, null=True)),
                ("suspension_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE, to=settings.AUTH_USER_MODEL
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="MentorProfile",
            fields=[
                ("id", id_field()),
                ("expertise_areas", models.JSONField(blank=True, default=list)),
                ("years_experience", models.PositiveSmallIntegerField(default=0)),
                (
                    "mentoring_capacity",
                    models.PositiveSmallIntegerField(
                        default=5,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(20),
                        ],
                    ),
                ),
                ("session_rate", models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                (
                    "rating",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        max_digits=3,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(5),
                        ],
                    ),
                ),
                ("total_mentees", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE,
                        related_name="mentor_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="FreelancerProfile",
            fields=[
                ("id", id_field()),
                ("skills", models.JSONField(blank=True, default=list)),
                (
                    "experience_level",
                    models.CharField(
                        choices=[
                            ("beginner", "Beginner"),
                            ("intermediate", "Intermediate"),
                            ("advanced", "Advanced"),
                        ],
                        default="beginner",
                        max_length=20,
                    ),
                ),
                ("hourly_rate", models.DecimalField(decimal_places=2, default=0, max_digits=8)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=models.deletion.CASCADE,
                        related_name="freelancer_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="UserWarning",
            fields=[
                ("id", id_field()),
                ("reason", models.CharField(max_length=100)),
                ("type", models.CharField(default="content_violation", max_length=50)),
                ("issued_at", models.DateTimeField(auto_now_add=True)),
                ("user", user_fk("warnings", on_delete=models.deletion.CASCADE)),
            ],
            options={"ordering": ["-issued_at", "-id"]},
        ),
        migrations.CreateModel(
            name="Mentorship",
            fields=[
                ("id", id_field()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("focus_areas", models.JSONField(default=list)),
                ("learning_goals", models.TextField(blank=True, max_length=1000)),
                ("request_message", models.TextField(blank=True, max_length=500)),
                ("session_count", models.PositiveIntegerField(default=0)),
                ("requested_at", models.DateTimeField(auto_now_add=True)),
                ("responded_at", models.DateTimeField(blank=True, null=True)),
                ("start_date", models.DateTimeField(blank=True, null=True)),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                ("mentee", user_fk("mentorships_as_mentee")),
                ("mentor", user_fk("mentorships_as_mentor")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["mentor", "status"], name="mentorship_mentor_status_idx"),
                    models.Index(fields=["mentee", "status"], name="mentorship_mentee_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ("pending", "active"))),
                        fields=("mentor", "mentee"),
                        name="unique_open_mentorship_per_pair",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="MentorshipSession",
            fields=[
                ("id", id_field()),
                ("scheduled_date", models.DateTimeField()),
                (
                    "duration",
                    models.PositiveSmallIntegerField(
                        default=60,
                        validators=[
                            django.core.validators.MinValueValidator(15),
                            django.core.validators.MaxValueValidator(180),
                        ],
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("scheduled", "Scheduled"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="scheduled",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, max_length=1000)),
                ("mentor_feedback", models.TextField(blank=True, max_length=500)),
                ("mentee_feedback", models.TextField(blank=True, max_length=500)),
                (
                    "mentor_rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(5),
                        ],
                    ),
                ),
                (
                    "mentee_rating",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(5),
                        ],
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                (
                    "mentorship",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="sessions",
                        to="core.mentorship",
                    ),
                ),
            ],
            options={"ordering": ["-scheduled_date", "-id"]},
        ),
        migrations.CreateModel(
            name="ContentFlag",
            fields=[
                ("id", id_field()),
                (
                    "content_type",
                    models.CharField(
                        choices=[
                            ("message", "Message"),
                            ("project", "Project"),
                            ("profile", "Profile"),
                            ("course", "Course"),
                            ("comment", "Comment"),
                            ("mentorship_session", "Mentorship Session"),
                        ],
                        max_length=30,
                    ),
                ),
                ("content_id", models.CharField(max_length=64)),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("spam", "Spam"),
                            ("harassment", "Harassment"),
                            ("inappropriate_content", "Inappropriate Content"),
                            ("hate_speech", "Hate Speech"),
                            ("violence", "Violence"),
                            ("copyright_violation", "Copyright Violation"),
                            ("fraud", "Fraud"),
                            ("impersonation", "Impersonation"),
                            ("other", "Other"),
                        ],
                        max_length=30,
                    ),
                ),
                ("description", models.TextField(max_length=1000)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("under_review", "Under Review"),
                            ("resolved", "Resolved"),
                            ("dismissed", "Dismissed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("priority", models.CharField(choices=PRIORITY_CHOICES, default="medium", max_length=10)),
                (
                    "severity",
                    models.PositiveSmallIntegerField(
                        default=5,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(10),
                        ],
                    ),
                ),
                ("moderator_notes", models.TextField(blank=True, max_length=2000)),
                (
                    "resolution",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("no_action", "No Action"),
                            ("warning_issued", "Warning Issued"),
                            ("content_removed", "Content Removed"),
                            ("user_suspended", "User Suspended"),
                            ("user_banned", "User Banned"),
                            ("content_edited", "Content Edited"),
                            ("escalated", "Escalated"),
                        ],
                        max_length=20,
                    ),
                ),
                ("resolution_date", models.DateTimeField(blank=True, null=True)),
                ("evidence", models.JSONField(blank=True, default=list)),
                ("auto_detected", models.BooleanField(default=False)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                (
                    "moderator",
                    user_fk(
                        "moderated_flags",
                        on_delete=models.deletion.SET_NULL,
                        blank=True,
                        null=True,
                    ),
                ),
                ("reporter", user_fk("reported_flags")),
                ("target_user", user_fk("received_flags")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["status", "priority"], name="flag_status_priority_idx"),
                    models.Index(fields=["content_type", "content_id"], name="flag_content_idx"),
                    models.Index(fields=["target_user", "status"], name="flag_target_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ("pending", "under_review"))),
                        fields=("reporter", "content_type", "content_id"),
                        name="unique_active_flag_per_reporter_content",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Dispute",
            fields=[
                ("id", id_field()),
                ("dispute_id", models.CharField(editable=False, max_length=40, unique=True)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("project_payment", "Project Payment"),
                            ("project_quality", "Project Quality"),
                            ("project_deadline", "Project Deadline"),
                            ("mentorship_session", "Mentorship Session"),
                            ("course_content", "Course Content"),
                            ("user_behavior", "User Behavior"),
                            ("platform_issue", "Platform Issue"),
                            ("other", "Other"),
                        ],
                        max_length=30,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("open", "Open"),
                            ("under_review", "Under Review"),
                            ("mediation", "Mediation"),
                            ("resolved", "Resolved"),
                            ("closed", "Closed"),
                        ],
                        default="open",
                        max_length=20,
                    ),
                ),
                ("priority", models.CharField(choices=PRIORITY_CHOICES, default="medium", max_length=10)),
                (
                    "related_entity_type",
                    models.CharField(
                        choices=[
                            ("project", "Project"),
                            ("mentorship", "Mentorship"),
                            ("course", "Course"),
                            ("message", "Message"),
                            ("user", "User"),
                        ],
                        max_length=20,
                    ),
                ),
                ("related_entity_id", models.CharField(max_length=64)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(max_length=2000)),
                ("evidence", models.JSONField(blank=True, default=list)),
                (
                    "resolution_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("favor_initiator", "Favor Initiator"),
                            ("favor_respondent", "Favor Respondent"),
                            ("compromise", "Compromise"),
                            ("no_fault", "No Fault"),
                            ("escalated", "Escalated"),
                            ("withdrawn", "Withdrawn"),
                        ],
                        max_length=20,
                    ),
                ),
                ("resolution_description", models.TextField(blank=True)),
                (
                    "compensation_amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True),
                ),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("response_deadline", models.DateTimeField(blank=True, null=True)),
                ("mediation_deadline", models.DateTimeField(blank=True, null=True)),
                ("resolution_deadline", models.DateTimeField(blank=True, null=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                (
                    "compensation_recipient",
                    user_fk(
                        "dispute_compensations",
                        on_delete=models.deletion.SET_NULL,
                        blank=True,
                        null=True,
                    ),
                ),
                ("initiator", user_fk("initiated_disputes")),
                (
                    "mediator",
                    user_fk(
                        "mediated_disputes",
                        on_delete=models.deletion.SET_NULL,
                        blank=True,
                        null=True,
                    ),
                ),
                ("respondent", user_fk("responding_disputes")),
                (
                    "resolved_by",
                    user_fk(
                        "resolved_disputes",
                        on_delete=models.deletion.SET_NULL,
                        blank=True,
                        null=True,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["status", "priority"], name="dispute_status_priority_idx"),
                    models.Index(fields=["type", "status"], name="dispute_type_status_idx"),
                    models.Index(
                        fields=["related_entity_type", "related_entity_id"],
                        name="dispute_related_entity_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DisputeTimelineEntry",
            fields=[
                ("id", id_field()),
                (
                    "action",
                    models.CharField(
                        choices=[
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
                        ],
                        max_length=30,
                    ),
                ),
                ("description", models.TextField(blank=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "dispute",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="timeline",
                        to="core.dispute",
                    ),
                ),
                (
                    "performed_by",
                    user_fk("+", on_delete=models.deletion.SET_NULL, blank=True, null=True),
                ),
            ],
            options={"ordering": ["timestamp", "id"]},
        ),
        migrations.CreateModel(
            name="DisputeCommunication",
            fields=[
                ("id", id_field()),
                ("message", models.TextField(max_length=1000)),
                ("is_private", models.BooleanField(default=False)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "dispute",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="communications",
                        to="core.dispute",
                    ),
                ),
                ("sender", user_fk("dispute_messages")),
            ],
            options={"ordering": ["timestamp", "id"]},
        ),
        migrations.CreateModel(
            name="DisputeActionItem",
            fields=[
                ("id", id_field()),
                ("action", models.CharField(max_length=255)),
                ("deadline", models.DateTimeField(blank=True, null=True)),
                ("completed", models.BooleanField(default=False)),
                (
                    "dispute",
                    models.ForeignKey(
                        on_delete=models.deletion.CASCADE,
                        related_name="required_actions",
                        to="core.dispute",
                    ),
                ),
                ("user", user_fk("dispute_action_items")),
            ],
            options={"ordering": ["deadline", "id"]},
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", id_field()),
                (
                    "type",
                    models.CharField(
                        choices=[
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
                        ],
                        max_length=30,
                    ),
                ),
                ("title", models.CharField(max_length=200)),
                ("message", models.TextField(max_length=1000)),
                ("data", models.JSONField(blank=True, default=dict)),
                ("action_url", models.CharField(blank=True, max_length=500)),
                ("priority", models.CharField(choices=PRIORITY_CHOICES, default="medium", max_length=10)),
                ("is_read", models.BooleanField(default=False)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", user_fk("notifications", on_delete=models.deletion.CASCADE)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["user", "is_read"], name="notification_user_read_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", id_field()),
                ("content", models.TextField(max_length=2000)),
                ("is_read", models.BooleanField(default=False)),
                ("is_moderated", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("recipient", user_fk("received_messages", on_delete=models.deletion.CASCADE)),
                ("sender", user_fk("sent_messages", on_delete=models.deletion.CASCADE)),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", id_field()),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(max_length=5000)),
                ("required_skills", models.JSONField(blank=True, default=list)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("open", "Open"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("removed", "Removed"),
                        ],
                        default="open",
                        max_length=20,
                    ),
                ),
                ("moderation_reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True, null=True)),
                ("client", user_fk("projects", on_delete=models.deletion.CASCADE)),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
    ]
