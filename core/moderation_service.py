import logging
import math
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Case, Count, IntegerField, Q, Value, When
from django.utils import timezone

from .abuse_monitoring import classify_abuse, classify_spam
from .exceptions import (
    DuplicateRequestError,
    InvalidStateError,
    NotFoundError,
    ServiceValidationError,
    UnauthorizedError,
)
from .models import (
    ContentFlag,
    Dispute,
    DisputeActionItem,
    DisputeCommunication,
    Message,
    Project,
    UserProfile,
    UserWarning,
)
from .models.moderation import ACTIVE_FLAG_STATUSES, OPEN_DISPUTE_STATUSES, PRIORITY_RANK
from .notifications import NotificationSink

logger = logging.getLogger(__name__)
User = get_user_model()

FLAG_CONTENT_TYPES = {value for value, _ in ContentFlag.CONTENT_TYPE_CHOICES}
FLAG_REASONS = {value for value, _ in ContentFlag.REASON_CHOICES}
FLAG_RESOLUTIONS = {value for value, _ in ContentFlag.RESOLUTION_CHOICES}
FLAG_EVIDENCE_TYPES = {"screenshot", "text", "url", "file"}
PUNITIVE_RESOLUTIONS = ("warning_issued", "content_removed")

DISPUTE_TYPES = {value for value, _ in Dispute.TYPE_CHOICES}
DISPUTE_ENTITY_TYPES = {value for value, _ in Dispute.ENTITY_TYPE_CHOICES}
DISPUTE_RESOLUTION_TYPES = {value for value, _ in Dispute.RESOLUTION_TYPE_CHOICES}
DISPUTE_EVIDENCE_TYPES = {"text", "file", "screenshot", "link", "message_thread"}
PRIORITIES = set(PRIORITY_RANK)
URGENT_PRIORITIES = {"high", "urgent"}

REMOVED_MESSAGE_TEXT = "[Content removed by moderator]"
REMOVED_PROJECT_REASON = "Content violation"
SUSPENSION_REASON = "Content policy violation"
BAN_REASON = "Severe content policy violation"
MODERATION_URL = "/admin.html#moderation"


def _priority_order():
    return Case(
        *[When(priority=name, then=Value(rank)) for name, rank in PRIORITY_RANK.items()],
        default=Value(-1),
        output_field=IntegerField(),
    )


def _paginate(queryset, page, limit):
    page = max(int(page or 1), 1)
    limit = max(int(limit or 20), 1)
    total = queryset.count()
    offset = (page - 1) * limit
    return list(queryset[offset:offset + limit]), {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


def _grouped_counts(queryset, field):
    return {
        row[field]: row["count"]
        for row in queryset.order_by().values(field).annotate(count=Count("id"))
    }


def _seconds_summary(durations):
    if not durations:
        return {"average_seconds": None, "min_seconds": None, "max_seconds": None}
    seconds = [duration.total_seconds() for duration in durations]
    return {
        "average_seconds": sum(seconds) / len(seconds),
        "min_seconds": min(seconds),
        "max_seconds": max(seconds),
    }


def is_admin_user(user_id) -> bool:
    return (
        User.objects.filter(pk=user_id, is_active=True)
        .filter(Q(is_superuser=True) | Q(userprofile__role="admin"))
        .exists()
    )


class ModerationService:
    """Content flag intake and resolution, plus the dispute lifecycle."""

    def __init__(self, notifier=None, now=None):
        self.notifier = notifier or NotificationSink()
        self.now = now or timezone.now

    def _admin_ids(self):
        return list(
            User.objects.filter(is_active=True)
            .filter(Q(is_superuser=True) | Q(userprofile__role="admin"))
            .values_list("id", flat=True)
            .distinct()
        )

    def _require_admin(self, user_id, label):
        if not is_admin_user(user_id):
            raise NotFoundError(f"{label} not found")

    # Flags

    def flag_content(
        self,
        reporter_id,
        content_type,
        content_id,
        target_user_id,
        reason,
        description,
        evidence=None,
    ):
        if content_type not in FLAG_CONTENT_TYPES:
            raise ServiceValidationError("Invalid content type")
        if reason not in FLAG_REASONS:
            raise ServiceValidationError("Invalid reason")
        description = (description or "").strip()
        if not description or not str(content_id or "").strip():
            raise ServiceValidationError("All required fields must be provided")
        if len(description) > 1000:
            raise ServiceValidationError("Description cannot exceed 1000 characters.")
        evidence_items = self._flag_evidence(evidence)
        if not User.objects.filter(pk=target_user_id).exists():
            raise NotFoundError("Target user not found")

        content_id = str(content_id).strip()
        duplicate_message = "Content already flagged by you"
        if ContentFlag.objects.filter(
            reporter_id=reporter_id,
            content_type=content_type,
            content_id=content_id,
            status__in=ACTIVE_FLAG_STATUSES,
        ).exists():
            raise DuplicateRequestError(duplicate_message)

        flag = ContentFlag(
            reporter_id=reporter_id,
            content_type=content_type,
            content_id=content_id,
            target_user_id=target_user_id,
            reason=reason,
            description=description,
            evidence=evidence_items,
        )
        flag.apply_reason_priority()
        self._screen_content(flag)

        try:
            with transaction.atomic():
                flag.save()
        except IntegrityError as exc:
            raise DuplicateRequestError(duplicate_message) from exc

        logger.info(
            "Flag %s created by user %s on %s:%s (%s, priority %s)",
            flag.id,
            reporter_id,
            content_type,
            content_id,
            reason,
            flag.priority,
        )
        if flag.priority in URGENT_PRIORITIES:
            self._notify_moderators(flag)
        self._auto_moderate(flag)
        return flag

    def _flag_evidence(self, evidence):
        items = []
        for item in evidence or []:
            if not isinstance(item, dict) or item.get("type") not in FLAG_EVIDENCE_TYPES:
                raise ServiceValidationError("Invalid evidence type")
            items.append(
                {
                    "type": item["type"],
                    "content": str(item.get("content") or ""),
                    "url": str(item.get("url") or ""),
                    "uploaded_at": self.now().isoformat(),
                }
            )
        return items

    def _screen_content(self, flag):
        if flag.content_type != "message" or not flag.content_id.isdigit():
            return
        text = Message.objects.filter(pk=flag.content_id).values_list("content", flat=True).first()
        if text is None:
            return
        if flag.reason == "spam":
            screening = classify_spam(text)
            flag.metadata["spam_screening"] = screening
            flag.auto_detected = screening["flagged"]
        elif flag.reason == "harassment":
            flag.metadata["abuse_screening"] = classify_abuse(text)

    def _auto_moderate(self, flag):
        try:
            with transaction.atomic():
                if flag.reason == "spam" and flag.auto_detected:
                    self._mark_resolved(flag, "content_removed", "Auto-moderated: Spam detected")
                    self.remove_content(flag.content_type, flag.content_id)
                    logger.info("Flag %s auto-resolved as spam", flag.id)

                threshold = getattr(settings, "MODERATION_REPEAT_OFFENDER_THRESHOLD", 3)
                prior_offences = (
                    ContentFlag.objects.filter(
                        target_user_id=flag.target_user_id,
                        status="resolved",
                        resolution__in=PUNITIVE_RESOLUTIONS,
                    )
                    .exclude(pk=flag.pk)
                    .count()
                )
                if prior_offences >= threshold:
                    flag.priority = "high"
                    flag.severity = 9
                    flag.save(update_fields=["priority", "severity", "updated_at"])
                    logger.info(
                        "Flag %s escalated: target user %s has %s prior offences",
                        flag.id,
                        flag.target_user_id,
                        prior_offences,
                    )
        except Exception:
            logger.exception("Auto-moderation failed for flag %s", flag.id)

    def _notify_moderators(self, flag):
        for admin_id in self._admin_ids():
            self.notifier.create_notification(
                admin_id,
                "system_announcement",
                "High Priority Content Flag",
                f"A {flag.priority} priority {flag.reason} flag requires immediate attention",
                data={"flag_id": flag.id, "content_type": flag.content_type},
                action_url=MODERATION_URL,
                priority="high",
            )

    def get_moderation_queue(
        self,
        page=1,
        limit=20,
        status="pending",
        priority=None,
        content_type=None,
        moderator_id=None,
        reporter_id=None,
    ):
        queryset = ContentFlag.objects.select_related("reporter", "target_user", "moderator")
        if status:
            queryset = queryset.filter(status=status)
        if priority:
            queryset = queryset.filter(priority=priority)
        if content_type:
            queryset = queryset.filter(content_type=content_type)
        if moderator_id:
            queryset = queryset.filter(moderator_id=moderator_id)
        if reporter_id:
            queryset = queryset.filter(reporter_id=reporter_id)
        queryset = queryset.annotate(priority_rank=_priority_order()).order_by(
            "-priority_rank", "-created_at", "-id"
        )
        flags, pagination = _paginate(queryset, page, limit)
        return {"flags": flags, "pagination": pagination}

    def _active_flag(self, flag_id):
        flag = ContentFlag.objects.filter(pk=flag_id).first()
        if flag is None:
            raise NotFoundError("Flag not found")
        if not flag.is_active:
            raise InvalidStateError(f"Flag has already been {flag.status}")
        return flag

    def assign_flag_to_moderator(self, flag_id, moderator_id):
        flag = self._active_flag(flag_id)
        self._require_admin(moderator_id, "Moderator")
        flag.moderator_id = moderator_id
        flag.status = "under_review"
        flag.save(update_fields=["moderator", "status", "updated_at"])

        logger.info("Flag %s assigned to moderator %s", flag.id, moderator_id)
        self.notifier.create_notification(
            moderator_id,
            "system_announcement",
            "Content Flag Assigned",
            f"A {flag.reason} flag has been assigned to you for review",
            data={"flag_id": flag.id, "content_type": flag.content_type},
            action_url=MODERATION_URL,
        )
        return flag

    def _mark_resolved(self, flag, resolution, moderator_notes, moderator_id=None):
        flag.status = "resolved"
        flag.resolution = resolution
        flag.moderator_notes = moderator_notes or ""
        flag.resolution_date = self.now()
        update_fields = ["status", "resolution", "moderator_notes", "resolution_date", "updated_at"]
        if moderator_id is not None:
            flag.moderator_id = moderator_id
            update_fields.append("moderator")
        flag.save(update_fields=update_fields)

    def resolve_flag(self, flag_id, moderator_id, resolution, moderator_notes=""):
        if resolution not in FLAG_RESOLUTIONS:
            raise ServiceValidationError("Invalid resolution")
        with transaction.atomic():
            flag = self._active_flag(flag_id)
            self._mark_resolved(flag, resolution, moderator_notes, moderator_id=moderator_id)
            self.execute_resolution_action(flag, resolution)

        logger.info("Flag %s resolved as %s by moderator %s", flag.id, resolution, moderator_id)
        self.notifier.create_notification(
            flag.reporter_id,
            "system_announcement",
            "Content Report Resolved",
            f"Your report has been reviewed and resolved. Action taken: {resolution}",
            data={"flag_id": flag.id, "resolution": resolution},
        )
        return flag

    def dismiss_flag(self, flag_id, moderator_id, moderator_notes=""):
        flag = self._active_flag(flag_id)
        flag.status = "dismissed"
        flag.moderator_id = moderator_id
        flag.moderator_notes = moderator_notes or ""
        flag.resolution_date = self.now()
        flag.save(
            update_fields=["status", "moderator", "moderator_notes", "resolution_date", "updated_at"]
        )

        logger.info("Flag %s dismissed by moderator %s", flag.id, moderator_id)
        self.notifier.create_notification(
            flag.reporter_id,
            "system_announcement",
            "Content Report Reviewed",
            "Your report has been reviewed and no violation was found",
            data={"flag_id": flag.id},
        )
        return flag

    def execute_resolution_action(self, flag, resolution):
        if resolution == "content_removed":
            self.remove_content(flag.content_type, flag.content_id)
        elif resolution == "user_suspended":
            self.suspend_user(
                flag.target_user_id, getattr(settings, "MODERATION_SUSPENSION_DAYS", 7)
            )
        elif resolution == "user_banned":
            self.ban_user(flag.target_user_id)
        elif resolution == "warning_issued":
            self.issue_warning(flag.target_user_id, flag.reason)
        elif resolution == "content_edited":
            logger.info(
                "Manual edit required for %s:%s (flag %s)",
                flag.content_type,
                flag.content_id,
                flag.id,
            )

    def remove_content(self, content_type, content_id):
        content_id = str(content_id)
        if not content_id.isdigit():
            logger.warning("Cannot remove %s with id %r", content_type, content_id)
            return
        if content_type == "message":
            Message.objects.filter(pk=content_id).update(
                content=REMOVED_MESSAGE_TEXT, is_moderated=True
            )
        elif content_type == "project":
            Project.objects.filter(pk=content_id).update(
                status="removed", moderation_reason=REMOVED_PROJECT_REASON
            )
        else:
            logger.info("No removal handler for content type %s", content_type)

    def suspend_user(self, user_id, days):
        suspension_end = self.now() + timedelta(days=days)
        User.objects.filter(pk=user_id).update(is_active=False)
        UserProfile.objects.filter(user_id=user_id).update(
            suspension_end=suspension_end, suspension_reason=SUSPENSION_REASON
        )
        logger.info("User %s suspended until %s", user_id, suspension_end.isoformat())
        self.notifier.create_notification(
            user_id,
            "system_announcement",
            "Account Suspended",
            f"Your account has been suspended for {days} days due to content policy violation",
            data={"suspension_end": suspension_end},
            priority="high",
        )

    def ban_user(self, user_id):
        User.objects.filter(pk=user_id).update(is_active=False)
        UserProfile.objects.filter(user_id=user_id).update(is_banned=True, ban_reason=BAN_REASON)
        logger.info("User %s banned", user_id)
        self.notifier.create_notification(
            user_id,
            "system_announcement",
            "Account Banned",
            "Your account has been permanently banned due to severe content policy violations",
            priority="urgent",
        )

    def issue_warning(self, user_id, reason):
        warning = UserWarning.objects.create(user_id=user_id, reason=reason)
        logger.info("Warning issued to user %s for %s", user_id, reason)
        self.notifier.create_notification(
            user_id,
            "system_announcement",
            "Warning Issued",
            f"You have received a warning for: {reason}. Please review our community guidelines.",
            data={"reason": reason},
        )
        return warning

    # Disputes

    def create_dispute(
        self,
        initiator_id,
        respondent_id,
        dispute_type,
        related_entity_type,
        related_entity_id,
        title,
        description,
        evidence=None,
        priority="medium",
    ):
        if dispute_type not in DISPUTE_TYPES:
            raise ServiceValidationError("Invalid dispute type")
        if related_entity_type not in DISPUTE_ENTITY_TYPES:
            raise ServiceValidationError("Invalid related entity type")
        if priority not in PRIORITIES:
            raise ServiceValidationError("Invalid priority")
        title = (title or "").strip()
        description = (description or "").strip()
        if not title or not description or not str(related_entity_id or "").strip():
            raise ServiceValidationError("All required fields must be provided")
        if len(title) > 200 or len(description) > 2000:
            raise ServiceValidationError("Title or description is too long.")
        if str(initiator_id) == str(respondent_id):
            raise ServiceValidationError("You cannot open a dispute against yourself.")
        if not User.objects.filter(pk=respondent_id).exists():
            raise NotFoundError("Respondent not found")

        evidence_items = [
            self._dispute_evidence(item.get("type"), item.get("content"), item.get("file_url"), initiator_id)
            for item in (evidence or [])
        ]
        with transaction.atomic():
            dispute = Dispute.create_dispute(
                now=self.now(),
                type=dispute_type,
                priority=priority,
                initiator_id=initiator_id,
                respondent_id=respondent_id,
                related_entity_type=related_entity_type,
                related_entity_id=str(related_entity_id).strip(),
                title=title,
                description=description,
                evidence=evidence_items,
            )

        logger.info("Dispute %s opened by user %s", dispute.dispute_id, initiator_id)
        self.notifier.create_notification(
            respondent_id,
            "system_announcement",
            "New Dispute Filed",
            f"A dispute has been filed against you: {title}",
            data={"dispute_id": dispute.dispute_id},
            action_url=f"/disputes/{dispute.dispute_id}",
            priority="high",
        )
        if dispute.priority in URGENT_PRIORITIES:
            for admin_id in self._admin_ids():
                self.notifier.create_notification(
                    admin_id,
                    "system_announcement",
                    "High Priority Dispute",
                    f"A {dispute.priority} priority dispute requires attention: {title}",
                    data={"dispute_id": dispute.dispute_id},
                    action_url="/admin.html#disputes",
                    priority="high",
                )
        return dispute

    def _dispute_evidence(self, evidence_type, content, file_url, uploaded_by):
        if evidence_type not in DISPUTE_EVIDENCE_TYPES:
            raise ServiceValidationError("Invalid evidence type")
        if not content and not file_url:
            raise ServiceValidationError("Evidence type and content/file URL are required")
        return {
            "type": evidence_type,
            "content": str(content or ""),
            "file_url": str(file_url or ""),
            "uploaded_by": uploaded_by,
            "uploaded_at": self.now().isoformat(),
        }

    def get_dispute_queue(
        self,
        page=1,
        limit=20,
        status=None,
        priority=None,
        dispute_type=None,
        mediator_id=None,
        participant_id=None,
    ):
        queryset = Dispute.objects.select_related("initiator", "respondent", "mediator")
        if status:
            queryset = queryset.filter(status=status)
        if priority:
            queryset = queryset.filter(priority=priority)
        if dispute_type:
            queryset = queryset.filter(type=dispute_type)
        if mediator_id:
            queryset = queryset.filter(mediator_id=mediator_id)
        if participant_id:
            queryset = queryset.filter(
                Q(initiator_id=participant_id) | Q(respondent_id=participant_id)
            )
        queryset = queryset.annotate(priority_rank=_priority_order()).order_by(
            "-priority_rank", "-created_at", "-id"
        )
        disputes, pagination = _paginate(queryset, page, limit)
        return {"disputes": disputes, "pagination": pagination}

    def _dispute(self, dispute_id, lock=False):
        queryset = Dispute.objects.filter(dispute_id=dispute_id)
        if lock:
            queryset = queryset.select_for_update()
        dispute = queryset.first()
        if dispute is None:
            raise NotFoundError("Dispute not found")
        return dispute

    def _require_open(self, dispute):
        if not dispute.is_open:
            raise InvalidStateError(f"Dispute is already {dispute.status}")

    def _require_party_or_admin(self, dispute, user_id):
        if not dispute.is_participant(user_id) and not is_admin_user(user_id):
            raise UnauthorizedError("Access denied")

    def get_dispute(self, dispute_id, user_id):
        dispute = self._dispute(dispute_id)
        self._require_party_or_admin(dispute, user_id)
        return dispute

    def assign_dispute(self, dispute_id, mediator_id):
        self._require_admin(mediator_id, "Mediator")
        with transaction.atomic():
            dispute = self._dispute(dispute_id, lock=True)
            self._require_open(dispute)
            dispute.mediator_id = mediator_id
            dispute.status = "mediation"
            dispute.save(update_fields=["mediator", "status", "updated_at"])
            dispute.add_timeline_entry(
                "mediator_assigned",
                mediator_id,
                "Mediator assigned to dispute",
                timestamp=self.now(),
            )

        logger.info("Dispute %s assigned to mediator %s", dispute.dispute_id, mediator_id)
        recipients = (
            (dispute.initiator_id, "A mediator has been assigned to your dispute"),
            (dispute.respondent_id, "A mediator has been assigned to the dispute"),
            (mediator_id, f"You have been assigned to mediate dispute {dispute.dispute_id}"),
        )
        for user_id, message in recipients:
            self.notifier.create_notification(
                user_id,
                "system_announcement",
                "Dispute Update",
                message,
                data={"dispute_id": dispute.dispute_id},
                action_url=f"/disputes/{dispute.dispute_id}",
            )
        return dispute

    def submit_response(self, dispute_id, user_id, response):
        response = (response or "").strip()
        if not response:
            raise ServiceValidationError("Response is required")
        if len(response) > 1000:
            raise ServiceValidationError("Response cannot exceed 1000 characters.")
        with transaction.atomic():
            dispute = self._dispute(dispute_id, lock=True)
            if str(dispute.respondent_id) != str(user_id):
                raise UnauthorizedError("Only the respondent can respond to this dispute")
            if dispute.status != "open":
                raise InvalidStateError("Dispute is not awaiting a response")
            dispute.status = "under_review"
            dispute.save(update_fields=["status", "updated_at"])
            DisputeCommunication.objects.create(
                dispute=dispute, sender_id=user_id, message=response, timestamp=self.now()
            )
            dispute.add_timeline_entry(
                "response_submitted",
                user_id,
                "Respondent submitted a response",
                timestamp=self.now(),
            )

        logger.info("Respondent %s answered dispute %s", user_id, dispute.dispute_id)
        self.notifier.create_notification(
            dispute.initiator_id,
            "system_announcement",
            "Dispute Response Received",
            f"The respondent has answered dispute {dispute.dispute_id}",
            data={"dispute_id": dispute.dispute_id},
            action_url=f"/disputes/{dispute.dispute_id}",
        )
        return dispute

    def add_communication(self, dispute_id, user_id, message, is_private=False):
        message = (message or "").strip()
        if not message:
            raise ServiceValidationError("Message is required")
        if len(message) > 1000:
            raise ServiceValidationError("Message cannot exceed 1000 characters.")
        dispute = self._dispute(dispute_id)
        self._require_party_or_admin(dispute, user_id)
        return DisputeCommunication.objects.create(
            dispute=dispute,
            sender_id=user_id,
            message=message,
            is_private=bool(is_private),
            timestamp=self.now(),
        )

    def add_evidence(self, dispute_id, user_id, evidence_type, content="", file_url=""):
        item = self._dispute_evidence(evidence_type, content, file_url, user_id)
        with transaction.atomic():
            dispute = self._dispute(dispute_id, lock=True)
            self._require_party_or_admin(dispute, user_id)
            self._require_open(dispute)
            dispute.evidence = list(dispute.evidence or []) + [item]
            dispute.save(update_fields=["evidence", "updated_at"])
            dispute.add_timeline_entry(
                "evidence_added",
                user_id,
                f"New {evidence_type} evidence added",
                timestamp=self.now(),
            )
        return dispute

    def resolve_dispute(self, dispute_id, resolved_by_id, resolution):
        resolution_type = resolution.get("type")
        if resolution_type not in DISPUTE_RESOLUTION_TYPES:
            raise ServiceValidationError("Invalid resolution type")
        description = (resolution.get("description") or "").strip()
        if not description:
            raise ServiceValidationError("Resolution description is required")
        compensation_amount = resolution.get("compensation_amount")
        if compensation_amount not in (None, ""):
            try:
                compensation_amount = Decimal(str(compensation_amount))
            except InvalidOperation as exc:
                raise ServiceValidationError("Invalid compensation amount") from exc
            if compensation_amount < 0:
                raise ServiceValidationError("Compensation amount cannot be negative")
        else:
            compensation_amount = None
        action_required = resolution.get("action_required") or []
        recipient_id = resolution.get("compensation_recipient_id") or None
        referenced_ids = {item["user_id"] for item in action_required}
        if recipient_id is not None:
            referenced_ids.add(recipient_id)
        if User.objects.filter(pk__in=referenced_ids).count() != len(referenced_ids):
            raise NotFoundError("Referenced user not found")

        with transaction.atomic():
            dispute = self._dispute(dispute_id, lock=True)
            is_mediator = dispute.mediator_id and str(dispute.mediator_id) == str(resolved_by_id)
            if not is_mediator and not is_admin_user(resolved_by_id):
                raise UnauthorizedError("Only the mediator or an admin can resolve this dispute")
            self._require_open(dispute)

            now = self.now()
            dispute.status = "resolved"
            dispute.resolution_type = resolution_type
            dispute.resolution_description = description
            dispute.compensation_amount = compensation_amount
            dispute.compensation_recipient_id = recipient_id
            dispute.resolved_by_id = resolved_by_id
            dispute.resolved_at = now
            dispute.save()
            action_items = [
                DisputeActionItem.objects.create(
                    dispute=dispute,
                    user_id=item["user_id"],
                    action=item["action"],
                    deadline=item.get("deadline"),
                )
                for item in action_required
            ]
            dispute.add_timeline_entry(
                "dispute_resolved",
                resolved_by_id,
                f"Dispute resolved: {resolution_type}",
                timestamp=now,
            )

        logger.info("Dispute %s resolved as %s", dispute.dispute_id, resolution_type)
        if compensation_amount and dispute.compensation_recipient_id:
            logger.info(
                "Compensation of %s recorded for user %s on dispute %s",
                compensation_amount,
                dispute.compensation_recipient_id,
                dispute.dispute_id,
            )
        for item in action_items:
            self.notifier.create_notification(
                item.user_id,
                "system_announcement",
                "Action Required",
                f"You are required to: {item.action}",
                data={"dispute_id": dispute.dispute_id, "deadline": item.deadline},
                action_url=f"/disputes/{dispute.dispute_id}",
                priority="high",
            )
        for party_id in (dispute.initiator_id, dispute.respondent_id):
            self.notifier.create_notification(
                party_id,
                "system_announcement",
                "Dispute Resolved",
                f"Dispute {dispute.dispute_id} has been resolved: {description}",
                data={"dispute_id": dispute.dispute_id, "resolution": resolution_type},
                action_url=f"/disputes/{dispute.dispute_id}",
                priority="high",
            )
        return dispute

    def close_dispute(self, dispute_id, user_id, reason=""):
        if not is_admin_user(user_id):
            raise UnauthorizedError("Only an admin can close a dispute")
        with transaction.atomic():
            dispute = self._dispute(dispute_id, lock=True)
            self._require_open(dispute)
            dispute.status = "closed"
            dispute.save(update_fields=["status", "updated_at"])
            dispute.add_timeline_entry(
                "dispute_closed",
                user_id,
                reason or "Dispute was closed",
                timestamp=self.now(),
            )

        logger.info("Dispute %s closed by user %s", dispute.dispute_id, user_id)
        for party_id in (dispute.initiator_id, dispute.respondent_id):
            self.notifier.create_notification(
                party_id,
                "system_announcement",
                "Dispute Closed",
                f"Dispute {dispute.dispute_id} has been closed",
                data={"dispute_id": dispute.dispute_id},
                action_url=f"/disputes/{dispute.dispute_id}",
            )
        return dispute

    # Reporting

    def get_moderation_statistics(self):
        since = self.now() - timedelta(hours=24)
        flags = ContentFlag.objects.all()
        disputes = Dispute.objects.all()
        resolved_disputes = disputes.filter(status="resolved", resolved_at__isnull=False)
        durations = [
            resolved_at - created_at
            for created_at, resolved_at in resolved_disputes.values_list("created_at", "resolved_at")
        ]
        return {
            "flags": {
                "total_flags": flags.count(),
                "pending_flags": flags.filter(status="pending").count(),
                "resolved_today": flags.filter(
                    status="resolved", resolution_date__gte=since
                ).count(),
                "flags_by_reason": _grouped_counts(flags, "reason"),
                "flags_by_status": _grouped_counts(flags, "status"),
                "flags_by_priority": _grouped_counts(flags, "priority"),
            },
            "disputes": {
                "total_disputes": disputes.count(),
                "open_disputes": disputes.filter(status__in=OPEN_DISPUTE_STATUSES).count(),
                "resolved_today": resolved_disputes.filter(resolved_at__gte=since).count(),
                "disputes_by_type": _grouped_counts(disputes, "type"),
                "disputes_by_status": _grouped_counts(disputes, "status"),
                "average_resolution_time": _seconds_summary(durations)["average_seconds"],
            },
        }

    def generate_moderation_report(self, start_date, end_date):
        if start_date > end_date:
            raise ServiceValidationError("Start date must be before end date")
        period = {"created_at__gte": start_date, "created_at__lte": end_date}
        flags = list(
            ContentFlag.objects.filter(**period).select_related("moderator").order_by("created_at", "id")
        )
        disputes = list(Dispute.objects.filter(**period).order_by("created_at", "id"))

        resolution_times = [
            flag.resolution_date - flag.created_at
            for flag in flags
            if flag.status == "resolved" and flag.resolution_date
        ]
        activity = {}
        for flag in flags:
            if not flag.moderator_id:
                continue
            entry = activity.setdefault(
                flag.moderator_id, {"moderator_id": flag.moderator_id, "flags_handled": 0, "times": []}
            )
            entry["flags_handled"] += 1
            if flag.resolution_date:
                entry["times"].append(flag.resolution_date - flag.created_at)
        moderator_activity = [
            {
                "moderator_id": entry["moderator_id"],
                "flags_handled": entry["flags_handled"],
                "average_resolution_seconds": _seconds_summary(entry["times"])["average_seconds"],
            }
            for entry in activity.values()
        ]

        return {
            "period": {"start_date": start_date, "end_date": end_date},
            "summary": {
                "total_flags": len(flags),
                "total_disputes": len(disputes),
                "resolution_metrics": _seconds_summary(resolution_times),
                "moderator_activity": moderator_activity,
            },
            "flags": flags,
            "disputes": disputes,
        }
