from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from .mentorship_service import MentorshipService
from .moderation_service import ModerationService
from .notifications import get_user_notifications, mark_notifications_read
from .notifications import unread_count as count_unread
from .permissions import (
    ROLE_ADMIN,
    ROLE_FREELANCER,
    ROLE_MENTOR,
    IsAdminRole,
    IsAuthenticatedWithAppRole,
    user_role,
)
from .serializers import (
    ContentFlagSerializer,
    DisputeAssignSerializer,
    DisputeCloseSerializer,
    DisputeCommunicationSerializer,
    DisputeCreateSerializer,
    DisputeEvidenceSerializer,
    DisputeListSerializer,
    DisputeMessageSerializer,
    DisputeResolveSerializer,
    DisputeResponseSerializer,
    DisputeSerializer,
    FlagAssignSerializer,
    FlagCreateSerializer,
    FlagDismissSerializer,
    FlagResolveSerializer,
    MentorMatchSerializer,
    MentorshipDeclineSerializer,
    MentorshipRequestSerializer,
    MentorshipSerializer,
    MentorshipSessionSerializer,
    ModerationReportQuerySerializer,
    NotificationMarkReadSerializer,
    NotificationSerializer,
    SessionFeedbackSerializer,
    SessionScheduleSerializer,
    SessionStatusSerializer,
)


def require_role(request, allowed_roles):
    role = user_role(request.user)
    if role not in allowed_roles:
        raise PermissionDenied("You do not have permission to access this endpoint.")


def int_param(request, name, default):
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError({name: ["A valid integer is required."]})
    if value < 1:
        raise ValidationError({name: ["Must be at least 1."]})
    return value


def list_param(request, name):
    values = request.query_params.getlist(name)
    if not values:
        return None
    items = []
    for value in values:
        items.extend(part.strip() for part in value.split(","))
    return [item for item in items if item]


def mentorship_service():
    return MentorshipService()


def moderation_service():
    return ModerationService()


class MentorshipViewSet(viewsets.GenericViewSet):
    serializer_class = MentorshipSerializer
    permission_classes = [IsAuthenticatedWithAppRole]
    lookup_value_regex = r"\d+"

    def list(self, request):
        mentorships = mentorship_service().get_mentorship_history(request.user.id)
        return Response(MentorshipSerializer(mentorships, many=True).data)

    @action(detail=False, methods=["get"], url_path="matches")
    def matches(self, request):
        require_role(request, {ROLE_FREELANCER, ROLE_ADMIN})
        experience_level = request.query_params.get("experience_level") or None
        service = mentorship_service()
        profile = service.mentee_match_profile(
            request.user.id,
            skills=list_param(request, "skills"),
            experience_level=experience_level,
            focus_areas=list_param(request, "focus_areas"),
        )
        matches = service.find_potential_mentors(profile)
        return Response(
            {
                "criteria": profile,
                "matches": MentorMatchSerializer(matches, many=True).data,
            }
        )

    @action(detail=False, methods=["get"], url_path="requests")
    def requests(self, request):
        require_role(request, {ROLE_MENTOR})
        pending = mentorship_service().get_mentorship_requests_for_mentor(request.user.id)
        return Response(MentorshipSerializer(pending, many=True).data)

    @action(detail=False, methods=["get"], url_path="active")
    def active(self, request):
        mentorships = mentorship_service().get_active_mentorships(request.user.id)
        return Response(MentorshipSerializer(mentorships, many=True).data)

    @action(detail=False, methods=["post"], url_path="request")
    def request_mentorship(self, request):
        require_role(request, {ROLE_FREELANCER})
        serializer = MentorshipRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        mentorship = mentorship_service().create_mentorship_request(
            request.user.id,
            data["mentor_id"],
            data["focus_areas"],
            data.get("learning_goals", ""),
            data.get("request_message", ""),
        )
        return Response(MentorshipSerializer(mentorship).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="accept")
    def accept(self, request, pk=None):
        require_role(request, {ROLE_MENTOR})
        mentorship = mentorship_service().accept_mentorship_request(pk, request.user.id)
        return Response(MentorshipSerializer(mentorship).data)

    @action(detail=True, methods=["post"], url_path="decline")
    def decline(self, request, pk=None):
        require_role(request, {ROLE_MENTOR})
        serializer = MentorshipDeclineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        mentorship = mentorship_service().decline_mentorship_request(
            pk, request.user.id, reason=serializer.validated_data.get("reason", "")
        )
        return Response(MentorshipSerializer(mentorship).data)

    @action(detail=True, methods=["post"], url_path="complete")
    def complete(self, request, pk=None):
        mentorship = mentorship_service().complete_mentorship(pk, request.user.id)
        return Response(MentorshipSerializer(mentorship).data)

    @action(detail=True, methods=["get", "post"], url_path="sessions")
    def sessions(self, request, pk=None):
        service = mentorship_service()
        if request.method == "GET":
            sessions = service.get_mentorship_sessions(request.user.id, pk)
            return Response(MentorshipSessionSerializer(sessions, many=True).data)
        serializer = SessionScheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        session = service.schedule_session(
            request.user.id,
            pk,
            data["scheduled_date"],
            duration=data["duration"],
            notes=data["notes"],
        )
        return Response(MentorshipSessionSerializer(session).data, status=status.HTTP_201_CREATED)


class MentorshipSessionViewSet(viewsets.GenericViewSet):
    serializer_class = MentorshipSessionSerializer
    permission_classes = [IsAuthenticatedWithAppRole]
    lookup_value_regex = r"\d+"

    @action(detail=False, methods=["get"], url_path="upcoming")
    def upcoming(self, request):
        sessions = mentorship_service().get_upcoming_sessions(request.user.id)
        return Response(MentorshipSessionSerializer(sessions, many=True).data)

    @action(detail=False, methods=["get"], url_path="history")
    def history(self, request):
        sessions = mentorship_service().get_session_history(request.user.id)
        return Response(MentorshipSessionSerializer(sessions, many=True).data)

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = SessionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = mentorship_service().update_session_status(
            request.user.id,
            pk,
            serializer.validated_data["status"],
            notes=serializer.validated_data["notes"],
        )
        return Response(MentorshipSessionSerializer(session).data)

    @action(detail=True, methods=["post"], url_path="feedback")
    def feedback(self, request, pk=None):
        serializer = SessionFeedbackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = mentorship_service().add_session_feedback(
            request.user.id,
            pk,
            serializer.validated_data["feedback"],
            serializer.validated_data["rating"],
        )
        return Response(MentorshipSessionSerializer(session).data)


class ContentFlagViewSet(viewsets.GenericViewSet):
    serializer_class = ContentFlagSerializer
    permission_classes = [IsAuthenticatedWithAppRole]
    lookup_value_regex = r"\d+"

    def list(self, request):
        result = moderation_service().get_moderation_queue(
            page=int_param(request, "page", 1),
            limit=int_param(request, "limit", 20),
            status=request.query_params.get("status") or None,
            reporter_id=request.user.id,
        )
        return Response(
            {
                "results": ContentFlagSerializer(result["flags"], many=True).data,
                "pagination": result["pagination"],
            }
        )

    def create(self, request):
        serializer = FlagCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        flag = moderation_service().flag_content(
            request.user.id,
            data["content_type"],
            data["content_id"],
            data["target_user_id"],
            data["reason"],
            data["description"],
            data["evidence"],
        )
        flag.refresh_from_db()
        return Response(ContentFlagSerializer(flag).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path="queue", permission_classes=[IsAdminRole])
    def queue(self, request):
        result = moderation_service().get_moderation_queue(
            page=int_param(request, "page", 1),
            limit=int_param(request, "limit", 20),
            status=request.query_params.get("status", "pending"),
            priority=request.query_params.get("priority") or None,
            content_type=request.query_params.get("content_type") or None,
            moderator_id=request.query_params.get("moderator_id") or None,
        )
        return Response(
            {
                "results": ContentFlagSerializer(result["flags"], many=True).data,
                "pagination": result["pagination"],
            }
        )

    @action(detail=True, methods=["post"], url_path="assign", permission_classes=[IsAdminRole])
    def assign(self, request, pk=None):
        serializer = FlagAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        moderator_id = serializer.validated_data.get("moderator_id", request.user.id)
        flag = moderation_service().assign_flag_to_moderator(pk, moderator_id)
        return Response(ContentFlagSerializer(flag).data)

    @action(detail=True, methods=["post"], url_path="resolve", permission_classes=[IsAdminRole])
    def resolve(self, request, pk=None):
        serializer = FlagResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        flag = moderation_service().resolve_flag(
            pk,
            request.user.id,
            serializer.validated_data["resolution"],
            serializer.validated_data["moderator_notes"],
        )
        return Response(ContentFlagSerializer(flag).data)

    @action(detail=True, methods=["post"], url_path="dismiss", permission_classes=[IsAdminRole])
    def dismiss(self, request, pk=None):
        serializer = FlagDismissSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        flag = moderation_service().dismiss_flag(
            pk, request.user.id, serializer.validated_data["moderator_notes"]
        )
        return Response(ContentFlagSerializer(flag).data)


class DisputeViewSet(viewsets.GenericViewSet):
    serializer_class = DisputeSerializer
    permission_classes = [IsAuthenticatedWithAppRole]
    lookup_field = "dispute_id"
    lookup_value_regex = r"DSP-\d+-\d+"

    def _detail(self, dispute):
        dispute.refresh_from_db()
        return DisputeSerializer(dispute, context={"request": self.request}).data

    def list(self, request):
        result = moderation_service().get_dispute_queue(
            page=int_param(request, "page", 1),
            limit=int_param(request, "limit", 20),
            status=request.query_params.get("status") or None,
            dispute_type=request.query_params.get("type") or None,
            participant_id=request.user.id,
        )
        return Response(
            {
                "results": DisputeListSerializer(result["disputes"], many=True).data,
                "pagination": result["pagination"],
            }
        )

    def create(self, request):
        serializer = DisputeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        dispute = moderation_service().create_dispute(
            request.user.id,
            data["respondent_id"],
            data["type"],
            data["related_entity_type"],
            data["related_entity_id"],
            data["title"],
            data["description"],
            evidence=data["evidence"],
            priority=data["priority"],
        )
        return Response(self._detail(dispute), status=status.HTTP_201_CREATED)

    def retrieve(self, request, dispute_id=None):
        dispute = moderation_service().get_dispute(dispute_id, request.user.id)
        return Response(self._detail(dispute))

    @action(detail=False, methods=["get"], url_path="queue", permission_classes=[IsAdminRole])
    def queue(self, request):
        result = moderation_service().get_dispute_queue(
            page=int_param(request, "page", 1),
            limit=int_param(request, "limit", 20),
            status=request.query_params.get("status") or None,
            priority=request.query_params.get("priority") or None,
            dispute_type=request.query_params.get("type") or None,
            mediator_id=request.query_params.get("mediator_id") or None,
        )
        return Response(
            {
                "results": DisputeListSerializer(result["disputes"], many=True).data,
                "pagination": result["pagination"],
            }
        )

    @action(detail=True, methods=["post"], url_path="assign", permission_classes=[IsAdminRole])
    def assign(self, request, dispute_id=None):
        serializer = DisputeAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        mediator_id = serializer.validated_data.get("mediator_id", request.user.id)
        dispute = moderation_service().assign_dispute(dispute_id, mediator_id)
        return Response(self._detail(dispute))

    @action(detail=True, methods=["post"], url_path="respond")
    def respond(self, request, dispute_id=None):
        serializer = DisputeResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dispute = moderation_service().submit_response(
            dispute_id, request.user.id, serializer.validated_data["response"]
        )
        return Response(self._detail(dispute))

    @action(detail=True, methods=["post"], url_path="communicate")
    def communicate(self, request, dispute_id=None):
        serializer = DisputeMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        communication = moderation_service().add_communication(
            dispute_id,
            request.user.id,
            serializer.validated_data["message"],
            is_private=serializer.validated_data["is_private"],
        )
        return Response(
            DisputeCommunicationSerializer(communication).data, status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=["post"], url_path="evidence")
    def evidence(self, request, dispute_id=None):
        serializer = DisputeEvidenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        dispute = moderation_service().add_evidence(
            dispute_id,
            request.user.id,
            data["type"],
            content=data["content"],
            file_url=data["file_url"],
        )
        return Response(self._detail(dispute), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="resolve")
    def resolve(self, request, dispute_id=None):
        serializer = DisputeResolveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dispute = moderation_service().resolve_dispute(
            dispute_id, request.user.id, serializer.validated_data
        )
        return Response(self._detail(dispute))

    @action(detail=True, methods=["post"], url_path="close", permission_classes=[IsAdminRole])
    def close(self, request, dispute_id=None):
        serializer = DisputeCloseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dispute = moderation_service().close_dispute(
            dispute_id, request.user.id, serializer.validated_data["reason"]
        )
        return Response(self._detail(dispute))


class ModerationReportViewSet(viewsets.ViewSet):
    permission_classes = [IsAdminRole]

    @action(detail=False, methods=["get"], url_path="statistics")
    def statistics(self, request):
        return Response(moderation_service().get_moderation_statistics())

    @action(detail=False, methods=["get"], url_path="report")
    def report(self, request):
        query = ModerationReportQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        report = moderation_service().generate_moderation_report(
            query.validated_data["start_date"], query.validated_data["end_date"]
        )
        report["flags"] = ContentFlagSerializer(report["flags"], many=True).data
        report["disputes"] = DisputeListSerializer(report["disputes"], many=True).data
        report["generated_at"] = timezone.now()
        return Response(report)


class NotificationViewSet(viewsets.GenericViewSet):
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticatedWithAppRole]

    def list(self, request):
        unread_only = request.query_params.get("unread") in {"1", "true", "True"}
        notifications = get_user_notifications(
            request.user, unread_only=unread_only, limit=int_param(request, "limit", 50)
        )
        return Response(NotificationSerializer(notifications, many=True).data)

    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request):
        return Response({"unread_count": count_unread(request.user)})

    @action(detail=False, methods=["post"], url_path="mark-read")
    def mark_read(self, request):
        serializer = NotificationMarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        updated = mark_notifications_read(
            request.user, serializer.validated_data.get("notification_ids")
        )
        return Response({"updated": updated})
