from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers

from .models import (
    ContentFlag,
    Dispute,
    DisputeActionItem,
    DisputeCommunication,
    DisputeTimelineEntry,
    FreelancerProfile,
    MentorProfile,
    Mentorship,
    MentorshipSession,
    Notification,
)
from .permissions import ROLE_ADMIN, user_role


User = get_user_model()


class UserSummarySerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "email", "full_name", "role"]

    def get_full_name(self, obj):
        profile = getattr(obj, "userprofile", None)
        if profile is not None and profile.full_name:
            return profile.full_name
        return obj.get_full_name()

    def get_role(self, obj):
        return user_role(obj)


class MentorProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = MentorProfile
        fields = [
            "expertise_areas",
            "years_experience",
            "mentoring_capacity",
            "session_rate",
            "rating",
            "total_mentees",
        ]


class FreelancerProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = FreelancerProfile
        fields = ["skills", "experience_level", "hourly_rate"]


class MentorMatchSerializer(serializers.Serializer):
    mentor = UserSummarySerializer(read_only=True)
    mentor_profile = MentorProfileSerializer(source="mentor.mentor_profile", read_only=True)
    match_score = serializers.IntegerField(read_only=True)
    available_capacity = serializers.IntegerField(read_only=True)
    rating = serializers.FloatField(read_only=True)
    total_mentees = serializers.IntegerField(read_only=True)


class MentorshipSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = MentorshipSession
        fields = "__all__"
        read_only_fields = [field.name for field in MentorshipSession._meta.fields]


class MentorshipSerializer(serializers.ModelSerializer):
    mentor = UserSummarySerializer(read_only=True)
    mentee = UserSummarySerializer(read_only=True)

    class Meta:
        model = Mentorship
        fields = "__all__"


class MentorshipRequestSerializer(serializers.Serializer):
    mentor_id = serializers.IntegerField()
    focus_areas = serializers.ListField(
        child=serializers.CharField(max_length=100), allow_empty=False
    )
    learning_goals = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    request_message = serializers.CharField(max_length=500, required=False, allow_blank=True)


class MentorshipDeclineSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True)


class SessionScheduleSerializer(serializers.Serializer):
    scheduled_date = serializers.DateTimeField()
    duration = serializers.IntegerField(min_value=15, max_value=180, default=60)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")

    def validate_scheduled_date(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError("Session must be scheduled in the future.")
        return value


class SessionStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=MentorshipSession.STATUS_CHOICES)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")


class SessionFeedbackSerializer(serializers.Serializer):
    feedback = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    rating = serializers.IntegerField(min_value=1, max_value=5)


class ContentFlagSerializer(serializers.ModelSerializer):
    reporter = UserSummarySerializer(read_only=True)
    target_user = UserSummarySerializer(read_only=True)
    moderator = UserSummarySerializer(read_only=True)

    class Meta:
        model = ContentFlag
        fields = "__all__"


class FlagCreateSerializer(serializers.Serializer):
    content_type = serializers.ChoiceField(choices=ContentFlag.CONTENT_TYPE_CHOICES)
    content_id = serializers.CharField(max_length=64)
    target_user_id = serializers.IntegerField()
    reason = serializers.ChoiceField(choices=ContentFlag.REASON_CHOICES)
    description = serializers.CharField(max_length=1000)
    evidence = serializers.ListField(child=serializers.DictField(), required=False, default=list)


class FlagAssignSerializer(serializers.Serializer):
    moderator_id = serializers.IntegerField(required=False)


class FlagResolveSerializer(serializers.Serializer):
    resolution = serializers.ChoiceField(choices=ContentFlag.RESOLUTION_CHOICES)
    moderator_notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default="")


class FlagDismissSerializer(serializers.Serializer):
    moderator_notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default="")


class DisputeTimelineEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = DisputeTimelineEntry
        fields = ["id", "action", "performed_by", "description", "metadata", "timestamp"]


class DisputeCommunicationSerializer(serializers.ModelSerializer):
    class Meta:
        model = DisputeCommunication
        fields = ["id", "sender", "message", "is_private", "timestamp"]


class DisputeActionItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = DisputeActionItem
        fields = ["id", "user", "action", "deadline", "completed"]


class DisputeSerializer(serializers.ModelSerializer):
    initiator = UserSummarySerializer(read_only=True)
    respondent = UserSummarySerializer(read_only=True)
    mediator = UserSummarySerializer(read_only=True)
    timeline = DisputeTimelineEntrySerializer(many=True, read_only=True)
    required_actions = DisputeActionItemSerializer(many=True, read_only=True)
    communications = serializers.SerializerMethodField()

    class Meta:
        model = Dispute
        fields = "__all__"

    def get_communications(self, obj):
        request = self.context.get("request")
        messages = obj.communications.all()
        viewer = getattr(request, "user", None)
        can_see_private = viewer is not None and (
            user_role(viewer) == ROLE_ADMIN or str(obj.mediator_id) == str(viewer.id)
        )
        if not can_see_private:
            viewer_id = getattr(viewer, "id", None)
            messages = [
                message
                for message in messages
                if not message.is_private or message.sender_id == viewer_id
            ]
        return DisputeCommunicationSerializer(messages, many=True).data


class DisputeListSerializer(serializers.ModelSerializer):
    initiator = UserSummarySerializer(read_only=True)
    respondent = UserSummarySerializer(read_only=True)
    mediator = UserSummarySerializer(read_only=True)

    class Meta:
        model = Dispute
        fields = [
            "id",
            "dispute_id",
            "type",
            "status",
            "priority",
            "title",
            "initiator",
            "respondent",
            "mediator",
            "related_entity_type",
            "related_entity_id",
            "response_deadline",
            "mediation_deadline",
            "resolution_deadline",
            "created_at",
        ]


class DisputeCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Dispute.TYPE_CHOICES)
    respondent_id = serializers.IntegerField()
    related_entity_type = serializers.ChoiceField(choices=Dispute.ENTITY_TYPE_CHOICES)
    related_entity_id = serializers.CharField(max_length=64)
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(max_length=2000)
    evidence = serializers.ListField(child=serializers.DictField(), required=False, default=list)
    priority = serializers.ChoiceField(
        choices=["low", "medium", "high", "urgent"], required=False, default="medium"
    )


class DisputeAssignSerializer(serializers.Serializer):
    mediator_id = serializers.IntegerField(required=False)


class DisputeResponseSerializer(serializers.Serializer):
    response = serializers.CharField(max_length=1000)


class DisputeMessageSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=1000)
    is_private = serializers.BooleanField(required=False, default=False)


class DisputeEvidenceSerializer(serializers.Serializer):
    type = serializers.ChoiceField(
        choices=["text", "file", "screenshot", "link", "message_thread"]
    )
    content = serializers.CharField(required=False, allow_blank=True, default="")
    file_url = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("content") and not attrs.get("file_url"):
            raise serializers.ValidationError("Evidence type and content/file URL are required")
        return attrs


class DisputeActionInputSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    action = serializers.CharField(max_length=255)
    deadline = serializers.DateTimeField(required=False, allow_null=True)


class DisputeResolveSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Dispute.RESOLUTION_TYPE_CHOICES)
    description = serializers.CharField()
    compensation_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    compensation_recipient_id = serializers.IntegerField(required=False, allow_null=True)
    action_required = DisputeActionInputSerializer(many=True, required=False)


class DisputeCloseSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class ModerationReportQuerySerializer(serializers.Serializer):
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs["start_date"] > attrs["end_date"]:
            raise serializers.ValidationError({"end_date": "end_date must be after start_date."})
        return attrs


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "title",
            "message",
            "data",
            "action_url",
            "priority",
            "is_read",
            "expires_at",
            "created_at",
        ]


class NotificationMarkReadSerializer(serializers.Serializer):
    notification_ids = serializers.ListField(
        child=serializers.IntegerField(), required=False, allow_empty=True
    )
