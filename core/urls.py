from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api_views import (
    ContentFlagViewSet,
    DisputeViewSet,
    MentorshipSessionViewSet,
    MentorshipViewSet,
    ModerationReportViewSet,
    NotificationViewSet,
)

router = DefaultRouter()
router.register(r"mentorships", MentorshipViewSet, basename="mentorship")
router.register(r"sessions", MentorshipSessionViewSet, basename="mentorship-session")
router.register(r"flags", ContentFlagViewSet, basename="content-flag")
router.register(r"disputes", DisputeViewSet, basename="dispute")
router.register(r"moderation", ModerationReportViewSet, basename="moderation")
router.register(r"notifications", NotificationViewSet, basename="notification")


urlpatterns = [
    path("", include(router.urls)),
]
