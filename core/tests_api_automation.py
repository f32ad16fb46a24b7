from datetime import timedelta
from decimal import Decimal
import warnings

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.schemas.openapi import SchemaGenerator
from rest_framework.test import APITestCase

from core.models import (
    Dispute,
    FreelancerProfile,
    MentorProfile,
    Mentorship,
    Notification,
    UserProfile,
)
from core.schema import PUBLIC_PATHS


POST_ONLY_PUBLIC_PATHS = {
    "/api/login/",
    "/api/token/refresh/",
}

EXPECTED_PATHS = {
    "/api/login/",
    "/api/token/refresh/",
    "/api/schema/",
    "/api/mentorships/",
    "/api/mentorships/matches/",
    "/api/mentorships/requests/",
    "/api/mentorships/active/",
    "/api/mentorships/request/",
    "/api/mentorships/{id}/accept/",
    "/api/mentorships/{id}/decline/",
    "/api/mentorships/{id}/complete/",
    "/api/mentorships/{id}/sessions/",
    "/api/sessions/upcoming/",
    "/api/sessions/history/",
    "/api/sessions/{id}/status/",
    "/api/sessions/{id}/feedback/",
    "/api/flags/",
    "/api/flags/queue/",
    "/api/flags/{id}/assign/",
    "/api/flags/{id}/resolve/",
    "/api/flags/{id}/dismiss/",
    "/api/disputes/",
    "/api/disputes/queue/",
    "/api/disputes/{dispute_id}/",
    "/api/disputes/{dispute_id}/assign/",
    "/api/disputes/{dispute_id}/respond/",
    "/api/disputes/{dispute_id}/communicate/",
    "/api/disputes/{dispute_id}/evidence/",
    "/api/disputes/{dispute_id}/resolve/",
    "/api/disputes/{dispute_id}/close/",
    "/api/moderation/statistics/",
    "/api/moderation/report/",
    "/api/notifications/",
    "/api/notifications/unread-count/",
    "/api/notifications/mark-read/",
}

HTTP_METHODS = {"get", "post", "put", "patch", "delete"}


def create_app_user(username, role, password="Pass12345!", **extra):
    User = get_user_model()
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password=password,
        first_name=username.split("_")[0].title(),
        **extra,
    )
    UserProfile.objects.create(
        user=user, role=role, full_name=username.replace("_", " ").title(), is_verified=True
    )
    return user


class SkillRiseApiTestCase(APITestCase):
    password = "Pass12345!"

    @classmethod
    def setUpTestData(cls):
        cls.admin_user = create_app_user("admin_automation", "admin", is_staff=True, is_superuser=True)
        cls.mentor_user = create_app_user("mentor_automation", "mentor")
        cls.other_mentor_user = create_app_user("mentor_other", "mentor")
        cls.mentee_user = create_app_user("mentee_automation", "freelancer")
        cls.second_mentee_user = create_app_user("mentee_second", "freelancer")
        cls.client_user = create_app_user("client_automation", "client")

        MentorProfile.objects.create(
            user=cls.mentor_user,
            expertise_areas=["Python", "Django"],
            years_experience=6,
            mentoring_capacity=1,
            rating=Decimal("4.50"),
        )
        MentorProfile.objects.create(
            user=cls.other_mentor_user,
            expertise_areas=["Illustration"],
            years_experience=1,
            mentoring_capacity=3,
            rating=Decimal("3.00"),
        )
        FreelancerProfile.objects.create(
            user=cls.mentee_user, skills=["Python", "Django"], experience_level="beginner"
        )
        FreelancerProfile.objects.create(
            user=cls.second_mentee_user, skills=["Python"], experience_level="intermediate"
        )

    def setUp(self):
        self.client.defaults["HTTP_HOST"] = "testserver"

    def _authenticate(self, user):
        self.client.force_authenticate(user=user)

    def _clear_authentication(self):
        self.client.force_authenticate(user=None)

    def _request_mentorship(self, mentee=None, mentor=None):
        self._authenticate(mentee or self.mentee_user)
        return self.client.post(
            "/api/mentorships/request/",
            {
                "mentor_id": (mentor or self.mentor_user).id,
                "focus_areas": ["Django"],
                "learning_goals": "Ship a production Django API",
                "request_message": "Would love your guidance.",
            },
            format="json",
        )

    def _active_mentorship(self):
        response = self._request_mentorship()
        self.assertEqual(response.status_code, 201, response.data)
        self._authenticate(self.mentor_user)
        accepted = self.client.post(f"/api/mentorships/{response.data['id']}/accept/", {}, format="json")
        self.assertEqual(accepted.status_code, 200, accepted.data)
        return accepted.data

    def _create_dispute(self, **overrides):
        payload = {
            "type": "project_quality",
            "respondent_id": self.mentee_user.id,
            "related_entity_type": "project",
            "related_entity_id": "41",
            "title": "Landing page not delivered",
            "description": "The agreed landing page was never delivered.",
            "priority": "medium",
        }
        payload.update(overrides)
        self._authenticate(self.client_user)
        return self.client.post("/api/disputes/", payload, format="json")


class AuthApiTests(SkillRiseApiTestCase):
    def test_login_returns_tokens_and_role(self):
        response = self.client.post(
            "/api/login/",
            {"email": self.mentee_user.email, "password": self.password},
            format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["role"], "freelancer")
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)

    def test_login_rejects_wrong_password(self):
        response = self.client.post(
            "/api/login/",
            {"email": self.mentee_user.email, "password": "wrong-pass"},
            format="json",
        )
        self.assertEqual(response.status_code, 401)

    def test_login_rejects_banned_user(self):
        UserProfile.objects.filter(user=self.mentee_user).update(is_banned=True)
        response = self.client.post(
            "/api/login/",
            {"email": self.mentee_user.email, "password": self.password},
            format="json",
        )
        self.assertEqual(response.status_code, 401)

    def test_refresh_token_issues_new_access_token(self):
        login = self.client.post(
            "/api/login/",
            {"email": self.mentor_user.email, "password": self.password},
            format="json",
        )
        self.assertEqual(login.status_code, 200, login.data)
        response = self.client.post(
            "/api/token/refresh/", {"refresh": login.data["refresh"]}, format="json"
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertIn("access", response.data)

    def test_bearer_token_authenticates_api_calls(self):
        login = self.client.post(
            "/api/login/",
            {"email": self.mentee_user.email, "password": self.password},
            format="json",
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")
        response = self.client.get("/api/notifications/unread-count/")
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data, {"unread_count": 0})


class MentorshipApiTests(SkillRiseApiTestCase):
    def test_matches_rank_mentors_for_signed_in_freelancer(self):
        self._authenticate(self.mentee_user)
        response = self.client.get("/api/mentorships/matches/", {"focus_areas": "Django"})
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["criteria"]["skills"], ["Python", "Django"])
        self.assertEqual(response.data["criteria"]["focus_areas"], ["Django"])
        matches = response.data["matches"]
        self.assertEqual(matches[0]["mentor"]["id"], self.mentor_user.id)
        self.assertEqual(matches[0]["available_capacity"], 1)
        scores = [match["match_score"] for match in matches]
        self.assertEqual(scores, sorted(scores, reverse=True))

    def test_request_accept_flow(self):
        response = self._request_mentorship()
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["status"], "pending")
        self.assertEqual(response.data["mentor"]["id"], self.mentor_user.id)

        self._authenticate(self.mentor_user)
        pending = self.client.get("/api/mentorships/requests/")
        self.assertEqual([item["id"] for item in pending.data], [response.data["id"]])

        accepted = self.client.post(f"/api/mentorships/{response.data['id']}/accept/", {}, format="json")
        self.assertEqual(accepted.status_code, 200, accepted.data)
        self.assertEqual(accepted.data["status"], "active")
        self.assertEqual(MentorProfile.objects.get(user=self.mentor_user).total_mentees, 1)

        self._authenticate(self.mentee_user)
        active = self.client.get("/api/mentorships/active/")
        self.assertEqual(len(active.data), 1)

    def test_duplicate_request_returns_conflict_envelope(self):
        self.assertEqual(self._request_mentorship().status_code, 201)
        response = self._request_mentorship()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"]["code"], "duplicate_request")
        self.assertEqual(
            response.data["error"]["message"],
            "A mentorship request already exists between these users",
        )
        self.assertIn("timestamp", response.data["error"])

    def test_full_mentor_returns_capacity_conflict(self):
        self._active_mentorship()
        response = self._request_mentorship(mentee=self.second_mentee_user)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"]["code"], "capacity_exceeded")

    def test_accept_unknown_mentorship_returns_not_found(self):
        self._authenticate(self.mentor_user)
        response = self.client.post("/api/mentorships/999999/accept/", {}, format="json")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"]["code"], "not_found")

    def test_accept_by_other_mentor_is_forbidden(self):
        mentorship_id = self._request_mentorship().data["id"]
        self._authenticate(self.other_mentor_user)
        response = self.client.post(f"/api/mentorships/{mentorship_id}/accept/", {}, format="json")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["error"]["code"], "unauthorized")

    def test_decline_cancels_request(self):
        mentorship_id = self._request_mentorship().data["id"]
        self._authenticate(self.mentor_user)
        response = self.client.post(
            f"/api/mentorships/{mentorship_id}/decline/", {"reason": "Fully booked"}, format="json"
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["status"], "cancelled")
        self.assertEqual(MentorProfile.objects.get(user=self.mentor_user).total_mentees, 0)

    def test_only_freelancers_can_request_mentorship(self):
        response = self._request_mentorship(mentee=self.client_user)
        self.assertEqual(response.status_code, 403)

    def test_request_requires_focus_area(self):
        self._authenticate(self.mentee_user)
        response = self.client.post(
            "/api/mentorships/request/",
            {"mentor_id": self.mentor_user.id, "focus_areas": []},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("focus_areas", response.data)

    def test_session_scheduling_and_feedback(self):
        mentorship = self._active_mentorship()
        self._authenticate(self.mentee_user)
        scheduled_date = (timezone.now() + timedelta(days=2)).isoformat()
        created = self.client.post(
            f"/api/mentorships/{mentorship['id']}/sessions/",
            {"scheduled_date": scheduled_date, "notes": "Review my models"},
            format="json",
        )
        self.assertEqual(created.status_code, 201, created.data)
        self.assertEqual(created.data["duration"], 60)

        upcoming = self.client.get("/api/sessions/upcoming/")
        self.assertEqual([item["id"] for item in upcoming.data], [created.data["id"]])

        feedback = self.client.post(
            f"/api/sessions/{created.data['id']}/feedback/",
            {"feedback": "Very practical", "rating": 5},
            format="json",
        )
        self.assertEqual(feedback.status_code, 200, feedback.data)
        self.assertEqual(feedback.data["mentee_rating"], 5)

        self._authenticate(self.mentor_user)
        completed = self.client.post(
            f"/api/sessions/{created.data['id']}/status/", {"status": "completed"}, format="json"
        )
        self.assertEqual(completed.data["status"], "completed")

    def test_session_in_the_past_is_rejected(self):
        mentorship = self._active_mentorship()
        self._authenticate(self.mentee_user)
        response = self.client.post(
            f"/api/mentorships/{mentorship['id']}/sessions/",
            {"scheduled_date": (timezone.now() - timedelta(hours=2)).isoformat()},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("scheduled_date", response.data)

    def test_session_on_completed_mentorship_is_conflict(self):
        mentorship = self._active_mentorship()
        self._authenticate(self.mentee_user)
        self.client.post(f"/api/mentorships/{mentorship['id']}/complete/", {}, format="json")
        response = self.client.post(
            f"/api/mentorships/{mentorship['id']}/sessions/",
            {"scheduled_date": (timezone.now() + timedelta(days=1)).isoformat()},
            format="json",
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"]["code"], "invalid_state")


class ModerationApiTests(SkillRiseApiTestCase):
    def _flag(self, reason="hate_speech", content_id="77"):
        self._authenticate(self.mentee_user)
        return self.client.post(
            "/api/flags/",
            {
                "content_type": "comment",
                "content_id": content_id,
                "target_user_id": self.client_user.id,
                "reason": reason,
                "description": "Offensive comment on my portfolio",
            },
            format="json",
        )

    def test_flag_creation_sets_priority(self):
        response = self._flag()
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["priority"], "high")
        self.assertEqual(response.data["severity"], 8)
        self.assertEqual(response.data["status"], "pending")

        mine = self.client.get("/api/flags/")
        self.assertEqual(mine.data["pagination"]["total"], 1)

    def test_duplicate_flag_is_conflict(self):
        self._flag()
        response = self._flag()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["error"]["message"], "Content already flagged by you")

    def test_moderation_queue_is_admin_only(self):
        self._flag()
        self._authenticate(self.mentee_user)
        self.assertEqual(self.client.get("/api/flags/queue/").status_code, 403)

        self._authenticate(self.admin_user)
        response = self.client.get("/api/flags/queue/")
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(len(response.data["results"]), 1)
        self.assertEqual(response.data["pagination"]["page"], 1)

    def test_admin_assigns_and_resolves_flag(self):
        flag_id = self._flag().data["id"]
        self._authenticate(self.admin_user)
        assigned = self.client.post(f"/api/flags/{flag_id}/assign/", {}, format="json")
        self.assertEqual(assigned.data["status"], "under_review")
        self.assertEqual(assigned.data["moderator"]["id"], self.admin_user.id)

        resolved = self.client.post(
            f"/api/flags/{flag_id}/resolve/",
            {"resolution": "user_banned", "moderator_notes": "Repeated abuse"},
            format="json",
        )
        self.assertEqual(resolved.status_code, 200, resolved.data)
        self.assertEqual(resolved.data["status"], "resolved")
        self.assertTrue(UserProfile.objects.get(user=self.client_user).is_banned)

        again = self.client.post(f"/api/flags/{flag_id}/dismiss/", {}, format="json")
        self.assertEqual(again.status_code, 409)

    def test_statistics_and_report(self):
        self._flag(reason="spam")
        self._authenticate(self.admin_user)
        stats = self.client.get("/api/moderation/statistics/")
        self.assertEqual(stats.status_code, 200, stats.data)
        self.assertEqual(stats.data["flags"]["total_flags"], 1)
        self.assertEqual(stats.data["flags"]["flags_by_reason"], {"spam": 1})

        now = timezone.now()
        report = self.client.get(
            "/api/moderation/report/",
            {
                "start_date": (now - timedelta(days=1)).isoformat(),
                "end_date": (now + timedelta(days=1)).isoformat(),
            },
        )
        self.assertEqual(report.status_code, 200, report.data)
        self.assertEqual(report.data["summary"]["total_flags"], 1)
        self.assertEqual(len(report.data["flags"]), 1)

        invalid = self.client.get(
            "/api/moderation/report/",
            {"start_date": now.isoformat(), "end_date": (now - timedelta(days=1)).isoformat()},
        )
        self.assertEqual(invalid.status_code, 400)

        self._authenticate(self.mentee_user)
        self.assertEqual(self.client.get("/api/moderation/statistics/").status_code, 403)


class DisputeApiTests(SkillRiseApiTestCase):
    def test_create_dispute_records_timeline(self):
        response = self._create_dispute()
        self.assertEqual(response.status_code, 201, response.data)
        self.assertRegex(response.data["dispute_id"], r"^DSP-\d+-\d{4}$")
        self.assertEqual(response.data["status"], "open")
        self.assertEqual([entry["action"] for entry in response.data["timeline"]], ["dispute_created"])
        self.assertIsNotNone(response.data["resolution_deadline"])

    def test_dispute_detail_is_limited_to_participants(self):
        dispute_id = self._create_dispute().data["dispute_id"]
        self._authenticate(self.mentee_user)
        self.assertEqual(self.client.get(f"/api/disputes/{dispute_id}/").status_code, 200)

        self._authenticate(self.second_mentee_user)
        response = self.client.get(f"/api/disputes/{dispute_id}/")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["error"]["message"], "Access denied")

        self._authenticate(self.admin_user)
        self.assertEqual(self.client.get(f"/api/disputes/{dispute_id}/").status_code, 200)

    def test_private_messages_are_hidden_from_other_party(self):
        dispute_id = self._create_dispute().data["dispute_id"]
        self._authenticate(self.client_user)
        self.client.post(
            f"/api/disputes/{dispute_id}/communicate/",
            {"message": "Note for the mediator", "is_private": True},
            format="json",
        )
        self.client.post(
            f"/api/disputes/{dispute_id}/communicate/",
            {"message": "Please deliver the page"},
            format="json",
        )

        self._authenticate(self.mentee_user)
        visible = self.client.get(f"/api/disputes/{dispute_id}/").data["communications"]
        self.assertEqual([item["message"] for item in visible], ["Please deliver the page"])

        self._authenticate(self.admin_user)
        self.assertEqual(len(self.client.get(f"/api/disputes/{dispute_id}/").data["communications"]), 2)

    def test_dispute_lifecycle_through_api(self):
        dispute_id = self._create_dispute().data["dispute_id"]

        self._authenticate(self.mentee_user)
        responded = self.client.post(
            f"/api/disputes/{dispute_id}/respond/",
            {"response": "The page was delivered by e-mail."},
            format="json",
        )
        self.assertEqual(responded.data["status"], "under_review")
        evidence = self.client.post(
            f"/api/disputes/{dispute_id}/evidence/",
            {"type": "link", "file_url": "https://example.com/delivery"},
            format="json",
        )
        self.assertEqual(evidence.status_code, 201, evidence.data)

        self._authenticate(self.admin_user)
        assigned = self.client.post(f"/api/disputes/{dispute_id}/assign/", {}, format="json")
        self.assertEqual(assigned.data["status"], "mediation")
        resolved = self.client.post(
            f"/api/disputes/{dispute_id}/resolve/",
            {
                "type": "favor_respondent",
                "description": "Delivery confirmed",
                "action_required": [{"user_id": self.client_user.id, "action": "Release payment"}],
            },
            format="json",
        )
        self.assertEqual(resolved.status_code, 200, resolved.data)
        self.assertEqual(resolved.data["status"], "resolved")
        self.assertIsNotNone(resolved.data["resolved_at"])
        self.assertEqual(len(resolved.data["required_actions"]), 1)
        self.assertEqual(
            [entry["action"] for entry in resolved.data["timeline"]],
            [
                "dispute_created",
                "response_submitted",
                "evidence_added",
                "mediator_assigned",
                "dispute_resolved",
            ],
        )

        closed = self.client.post(f"/api/disputes/{dispute_id}/close/", {}, format="json")
        self.assertEqual(closed.status_code, 409)

    def test_resolve_with_unknown_action_user_returns_not_found(self):
        dispute_id = self._create_dispute().data["dispute_id"]
        self._authenticate(self.admin_user)
        response = self.client.post(
            f"/api/disputes/{dispute_id}/resolve/",
            {
                "type": "favor_initiator",
                "description": "Refund owed",
                "action_required": [{"user_id": 999999, "action": "Pay refund"}],
            },
            format="json",
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"]["code"], "not_found")

        detail = self.client.get(f"/api/disputes/{dispute_id}/")
        self.assertEqual(detail.data["status"], "open")
        self.assertEqual(detail.data["required_actions"], [])

    def test_participant_cannot_resolve_or_close(self):
        dispute_id = self._create_dispute().data["dispute_id"]
        self._authenticate(self.client_user)
        resolved = self.client.post(
            f"/api/disputes/{dispute_id}/resolve/",
            {"type": "favor_initiator", "description": "I win"},
            format="json",
        )
        self.assertEqual(resolved.status_code, 403)
        self.assertEqual(self.client.post(f"/api/disputes/{dispute_id}/close/", {}, format="json").status_code, 403)

    def test_dispute_lists(self):
        self._create_dispute()
        self._create_dispute(related_entity_id="42", priority="urgent")

        self._authenticate(self.mentee_user)
        mine = self.client.get("/api/disputes/")
        self.assertEqual(mine.data["pagination"]["total"], 2)

        self._authenticate(self.admin_user)
        queue = self.client.get("/api/disputes/queue/", {"priority": "urgent"})
        self.assertEqual(len(queue.data["results"]), 1)
        self.assertEqual(Dispute.objects.count(), 2)

    def test_create_dispute_against_self_is_rejected(self):
        response = self._create_dispute(respondent_id=self.client_user.id)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"]["code"], "validation_error")


class NotificationApiTests(SkillRiseApiTestCase):
    def test_unread_count_and_mark_read(self):
        self._request_mentorship()
        self._authenticate(self.mentor_user)

        self.assertEqual(self.client.get("/api/notifications/unread-count/").data, {"unread_count": 1})
        listed = self.client.get("/api/notifications/")
        self.assertEqual(listed.data[0]["type"], "mentorship_request")

        marked = self.client.post(
            "/api/notifications/mark-read/",
            {"notification_ids": [listed.data[0]["id"]]},
            format="json",
        )
        self.assertEqual(marked.data, {"updated": 1})
        self.assertEqual(self.client.get("/api/notifications/unread-count/").data, {"unread_count": 0})
        self.assertTrue(Notification.objects.get(pk=listed.data[0]["id"]).is_read)


class ApiAutomationCoverageTests(SkillRiseApiTestCase):
    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        now = timezone.now()
        cls.mentorship = Mentorship.objects.create(
            mentor=cls.mentor_user,
            mentee=cls.mentee_user,
            focus_areas=["Django"],
            status="active",
            start_date=now,
        )
        cls.dispute = Dispute.create_dispute(
            now=now,
            type="other",
            initiator=cls.client_user,
            respondent=cls.mentee_user,
            related_entity_type="user",
            related_entity_id=str(cls.mentee_user.id),
            title="Automation dispute",
            description="Seed dispute for coverage.",
        )

    def _schema_paths(self):
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", message="You have a duplicated operationId in your OpenAPI schema*")
            schema = SchemaGenerator(title="SkillRise API").get_schema(public=True)
        return schema.get("paths", {}) if schema else {}

    def _resolve_path(self, schema_path):
        return schema_path.replace("{id}", str(self.mentorship.id)).replace(
            "{dispute_id}", self.dispute.dispute_id
        )

    def _get_user_for(self, schema_path):
        if schema_path == "/api/mentorships/requests/":
            return self.mentor_user
        if schema_path.startswith("/api/mentorships/"):
            return self.mentee_user
        return self.admin_user

    def _query_for(self, schema_path):
        if schema_path == "/api/moderation/report/":
            now = timezone.now()
            return {
                "start_date": (now - timedelta(days=7)).isoformat(),
                "end_date": now.isoformat(),
            }
        return None

    def test_api_surface_matches_routes(self):
        self.assertEqual(set(self._schema_paths().keys()), EXPECTED_PATHS)

    def test_get_operations_succeed_for_permitted_users(self):
        paths = self._schema_paths()
        covered_paths = set()

        for schema_path, operations in sorted(paths.items()):
            if "get" not in operations or schema_path in POST_ONLY_PUBLIC_PATHS:
                continue
            if schema_path in PUBLIC_PATHS:
                self._clear_authentication()
            else:
                self._authenticate(self._get_user_for(schema_path))

            response = self.client.get(self._resolve_path(schema_path), self._query_for(schema_path))
            self.assertEqual(
                response.status_code,
                200,
                f"GET coverage failed for {schema_path} with {response.status_code}: {getattr(response, 'data', None)}",
            )
            covered_paths.add(schema_path)

        self.assertIn("/api/schema/", covered_paths)
        self.assertIn("/api/disputes/{dispute_id}/", covered_paths)

    def test_all_protected_operations_reject_unauthenticated_requests(self):
        paths = self._schema_paths()
        for schema_path, operations in sorted(paths.items()):
            if schema_path in PUBLIC_PATHS:
                continue

            for method in sorted(m.upper() for m in operations.keys() if m in HTTP_METHODS):
                self._clear_authentication()
                client_method = getattr(self.client, method.lower())
                response = client_method(self._resolve_path(schema_path), {}, format="json")
                self.assertIn(
                    response.status_code,
                    {401, 403},
                    f"Expected unauth rejection for {schema_path} {method}, got {response.status_code}",
                )

    def test_schema_endpoint_tags_every_operation(self):
        self._clear_authentication()
        response = self.client.get("/api/schema/")
        self.assertEqual(response.status_code, 200)
        schema = response.json()
        tag_names = [tag["name"] for tag in schema["tags"]]
        self.assertIn("Mentorship", tag_names)
        for path, operations in schema["paths"].items():
            for method, operation in operations.items():
                if method not in HTTP_METHODS:
                    continue
                self.assertTrue(operation.get("tags"), f"{method.upper()} {path} has no tag")
                if path in PUBLIC_PATHS:
                    self.assertNotIn("security", operation)
                else:
                    self.assertEqual(operation["security"], [{"HTTPBearer": []}])
        self.assertEqual(schema["paths"]["/api/flags/queue/"]["get"]["tags"], ["Moderation"])
