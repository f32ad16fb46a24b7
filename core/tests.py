import re
from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock, patch

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from core.abuse_monitoring import classify_abuse, classify_spam
from core.exceptions import (
    CapacityExceededError,
    DuplicateRequestError,
    InvalidStateError,
    NotFoundError,
    ServiceValidationError,
    UnauthorizedError,
)
from core.matching_logic import (
    MatchWeights,
    ScoredMentor,
    calculate_experience_match,
    calculate_match_score,
    calculate_skill_match,
    rank_matches,
)
from core.mentorship_service import MentorshipService
from core.moderation_service import ModerationService
from core.models import (
    ContentFlag,
    DisputeActionItem,
    FreelancerProfile,
    MentorProfile,
    Mentorship,
    MentorshipSession,
    Message,
    Notification,
    Project,
    UserProfile,
    UserWarning,
)
from core.notifications import (
    NotificationSink,
    get_user_notifications,
    mark_notifications_read,
    unread_count,
)


User = get_user_model()


def make_user(username, role, *, verified=True, active=True, superuser=False):
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="Pass12345!",
        is_active=active,
        is_superuser=superuser,
    )
    UserProfile.objects.create(
        user=user, role=role, full_name=username.replace("_", " ").title(), is_verified=verified
    )
    return user


def make_mentor(username, expertise, *, capacity=5, years=5, rating="4.00", verified=True, active=True):
    user = make_user(username, "mentor", verified=verified, active=active)
    MentorProfile.objects.create(
        user=user,
        expertise_areas=expertise,
        mentoring_capacity=capacity,
        years_experience=years,
        rating=Decimal(rating),
    )
    return user


def make_freelancer(username, skills=None, level="beginner"):
    user = make_user(username, "freelancer")
    FreelancerProfile.objects.create(user=user, skills=skills or [], experience_level=level)
    return user


class MatchingLogicTests(SimpleTestCase):
    def test_skill_match_counts_exact_matches_per_mentee_skill(self):
        self.assertEqual(
            calculate_skill_match(["JavaScript", "React", "Node.js"], ["JavaScript", "HTML"]),
            50,
        )

    def test_skill_match_gives_half_credit_for_substring_match(self):
        self.assertEqual(calculate_skill_match(["JavaScript"], ["java"]), 50)
        self.assertEqual(calculate_skill_match(["React Native", "React"], ["react"]), 100)
        self.assertEqual(calculate_skill_match(["react"], ["React Native", "React"]), 75)

    def test_skill_match_is_zero_without_either_side(self):
        self.assertEqual(calculate_skill_match([], ["Python"]), 0)
        self.assertEqual(calculate_skill_match(["Python"], []), 0)

    def test_experience_match_bands(self):
        self.assertEqual(calculate_experience_match(5, "beginner"), 100)
        self.assertEqual(calculate_experience_match(3, "beginner"), 80)
        self.assertEqual(calculate_experience_match(1, "intermediate"), 20)
        self.assertEqual(calculate_experience_match(3, "intermediate"), 60)
        self.assertEqual(calculate_experience_match(10, "advanced"), 100)
        self.assertEqual(calculate_experience_match(6, "advanced"), 60)
        self.assertEqual(calculate_experience_match(2, "advanced"), 20)
        self.assertEqual(calculate_experience_match(10, "expert"), 50)

    def test_full_overlap_scores_one_hundred(self):
        score = calculate_match_score(
            expertise_areas=["JavaScript", "React"],
            years_experience=5,
            rating=5,
            skills=["JavaScript"],
            experience_level="beginner",
            focus_areas=["React"],
        )
        self.assertEqual(score, 100)

    def test_weights_are_configurable(self):
        weights = MatchWeights(skill=1.0, focus=0.0, experience=0.0, rating=0.0)
        score = calculate_match_score(
            expertise_areas=["Python"],
            years_experience=1,
            rating=5,
            skills=["Python", "Go"],
            experience_level="advanced",
            focus_areas=[],
            weights=weights,
        )
        self.assertEqual(score, 50)

    def test_score_rounds_half_up(self):
        weights = MatchWeights(skill=0.25, focus=0.0, experience=0.0, rating=0.0)
        score = calculate_match_score(
            expertise_areas=["Python"],
            years_experience=0,
            rating=0,
            skills=["Python", "Go"],
            experience_level=None,
            focus_areas=[],
            weights=weights,
        )
        self.assertEqual(score, 13)

    @override_settings(
        MENTOR_MATCH_WEIGHTS={"skill": 0.5, "focus": 0.2, "experience": 0.2, "rating": 0.1}
    )
    def test_weights_are_read_from_settings(self):
        weights = MatchWeights.from_settings()
        self.assertEqual(weights.skill, 0.5)
        self.assertEqual(weights.focus, 0.2)

    def test_rank_matches_drops_zero_scores_and_breaks_ties_on_rating(self):
        matches = [
            ScoredMentor(mentor="a", match_score=70, available_capacity=1, rating=3.0, total_mentees=0),
            ScoredMentor(mentor="b", match_score=0, available_capacity=1, rating=5.0, total_mentees=0),
            ScoredMentor(mentor="c", match_score=70, available_capacity=1, rating=4.5, total_mentees=0),
            ScoredMentor(mentor="d", match_score=90, available_capacity=1, rating=1.0, total_mentees=0),
        ]
        ranked = rank_matches(matches, limit=10)
        self.assertEqual([match.mentor for match in ranked], ["d", "c", "a"])
        self.assertEqual(len(rank_matches(matches, limit=2)), 2)


class ContentScreeningTests(SimpleTestCase):
    def test_spam_needs_two_signals(self):
        result = classify_spam("BUY NOW and earn money fast, click here http://a.io")
        self.assertTrue(result["flagged"])
        self.assertIn("buy now", result["signals"])
        self.assertGreater(result["confidence_score"], 0.5)

    def test_ordinary_message_is_not_spam(self):
        result = classify_spam("Could we move our session to Thursday afternoon?")
        self.assertFalse(result["flagged"])
        self.assertEqual(result["signals"], [])

    def test_excessive_links_count_as_signal(self):
        text = "click here https://a.io https://b.io https://c.io"
        self.assertIn("excessive_links", classify_spam(text)["signals"])

    def test_abuse_terms_match_whole_words(self):
        self.assertEqual(classify_abuse("you are an idiot and a loser")["severity"], "medium")
        self.assertFalse(classify_abuse("the idiom is fine")["flagged"])


class MentorshipMatchingTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.best = make_mentor("best_mentor", ["JavaScript", "React"], years=5, rating="4.00")
        cls.top = make_mentor("top_mentor", ["JavaScript", "React"], years=5, rating="4.50")
        cls.weak = make_mentor("weak_mentor", ["Design"], years=0, rating="1.00")
        cls.full = make_mentor("full_mentor", ["JavaScript", "React"], capacity=1)
        cls.unverified = make_mentor("unverified_mentor", ["JavaScript"], verified=False)
        cls.inactive = make_mentor("inactive_mentor", ["JavaScript"], active=False)
        cls.mentee = make_freelancer("busy_mentee", ["JavaScript"])
        Mentorship.objects.create(
            mentor=cls.full, mentee=cls.mentee, focus_areas=["JavaScript"], status="active"
        )

    def setUp(self):
        self.service = MentorshipService(notifier=Mock())

    def _find(self):
        return self.service.find_potential_mentors(
            {"skills": ["JavaScript"], "experience_level": "beginner", "focus_areas": ["React"]}
        )

    def test_excludes_mentors_at_capacity_unverified_or_inactive(self):
        mentor_ids = {match.mentor.id for match in self._find()}
        self.assertNotIn(self.full.id, mentor_ids)
        self.assertNotIn(self.unverified.id, mentor_ids)
        self.assertNotIn(self.inactive.id, mentor_ids)
        self.assertIn(self.best.id, mentor_ids)

    def test_results_are_sorted_by_score_then_rating(self):
        matches = self._find()
        self.assertEqual(matches[0].mentor.id, self.top.id)
        self.assertEqual(matches[1].mentor.id, self.best.id)
        keys = [(match.match_score, match.rating) for match in matches]
        self.assertEqual(keys, sorted(keys, reverse=True))

    def test_reports_available_capacity(self):
        match = next(match for match in self._find() if match.mentor.id == self.best.id)
        self.assertEqual(match.available_capacity, 5)
        self.assertEqual(match.match_score, 98)

    @override_settings(MENTOR_MATCH_LIMIT=1)
    def test_limit_is_configurable(self):
        self.assertEqual(len(self._find()), 1)

    def test_returns_empty_list_when_nobody_qualifies(self):
        MentorProfile.objects.update(mentoring_capacity=1)
        Mentorship.objects.bulk_create(
            [
                Mentorship(mentor=mentor, mentee=self.mentee, focus_areas=["x"], status="active")
                for mentor in (self.best, self.top, self.weak)
            ]
        )
        self.assertEqual(self._find(), [])

    def test_mentee_profile_fills_missing_criteria(self):
        profile = self.service.mentee_match_profile(self.mentee.id)
        self.assertEqual(profile["skills"], ["JavaScript"])
        self.assertEqual(profile["experience_level"], "beginner")
        self.assertEqual(profile["focus_areas"], ["JavaScript"])


class MentorshipLifecycleTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.mentor = make_mentor("life_mentor", ["Python", "Django"], capacity=2)
        cls.other_mentor = make_mentor("other_mentor", ["Python"])
        cls.mentee = make_freelancer("life_mentee", ["Python"])
        cls.second_mentee = make_freelancer("second_mentee", ["Python"])
        cls.client_user = make_user("plain_client", "client")

    def setUp(self):
        self.notifier = Mock()
        self.service = MentorshipService(notifier=self.notifier)

    def _request(self, mentee=None, mentor=None):
        return self.service.create_mentorship_request(
            (mentee or self.mentee).id,
            (mentor or self.mentor).id,
            ["Python"],
            "Ship a Django app",
            "Hi, can you help?",
        )

    def _active(self):
        mentorship = self._request()
        return self.service.accept_mentorship_request(mentorship.id, self.mentor.id)

    def test_request_creates_pending_mentorship_and_notifies_mentor(self):
        mentorship = self._request()
        self.assertEqual(mentorship.status, "pending")
        self.assertEqual(mentorship.focus_areas, ["Python"])
        args = self.notifier.create_notification.call_args.args
        self.assertEqual(args[0], self.mentor.id)
        self.assertEqual(args[1], "mentorship_request")

    def test_second_request_for_same_pair_is_rejected(self):
        self._request()
        with self.assertRaises(DuplicateRequestError):
            self._request()

    def test_request_to_non_mentor_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self._request(mentor=self.client_user)

    def test_request_from_unknown_mentee_is_not_found(self):
        with self.assertRaises(NotFoundError) as caught:
            self.service.create_mentorship_request(999999, self.mentor.id, ["Python"])
        self.assertEqual(caught.exception.kind, "not_found")
        self.assertFalse(Mentorship.objects.filter(mentor=self.mentor).exists())
        self.notifier.create_notification.assert_not_called()

    def test_request_to_mentor_without_profile_does_not_create_one(self):
        bare_mentor = make_user("bare_mentor", "mentor")
        with self.assertRaises(NotFoundError):
            self._request(mentor=bare_mentor)
        self.assertFalse(MentorProfile.objects.filter(user=bare_mentor).exists())
        self.assertFalse(Mentorship.objects.filter(mentor=bare_mentor).exists())

    def test_request_needs_focus_area(self):
        with self.assertRaises(ServiceValidationError):
            self.service.create_mentorship_request(self.mentee.id, self.mentor.id, ["  "])

    def test_accept_activates_and_increments_total_mentees_once(self):
        mentorship = self._request()
        accepted = self.service.accept_mentorship_request(mentorship.id, self.mentor.id)
        self.assertEqual(accepted.status, "active")
        self.assertIsNotNone(accepted.start_date)
        self.assertIsNotNone(accepted.responded_at)
        self.assertEqual(MentorProfile.objects.get(user=self.mentor).total_mentees, 1)

    def test_accept_by_other_mentor_is_unauthorized(self):
        mentorship = self._request()
        with self.assertRaises(UnauthorizedError):
            self.service.accept_mentorship_request(mentorship.id, self.other_mentor.id)

    def test_accept_requires_pending(self):
        mentorship = self._active()
        with self.assertRaises(InvalidStateError):
            self.service.accept_mentorship_request(mentorship.id, self.mentor.id)

    def test_accept_missing_mentorship_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.service.accept_mentorship_request(999999, self.mentor.id)

    def test_accept_rechecks_capacity(self):
        MentorProfile.objects.filter(user=self.mentor).update(mentoring_capacity=1)
        first = self._request()
        second = self._request(mentee=self.second_mentee)
        self.service.accept_mentorship_request(first.id, self.mentor.id)
        with self.assertRaises(CapacityExceededError):
            self.service.accept_mentorship_request(second.id, self.mentor.id)
        second.refresh_from_db()
        self.assertEqual(second.status, "pending")
        self.assertEqual(MentorProfile.objects.get(user=self.mentor).total_mentees, 1)

    def test_decline_cancels_without_touching_total_mentees(self):
        mentorship = self._request()
        declined = self.service.decline_mentorship_request(mentorship.id, self.mentor.id)
        self.assertEqual(declined.status, "cancelled")
        self.assertEqual(MentorProfile.objects.get(user=self.mentor).total_mentees, 0)
        # A cancelled mentorship no longer blocks a fresh request.
        self.assertEqual(self._request().status, "pending")

    def test_complete_requires_active_mentorship(self):
        mentorship = self._active()
        completed = self.service.complete_mentorship(mentorship.id, self.mentee.id)
        self.assertEqual(completed.status, "completed")
        self.assertIsNotNone(completed.end_date)
        with self.assertRaises(InvalidStateError):
            self.service.complete_mentorship(mentorship.id, self.mentee.id)

    def test_schedule_session_on_completed_mentorship_is_invalid_state(self):
        mentorship = self._active()
        self.service.complete_mentorship(mentorship.id, self.mentor.id)
        with self.assertRaises(InvalidStateError):
            self.service.schedule_session(
                self.mentee.id, mentorship.id, timezone.now() + timedelta(days=1)
            )

    def test_schedule_session_appends_and_notifies_both_parties(self):
        mentorship = self._active()
        self.notifier.reset_mock()
        session = self.service.schedule_session(
            self.mentee.id, mentorship.id, timezone.now() + timedelta(days=2), duration=45, notes="Intro"
        )
        self.assertEqual(session.duration, 45)
        self.assertEqual(session.status, "scheduled")
        mentorship.refresh_from_db()
        self.assertEqual(mentorship.session_count, 1)
        notified = {call.args[0] for call in self.notifier.create_notification.call_args_list}
        self.assertEqual(notified, {self.mentor.id, self.mentee.id})

    def test_schedule_session_validates_caller_date_and_duration(self):
        mentorship = self._active()
        future = timezone.now() + timedelta(days=1)
        with self.assertRaises(UnauthorizedError):
            self.service.schedule_session(self.second_mentee.id, mentorship.id, future)
        with self.assertRaises(ServiceValidationError):
            self.service.schedule_session(
                self.mentee.id, mentorship.id, timezone.now() - timedelta(hours=1)
            )
        with self.assertRaises(ServiceValidationError):
            self.service.schedule_session(self.mentee.id, mentorship.id, future, duration=5)

    def test_upcoming_sessions_are_future_scheduled_and_ascending(self):
        mentorship = self._active()
        now = timezone.now()
        later = MentorshipSession.objects.create(mentorship=mentorship, scheduled_date=now + timedelta(days=3))
        sooner = MentorshipSession.objects.create(mentorship=mentorship, scheduled_date=now + timedelta(days=1))
        MentorshipSession.objects.create(mentorship=mentorship, scheduled_date=now - timedelta(days=1))
        MentorshipSession.objects.create(
            mentorship=mentorship, scheduled_date=now + timedelta(days=2), status="cancelled"
        )

        upcoming = self.service.get_upcoming_sessions(self.mentee.id)
        self.assertEqual([session.id for session in upcoming], [sooner.id, later.id])

        history = self.service.get_session_history(self.mentor.id)
        self.assertEqual(len(history), 4)
        dates = [session.scheduled_date for session in history]
        self.assertEqual(dates, sorted(dates, reverse=True))

    def test_feedback_is_attributed_by_role_and_syncs_mentor_rating(self):
        mentorship = self._active()
        session = MentorshipSession.objects.create(
            mentorship=mentorship, scheduled_date=timezone.now() + timedelta(days=1)
        )
        self.service.add_session_feedback(self.mentor.id, session.id, "Great progress", 5)
        self.service.add_session_feedback(self.mentee.id, session.id, "Very helpful", 4)
        session.refresh_from_db()
        self.assertEqual(session.mentor_feedback, "Great progress")
        self.assertEqual(session.mentor_rating, 5)
        self.assertEqual(session.mentee_feedback, "Very helpful")
        self.assertEqual(session.mentee_rating, 4)
        self.assertEqual(MentorProfile.objects.get(user=self.mentor).rating, Decimal("4.00"))

    def test_feedback_rejects_out_of_range_rating_and_strangers(self):
        mentorship = self._active()
        session = MentorshipSession.objects.create(
            mentorship=mentorship, scheduled_date=timezone.now() + timedelta(days=1)
        )
        with self.assertRaises(ServiceValidationError):
            self.service.add_session_feedback(self.mentee.id, session.id, "", 6)
        with self.assertRaises(UnauthorizedError):
            self.service.add_session_feedback(self.second_mentee.id, session.id, "", 3)
        with self.assertRaises(NotFoundError):
            self.service.add_session_feedback(self.mentee.id, 999999, "", 3)

    def test_update_session_status(self):
        mentorship = self._active()
        session = MentorshipSession.objects.create(
            mentorship=mentorship, scheduled_date=timezone.now() + timedelta(days=1)
        )
        updated = self.service.update_session_status(self.mentor.id, session.id, "completed", "Done")
        self.assertEqual(updated.status, "completed")
        self.assertEqual(updated.notes, "Done")
        with self.assertRaises(ServiceValidationError):
            self.service.update_session_status(self.mentor.id, session.id, "postponed")

    def test_queries_follow_participation(self):
        pending = self._request(mentee=self.second_mentee)
        active = self._active()
        self.assertEqual(
            [item.id for item in self.service.get_mentorship_requests_for_mentor(self.mentor.id)],
            [pending.id],
        )
        self.assertEqual(
            [item.id for item in self.service.get_active_mentorships(self.mentee.id)], [active.id]
        )
        self.assertEqual(len(self.service.get_mentorship_history(self.mentor.id)), 2)
        with self.assertRaises(UnauthorizedError):
            self.service.get_mentorship_sessions(self.other_mentor.id, active.id)

    @patch("core.notifications.Notification.objects.create", side_effect=RuntimeError("db down"))
    def test_notification_failure_does_not_break_request(self, _mock_create):
        service = MentorshipService(notifier=NotificationSink())
        mentorship = service.create_mentorship_request(self.mentee.id, self.mentor.id, ["Python"])
        self.assertEqual(mentorship.status, "pending")
        self.assertFalse(Notification.objects.exists())

    def test_end_to_end_capacity_scenario(self):
        mentor = make_mentor("solo_mentor", ["JavaScript", "React"], capacity=1)
        mentee = make_freelancer("js_mentee", ["JavaScript"], level="beginner")
        other = make_freelancer("late_mentee", ["JavaScript"])

        mentorship = self.service.create_mentorship_request(mentee.id, mentor.id, ["JavaScript"])
        self.assertEqual(mentorship.status, "pending")
        mentorship = self.service.accept_mentorship_request(mentorship.id, mentor.id)
        self.assertEqual(mentorship.status, "active")
        self.assertEqual(MentorProfile.objects.get(user=mentor).total_mentees, 1)

        with self.assertRaises(CapacityExceededError):
            self.service.create_mentorship_request(other.id, mentor.id, ["JavaScript"])


class ContentFlagServiceTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = make_user("mod_admin", "admin")
        cls.reporter = make_user("flag_reporter", "freelancer")
        cls.target = make_user("flag_target", "client")
        cls.message = Message.objects.create(
            sender=cls.target, recipient=cls.reporter, content="Hello, are you free tomorrow?"
        )

    def setUp(self):
        self.notifier = Mock()
        self.service = ModerationService(notifier=self.notifier)

    def _flag(self, reason="other", content_type="message", content_id=None, reporter=None):
        return self.service.flag_content(
            (reporter or self.reporter).id,
            content_type,
            content_id or self.message.id,
            self.target.id,
            reason,
            "This content breaks the rules",
        )

    def test_priority_follows_reason(self):
        flag = self._flag("hate_speech")
        self.assertEqual((flag.priority, flag.severity), ("high", 8))
        spam = self._flag("spam", content_id="42")
        self.assertEqual((spam.priority, spam.severity), ("medium", 6))
        other = self._flag("other", content_id="43")
        self.assertEqual((other.priority, other.severity), ("medium", 5))

    def test_second_active_flag_on_same_content_is_rejected(self):
        flag = self._flag()
        with self.assertRaises(DuplicateRequestError):
            self._flag()
        self.service.dismiss_flag(flag.id, self.admin.id, "Not a violation")
        self.assertEqual(self._flag().status, "pending")

    def test_invalid_reason_and_missing_target_are_rejected(self):
        with self.assertRaises(ServiceValidationError):
            self._flag("rudeness")
        with self.assertRaises(NotFoundError):
            self.service.flag_content(
                self.reporter.id, "message", "1", 999999, "spam", "Spam message"
            )

    def test_high_priority_flag_notifies_moderators(self):
        self._flag("violence")
        calls = self.notifier.create_notification.call_args_list
        self.assertIn(self.admin.id, [call.args[0] for call in calls])
        self.assertEqual(calls[0].args[2], "High Priority Content Flag")

    def test_detected_spam_is_auto_resolved_and_removed(self):
        spam_message = Message.objects.create(
            sender=self.target,
            recipient=self.reporter,
            content="BUY NOW!!! Earn money fast, click here http://x.io http://y.io http://z.io",
        )
        flag = self._flag("spam", content_id=spam_message.id)
        flag.refresh_from_db()
        spam_message.refresh_from_db()
        self.assertTrue(flag.auto_detected)
        self.assertEqual(flag.status, "resolved")
        self.assertEqual(flag.resolution, "content_removed")
        self.assertEqual(spam_message.content, "[Content removed by moderator]")
        self.assertTrue(spam_message.is_moderated)

    def test_ordinary_spam_report_waits_for_review(self):
        flag = self._flag("spam")
        flag.refresh_from_db()
        self.assertFalse(flag.auto_detected)
        self.assertEqual(flag.status, "pending")

    def test_repeat_offender_escalates_new_flag(self):
        for index in range(3):
            ContentFlag.objects.create(
                reporter=self.reporter,
                content_type="comment",
                content_id=f"old-{index}",
                target_user=self.target,
                reason="other",
                description="Earlier report",
                status="resolved",
                resolution="warning_issued",
            )
        flag = self._flag("other")
        flag.refresh_from_db()
        self.assertEqual((flag.priority, flag.severity), ("high", 9))

    def test_resolve_with_ban_deactivates_target(self):
        flag = self._flag()
        self.notifier.reset_mock()
        resolved = self.service.resolve_flag(flag.id, self.admin.id, "user_banned", "Severe")
        self.assertEqual(resolved.status, "resolved")
        self.assertIsNotNone(resolved.resolution_date)
        self.target.refresh_from_db()
        self.assertFalse(self.target.is_active)
        profile = UserProfile.objects.get(user=self.target)
        self.assertTrue(profile.is_banned)
        self.assertEqual(profile.ban_reason, "Severe content policy violation")
        recipients = [call.args[0] for call in self.notifier.create_notification.call_args_list]
        self.assertIn(self.reporter.id, recipients)
        self.assertIn(self.target.id, recipients)

    def test_resolve_with_suspension_sets_end_date(self):
        now = timezone.now()
        service = ModerationService(notifier=Mock(), now=lambda: now)
        flag = self._flag()
        service.resolve_flag(flag.id, self.admin.id, "user_suspended")
        profile = UserProfile.objects.get(user=self.target)
        self.assertEqual(profile.suspension_end, now + timedelta(days=7))
        self.assertEqual(profile.suspension_reason, "Content policy violation")
        self.assertFalse(User.objects.get(pk=self.target.pk).is_active)

    def test_resolve_with_warning_records_warning(self):
        flag = self._flag("harassment")
        self.service.resolve_flag(flag.id, self.admin.id, "warning_issued")
        warning = UserWarning.objects.get(user=self.target)
        self.assertEqual(warning.reason, "harassment")
        self.assertEqual(warning.type, "content_violation")

    def test_resolve_with_content_removal_removes_project(self):
        project = Project.objects.create(client=self.target, title="Scam", description="Pay first")
        flag = self._flag("fraud", content_type="project", content_id=project.id)
        self.service.resolve_flag(flag.id, self.admin.id, "content_removed")
        project.refresh_from_db()
        self.assertEqual(project.status, "removed")
        self.assertEqual(project.moderation_reason, "Content violation")

    def test_closed_flag_rejects_further_changes(self):
        flag = self._flag()
        self.service.resolve_flag(flag.id, self.admin.id, "no_action")
        with self.assertRaises(InvalidStateError):
            self.service.resolve_flag(flag.id, self.admin.id, "user_banned")
        with self.assertRaises(InvalidStateError):
            self.service.assign_flag_to_moderator(flag.id, self.admin.id)

    def test_assign_moves_flag_under_review(self):
        flag = self._flag()
        assigned = self.service.assign_flag_to_moderator(flag.id, self.admin.id)
        self.assertEqual(assigned.status, "under_review")
        self.assertEqual(assigned.moderator_id, self.admin.id)
        with self.assertRaises(NotFoundError):
            self.service.assign_flag_to_moderator(flag.id, self.reporter.id)

    def test_queue_orders_by_priority_rank(self):
        low = self._flag("other", content_id="1")
        ContentFlag.objects.filter(pk=low.pk).update(priority="low")
        urgent = self._flag("other", content_id="2")
        ContentFlag.objects.filter(pk=urgent.pk).update(priority="urgent")
        high = self._flag("violence", content_id="3")
        medium = self._flag("spam", content_id="4")

        result = self.service.get_moderation_queue(limit=10)
        self.assertEqual(
            [flag.id for flag in result["flags"]], [urgent.id, high.id, medium.id, low.id]
        )
        self.assertEqual(result["pagination"], {"page": 1, "limit": 10, "total": 4, "pages": 1})
        page_two = self.service.get_moderation_queue(page=2, limit=3)
        self.assertEqual([flag.id for flag in page_two["flags"]], [low.id])


class DisputeServiceTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = make_user("dispute_admin", "admin")
        cls.initiator = make_user("dispute_client", "client")
        cls.respondent = make_user("dispute_freelancer", "freelancer")
        cls.stranger = make_user("dispute_stranger", "freelancer")

    def setUp(self):
        self.now = timezone.now()
        self.notifier = Mock()
        self.service = ModerationService(notifier=self.notifier, now=lambda: self.now)

    def _dispute(self, priority="medium"):
        return self.service.create_dispute(
            self.initiator.id,
            self.respondent.id,
            "project_quality",
            "project",
            "17",
            "Work not delivered",
            "The agreed deliverables never arrived.",
            priority=priority,
        )

    def test_create_assigns_id_deadlines_and_first_timeline_entry(self):
        dispute = self._dispute()
        self.assertRegex(dispute.dispute_id, r"^DSP-\d+-\d{4}$")
        self.assertEqual(dispute.status, "open")
        self.assertEqual(dispute.resolution_deadline, self.now + timedelta(days=30))
        self.assertEqual(dispute.response_deadline, self.now + timedelta(days=7))
        self.assertEqual(dispute.mediation_deadline, self.now + timedelta(days=14))
        entries = list(dispute.timeline.all())
        self.assertEqual([entry.action for entry in entries], ["dispute_created"])
        self.assertEqual(entries[0].performed_by_id, self.initiator.id)
        self.assertEqual(self.notifier.create_notification.call_args_list[0].args[0], self.respondent.id)

    def test_dispute_ids_are_unique(self):
        first = self._dispute()
        second = self._dispute()
        self.assertNotEqual(first.dispute_id, second.dispute_id)
        self.assertTrue(re.match(r"^DSP-\d+-0002$", second.dispute_id))

    def test_high_priority_dispute_notifies_admins(self):
        self._dispute(priority="urgent")
        recipients = [call.args[0] for call in self.notifier.create_notification.call_args_list]
        self.assertIn(self.admin.id, recipients)

    def test_timeline_is_append_only(self):
        entry = self._dispute().timeline.get()
        entry.description = "rewritten"
        with self.assertRaises(ValueError):
            entry.save()
        with self.assertRaises(ValueError):
            entry.delete()

    def test_full_lifecycle_appends_one_entry_per_operation(self):
        dispute = self._dispute()
        self.service.assign_dispute(dispute.dispute_id, self.admin.id)
        self.service.add_evidence(
            dispute.dispute_id, self.initiator.id, "link", file_url="https://example.com/brief"
        )
        deadline = self.now + timedelta(days=5)
        resolved = self.service.resolve_dispute(
            dispute.dispute_id,
            self.admin.id,
            {
                "type": "compromise",
                "description": "Partial refund agreed",
                "compensation_amount": "150.00",
                "compensation_recipient_id": self.initiator.id,
                "action_required": [
                    {"user_id": self.respondent.id, "action": "Deliver source files", "deadline": deadline}
                ],
            },
        )

        self.assertEqual(resolved.status, "resolved")
        self.assertEqual(resolved.resolved_at, self.now)
        self.assertEqual(resolved.resolution_type, "compromise")
        self.assertEqual(resolved.compensation_amount, Decimal("150.00"))
        self.assertEqual(
            list(resolved.timeline.values_list("action", flat=True)),
            ["dispute_created", "mediator_assigned", "evidence_added", "dispute_resolved"],
        )
        self.assertEqual(len(resolved.evidence), 1)
        item = DisputeActionItem.objects.get(dispute=resolved)
        self.assertEqual(item.user_id, self.respondent.id)
        titles = [call.args[2] for call in self.notifier.create_notification.call_args_list]
        self.assertIn("Action Required", titles)
        self.assertEqual(titles.count("Dispute Resolved"), 2)

    def test_resolved_dispute_rejects_further_state_changes(self):
        dispute = self._dispute()
        self.service.resolve_dispute(
            dispute.dispute_id, self.admin.id, {"type": "no_fault", "description": "Nobody at fault"}
        )
        with self.assertRaises(InvalidStateError):
            self.service.resolve_dispute(
                dispute.dispute_id, self.admin.id, {"type": "no_fault", "description": "Again"}
            )
        with self.assertRaises(InvalidStateError):
            self.service.assign_dispute(dispute.dispute_id, self.admin.id)

    def test_only_mediator_or_admin_can_resolve(self):
        dispute = self._dispute()
        with self.assertRaises(UnauthorizedError):
            self.service.resolve_dispute(
                dispute.dispute_id, self.initiator.id, {"type": "favor_initiator", "description": "Me"}
            )

    def test_resolve_rejects_unknown_referenced_users(self):
        dispute = self._dispute()
        with self.assertRaises(NotFoundError):
            self.service.resolve_dispute(
                dispute.dispute_id,
                self.admin.id,
                {
                    "type": "favor_initiator",
                    "description": "Refund owed",
                    "action_required": [{"user_id": 999999, "action": "Pay refund"}],
                },
            )
        with self.assertRaises(NotFoundError):
            self.service.resolve_dispute(
                dispute.dispute_id,
                self.admin.id,
                {
                    "type": "favor_initiator",
                    "description": "Refund owed",
                    "compensation_amount": "10.00",
                    "compensation_recipient_id": 999999,
                },
            )
        dispute.refresh_from_db()
        self.assertEqual(dispute.status, "open")
        self.assertFalse(DisputeActionItem.objects.filter(dispute=dispute).exists())
        self.assertEqual(dispute.timeline.count(), 1)

    def test_assign_requires_admin_mediator(self):
        dispute = self._dispute()
        with self.assertRaises(NotFoundError):
            self.service.assign_dispute(dispute.dispute_id, self.stranger.id)
        assigned = self.service.assign_dispute(dispute.dispute_id, self.admin.id)
        self.assertEqual(assigned.status, "mediation")
        self.assertEqual(assigned.mediator_id, self.admin.id)

    def test_get_dispute_checks_access(self):
        dispute = self._dispute()
        self.assertEqual(self.service.get_dispute(dispute.dispute_id, self.respondent.id).pk, dispute.pk)
        self.assertEqual(self.service.get_dispute(dispute.dispute_id, self.admin.id).pk, dispute.pk)
        with self.assertRaises(UnauthorizedError):
            self.service.get_dispute(dispute.dispute_id, self.stranger.id)
        with self.assertRaises(NotFoundError):
            self.service.get_dispute("DSP-1-0001", self.admin.id)

    def test_communication_and_evidence_need_a_party(self):
        dispute = self._dispute()
        message = self.service.add_communication(dispute.dispute_id, self.respondent.id, "  My side  ")
        self.assertEqual(message.message, "My side")
        with self.assertRaises(UnauthorizedError):
            self.service.add_communication(dispute.dispute_id, self.stranger.id, "Hello")
        with self.assertRaises(UnauthorizedError):
            self.service.add_evidence(dispute.dispute_id, self.stranger.id, "text", content="x")
        with self.assertRaises(ServiceValidationError):
            self.service.add_evidence(dispute.dispute_id, self.initiator.id, "video", content="x")

    def test_respondent_answer_moves_dispute_under_review(self):
        dispute = self._dispute()
        with self.assertRaises(UnauthorizedError):
            self.service.submit_response(dispute.dispute_id, self.initiator.id, "Not me")
        answered = self.service.submit_response(dispute.dispute_id, self.respondent.id, "I delivered")
        self.assertEqual(answered.status, "under_review")
        self.assertEqual(answered.timeline.last().action, "response_submitted")
        with self.assertRaises(InvalidStateError):
            self.service.submit_response(dispute.dispute_id, self.respondent.id, "Again")

    def test_admin_can_close_open_dispute(self):
        dispute = self._dispute()
        with self.assertRaises(UnauthorizedError):
            self.service.close_dispute(dispute.dispute_id, self.initiator.id)
        closed = self.service.close_dispute(dispute.dispute_id, self.admin.id, "Withdrawn by client")
        self.assertEqual(closed.status, "closed")
        self.assertEqual(closed.timeline.last().action, "dispute_closed")
        with self.assertRaises(InvalidStateError):
            self.service.close_dispute(dispute.dispute_id, self.admin.id)

    def test_queue_filters_by_participant(self):
        mine = self._dispute()
        self.service.create_dispute(
            self.stranger.id, self.admin.id, "other", "user", "5", "Other", "Unrelated dispute"
        )
        result = self.service.get_dispute_queue(participant_id=self.respondent.id)
        self.assertEqual([dispute.pk for dispute in result["disputes"]], [mine.pk])
        self.assertEqual(self.service.get_dispute_queue()["pagination"]["total"], 2)


class ModerationReportingTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = make_user("report_admin", "admin")
        cls.reporter = make_user("report_reporter", "freelancer")
        cls.target = make_user("report_target", "client")

    def setUp(self):
        self.service = ModerationService(notifier=Mock())

    def test_statistics_group_flags_and_disputes(self):
        spam = self.service.flag_content(
            self.reporter.id, "comment", "1", self.target.id, "spam", "Spam comment"
        )
        self.service.flag_content(
            self.reporter.id, "comment", "2", self.target.id, "violence", "Violent comment"
        )
        self.service.resolve_flag(spam.id, self.admin.id, "no_action")
        dispute = self.service.create_dispute(
            self.reporter.id, self.target.id, "project_payment", "project", "9", "Unpaid", "Invoice unpaid"
        )
        self.service.resolve_dispute(
            dispute.dispute_id, self.admin.id, {"type": "favor_initiator", "description": "Pay up"}
        )

        stats = self.service.get_moderation_statistics()
        self.assertEqual(stats["flags"]["total_flags"], 2)
        self.assertEqual(stats["flags"]["pending_flags"], 1)
        self.assertEqual(stats["flags"]["resolved_today"], 1)
        self.assertEqual(stats["flags"]["flags_by_reason"], {"spam": 1, "violence": 1})
        self.assertEqual(stats["flags"]["flags_by_priority"], {"medium": 1, "high": 1})
        self.assertEqual(stats["disputes"]["total_disputes"], 1)
        self.assertEqual(stats["disputes"]["open_disputes"], 0)
        self.assertEqual(stats["disputes"]["resolved_today"], 1)
        self.assertEqual(stats["disputes"]["disputes_by_type"], {"project_payment": 1})
        self.assertIsNotNone(stats["disputes"]["average_resolution_time"])

    def test_report_summarises_period(self):
        flag = self.service.flag_content(
            self.reporter.id, "comment", "1", self.target.id, "other", "Rude comment"
        )
        self.service.resolve_flag(flag.id, self.admin.id, "warning_issued")
        now = timezone.now()

        report = self.service.generate_moderation_report(now - timedelta(days=1), now + timedelta(days=1))
        self.assertEqual(report["summary"]["total_flags"], 1)
        self.assertEqual(report["summary"]["total_disputes"], 0)
        self.assertIsNotNone(report["summary"]["resolution_metrics"]["average_seconds"])
        activity = report["summary"]["moderator_activity"]
        self.assertEqual(activity[0]["moderator_id"], self.admin.id)
        self.assertEqual(activity[0]["flags_handled"], 1)

        empty = self.service.generate_moderation_report(now - timedelta(days=9), now - timedelta(days=8))
        self.assertEqual(empty["summary"]["total_flags"], 0)
        with self.assertRaises(ServiceValidationError):
            self.service.generate_moderation_report(now, now - timedelta(days=1))


class NotificationSinkTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.user = make_user("notified_user", "freelancer")

    def test_create_sets_expiry_and_serialises_data(self):
        when = timezone.now()
        notification = NotificationSink().create_notification(
            self.user.id, "system_announcement", "Hello", "World", data={"when": when}
        )
        self.assertEqual(notification.data["when"], when.isoformat())
        self.assertGreater(notification.expires_at, timezone.now() + timedelta(days=29))

    @patch("core.notifications.Notification.objects.create", side_effect=RuntimeError("db down"))
    def test_failure_returns_none(self, _mock_create):
        self.assertIsNone(
            NotificationSink().create_notification(self.user.id, "system_announcement", "Hi", "There")
        )

    def test_read_side_hides_expired_and_marks_read(self):
        sink = NotificationSink()
        first = sink.create_notification(self.user.id, "system_announcement", "One", "1")
        sink.create_notification(self.user.id, "system_announcement", "Two", "2")
        expired = sink.create_notification(self.user.id, "system_announcement", "Old", "3")
        Notification.objects.filter(pk=expired.pk).update(expires_at=timezone.now() - timedelta(days=1))

        self.assertEqual(len(get_user_notifications(self.user)), 2)
        self.assertEqual(unread_count(self.user), 2)
        self.assertEqual(mark_notifications_read(self.user, [first.id]), 1)
        self.assertEqual(unread_count(self.user), 1)
        self.assertEqual(len(get_user_notifications(self.user, unread_only=True)), 1)
