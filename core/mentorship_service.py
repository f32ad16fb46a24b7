import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, F, Q
from django.utils import timezone

from .exceptions import (
    CapacityExceededError,
    DuplicateRequestError,
    InvalidStateError,
    NotFoundError,
    ServiceValidationError,
    UnauthorizedError,
)
from .matching_logic import MatchWeights, ScoredMentor, calculate_match_score, rank_matches
from .models import FreelancerProfile, MentorProfile, Mentorship, MentorshipSession
from .models.mentorship import OPEN_MENTORSHIP_STATUSES
from .notifications import NotificationSink

logger = logging.getLogger(__name__)
User = get_user_model()

SESSION_MIN_DURATION = 15
SESSION_MAX_DURATION = 180
SESSION_NOTES_MAX_LENGTH = 1000
FEEDBACK_MAX_LENGTH = 500
SESSION_STATUSES = {value for value, _ in MentorshipSession.STATUS_CHOICES}


def display_name(user) -> str:
    profile = getattr(user, "userprofile", None)
    if profile is not None and profile.full_name:
        return profile.full_name
    return user.get_full_name() or user.username


class MentorshipService:
    """Matching, mentorship lifecycle and session scheduling.

    ``notifier`` receives best-effort notifications and ``now`` is a callable
    returning the current time; both are injectable for tests.
    """

    def __init__(self, notifier=None, now=None, weights=None):
        self.notifier = notifier or NotificationSink()
        self.now = now or timezone.now
        self.weights = weights

    # Matching

    def find_potential_mentors(self, mentee_data):
        weights = self.weights or MatchWeights.from_settings()
        limit = getattr(settings, "MENTOR_MATCH_LIMIT", 10)
        skills = mentee_data.get("skills") or []
        experience_level = mentee_data.get("experience_level")
        focus_areas = mentee_data.get("focus_areas") or []

        mentors = (
            User.objects.filter(
                is_active=True,
                userprofile__role="mentor",
                userprofile__is_verified=True,
                userprofile__is_banned=False,
                mentor_profile__isnull=False,
            )
            .select_related("userprofile", "mentor_profile")
            .annotate(
                active_mentees=Count(
                    "mentorships_as_mentor",
                    filter=Q(mentorships_as_mentor__status="active"),
                )
            )
        )

        candidates = []
        for mentor in mentors:
            profile = mentor.mentor_profile
            if mentor.active_mentees >= profile.mentoring_capacity:
                continue
            score = calculate_match_score(
                expertise_areas=profile.expertise_areas,
                years_experience=profile.years_experience,
                rating=profile.rating,
                skills=skills,
                experience_level=experience_level,
                focus_areas=focus_areas,
                weights=weights,
            )
            candidates.append(
                ScoredMentor(
                    mentor=mentor,
                    match_score=score,
                    available_capacity=profile.mentoring_capacity - mentor.active_mentees,
                    rating=float(profile.rating or 0),
                    total_mentees=profile.total_mentees,
                )
            )
        return rank_matches(candidates, limit=limit)

    def mentee_match_profile(self, mentee_id, skills=None, experience_level=None, focus_areas=None):
        """Fill unspecified matching inputs from the mentee's freelancer profile."""
        profile = FreelancerProfile.objects.filter(user_id=mentee_id).first()
        if skills is None:
            skills = list(profile.skills) if profile else []
        if experience_level is None:
            experience_level = profile.experience_level if profile else None
        if focus_areas is None:
            focus_areas = list(skills)
        return {
            "skills": skills,
            "experience_level": experience_level,
            "focus_areas": focus_areas,
        }

    # Lifecycle

    def _available_mentor(self, mentor_id):
        mentor = (
            User.objects.filter(
                id=mentor_id,
                is_active=True,
                userprofile__role="mentor",
                userprofile__is_banned=False,
            )
            .select_related("userprofile")
            .first()
        )
        if mentor is None:
            raise NotFoundError("Mentor not found or not available")
        profile = MentorProfile.objects.filter(user=mentor).first()
        if profile is None:
            raise NotFoundError("Mentor not found or not available")
        return mentor, profile

    def _active_mentee_count(self, mentor_id) -> int:
        return Mentorship.objects.filter(mentor_id=mentor_id, status="active").count()

    def create_mentorship_request(
        self, mentee_id, mentor_id, focus_areas, learning_goals="", request_message=""
    ):
        focus_areas = [str(area).strip() for area in (focus_areas or []) if str(area).strip()]
        if not focus_areas:
            raise ServiceValidationError("At least one focus area is required.")
        if str(mentee_id) == str(mentor_id):
            raise ServiceValidationError("You cannot request mentorship from yourself.")
        mentee = User.objects.filter(pk=mentee_id).first()
        if mentee is None:
            raise NotFoundError("Mentee not found")

        mentor, profile = self._available_mentor(mentor_id)
        if self._active_mentee_count(mentor.id) >= profile.mentoring_capacity:
            raise CapacityExceededError("Mentor has reached maximum capacity")

        duplicate_message = "A mentorship request already exists between these users"
        if Mentorship.objects.filter(
            mentor_id=mentor.id, mentee_id=mentee_id, status__in=OPEN_MENTORSHIP_STATUSES
        ).exists():
            raise DuplicateRequestError(duplicate_message)

        try:
            with transaction.atomic():
                mentorship = Mentorship.objects.create(
                    mentor=mentor,
                    mentee_id=mentee_id,
                    focus_areas=focus_areas,
                    learning_goals=learning_goals or "",
                    request_message=request_message or "",
                    status="pending",
                )
        except IntegrityError as exc:
            raise DuplicateRequestError(duplicate_message) from exc

        logger.info(
            "Mentorship %s requested by user %s from mentor %s",
            mentorship.id,
            mentee_id,
            mentor.id,
        )
        self.notifier.create_notification(
            mentor.id,
            "mentorship_request",
            "New Mentorship Request",
            f"{display_name(mentee)} has requested you as a mentor",
            data={"mentorship_id": mentorship.id, "mentee_id": mentee_id},
            action_url=f"/mentorship/{mentorship.id}",
        )
        return mentorship

    def _pending_for_mentor(self, mentorship, mentor_id, verb):
        if mentorship is None:
            raise NotFoundError("Mentorship request not found")
        if str(mentorship.mentor_id) != str(mentor_id):
            raise UnauthorizedError(f"You can only {verb} your own mentorship requests")
        if mentorship.status != "pending":
            raise InvalidStateError("Mentorship request is not pending")
        return mentorship

    def accept_mentorship_request(self, mentorship_id, mentor_id):
        with transaction.atomic():
            mentorship = self._pending_for_mentor(
                Mentorship.objects.select_for_update().filter(id=mentorship_id).first(),
                mentor_id,
                "accept",
            )
            # Locking the profile row serialises concurrent accepts for one mentor.
            profile = (
                MentorProfile.objects.select_for_update()
                .filter(user_id=mentorship.mentor_id)
                .first()
            )
            if profile is None:
                raise NotFoundError("Mentor profile not found")
            if self._active_mentee_count(mentorship.mentor_id) >= profile.mentoring_capacity:
                raise CapacityExceededError("Mentor has reached maximum capacity")

            now = self.now()
            mentorship.status = "active"
            mentorship.responded_at = now
            mentorship.start_date = now
            mentorship.save(update_fields=["status", "responded_at", "start_date", "updated_at"])
            MentorProfile.objects.filter(pk=profile.pk).update(total_mentees=F("total_mentees") + 1)

        logger.info("Mentorship %s accepted by mentor %s", mentorship.id, mentor_id)
        self.notifier.create_notification(
            mentorship.mentee_id,
            "mentorship_accepted",
            "Mentorship Request Accepted",
            f"{display_name(mentorship.mentor)} has accepted your mentorship request",
            data={"mentorship_id": mentorship.id, "mentor_id": mentorship.mentor_id},
            action_url=f"/mentorship/{mentorship.id}",
        )
        return mentorship

    def decline_mentorship_request(self, mentorship_id, mentor_id, reason=""):
        mentorship = self._pending_for_mentor(
            Mentorship.objects.filter(id=mentorship_id).select_related("mentor").first(),
            mentor_id,
            "decline",
        )
        mentorship.status = "cancelled"
        mentorship.responded_at = self.now()
        mentorship.save(update_fields=["status", "responded_at", "updated_at"])

        logger.info("Mentorship %s declined by mentor %s", mentorship.id, mentor_id)
        message = f"{display_name(mentorship.mentor)} has declined your mentorship request"
        if reason:
            message = f"{message}: {reason}"
        self.notifier.create_notification(
            mentorship.mentee_id,
            "system_announcement",
            "Mentorship Request Declined",
            message,
            data={"mentorship_id": mentorship.id, "mentor_id": mentorship.mentor_id},
        )
        return mentorship

    def _mentorship_for_party(self, mentorship_id, user_id, denied_message):
        mentorship = (
            Mentorship.objects.filter(id=mentorship_id).select_related("mentor", "mentee").first()
        )
        if mentorship is None:
            raise NotFoundError("Mentorship not found")
        if mentorship.role_of(user_id) is None:
            raise UnauthorizedError(denied_message)
        return mentorship

    def complete_mentorship(self, mentorship_id, user_id):
        mentorship = self._mentorship_for_party(
            mentorship_id, user_id, "You are not authorized to complete this mentorship"
        )
        if mentorship.status != "active":
            raise InvalidStateError("Mentorship is not active")
        mentorship.status = "completed"
        mentorship.end_date = self.now()
        mentorship.save(update_fields=["status", "end_date", "updated_at"])
        logger.info("Mentorship %s completed by user %s", mentorship.id, user_id)
        return mentorship

    # Sessions

    def schedule_session(self, user_id, mentorship_id, scheduled_date, duration=60, notes=""):
        mentorship = self._mentorship_for_party(
            mentorship_id, user_id, "You are not authorized to schedule sessions for this mentorship"
        )
        if mentorship.status != "active":
            raise InvalidStateError("Mentorship is not active")
        if scheduled_date is None or scheduled_date <= self.now():
            raise ServiceValidationError("Session must be scheduled in the future.")
        duration = 60 if duration is None else int(duration)
        if not SESSION_MIN_DURATION <= duration <= SESSION_MAX_DURATION:
            raise ServiceValidationError(
                f"Session duration must be between {SESSION_MIN_DURATION} and "
                f"{SESSION_MAX_DURATION} minutes."
            )
        notes = notes or ""
        if len(notes) > SESSION_NOTES_MAX_LENGTH:
            raise ServiceValidationError("Session notes cannot exceed 1000 characters.")

        with transaction.atomic():
            session = MentorshipSession.objects.create(
                mentorship=mentorship,
                scheduled_date=scheduled_date,
                duration=duration,
                notes=notes,
            )
            Mentorship.objects.filter(pk=mentorship.pk).update(
                session_count=F("session_count") + 1, updated_at=self.now()
            )
        mentorship.refresh_from_db(fields=["session_count"])

        logger.info("Session %s scheduled on mentorship %s", session.id, mentorship.id)
        for participant in (mentorship.mentor, mentorship.mentee):
            self.notifier.create_notification(
                participant.id,
                "session_scheduled",
                "Mentorship Session Scheduled",
                f"A mentorship session has been scheduled for {scheduled_date.isoformat()}",
                data={"mentorship_id": mentorship.id, "session_id": session.id},
                action_url=f"/mentorship/{mentorship.id}",
            )
        return session

    def get_mentorship_sessions(self, user_id, mentorship_id):
        mentorship = self._mentorship_for_party(
            mentorship_id, user_id, "You are not authorized to view sessions for this mentorship"
        )
        return list(mentorship.sessions.order_by("-scheduled_date", "-id"))

    def _session_for_party(self, session_id, user_id, denied_message):
        session = (
            MentorshipSession.objects.filter(id=session_id)
            .select_related("mentorship", "mentorship__mentor", "mentorship__mentee")
            .first()
        )
        if session is None:
            raise NotFoundError("Session not found")
        role = session.mentorship.role_of(user_id)
        if role is None:
            raise UnauthorizedError(denied_message)
        return session, role

    def update_session_status(self, user_id, session_id, status, notes=""):
        session, _ = self._session_for_party(
            session_id, user_id, "You are not authorized to update this session"
        )
        if status not in SESSION_STATUSES:
            raise ServiceValidationError(f"Invalid session status: {status}")
        session.status = status
        update_fields = ["status", "updated_at"]
        if notes:
            if len(notes) > SESSION_NOTES_MAX_LENGTH:
                raise ServiceValidationError("Session notes cannot exceed 1000 characters.")
            session.notes = notes
            update_fields.append("notes")
        session.save(update_fields=update_fields)
        logger.info("Session %s marked %s by user %s", session.id, status, user_id)
        return session

    def add_session_feedback(self, user_id, session_id, feedback, rating):
        session, role = self._session_for_party(
            session_id, user_id, "You are not authorized to add feedback to this session"
        )
        feedback = feedback or ""
        if len(feedback) > FEEDBACK_MAX_LENGTH:
            raise ServiceValidationError("Feedback cannot exceed 500 characters.")
        if rating is not None:
            rating = int(rating)
            if not 1 <= rating <= 5:
                raise ServiceValidationError("Rating must be between 1 and 5.")

        with transaction.atomic():
            if role == "mentor":
                session.mentor_feedback = feedback
                session.mentor_rating = rating
                session.save(update_fields=["mentor_feedback", "mentor_rating", "updated_at"])
            else:
                session.mentee_feedback = feedback
                session.mentee_rating = rating
                session.save(update_fields=["mentee_feedback", "mentee_rating", "updated_at"])
                self._sync_mentor_rating(session.mentorship.mentor_id)
        return session

    def _sync_mentor_rating(self, mentor_id):
        # Mentor rating mirrors the mean of all ratings mentees have given.
        avg_rating = (
            MentorshipSession.objects.filter(
                mentorship__mentor_id=mentor_id, mentee_rating__isnull=False
            )
            .aggregate(value=Avg("mentee_rating"))
            .get("value")
        )
        MentorProfile.objects.filter(user_id=mentor_id).update(
            rating=round(avg_rating, 2) if avg_rating is not None else 0
        )

    # Queries

    def get_mentorship_requests_for_mentor(self, mentor_id):
        return list(
            Mentorship.objects.filter(mentor_id=mentor_id, status="pending")
            .select_related("mentee", "mentee__userprofile")
            .order_by("-created_at", "-id")
        )

    def get_active_mentorships(self, user_id):
        return list(
            Mentorship.objects.filter(
                Q(mentor_id=user_id) | Q(mentee_id=user_id), status="active"
            )
            .select_related("mentor", "mentee")
            .order_by("-start_date", "-id")
        )

    def get_mentorship_history(self, user_id):
        return list(
            Mentorship.objects.filter(Q(mentor_id=user_id) | Q(mentee_id=user_id))
            .select_related("mentor", "mentee")
            .order_by("-created_at", "-id")
        )

    def _sessions_for_user(self, user_id):
        return MentorshipSession.objects.filter(
            Q(mentorship__mentor_id=user_id) | Q(mentorship__mentee_id=user_id)
        ).select_related("mentorship", "mentorship__mentor", "mentorship__mentee")

    def get_upcoming_sessions(self, user_id):
        return list(
            self._sessions_for_user(user_id)
            .filter(status="scheduled", scheduled_date__gte=self.now())
            .order_by("scheduled_date", "id")
        )

    def get_session_history(self, user_id):
        return list(self._sessions_for_user(user_id).order_by("-scheduled_date", "-id"))
