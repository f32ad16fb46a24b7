from .content import Message, Project
from .mentorship import Mentorship, MentorshipSession
from .moderation import (
    ContentFlag,
    Dispute,
    DisputeActionItem,
    DisputeCommunication,
    DisputeTimelineEntry,
)
from .notification import Notification
from .user_profile import FreelancerProfile, MentorProfile, UserProfile, UserWarning

__all__ = [
    'UserProfile',
    'MentorProfile',
    'FreelancerProfile',
    'UserWarning',
    'Mentorship',
    'MentorshipSession',
    'ContentFlag',
    'Dispute',
    'DisputeTimelineEntry',
    'DisputeCommunication',
    'DisputeActionItem',
    'Notification',
    'Message',
    'Project',
]
