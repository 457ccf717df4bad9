"""SQLAlchemy ORM Models for Cadence OS."""

from .base import Base, JSONType, TimestampMixin, UUIDMixin
from .models import (
    # Enums
    AccessLevel,
    AgendaSection,
    DataSourceType,
    GoalStatus,
    HeadlineType,
    IntegrationType,
    IssueOutcome,
    IssueStatus,
    MeetingStatus,
    MeetingType,
    ProfileStatus,
    RockLevel,
    RockStatus,
    TodoReviewStatus,
    # Organization & People
    Organization,
    Pillar,
    Profile,
    # Scorecard
    DataSource,
    Metric,
    MetricValue,
    # Rocks & Goals
    IndividualGoal,
    Rock,
    # Issues, To-dos, Headlines
    Headline,
    Issue,
    Todo,
    # L10 Meetings
    AgendaItem,
    IssueDiscussed,
    Meeting,
    MeetingAttendee,
    TodoReviewed,
    # Briefing context
    Alert,
    AlertAcknowledgment,
    Briefing,
    Mention,
    MetricAnomaly,
    Update,
    VTO,
    # Integrations
    Integration,
    OAuthState,
    SlackUserMapping,
    SlackWorkspace,
    UserIntegration,
)

__all__ = [
    # Base
    "Base",
    "JSONType",
    "UUIDMixin",
    "TimestampMixin",
    # Enums
    "AccessLevel",
    "AgendaSection",
    "DataSourceType",
    "GoalStatus",
    "HeadlineType",
    "IntegrationType",
    "IssueOutcome",
    "IssueStatus",
    "MeetingStatus",
    "MeetingType",
    "ProfileStatus",
    "RockLevel",
    "RockStatus",
    "TodoReviewStatus",
    # Organization & People
    "Organization",
    "Pillar",
    "Profile",
    # Scorecard
    "DataSource",
    "Metric",
    "MetricValue",
    # Rocks & Goals
    "IndividualGoal",
    "Rock",
    # Issues, To-dos, Headlines
    "Headline",
    "Issue",
    "Todo",
    # L10 Meetings
    "AgendaItem",
    "IssueDiscussed",
    "Meeting",
    "MeetingAttendee",
    "TodoReviewed",
    # Briefing context
    "Alert",
    "AlertAcknowledgment",
    "Briefing",
    "Mention",
    "MetricAnomaly",
    "Update",
    "VTO",
    # Integrations
    "Integration",
    "OAuthState",
    "SlackUserMapping",
    "SlackWorkspace",
    "UserIntegration",
]
