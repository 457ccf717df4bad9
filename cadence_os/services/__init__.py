"""Business logic services for Cadence OS."""

from .briefing import BriefingGenerator, BriefingResult, BriefingService
from .common import (
    CadenceError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .ids import IDSService, QueueIssueInput, ResolveIssueInput
from .ids_workflow import IDSStep, IDSWorkflow
from .integrations import DataSourceService, IntegrationService
from .meeting_summary import SummaryInput, build_summary
from .meetings import CreateMeetingInput, EndMeetingInput, MeetingPreview, MeetingService
from .oauth import (
    GoogleCalendarOAuthService,
    IntegrationNotConfiguredError,
    SlackOAuthService,
)
from .rocks import GoalService, RockFilters, RockService
from .scorecard import ScorecardService
from .slack import SlackAPI, SlackEventService
from .team import PillarService, TeamMemberService
from .work_items import IssueService, TodoService

__all__ = [
    # Errors
    "CadenceError",
    "NotFoundError",
    "PermissionDeniedError",
    "ValidationError",
    "InvalidTransitionError",
    "IntegrationNotConfiguredError",
    # L10 meetings
    "MeetingService",
    "CreateMeetingInput",
    "EndMeetingInput",
    "MeetingPreview",
    "SummaryInput",
    "build_summary",
    "IDSService",
    "QueueIssueInput",
    "ResolveIssueInput",
    "IDSStep",
    "IDSWorkflow",
    # Planning and scorecard
    "RockService",
    "RockFilters",
    "GoalService",
    "ScorecardService",
    # People and work items
    "PillarService",
    "TeamMemberService",
    "IssueService",
    "TodoService",
    # Integrations
    "IntegrationService",
    "DataSourceService",
    "SlackAPI",
    "SlackEventService",
    "SlackOAuthService",
    "GoogleCalendarOAuthService",
    # Briefings
    "BriefingGenerator",
    "BriefingResult",
    "BriefingService",
]
