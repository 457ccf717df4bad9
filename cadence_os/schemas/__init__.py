"""Pydantic schemas for the Cadence API."""

from .base import (
    CadenceBaseModel,
    ErrorResponse,
    PillarRef,
    ProfileRef,
    SuccessResponse,
    TimestampMixin,
)
from .integrations import (
    AuthorizationUrlResponse,
    BriefingResponse,
    DataSourceCreate,
    DataSourceResponse,
    DataSourceUpdate,
    IntegrationResponse,
    IntegrationUpdate,
    IntegrationUpsert,
)
from .meetings import (
    AgendaAction,
    AgendaItemResponse,
    AttendeeResponse,
    HeadlineCreate,
    IssueDiscussedResponse,
    IssueRef,
    MeetingCreate,
    MeetingEnd,
    MeetingPreviewResponse,
    MeetingResponse,
    MeetingSummary,
    MeetingUpdate,
    PreviewMetric,
    PreviewRock,
    PreviewTodo,
    QueuedIssueResponse,
    QueueIssueRequest,
    ReorderQueueRequest,
    ResolveIssueRequest,
    TodoRef,
    TodoReviewCreate,
    TodoReviewResponse,
)
from .planning import (
    GoalCreate,
    GoalResponse,
    GoalUpdate,
    MetricCreate,
    MetricListItem,
    MetricResponse,
    MetricUpdate,
    MetricValueCreate,
    MetricValueResponse,
    RockCreate,
    RockRef,
    RockResponse,
    RockUpdate,
)
from .team import (
    PillarCreate,
    PillarDetailResponse,
    PillarResponse,
    PillarUpdate,
    TeamMemberCreate,
    TeamMemberResponse,
    TeamMemberUpdate,
)
from .work import (
    IssueCreate,
    IssueResponse,
    IssueUpdate,
    TodoCreate,
    TodoResponse,
    TodoUpdate,
)

__all__ = [
    # Base
    "CadenceBaseModel",
    "TimestampMixin",
    "ErrorResponse",
    "SuccessResponse",
    "ProfileRef",
    "PillarRef",
    # Meetings
    "MeetingCreate",
    "MeetingUpdate",
    "MeetingEnd",
    "MeetingSummary",
    "MeetingResponse",
    "MeetingPreviewResponse",
    "AgendaAction",
    "AgendaItemResponse",
    "AttendeeResponse",
    "HeadlineCreate",
    "TodoReviewCreate",
    "TodoReviewResponse",
    "QueueIssueRequest",
    "ReorderQueueRequest",
    "ResolveIssueRequest",
    "QueuedIssueResponse",
    "IssueDiscussedResponse",
    "IssueRef",
    "TodoRef",
    "PreviewMetric",
    "PreviewRock",
    "PreviewTodo",
    # Planning
    "RockCreate",
    "RockUpdate",
    "RockResponse",
    "RockRef",
    "GoalCreate",
    "GoalUpdate",
    "GoalResponse",
    "MetricCreate",
    "MetricUpdate",
    "MetricResponse",
    "MetricListItem",
    "MetricValueCreate",
    "MetricValueResponse",
    # Team
    "PillarCreate",
    "PillarUpdate",
    "PillarResponse",
    "PillarDetailResponse",
    "TeamMemberCreate",
    "TeamMemberUpdate",
    "TeamMemberResponse",
    # Issues & to-dos
    "IssueCreate",
    "IssueUpdate",
    "IssueResponse",
    "TodoCreate",
    "TodoUpdate",
    "TodoResponse",
    # Integrations
    "IntegrationUpsert",
    "IntegrationUpdate",
    "IntegrationResponse",
    "AuthorizationUrlResponse",
    "DataSourceCreate",
    "DataSourceUpdate",
    "DataSourceResponse",
    "BriefingResponse",
]
