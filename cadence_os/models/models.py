"""SQLAlchemy ORM Models for Cadence OS.

Every business table is keyed by organization. Rows are read and written
through the service layer only.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, TimestampMixin, UUIDMixin, enum_values


# =============================================================================
# ENUMS
# =============================================================================


class AccessLevel(str, PyEnum):
    ADMIN = "admin"
    ELT = "elt"  # Executive leadership team
    SLT = "slt"  # Senior leadership team
    CONSUMER = "consumer"


class ProfileStatus(str, PyEnum):
    ACTIVE = "active"
    INVITED = "invited"
    INACTIVE = "inactive"


class RockLevel(str, PyEnum):
    COMPANY = "company"
    PILLAR = "pillar"
    INDIVIDUAL = "individual"


class RockStatus(str, PyEnum):
    NOT_STARTED = "not_started"
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    OFF_TRACK = "off_track"
    COMPLETE = "complete"


class GoalStatus(str, PyEnum):
    NOT_STARTED = "not_started"
    ON_TRACK = "on_track"
    OFF_TRACK = "off_track"
    COMPLETE = "complete"


class IssueStatus(str, PyEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class HeadlineType(str, PyEnum):
    CUSTOMER = "customer"
    EMPLOYEE = "employee"
    GENERAL = "general"


class MeetingType(str, PyEnum):
    LEADERSHIP = "leadership"
    PILLAR = "pillar"
    ONE_ON_ONE = "one_on_one"


class MeetingStatus(str, PyEnum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AgendaSection(str, PyEnum):
    SEGUE = "segue"
    SCORECARD = "scorecard"
    ROCKS = "rocks"
    HEADLINES = "headlines"
    TODOS = "todos"
    IDS = "ids"
    CONCLUDE = "conclude"


class IssueOutcome(str, PyEnum):
    SOLVED = "solved"
    TODO_CREATED = "todo_created"
    PUSHED = "pushed"
    KILLED = "killed"


class TodoReviewStatus(str, PyEnum):
    DONE = "done"
    NOT_DONE = "not_done"
    PUSHED = "pushed"


class DataSourceType(str, PyEnum):
    HUBSPOT = "hubspot"
    BIGQUERY = "bigquery"


class IntegrationType(str, PyEnum):
    HUBSPOT = "hubspot"
    BIGQUERY = "bigquery"
    SLACK = "slack"
    GOOGLE_CALENDAR = "google_calendar"


# =============================================================================
# ORGANIZATION & PEOPLE
# =============================================================================


class Organization(Base, UUIDMixin, TimestampMixin):
    """Multi-tenant organization."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(63), unique=True, nullable=False)
    settings: Mapped[dict] = mapped_column(JSONType, default=dict)


class Pillar(Base, UUIDMixin, TimestampMixin):
    """Functional business unit grouping people and rocks."""

    __tablename__ = "pillars"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    color: Mapped[str | None] = mapped_column(String(20))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    leader_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", use_alter=True)
    )

    leader: Mapped["Profile | None"] = relationship(foreign_keys=[leader_id])

    __table_args__ = (
        UniqueConstraint("organization_id", "slug"),
    )


class Profile(Base, UUIDMixin, TimestampMixin):
    """A person in an organization, linked to an identity-provider account."""

    __tablename__ = "profiles"

    organization_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("organizations.id"), index=True
    )
    auth_provider_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False,
        comment="Identity provider subject (Firebase uid), pending_* until sign-up",
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str | None] = mapped_column(String(255))
    avatar_url: Mapped[str | None] = mapped_column(String(500))
    access_level: Mapped[AccessLevel] = mapped_column(
        Enum(AccessLevel, name="access_level", values_callable=enum_values),
        default=AccessLevel.SLT,
        nullable=False,
    )
    pillar_id: Mapped[UUID | None] = mapped_column(ForeignKey("pillars.id"))
    is_pillar_lead: Mapped[bool] = mapped_column(Boolean, default=False)
    responsibilities: Mapped[list] = mapped_column(JSONType, default=list)
    receives_briefing: Mapped[bool] = mapped_column(Boolean, default=True)
    briefing_time: Mapped[str] = mapped_column(String(5), default="07:00")
    timezone: Mapped[str] = mapped_column(String(64), default="America/Denver")
    status: Mapped[ProfileStatus] = mapped_column(
        Enum(ProfileStatus, name="profile_status", values_callable=enum_values),
        default=ProfileStatus.ACTIVE,
        nullable=False,
    )
    invited_at: Mapped[datetime | None] = mapped_column()

    pillar: Mapped["Pillar | None"] = relationship(foreign_keys=[pillar_id])

    @property
    def is_admin(self) -> bool:
        return self.access_level == AccessLevel.ADMIN

    @property
    def is_leadership(self) -> bool:
        return self.access_level in (AccessLevel.ADMIN, AccessLevel.ELT)


# =============================================================================
# SCORECARD
# =============================================================================


class DataSource(Base, UUIDMixin, TimestampMixin):
    """External source a metric can be synced from."""

    __tablename__ = "data_sources"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    source_type: Mapped[DataSourceType] = mapped_column(
        Enum(DataSourceType, name="data_source_type", values_callable=enum_values),
        nullable=False,
    )
    hubspot_object: Mapped[str | None] = mapped_column(String(100))
    hubspot_property: Mapped[str | None] = mapped_column(String(255))
    hubspot_aggregation: Mapped[str | None] = mapped_column(String(50))
    hubspot_filters: Mapped[list | None] = mapped_column(JSONType)
    bigquery_query: Mapped[str | None] = mapped_column(Text)
    bigquery_value_column: Mapped[str | None] = mapped_column(String(255))
    unit: Mapped[str | None] = mapped_column(String(50))
    created_by: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))

    creator: Mapped["Profile | None"] = relationship(foreign_keys=[created_by])


class Metric(Base, UUIDMixin, TimestampMixin):
    """Scorecard KPI with a goal and a time series of values."""

    __tablename__ = "metrics"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    goal: Mapped[float | None] = mapped_column(Float)
    unit: Mapped[str | None] = mapped_column(String(50))
    frequency: Mapped[str] = mapped_column(String(20), default="weekly")
    source: Mapped[str] = mapped_column(String(50), default="manual")
    data_source_id: Mapped[UUID | None] = mapped_column(ForeignKey("data_sources.id"))
    threshold_red: Mapped[float | None] = mapped_column(Float)
    threshold_yellow: Mapped[float | None] = mapped_column(Float)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    owner: Mapped["Profile | None"] = relationship(foreign_keys=[owner_id])
    data_source: Mapped["DataSource | None"] = relationship()


class MetricValue(Base, UUIDMixin):
    """One recorded value of a metric."""

    __tablename__ = "metric_values"

    metric_id: Mapped[UUID] = mapped_column(
        ForeignKey("metrics.id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    source: Mapped[str] = mapped_column(String(50), default="manual")
    notes: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_metric_values_metric_recorded", "metric_id", "recorded_at"),
    )


# =============================================================================
# ROCKS & GOALS
# =============================================================================


class Rock(Base, UUIDMixin, TimestampMixin):
    """Quarterly objective at company, pillar or individual level."""

    __tablename__ = "rocks"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    pillar_id: Mapped[UUID | None] = mapped_column(ForeignKey("pillars.id"))
    rock_level: Mapped[RockLevel] = mapped_column(
        Enum(RockLevel, name="rock_level", values_callable=enum_values),
        default=RockLevel.COMPANY,
        nullable=False,
    )
    parent_rock_id: Mapped[UUID | None] = mapped_column(ForeignKey("rocks.id"))
    status: Mapped[RockStatus] = mapped_column(
        Enum(RockStatus, name="rock_status", values_callable=enum_values),
        default=RockStatus.NOT_STARTED,
        nullable=False,
    )
    quarter: Mapped[int | None] = mapped_column(Integer)
    year: Mapped[int | None] = mapped_column(Integer)
    due_date: Mapped[date | None] = mapped_column(Date)

    owner: Mapped["Profile | None"] = relationship(foreign_keys=[owner_id])
    pillar: Mapped["Pillar | None"] = relationship()
    parent: Mapped["Rock | None"] = relationship(remote_side="Rock.id")


class IndividualGoal(Base, UUIDMixin, TimestampMixin):
    """Personal measurable goal, optionally supporting a rock."""

    __tablename__ = "individual_goals"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    owner_id: Mapped[UUID] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    rock_id: Mapped[UUID | None] = mapped_column(ForeignKey("rocks.id"))
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    target_value: Mapped[float | None] = mapped_column(Float)
    current_value: Mapped[float] = mapped_column(Float, default=0)
    unit: Mapped[str | None] = mapped_column(String(50))
    status: Mapped[GoalStatus] = mapped_column(
        Enum(GoalStatus, name="goal_status", values_callable=enum_values),
        default=GoalStatus.NOT_STARTED,
        nullable=False,
    )
    due_date: Mapped[date | None] = mapped_column(Date)
    quarter: Mapped[int | None] = mapped_column(Integer)
    year: Mapped[int | None] = mapped_column(Integer)

    owner: Mapped["Profile"] = relationship(foreign_keys=[owner_id])
    rock: Mapped["Rock | None"] = relationship()


# =============================================================================
# ISSUES, TO-DOS, HEADLINES
# =============================================================================


class Issue(Base, UUIDMixin, TimestampMixin):
    """Problem raised for IDS, optionally queued for a specific meeting."""

    __tablename__ = "issues"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    raised_by: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    owner_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    priority: Mapped[int | None] = mapped_column(Integer)
    status: Mapped[IssueStatus] = mapped_column(
        Enum(IssueStatus, name="issue_status", values_callable=enum_values),
        default=IssueStatus.OPEN,
        nullable=False,
    )
    resolution: Mapped[str | None] = mapped_column(Text)
    resolved_at: Mapped[datetime | None] = mapped_column()
    queued_for_meeting_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("l10_meetings.id", ondelete="SET NULL", use_alter=True)
    )
    queue_order: Mapped[int | None] = mapped_column(Integer)

    raiser: Mapped["Profile | None"] = relationship(foreign_keys=[raised_by])
    owner: Mapped["Profile | None"] = relationship(foreign_keys=[owner_id])

    __table_args__ = (
        Index("idx_issues_queued_meeting", "queued_for_meeting_id", "queue_order"),
    )


class Todo(Base, UUIDMixin, TimestampMixin):
    """Seven-day action item, often created out of an L10 meeting."""

    __tablename__ = "todos"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    created_by: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    due_date: Mapped[date | None] = mapped_column(Date)
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[datetime | None] = mapped_column()
    meeting_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("l10_meetings.id", ondelete="SET NULL", use_alter=True)
    )
    issue_id: Mapped[UUID | None] = mapped_column(ForeignKey("issues.id"))

    owner: Mapped["Profile | None"] = relationship(foreign_keys=[owner_id])
    creator: Mapped["Profile | None"] = relationship(foreign_keys=[created_by])


class Headline(Base, UUIDMixin):
    """Good-news or heads-up item shared during the headlines segment."""

    __tablename__ = "headlines"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    headline_type: Mapped[HeadlineType] = mapped_column(
        Enum(HeadlineType, name="headline_type", values_callable=enum_values),
        default=HeadlineType.GENERAL,
        nullable=False,
    )
    created_by: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    creator: Mapped["Profile | None"] = relationship()


# =============================================================================
# L10 MEETINGS
# =============================================================================


class Meeting(Base, UUIDMixin, TimestampMixin):
    """Level 10 meeting.

    Status moves scheduled -> in_progress -> completed (or cancelled).
    Snapshots are written once, when the meeting starts.
    """

    __tablename__ = "l10_meetings"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    meeting_type: Mapped[MeetingType] = mapped_column(
        Enum(MeetingType, name="meeting_type", values_callable=enum_values),
        default=MeetingType.LEADERSHIP,
        nullable=False,
    )
    scheduled_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[MeetingStatus] = mapped_column(
        Enum(MeetingStatus, name="meeting_status", values_callable=enum_values),
        default=MeetingStatus.SCHEDULED,
        nullable=False,
    )
    started_at: Mapped[datetime | None] = mapped_column()
    ended_at: Mapped[datetime | None] = mapped_column()
    duration_minutes: Mapped[int | None] = mapped_column(Integer)
    rating: Mapped[float | None] = mapped_column(Float)
    ratings: Mapped[dict | None] = mapped_column(JSONType)
    headlines: Mapped[list] = mapped_column(JSONType, default=list)
    cascading_messages: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    scorecard_snapshot: Mapped[list | None] = mapped_column(JSONType)
    rocks_snapshot: Mapped[list | None] = mapped_column(JSONType)
    created_by: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))

    creator: Mapped["Profile | None"] = relationship(foreign_keys=[created_by])
    agenda_items: Mapped[list["AgendaItem"]] = relationship(
        back_populates="meeting",
        order_by="AgendaItem.sort_order",
        cascade="all, delete-orphan",
    )
    attendees: Mapped[list["MeetingAttendee"]] = relationship(
        back_populates="meeting",
        cascade="all, delete-orphan",
    )
    issues_discussed: Mapped[list["IssueDiscussed"]] = relationship(
        back_populates="meeting",
        order_by="IssueDiscussed.discussed_at",
        cascade="all, delete-orphan",
    )
    todos_reviewed: Mapped[list["TodoReviewed"]] = relationship(
        back_populates="meeting",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 10)",
            name="rating_range",
        ),
        Index("idx_l10_meetings_org_scheduled", "organization_id", "scheduled_at"),
    )


class AgendaItem(Base, UUIDMixin):
    """Ordered agenda step within a meeting."""

    __tablename__ = "l10_agenda_items"

    meeting_id: Mapped[UUID] = mapped_column(
        ForeignKey("l10_meetings.id", ondelete="CASCADE"), nullable=False
    )
    section: Mapped[AgendaSection] = mapped_column(
        Enum(AgendaSection, name="agenda_section", values_callable=enum_values),
        nullable=False,
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column()
    completed_at: Mapped[datetime | None] = mapped_column()
    notes: Mapped[str | None] = mapped_column(Text)

    meeting: Mapped["Meeting"] = relationship(back_populates="agenda_items")


class MeetingAttendee(Base, UUIDMixin):
    """Profile invited to a meeting."""

    __tablename__ = "l10_meeting_attendees"

    meeting_id: Mapped[UUID] = mapped_column(
        ForeignKey("l10_meetings.id", ondelete="CASCADE"), nullable=False
    )
    profile_id: Mapped[UUID] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    attended: Mapped[bool | None] = mapped_column(Boolean)

    meeting: Mapped["Meeting"] = relationship(back_populates="attendees")
    profile: Mapped["Profile"] = relationship()

    __table_args__ = (
        UniqueConstraint("meeting_id", "profile_id"),
    )


class IssueDiscussed(Base, UUIDMixin):
    """Outcome of one issue worked through IDS in a meeting."""

    __tablename__ = "l10_issues_discussed"

    meeting_id: Mapped[UUID] = mapped_column(
        ForeignKey("l10_meetings.id", ondelete="CASCADE"), nullable=False
    )
    issue_id: Mapped[UUID] = mapped_column(ForeignKey("issues.id"), nullable=False)
    outcome: Mapped[str | None] = mapped_column(String(20))
    decision_notes: Mapped[str | None] = mapped_column(Text)
    discussion_duration_seconds: Mapped[int | None] = mapped_column(Integer)
    todo_id: Mapped[UUID | None] = mapped_column(ForeignKey("todos.id"))
    discussed_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    meeting: Mapped["Meeting"] = relationship(back_populates="issues_discussed")
    issue: Mapped["Issue"] = relationship()
    todo: Mapped["Todo | None"] = relationship()


class TodoReviewed(Base, UUIDMixin):
    """Done / not done / pushed mark given to a to-do during review."""

    __tablename__ = "l10_todos_reviewed"

    meeting_id: Mapped[UUID] = mapped_column(
        ForeignKey("l10_meetings.id", ondelete="CASCADE"), nullable=False
    )
    todo_id: Mapped[UUID] = mapped_column(ForeignKey("todos.id"), nullable=False)
    status: Mapped[TodoReviewStatus] = mapped_column(
        Enum(TodoReviewStatus, name="todo_review_status", values_callable=enum_values),
        nullable=False,
    )
    reviewed_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    meeting: Mapped["Meeting"] = relationship(back_populates="todos_reviewed")
    todo: Mapped["Todo"] = relationship()

    __table_args__ = (
        UniqueConstraint("meeting_id", "todo_id"),
    )


# =============================================================================
# BRIEFING CONTEXT
# =============================================================================


class Briefing(Base, UUIDMixin):
    """One AI briefing per profile per calendar day."""

    __tablename__ = "briefings"

    profile_id: Mapped[UUID] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    briefing_date: Mapped[date] = mapped_column(Date, nullable=False)
    content: Mapped[dict] = mapped_column(JSONType, nullable=False)
    context: Mapped[dict | None] = mapped_column(JSONType)
    generated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    viewed_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        UniqueConstraint("profile_id", "briefing_date"),
    )


class Alert(Base, UUIDMixin):
    """Organization-wide alert that people acknowledge individually."""

    __tablename__ = "alerts"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    severity: Mapped[str] = mapped_column(String(20), default="normal")
    created_by: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    acknowledgments: Mapped[list["AlertAcknowledgment"]] = relationship(
        cascade="all, delete-orphan",
    )


class AlertAcknowledgment(Base, UUIDMixin):
    __tablename__ = "alert_acknowledgments"

    alert_id: Mapped[UUID] = mapped_column(
        ForeignKey("alerts.id", ondelete="CASCADE"), nullable=False
    )
    profile_id: Mapped[UUID] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    acknowledged_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("alert_id", "profile_id"),
    )


class Update(Base, UUIDMixin):
    """Short status update posted by a team member."""

    __tablename__ = "updates"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    author_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    content: Mapped[str] = mapped_column(Text, nullable=False)
    update_type: Mapped[str] = mapped_column(String(30), default="general")
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    author: Mapped["Profile | None"] = relationship()


class VTO(Base, UUIDMixin, TimestampMixin):
    """Vision/Traction Organizer for an organization."""

    __tablename__ = "vto"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, unique=True
    )
    core_values: Mapped[list | None] = mapped_column(JSONType)
    purpose: Mapped[str | None] = mapped_column(Text)
    niche: Mapped[str | None] = mapped_column(Text)
    ten_year_target: Mapped[dict | None] = mapped_column(JSONType)
    three_year_picture: Mapped[dict | None] = mapped_column(JSONType)
    one_year_plan: Mapped[dict | None] = mapped_column(JSONType)


class MetricAnomaly(Base, UUIDMixin):
    """Detected irregularity in a metric's values."""

    __tablename__ = "metric_anomalies"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    metric_id: Mapped[UUID] = mapped_column(
        ForeignKey("metrics.id", ondelete="CASCADE"), nullable=False
    )
    anomaly_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), default="warning")
    description: Mapped[str | None] = mapped_column(Text)
    detected_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )
    resolved_at: Mapped[datetime | None] = mapped_column()

    metric: Mapped["Metric"] = relationship()


class Mention(Base, UUIDMixin):
    """@-mention of a profile in a comment."""

    __tablename__ = "mentions"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    mentioned_profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id"), nullable=False
    )
    mentioner_profile_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(nullable=False)
    content: Mapped[str | None] = mapped_column(Text)
    read_at: Mapped[datetime | None] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )

    mentioner: Mapped["Profile | None"] = relationship(foreign_keys=[mentioner_profile_id])


# =============================================================================
# INTEGRATIONS
# =============================================================================


class Integration(Base, UUIDMixin, TimestampMixin):
    """Per-organization settings for one integration type."""

    __tablename__ = "integrations"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False
    )
    type: Mapped[IntegrationType] = mapped_column(
        Enum(IntegrationType, name="integration_type", values_callable=enum_values),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    config: Mapped[dict] = mapped_column(JSONType, default=dict)
    last_sync_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        UniqueConstraint("organization_id", "type"),
    )


class SlackWorkspace(Base, UUIDMixin, TimestampMixin):
    """Slack workspace connected to an organization."""

    __tablename__ = "slack_workspaces"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False, index=True
    )
    workspace_id: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="Slack team ID"
    )
    workspace_name: Mapped[str | None] = mapped_column(String(255))
    workspace_icon: Mapped[str | None] = mapped_column(String(500))
    access_token: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Encrypted Slack bot token"
    )
    bot_user_id: Mapped[str | None] = mapped_column(String(50))
    scope: Mapped[str | None] = mapped_column(Text)
    installed_by: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class SlackUserMapping(Base, UUIDMixin, TimestampMixin):
    """Slack user in a connected workspace, matched to a profile when possible."""

    __tablename__ = "slack_user_mappings"

    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False
    )
    profile_id: Mapped[UUID | None] = mapped_column(ForeignKey("profiles.id"))
    slack_user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    slack_email: Mapped[str | None] = mapped_column(String(255))
    slack_display_name: Mapped[str | None] = mapped_column(String(255))
    match_method: Mapped[str | None] = mapped_column(String(20), comment="auto_email or manual")

    __table_args__ = (
        UniqueConstraint("organization_id", "slack_user_id"),
    )


class OAuthState(Base, UUIDMixin):
    """Short-lived OAuth state token, consumed by the callback."""

    __tablename__ = "oauth_states"

    state: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    integration_type: Mapped[str] = mapped_column(String(50), nullable=False)
    redirect_uri: Mapped[str | None] = mapped_column(Text)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), nullable=False
    )


class UserIntegration(Base, UUIDMixin, TimestampMixin):
    """Per-user OAuth connection (Google Calendar)."""

    __tablename__ = "user_integrations"

    profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id"), nullable=False
    )
    integration_type: Mapped[str] = mapped_column(String(50), nullable=False)
    access_token: Mapped[str | None] = mapped_column(Text)
    refresh_token: Mapped[str | None] = mapped_column(Text)
    token_expires_at: Mapped[datetime | None] = mapped_column()
    external_account_email: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="active")
    scopes: Mapped[list | None] = mapped_column(JSONType)

    __table_args__ = (
        UniqueConstraint("profile_id", "integration_type"),
    )
